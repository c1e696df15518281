"""Tests for head-to-head matchup aggregation."""

import warnings

import polars as pl

from optcg_meta.sql.load import PAIRING_COLUMNS
from optcg_meta.stats.matchups import compute_matchups, matchup_matrix


def _standings():
    return pl.DataFrame(
        {
            "tournament_id": ["t1"] * 5,
            "player": ["alice", "bob", "carol", "dan", "erin"],
            "deck_id": ["A", "B", "A", "B", None],
        }
    )


def _pairings(rows):
    return pl.DataFrame(
        [
            dict(zip(PAIRING_COLUMNS, r))
            for r in rows
        ],
        schema=PAIRING_COLUMNS,
    )


PAIRINGS = [
    ("t1", 1, "1", 1, "alice", "bob", "alice"),
    ("t1", 1, "1", 2, "carol", "dan", "dan"),
    ("t1", 1, "1", 3, "erin", "", "erin"),
    ("t1", 2, "1", 1, "alice", "carol", ""),
    ("t1", 2, "1", 2, "bob", "dan", None),
    ("t1", 2, "1", 3, "erin", "alice", "alice"),
    ("t1", 3, "1", 1, "bob", "alice", "bob"),
]


def _cells(df):
    return {
        (r["deck_id"], r["opponent_deck_id"]): r for r in df.iter_rows(named=True)
    }


def test_matchups_are_symmetric():
    cells = _cells(compute_matchups(_pairings(PAIRINGS), _standings()))
    ab, ba = cells[("A", "B")], cells[("B", "A")]
    assert (ab["wins"], ab["losses"], ab["ties"]) == (1, 2, 0)
    assert (ba["wins"], ba["losses"], ba["ties"]) == (2, 1, 0)
    for (deck, opp), cell in cells.items():
        mirror = cells[(opp, deck)]
        assert cell["wins"] == mirror["losses"]
        assert cell["ties"] == mirror["ties"]
        assert cell["total"] == mirror["total"]


def test_draws_count_as_ties_for_both_seats():
    cells = _cells(compute_matchups(_pairings(PAIRINGS), _standings()))
    # alice vs carol ("" winner) seen from both seats of the mirror match
    assert cells[("A", "A")]["ties"] == 2
    # bob vs dan (null winner)
    assert cells[("B", "B")]["ties"] == 2
    assert cells[("A", "A")]["win_rate"] == 0.0


def test_byes_and_deckless_players_are_excluded():
    cells = _cells(compute_matchups(_pairings(PAIRINGS), _standings()))
    assert all(deck is not None and opp is not None for deck, opp in cells)
    assert sum(c["total"] for c in cells.values()) == 10


def test_deck_filter_applies_to_both_sides():
    df = compute_matchups(_pairings(PAIRINGS), _standings(), deck_ids=["A"])
    assert df.select(["deck_id", "opponent_deck_id"]).rows() == [("A", "A")]


def test_deck_filter_accepts_any_sequence_without_warnings():
    with warnings.catch_warnings():
        warnings.simplefilter("error")
        df = compute_matchups(
            _pairings(PAIRINGS), _standings(), deck_ids=("A", "B")
        )
    assert set(df["deck_id"].to_list()) <= {"A", "B"}
    assert set(df["opponent_deck_id"].to_list()) <= {"A", "B"}
    assert compute_matchups(_pairings(PAIRINGS), _standings(), deck_ids=[]).is_empty()


def test_empty_inputs():
    df = compute_matchups(_pairings([]), _standings())
    assert df.is_empty()
    assert "win_rate" in df.columns


def test_matrix_nesting():
    matrix = matchup_matrix(compute_matchups(_pairings(PAIRINGS), _standings()))
    assert matrix["A"]["B"]["total"] == 3
    assert matrix["B"]["A"]["win_rate"] == 2 / 3
