"""Tests for the player leaderboard, meta trends and card usage."""

import polars as pl
import pytest

from optcg_meta.sql.load import CARD_COLUMNS, STANDING_COLUMNS
from optcg_meta.stats.cards import compute_cards_by_leader, compute_most_played_cards
from optcg_meta.stats.players import compute_player_leaderboard
from optcg_meta.stats.trends import compute_meta_trends, compute_win_rate_trends


def _standing(tid, date, player_count, player, deck_id, placing, wins, losses, drop=None):
    return {
        "tournament_id": tid,
        "tournament_name": tid,
        "tournament_date": date,
        "tournament_player_count": player_count,
        "player": player,
        "display_name": player.upper(),
        "country": "JP",
        "placing": placing,
        "wins": wins,
        "losses": losses,
        "ties": 0,
        "drop_round": drop,
        "deck_id": deck_id,
        "deck_name": None,
        "leader_name": None if deck_id is None else f"Leader {deck_id}",
        "leader_set": None,
        "leader_number": None,
    }


@pytest.fixture
def standings():
    return pl.DataFrame(
        [
            _standing("t1", "2025-01-01", 4, "ann", "A", 1, 3, 0),
            _standing("t1", "2025-01-01", 4, "ben", "B", 2, 2, 1),
            _standing("t2", "2025-01-01", 6, "ann", "B", 3, 2, 1),
            _standing("t2", "2025-01-01", 6, "ben", "A", 1, 3, 0, drop=None),
            _standing("t3", "2025-01-08", 8, "cat", "A", 1, 2, 0, drop=3),
            _standing("t3", "2025-01-08", 8, "ann", "A", 5, 1, 2),
        ],
        schema=STANDING_COLUMNS,
    )


def test_leaderboard_points_and_rank(standings):
    board = compute_player_leaderboard(standings)
    rows = {r["player"]: r for r in board.iter_rows(named=True)}

    # ann: 1st (16) + 3rd (8) + 5th (6)
    assert rows["ann"]["total_points"] == 30
    # ben: 2nd (12) + 1st (16)
    assert rows["ben"]["total_points"] == 28
    # Dropped entries score nothing and have no best placing
    assert rows["cat"]["total_points"] == 0
    assert rows["cat"]["best_placing"] == 0
    assert rows["cat"]["top4_count"] == 0

    assert board["player"].to_list() == ["ann", "ben", "cat"]
    assert board["rank"].to_list() == [1, 2, 3]
    assert rows["ann"]["tournaments_played"] == 3
    assert rows["ann"]["best_placing"] == 1
    assert rows["ann"]["win_rate"] == pytest.approx(6 / 9)
    assert rows["ann"]["display_name"] == "ANN"
    assert rows["ann"]["most_played_leader_name"] == "Leader A"


def test_most_played_leader_ties_go_alphabetically_first(standings):
    board = compute_player_leaderboard(standings)
    ben = board.filter(pl.col("player") == "ben").row(0, named=True)
    assert ben["most_played_leader_name"] == "Leader A"


def test_empty_leaderboard():
    board = compute_player_leaderboard(pl.DataFrame(schema=STANDING_COLUMNS))
    assert board.is_empty()
    assert board.columns[0] == "rank"


def test_meta_trends_combine_same_date_tournaments(standings):
    trends = compute_meta_trends(standings)
    jan1 = {
        r["deck_id"]: r
        for r in trends.filter(pl.col("date") == "2025-01-01").iter_rows(named=True)
    }
    assert jan1["A"]["count"] == 2
    assert jan1["A"]["total"] == 10
    assert jan1["A"]["share"] == pytest.approx(0.2)

    jan8 = trends.filter(pl.col("date") == "2025-01-08").row(0, named=True)
    assert (jan8["deck_id"], jan8["count"], jan8["total"]) == ("A", 2, 8)


def test_win_rate_trends(standings):
    trends = compute_win_rate_trends(standings)
    row = trends.filter(pl.col("date") == "2025-01-08").row(0, named=True)
    assert (row["wins"], row["losses"]) == (3, 2)
    assert row["win_rate"] == pytest.approx(0.6)


def _card_rows():
    rows = []
    for player, extra in (("ann", 4), ("ben", 2), ("cat", None)):
        rows.append(("t1", player, "character", "Izo", "OP13", "001", 4))
        if extra:
            rows.append(("t1", player, "event", "Guard", "OP14", "090", extra))
    return pl.DataFrame(
        [dict(zip(CARD_COLUMNS, r + (f"{r[4]}-{r[5]}",))) for r in rows],
        schema=CARD_COLUMNS,
    )


def test_most_played_cards():
    cards = compute_most_played_cards(_card_rows())
    assert cards["card_name"].to_list() == ["Izo", "Guard"]
    assert cards["total_decks"].to_list() == [3, 2]
    guard = cards.row(1, named=True)
    assert guard["avg_copies"] == pytest.approx(3.0)
    assert guard["total_copies"] == 6
    assert compute_most_played_cards(_card_rows(), limit=1).height == 1


def test_cards_by_leader_inclusion_rate():
    cards = compute_cards_by_leader(_card_rows(), total_decks=4)
    assert cards["inclusion_rate"].to_list() == pytest.approx([0.75, 0.5])
