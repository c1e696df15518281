"""Tests for tournament listings, winners and dashboard numbers."""

import polars as pl

from optcg_meta.core.config import FormatConfig
from optcg_meta.sql.load import STANDING_COLUMNS, TOURNAMENT_COLUMNS
from optcg_meta.stats.tournaments import (
    compute_dashboard_stats,
    compute_recent_tournaments,
    tag_special_events,
    tournament_winners,
)


def _frame(rows, schema):
    return pl.DataFrame(
        [{c: row.get(c) for c in schema} for row in rows], schema=schema
    )


def _tournaments():
    return _frame(
        [
            {"id": "t1", "name": "Chinoize Weekly 1", "date": "2025-01-10"},
            {"id": "t2", "name": "HEROINE BATTLES Cup", "date": "2025-02-01"},
            {"id": "t3", "name": "Chinoize Weekly 3", "date": "2025-03-01"},
        ],
        TOURNAMENT_COLUMNS,
    )


def _standing(tid, date, player, placing, drop_round=None, deck="OP01-001"):
    return {
        "tournament_id": tid,
        "tournament_name": f"Event {tid}",
        "tournament_date": date,
        "player": player,
        "display_name": player.title(),
        "placing": placing,
        "wins": 0,
        "losses": 0,
        "ties": 0,
        "drop_round": drop_round,
        "deck_id": deck,
        "leader_name": "Zoro",
    }


def _standings():
    return _frame(
        [
            # t1's first place dropped after the cut
            _standing("t1", "2025-01-10", "ann", 1, drop_round=4),
            _standing("t1", "2025-01-10", "ben", 2),
            _standing("t1", "2025-01-10", "cat", 3),
            _standing("t2", "2025-02-01", "ben", 1),
            _standing("t2", "2025-02-01", "dee", None),
        ],
        STANDING_COLUMNS,
    )


def test_special_events_are_tagged_not_removed():
    df = tag_special_events(_tournaments())
    assert df["id"].to_list() == ["t1", "t2", "t3"]
    assert df["is_special_event"].to_list() == [False, True, False]

    untagged = tag_special_events(_tournaments(), FormatConfig(special_event_names=[]))
    assert untagged["is_special_event"].to_list() == [False, False, False]


def test_winners_skip_dropped_players():
    winners = tournament_winners(_standings())
    by_tournament = dict(zip(winners["tournament_id"], winners["player"]))
    assert by_tournament == {"t1": "ben", "t2": "ben"}


def test_recent_tournaments_newest_first_with_winner():
    recent = compute_recent_tournaments(_tournaments(), _standings(), limit=2)
    assert recent["id"].to_list() == ["t3", "t2"]
    # t3 has no standings yet
    assert recent["winner_player"].to_list() == [None, "ben"]
    assert recent["winner_placing"].to_list() == [None, 1]


def test_dashboard_counts_players_and_non_dropped_winners():
    stats = compute_dashboard_stats(_tournaments(), _standings())
    assert stats["total_tournaments"] == 3
    assert stats["unique_player_count"] == 4
    winners = stats["recent_winners"]
    assert winners.select(["tournament_id", "player"]).rows() == [("t2", "ben")]


def test_dashboard_on_empty_store():
    stats = compute_dashboard_stats(
        pl.DataFrame(schema=TOURNAMENT_COLUMNS), pl.DataFrame(schema=STANDING_COLUMNS)
    )
    assert stats["total_tournaments"] == 0
    assert stats["unique_player_count"] == 0
    assert stats["recent_winners"].is_empty()
