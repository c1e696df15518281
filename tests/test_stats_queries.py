"""Engine-backed statistics queries over two synced tournaments."""

import pytest

import optcg_meta.scraping.sync as sync_mod
from optcg_meta.core.config import SyncConfig
from optcg_meta.stats import (
    get_cards_by_leader,
    get_dashboard_stats,
    get_decklist_entry,
    get_decklist_for_player,
    get_decklists,
    get_grouped_decklists,
    get_leader_detail,
    get_leader_name_map,
    get_leader_stats,
    get_leader_trends,
    get_matchup_data,
    get_matchup_matrix,
    get_meta_share,
    get_meta_trends,
    get_most_played_cards,
    get_player_detail,
    get_player_leaderboard,
    get_recent_tournaments,
    get_top_decklists,
    get_tournament,
    get_tournament_standings,
    get_tournaments,
    get_win_rate_trends,
    resolve_format_filter,
)

ZORO = "OP01-001"
KID = "OP02-002"

IZO = {"name": "Izo", "set": "OP13", "number": "001", "count": 4}
NAMI = {"name": "Nami", "set": "OP13", "number": "002", "count": 4}
KILLER = {"name": "Killer", "set": "OP13", "number": "005", "count": 4}
ROBIN = {"name": "Robin", "set": "OP14", "number": "050", "count": 2}
HEAT = {"name": "Heat", "set": "OP14", "number": "060", "count": 4}


def _entry(player, deck_id, wins, losses, characters):
    leader = {"name": "Zoro", "set": "OP01", "number": "001"}
    if deck_id == KID:
        leader = {"name": "Kid", "set": "OP02", "number": "002"}
    return {
        "player": player,
        "name": player.title(),
        "country": "JP",
        "record": {"wins": wins, "losses": losses, "ties": 0},
        "deck": {"id": deck_id, "name": leader["name"]},
        "decklist": {"leader": leader, "character": characters},
    }


def _pairing(round_no, player1, player2, winner):
    return {
        "round": round_no,
        "player1": player1,
        "player2": player2,
        "winner": winner,
    }


SOURCE = {
    "t1": (
        [
            _entry("alice", ZORO, 3, 0, [IZO, NAMI]),
            _entry("bob", KID, 2, 1, [KILLER]),
            _entry("carol", ZORO, 1, 2, [NAMI, IZO]),
            _entry("dan", KID, 0, 3, [KILLER]),
        ],
        [
            _pairing(1, "alice", "bob", "alice"),
            _pairing(1, "carol", "dan", "carol"),
            _pairing(2, "alice", "carol", "alice"),
            _pairing(2, "bob", "dan", "bob"),
            _pairing(3, "alice", "dan", "alice"),
            _pairing(3, "bob", "carol", "bob"),
        ],
    ),
    "t2": (
        [
            _entry("bob", ZORO, 2, 0, [IZO, NAMI, ROBIN]),
            _entry("erin", KID, 1, 1, [KILLER, HEAT]),
            _entry("alice", KID, 0, 2, [KILLER]),
        ],
        [
            _pairing(1, "bob", "erin", "bob"),
            _pairing(2, "bob", "alice", "bob"),
            _pairing(3, "erin", "alice", "erin"),
        ],
    ),
}


@pytest.fixture
def synced(engine, monkeypatch):
    monkeypatch.setattr(
        sync_mod,
        "get_circuit_tournaments",
        lambda **_k: [
            {"id": "t1", "name": "Chinoize Weekly 1", "date": "2025-01-10"},
            {"id": "t2", "name": "Chinoize Weekly 2", "date": "2025-02-10"},
        ],
    )
    monkeypatch.setattr(
        sync_mod, "get_tournament_standings", lambda tid, **_k: SOURCE[tid][0]
    )
    monkeypatch.setattr(
        sync_mod, "get_tournament_pairings", lambda tid, **_k: SOURCE[tid][1]
    )
    config = SyncConfig(api_delay=0.0)
    sync_mod.sync_tournament_list(engine, config=config)
    for tid in SOURCE:
        assert sync_mod.sync_single_tournament(engine, tid, config=config).success
    return engine


def test_leader_stats_respect_tournament_filter(synced):
    everything = {
        r["deck_id"]: r for r in get_leader_stats(synced).iter_rows(named=True)
    }
    assert everything[ZORO]["total_entries"] == 3
    assert everything[KID]["total_entries"] == 4
    assert everything[ZORO]["tournament_wins"] == 2

    latest = {
        r["deck_id"]: r
        for r in get_leader_stats(synced, ["t2"]).iter_rows(named=True)
    }
    assert latest[ZORO]["total_entries"] == 1
    assert latest[KID]["total_entries"] == 2

    assert get_leader_stats(synced, []).is_empty()


def test_current_format_drives_default_filter(synced):
    resolved = resolve_format_filter(synced)
    assert resolved.current_format_code == "OP14"
    assert resolved.tournament_ids == ["t2"]
    assert resolve_format_filter(synced, "OP13").tournament_ids == ["t1", "t2"]


def test_leader_detail_and_trends(synced):
    detail = get_leader_detail(synced, ZORO)
    assert detail["tournament_id"].to_list() == ["t2", "t1", "t1"]
    assert detail["player"].to_list() == ["bob", "alice", "carol"]

    trends = get_leader_trends(synced, ZORO)
    assert trends["date"].to_list() == ["2025-01-10", "2025-02-10"]
    assert trends["entries"].to_list() == [2, 1]
    assert trends["play_rate"].to_list() == pytest.approx([0.5, 1 / 3])


def test_meta_share_and_names(synced):
    share = get_meta_share(synced)
    assert share["deck_id"].to_list() == [KID, ZORO]
    assert share["share"].to_list() == pytest.approx([4 / 7, 3 / 7])
    assert get_leader_name_map(synced) == {ZORO: "Zoro", KID: "Kid"}


def test_matchups_from_store(synced):
    matchups = get_matchup_data(synced, ZORO)
    assert matchups["opponent_deck_id"].to_list() == [KID, ZORO]
    vs_kid = matchups.row(0, named=True)
    assert (vs_kid["wins"], vs_kid["losses"], vs_kid["total"]) == (5, 1, 6)
    mirror = matchups.row(1, named=True)
    assert (mirror["wins"], mirror["losses"]) == (1, 1)

    matrix = get_matchup_matrix(synced, [ZORO, KID])
    assert matrix[KID][ZORO]["wins"] == 1
    assert matrix[KID][ZORO]["losses"] == 5
    assert get_matchup_matrix(synced, []) == {}


def test_grouped_decklists_from_store(synced):
    groups = get_grouped_decklists(synced, ZORO)
    assert [g.pilot_count for g in groups] == [2, 1]
    assert (groups[0].rep_tournament_id, groups[0].rep_player) == ("t1", "alice")
    assert groups[0].fingerprint == "OP13-001:4,OP13-002:4"

    latest = get_grouped_decklists(synced, ZORO, tournament_ids=["t2"])
    assert [g.rep_player for g in latest] == ["bob"]

    cards = get_decklist_for_player(synced, "t1", "alice")
    assert [c.card_name for c in cards] == ["Izo", "Nami"]


def test_player_queries(synced):
    board = get_player_leaderboard(synced)
    assert board["player"].to_list() == ["bob", "alice", "erin", "carol", "dan"]
    assert board["total_points"].to_list() == [28, 24, 12, 8, 8]

    history = get_player_detail(synced, "alice")
    assert history["tournament_id"].to_list() == ["t2", "t1"]
    assert history["player_count"].to_list() == [3, 4]


def test_trend_queries(synced):
    meta = get_meta_trends(synced)
    first = {
        r["deck_id"]: r
        for r in meta.filter(meta["date"] == "2025-01-10").iter_rows(named=True)
    }
    assert first[ZORO]["count"] == 2
    assert first[ZORO]["total"] == 4
    assert first[ZORO]["share"] == pytest.approx(0.5)

    rates = get_win_rate_trends(synced, ["t2"])
    kid = rates.filter(rates["deck_id"] == KID).row(0, named=True)
    assert kid["win_rate"] == pytest.approx(0.25)


def test_card_queries(synced):
    popular = get_most_played_cards(synced, limit=3)
    assert popular["card_name"].to_list() == ["Killer", "Izo", "Nami"]
    assert popular["total_decks"].to_list() == [4, 3, 3]

    kid_cards = get_cards_by_leader(synced, KID)
    rates = dict(zip(kid_cards["card_name"], kid_cards["inclusion_rate"]))
    assert rates == pytest.approx({"Killer": 1.0, "Heat": 0.25})


def test_tournament_queries(synced):
    listing = get_tournaments(synced)
    assert listing["id"].to_list() == ["t2", "t1"]
    assert listing["is_special_event"].to_list() == [False, False]

    assert get_tournament(synced, "t1")["name"] == "Chinoize Weekly 1"
    assert get_tournament(synced, "nope") is None

    standings = get_tournament_standings(synced, "t1")
    assert standings["player"].to_list() == ["alice", "bob", "carol", "dan"]
    assert standings["placing"].to_list() == [1, 2, 3, 4]


def test_dashboard_and_recent_tournaments(synced):
    stats = get_dashboard_stats(synced)
    assert stats["total_tournaments"] == 2
    assert stats["unique_player_count"] == 5
    assert stats["recent_winners"]["player"].to_list() == ["bob", "alice"]

    first_only = get_dashboard_stats(synced, ["t1"])
    assert first_only["total_tournaments"] == 1
    assert first_only["unique_player_count"] == 4
    assert first_only["recent_winners"]["tournament_id"].to_list() == ["t1"]

    nothing = get_dashboard_stats(synced, [])
    assert nothing["total_tournaments"] == 0
    assert nothing["recent_winners"].is_empty()

    recent = get_recent_tournaments(synced, limit=1)
    assert recent["id"].to_list() == ["t2"]
    assert recent["winner_player"].to_list() == ["bob"]
    assert recent["winner_leader_name"].to_list() == ["Zoro"]


def test_decklist_browsing_queries(synced):
    kid = get_decklists(synced, deck_id=KID)
    assert kid["player"].to_list() == ["erin", "alice", "bob", "dan"]
    by_record = get_decklists(synced, deck_id=KID, sort_by="winrate")
    assert by_record["player"].to_list() == ["bob", "erin", "alice", "dan"]

    searched = get_decklists(synced, player_search="ALI")
    assert searched.select(["tournament_id", "deck_id"]).rows() == [
        ("t2", KID),
        ("t1", ZORO),
    ]
    podium = get_decklists(synced, tournament_id="t1", max_placing=2)
    assert podium["player"].to_list() == ["alice", "bob"]
    scoped = get_decklists(synced, deck_id=ZORO, tournament_ids=["t1"])
    assert scoped["player"].to_list() == ["alice", "carol"]

    top = get_top_decklists(synced, ZORO, limit=2)
    assert top.select(["tournament_id", "player"]).rows() == [
        ("t2", "bob"),
        ("t1", "alice"),
    ]

    entry = get_decklist_entry(synced, "t1", "carol")
    assert entry["placing"] == 3
    assert entry["leader_name"] == "Zoro"
    assert entry["tournament_name"] == "Chinoize Weekly 1"
    assert get_decklist_entry(synced, "t1", "nobody") is None
