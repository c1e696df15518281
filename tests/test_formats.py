"""Tests for format detection, membership and the cached card-set scan."""

import optcg_meta.stats.formats as formats_mod
from optcg_meta.core.config import FormatConfig
from optcg_meta.sql.models import DecklistCard, Tournament
from optcg_meta.sql.write import batch_insert
from optcg_meta.stats.formats import (
    format_set_code,
    get_all_formats,
    get_current_format,
    get_format_by_set_code,
    get_special_event_ids,
    is_special_event,
    resolve_format_filter,
)


def _tournament(tid, name, date, synced_at="2025-04-01T00:00:00"):
    return {
        "id": tid,
        "name": name,
        "date": date,
        "player_count": 16,
        "platform": "online",
        "format": "OP",
        "round_count": 4,
        "synced_at": synced_at,
    }


def _card(tid, card_set, player="p1"):
    return {
        "tournament_id": tid,
        "standing_player": player,
        "card_type": "character",
        "card_name": f"Card {card_set}",
        "card_set": card_set,
        "card_number": "001",
        "count": 4,
        "card_id": f"{card_set}-001",
    }


def _seed(engine):
    with engine.begin() as conn:
        batch_insert(
            conn,
            Tournament,
            [
                _tournament("t1", "Chinoize Weekly 1", "2025-01-10"),
                _tournament("t2", "Chinoize Weekly 2", "2025-02-10"),
                _tournament("t3", "Chinoize Weekly 3", "2025-03-01"),
                _tournament("t4", "Chinoize Heroine Battles", "2025-03-05"),
            ],
        )
        batch_insert(
            conn,
            DecklistCard,
            [
                _card("t1", "OP12"),
                _card("t1", "OP13"),
                _card("t2", "OP13"),
                _card("t2", "OP14"),
                _card("t3", "OP14"),
                _card("t3", "EB04"),
                _card("t3", "ST10"),
                _card("t4", "OP14"),
            ],
        )


def test_current_format_is_most_recently_introduced_set(engine):
    _seed(engine)
    current = get_current_format(engine)
    assert current.set_code == "OP14"
    assert current.display_name == "OP-14"
    assert current.first_seen == "2025-02-10"
    assert [f.set_code for f in get_all_formats(engine)] == ["OP14", "OP13", "OP12"]


def test_membership_is_inclusive(engine):
    _seed(engine)
    op13 = get_format_by_set_code(engine, "OP13")
    op14 = get_format_by_set_code(engine, "OP14")
    assert op13.tournament_ids == ["t1", "t2"]
    assert op14.tournament_ids == ["t2", "t3", "t4"]
    assert "t2" in op13.tournament_ids and "t2" in op14.tournament_ids


def test_ignored_sets_can_be_configured(engine):
    _seed(engine)
    cfg = FormatConfig(ignored_sets=[])
    assert get_current_format(engine, config=cfg).set_code == "EB04"


def test_resolve_excludes_special_events(engine):
    _seed(engine)
    current = resolve_format_filter(engine)
    assert current.tournament_ids == ["t2", "t3"]
    assert current.active_format_value == "OP14"
    assert current.current_format_code == "OP14"
    assert [o["set_code"] for o in current.format_options] == ["OP14", "OP13", "OP12"]

    older = resolve_format_filter(engine, "OP13")
    assert older.tournament_ids == ["t1", "t2"]
    assert older.active_format_value == "OP13"

    everything = resolve_format_filter(engine, "all")
    assert sorted(everything.tournament_ids) == ["t1", "t2", "t3"]
    assert everything.active_format is None
    assert everything.active_format_value == "all"


def test_special_event_detection(engine):
    _seed(engine)
    assert get_special_event_ids(engine) == ["t4"]
    assert is_special_event("the HEROINE battles finals")
    assert not is_special_event(None)


def test_empty_store_has_no_formats(engine):
    assert get_current_format(engine) is None
    resolved = resolve_format_filter(engine)
    assert resolved.tournament_ids == []
    assert resolved.active_format_value == "all"


def test_card_set_scan_is_cached_until_tournaments_change(engine, monkeypatch):
    _seed(engine)
    calls = []
    real_load = formats_mod.load_card_sets_df

    def counting_load(eng):
        calls.append(1)
        return real_load(eng)

    monkeypatch.setattr(formats_mod, "load_card_sets_df", counting_load)

    assert get_current_format(engine).set_code == "OP14"
    assert get_current_format(engine).set_code == "OP14"
    assert len(calls) == 1

    with engine.begin() as conn:
        batch_insert(
            conn,
            Tournament,
            [_tournament("t5", "Chinoize Weekly 5", "2025-04-10", "2025-04-11T00:00:00")],
        )
        batch_insert(conn, DecklistCard, [_card("t5", "OP15")])

    assert get_current_format(engine).set_code == "OP15"
    assert len(calls) == 2

    get_current_format(engine, use_cache=False)
    assert len(calls) == 3


def test_format_set_code():
    assert format_set_code("OP14") == "OP-14"
    assert format_set_code("EB03") == "EB-03"
    assert format_set_code("PRB01") == "PRB01"
