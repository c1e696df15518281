"""Tests for the Limitless HTTP client using a fake session."""

import pytest

from optcg_meta.core.config import SyncConfig
from optcg_meta.scraping.api import (
    LimitlessAPIError,
    build_url,
    fetch_json,
    get_circuit_tournaments,
    get_tournament_pairings,
    matches_name_filter,
)


class FakeResponse:
    def __init__(self, status_code=200, payload=None, reason="OK"):
        self.status_code = status_code
        self.reason = reason
        self._payload = payload

    @property
    def ok(self):
        return 200 <= self.status_code < 300

    def json(self):
        return self._payload


class FakeSession:
    """Record GET calls and answer with a canned response."""

    def __init__(self, response):
        self.response = response
        self.calls = []

    def get(self, url, params=None, headers=None, timeout=None):
        self.calls.append(
            {"url": url, "params": params, "headers": headers, "timeout": timeout}
        )
        return self.response


CONFIG = SyncConfig(base_url="https://example.test/api/", timeout=7.0)


def test_build_url_single_slash():
    assert build_url("https://h/api", "/tournaments") == "https://h/api/tournaments"
    assert build_url("https://h/api/", "tournaments") == "https://h/api/tournaments"


def test_fetch_json_sends_accept_header_and_timeout():
    session = FakeSession(FakeResponse(payload=[{"id": "1"}]))
    data = fetch_json("/tournaments", {"game": "OP"}, config=CONFIG, session=session)

    assert data == [{"id": "1"}]
    call = session.calls[0]
    assert call["url"] == "https://example.test/api/tournaments"
    assert call["headers"] == {"Accept": "application/json"}
    assert call["timeout"] == 7.0


def test_fetch_json_raises_on_error_status():
    session = FakeSession(FakeResponse(404, reason="Not Found"))
    with pytest.raises(LimitlessAPIError) as excinfo:
        fetch_json("/tournaments/x/standings", config=CONFIG, session=session)

    err = excinfo.value
    assert err.status == 404
    assert str(err) == "Limitless API error: 404 Not Found for /tournaments/x/standings"


def test_circuit_list_request_params():
    session = FakeSession(FakeResponse(payload=None))
    config = SyncConfig(
        base_url="https://example.test/api", game="OP", organizer_id="2339", list_limit=500
    )
    assert get_circuit_tournaments(config=config, session=session) == []
    assert session.calls[0]["params"] == {
        "game": "OP",
        "limit": "500",
        "organizerId": "2339",
    }


def test_circuit_list_without_organizer():
    session = FakeSession(FakeResponse(payload=[]))
    config = SyncConfig(base_url="https://example.test/api", organizer_id=None)
    get_circuit_tournaments(config=config, session=session)
    assert "organizerId" not in session.calls[0]["params"]


def test_pairings_path():
    session = FakeSession(FakeResponse(payload=[{"round": 1}]))
    assert get_tournament_pairings("abc", config=CONFIG, session=session) == [
        {"round": 1}
    ]
    assert session.calls[0]["url"].endswith("/tournaments/abc/pairings")


def test_name_filter_is_case_insensitive():
    assert matches_name_filter({"name": "The CHINOIZE Cup"}, "chinoize")
    assert not matches_name_filter({"name": "Regional"}, "chinoize")
    assert not matches_name_filter({"name": None}, "chinoize")
    assert matches_name_filter({"name": "Anything"}, "")


def test_sync_config_from_env(monkeypatch):
    monkeypatch.setenv("OPTCG_API_DELAY", "0.5")
    monkeypatch.setenv("OPTCG_ORGANIZER_ID", "")
    monkeypatch.setenv("OPTCG_BATCH_SIZE", "not-a-number")
    config = SyncConfig.from_env()
    assert config.api_delay == 0.5
    assert config.organizer_id is None
    assert config.insert_batch_size == 100
