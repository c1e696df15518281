"""
Core API functions for reading tournament data from the Limitless TCG API.

The API is read-only and returns plain JSON arrays for tournament lists,
per-tournament standings and per-tournament pairings. Responses outside the
2xx range raise ``LimitlessAPIError``; transport failures surface as the
underlying ``requests`` exception.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import requests

from optcg_meta.core.config import SyncConfig

logger = logging.getLogger(__name__)


class LimitlessAPIError(RuntimeError):
    """Non-2xx response from the Limitless API."""

    def __init__(self, status: int, reason: str, path: str):
        self.status = status
        self.reason = reason
        self.path = path
        super().__init__(f"Limitless API error: {status} {reason} for {path}")


def build_url(base_url: str, path: str) -> str:
    """Join ``base_url`` and ``path`` with exactly one slash between them."""
    base = base_url if base_url.endswith("/") else base_url + "/"
    clean_path = path[1:] if path.startswith("/") else path
    return base + clean_path


def fetch_json(
    path: str,
    params: Optional[dict[str, str]] = None,
    *,
    config: Optional[SyncConfig] = None,
    session: Optional[requests.Session] = None,
) -> Any:
    """GET ``path`` relative to the configured base URL and decode JSON.

    Parameters
    ----------
    path : str
        API path such as ``/tournaments`` (leading slash optional)
    params : dict, optional
        Query-string parameters
    config : SyncConfig, optional
        Source configuration; defaults to ``SyncConfig.from_env()``
    session : requests.Session, optional
        Reusable session for connection pooling

    Returns
    -------
    Any
        Decoded JSON body

    Raises
    ------
    LimitlessAPIError
        If the response status is not 2xx
    """
    config = config or SyncConfig.from_env()
    http = session or requests
    url = build_url(config.base_url, path)
    logger.debug(f"GET {url} params={params}")
    response = http.get(
        url,
        params=params,
        headers={"Accept": "application/json"},
        timeout=config.timeout,
    )
    if not response.ok:
        raise LimitlessAPIError(response.status_code, response.reason or "", path)
    return response.json()


def get_circuit_tournaments(
    *,
    config: Optional[SyncConfig] = None,
    session: Optional[requests.Session] = None,
) -> list[dict]:
    """Fetch the organizer's tournament list for the configured game."""
    config = config or SyncConfig.from_env()
    params = {"game": config.game, "limit": str(config.list_limit)}
    if config.organizer_id:
        params["organizerId"] = str(config.organizer_id)
    data = fetch_json("/tournaments", params, config=config, session=session)
    return list(data or [])


def get_tournament_standings(
    tournament_id: str,
    *,
    config: Optional[SyncConfig] = None,
    session: Optional[requests.Session] = None,
) -> list[dict]:
    """Fetch final standings (records, decks, decklists) for a tournament."""
    data = fetch_json(
        f"/tournaments/{tournament_id}/standings", config=config, session=session
    )
    return list(data or [])


def get_tournament_pairings(
    tournament_id: str,
    *,
    config: Optional[SyncConfig] = None,
    session: Optional[requests.Session] = None,
) -> list[dict]:
    """Fetch every pairing for a tournament across all rounds and phases."""
    data = fetch_json(
        f"/tournaments/{tournament_id}/pairings", config=config, session=session
    )
    return list(data or [])


def matches_name_filter(tournament: dict, name_filter: Optional[str]) -> bool:
    """True when the tournament name contains ``name_filter`` (case-insensitive)."""
    if not name_filter:
        return True
    name = tournament.get("name") or ""
    return name_filter.lower() in name.lower()
