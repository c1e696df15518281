"""Tournament ingestion from the Limitless TCG API."""

from __future__ import annotations

# Core API functions
from optcg_meta.scraping.api import (
    LimitlessAPIError,
    fetch_json,
    get_circuit_tournaments,
    get_tournament_pairings,
    get_tournament_standings,
)

# Payload normalization
from optcg_meta.scraping.normalize import (
    build_card_rows,
    build_pairing_rows,
    build_standing_rows,
    compute_placings,
    flatten_decklist,
    player_key,
)

# Store synchronization
from optcg_meta.scraping.sync import (
    RateLimiter,
    SyncResult,
    SyncSelection,
    run_sync,
    select_tournaments_to_sync,
    sync_single_tournament,
    sync_tournament_list,
)

__all__ = [
    # API
    "LimitlessAPIError",
    "fetch_json",
    "get_circuit_tournaments",
    "get_tournament_standings",
    "get_tournament_pairings",
    # Normalization
    "compute_placings",
    "player_key",
    "flatten_decklist",
    "build_standing_rows",
    "build_card_rows",
    "build_pairing_rows",
    # Sync
    "SyncResult",
    "SyncSelection",
    "RateLimiter",
    "sync_tournament_list",
    "sync_single_tournament",
    "select_tournaments_to_sync",
    "run_sync",
]
