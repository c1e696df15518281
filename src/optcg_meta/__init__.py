"""One Piece TCG circuit meta: tournament ingestion and leader statistics."""

from __future__ import annotations

from optcg_meta.scraping import run_sync, sync_single_tournament, sync_tournament_list
from optcg_meta.stats import (
    get_current_format,
    get_grouped_decklists,
    get_leader_stats,
    get_matchup_data,
    get_matchup_matrix,
    resolve_format_filter,
)

__version__ = "0.1.0"

__all__ = [
    # Ingestion
    "sync_tournament_list",
    "sync_single_tournament",
    "run_sync",
    # Statistics
    "get_leader_stats",
    "get_matchup_data",
    "get_matchup_matrix",
    "get_grouped_decklists",
    "get_current_format",
    "resolve_format_filter",
]
