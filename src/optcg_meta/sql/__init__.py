"""SQL utilities for the meta tables.

This package defines:
- Schema constants (configurable via env)
- SQLAlchemy models for tournaments, standings, decklist cards, pairings and
  the sync log
- Engine helpers
- A dialect-aware batched ``INSERT .. ON CONFLICT DO NOTHING`` helper
- Lightweight loaders that return Polars DataFrames for the stats engines

Environment variables:
- OPTCG_DB_SCHEMA: optional schema name (default: connection default)
- OPTCG_DATABASE_URL or DATABASE_URL: SQLAlchemy URL for the DB engine
"""

from __future__ import annotations

from optcg_meta.sql import models
from optcg_meta.sql.constants import SCHEMA, qualified
from optcg_meta.sql.engine import (
    create_all,
    create_engine,
    ensure_schema,
)
from optcg_meta.sql.load import (
    load_card_sets_df,
    load_decklist_cards_df,
    load_pairings_df,
    load_standing_counts_df,
    load_standings_df,
    load_sync_watermark,
    load_tournaments_df,
)
from optcg_meta.sql.write import batch_insert

__all__ = [
    # Config
    "SCHEMA",
    "qualified",
    # Engine helpers
    "create_engine",
    "ensure_schema",
    "create_all",
    # Writers
    "batch_insert",
    # Loaders
    "load_tournaments_df",
    "load_standings_df",
    "load_standing_counts_df",
    "load_pairings_df",
    "load_decklist_cards_df",
    "load_card_sets_df",
    "load_sync_watermark",
    # Models submodule
    "models",
]
