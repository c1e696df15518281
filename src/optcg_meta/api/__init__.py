"""HTTP interface for sync triggers and matchup lookups."""

from __future__ import annotations

from optcg_meta.api.app import create_app

__all__ = ["create_app"]
