"""
HTTP endpoints for triggering syncs and reading matchups.

Routes
------
POST /api/sync                      batch sync (``?all=true``, ``?limit=N``)
POST /api/sync/<tournament_id>      re-sync one tournament
GET  /api/leaders/<deck_id>/matchups

Sync routes require ``Authorization: Bearer <secret>`` where the secret comes
from ``SYNC_SECRET`` (or ``CRON_SECRET``). With no secret configured every
sync request is rejected. Failures are logged server-side; callers only ever
see a generic JSON error body.
"""

from __future__ import annotations

import argparse
import hmac
import logging
import os
import time
from typing import Callable, Optional

from flask import Flask, jsonify, request
from sentry_sdk.integrations.flask import FlaskIntegration
from sqlalchemy.engine import Engine

from optcg_meta.core.config import SyncConfig
from optcg_meta.core.constants import DEFAULT_SYNC_LIMIT, MAX_SYNC_LIMIT
from optcg_meta.core.logging import setup_logging
from optcg_meta.core.sentry import init_sentry
from optcg_meta.scraping.sync import run_sync, sync_single_tournament
from optcg_meta.sql.engine import create_engine
from optcg_meta.stats.leaders import get_leader_name_map
from optcg_meta.stats.matchups import get_matchup_data

logger = logging.getLogger(__name__)

_INTERNAL_ERROR = {"error": "Internal server error"}


def _configured_secret() -> Optional[str]:
    return os.getenv("SYNC_SECRET") or os.getenv("CRON_SECRET") or None


def _authorized() -> bool:
    secret = _configured_secret()
    if not secret:
        return False
    header = request.headers.get("Authorization", "")
    return hmac.compare_digest(header, f"Bearer {secret}")


def parse_limit(raw: Optional[str]) -> int:
    """Batch size from the query string, clamped to [1, MAX_SYNC_LIMIT].

    Missing, non-numeric and zero values fall back to the default.
    """
    try:
        value = int(raw) if raw else 0
    except ValueError:
        value = 0
    value = value or DEFAULT_SYNC_LIMIT
    return min(MAX_SYNC_LIMIT, max(1, value))


def summary_to_json(summary: dict) -> dict:
    return {
        "tournamentsDiscovered": summary["tournaments_discovered"],
        "totalTournaments": summary["total_tournaments"],
        "unsyncedBefore": summary["unsynced_before"],
        "tournamentsSynced": summary["tournaments_synced"],
        "errors": summary["errors"],
    }


def create_app(
    engine: Optional[Engine] = None,
    *,
    sync_config: Optional[SyncConfig] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> Flask:
    """Build the Flask app.

    The engine is created from the environment on first use when not given.
    """
    init_sentry(context="optcg_api", extra_integrations=[FlaskIntegration()])

    app = Flask(__name__)
    state: dict = {"engine": engine}

    def get_engine() -> Engine:
        if state["engine"] is None:
            state["engine"] = create_engine()
        return state["engine"]

    @app.post("/api/sync")
    def sync_batch():
        if not _authorized():
            return jsonify({"error": "Unauthorized"}), 401

        sync_all = request.args.get("all") == "true"
        limit = parse_limit(request.args.get("limit"))
        try:
            summary = run_sync(
                get_engine(),
                sync_all=sync_all,
                limit=limit,
                config=sync_config,
                sleep=sleep,
            )
        except Exception:
            logger.exception("Batch sync failed")
            return jsonify(_INTERNAL_ERROR), 500
        return jsonify(summary_to_json(summary))

    @app.post("/api/sync/<tournament_id>")
    def sync_one(tournament_id: str):
        if not _authorized():
            return jsonify({"error": "Unauthorized"}), 401
        try:
            result = sync_single_tournament(
                get_engine(), tournament_id, config=sync_config
            )
        except Exception:
            logger.exception(f"Error syncing {tournament_id}")
            return jsonify(_INTERNAL_ERROR), 500
        if result.success:
            return jsonify({"success": True, "message": "Synced"})
        return jsonify({"success": False, "message": "Sync failed"}), 500

    @app.get("/api/leaders/<deck_id>/matchups")
    def leader_matchups(deck_id: str):
        try:
            engine_ = get_engine()
            matchups = get_matchup_data(engine_, deck_id)
            names = get_leader_name_map(engine_)
        except Exception:
            logger.exception(f"Matchup lookup failed for {deck_id}")
            return jsonify(_INTERNAL_ERROR), 500
        rows = [
            {
                "opponentDeckId": m["opponent_deck_id"],
                "opponentName": names.get(m["opponent_deck_id"], "Unknown"),
                "wins": m["wins"],
                "losses": m["losses"],
                "ties": m["ties"],
                "total": m["total"],
                "winRate": m["win_rate"],
            }
            for m in matchups.iter_rows(named=True)
            if m["opponent_deck_id"] != deck_id
        ]
        return jsonify({"matchups": rows})

    return app


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Serve the sync and matchup endpoints"
    )
    parser.add_argument("--host", type=str, default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8000)
    parser.add_argument("--db-url", type=str, default=None)
    parser.add_argument(
        "--log-level",
        type=str,
        default=os.getenv("LOG_LEVEL", "INFO"),
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
    )
    args = parser.parse_args(argv)

    setup_logging(level=args.log_level)
    engine = create_engine(args.db_url) if args.db_url else None
    app = create_app(engine)
    app.run(host=args.host, port=args.port)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
