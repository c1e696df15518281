from __future__ import annotations

"""
Sync circuit tournaments from Limitless into the database.

Usage:
  optcg_sync                 # discover, then re-sync the next 5 tournaments
  optcg_sync --limit 20
  optcg_sync --all           # every tournament, unsynced first
  optcg_sync --tournament 66f2a0c1e5  # a single tournament

Exit status is 1 when any tournament failed or discovery failed.
"""

import argparse
import os

from optcg_meta.core.config import SyncConfig
from optcg_meta.core.constants import DEFAULT_SYNC_LIMIT
from optcg_meta.core.logging import log_timing, setup_logging
from optcg_meta.core.sentry import init_sentry


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Discover and sync tournaments from the Limitless API"
    )
    parser.add_argument(
        "--db-url",
        type=str,
        default=None,
        help="Database URL (default: OPTCG_DATABASE_URL/DATABASE_URL)",
    )
    parser.add_argument(
        "--all",
        action="store_true",
        help="Sync every tournament instead of a limited batch",
    )
    parser.add_argument(
        "--limit",
        type=int,
        default=DEFAULT_SYNC_LIMIT,
        help="Tournaments to sync when --all is not given",
    )
    parser.add_argument(
        "--delay",
        type=float,
        default=None,
        help="Seconds between source calls (default: OPTCG_API_DELAY or 4)",
    )
    parser.add_argument(
        "--tournament",
        type=str,
        default=None,
        help="Sync only this tournament id (skips discovery)",
    )
    parser.add_argument(
        "--no-progress",
        action="store_true",
        help="Disable the progress bar",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default=os.getenv("LOG_LEVEL", "INFO"),
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
    )
    args = parser.parse_args(argv)

    logger = setup_logging(level=args.log_level)
    init_sentry(context="optcg_sync")

    from optcg_meta.scraping.sync import run_sync, sync_single_tournament
    from optcg_meta.sql import create_all, create_engine

    config = SyncConfig.from_env()
    if args.delay is not None:
        config.api_delay = max(0.0, args.delay)

    engine = create_engine(args.db_url)
    create_all(engine)

    if args.tournament:
        result = sync_single_tournament(engine, args.tournament, config=config)
        print(result.message)
        return 0 if result.success else 1

    with log_timing(logger, "tournament sync"):
        summary = run_sync(
            engine,
            sync_all=args.all,
            limit=args.limit,
            config=config,
            progress=not args.no_progress,
        )

    results = summary["tournaments_synced"]
    failed = [r for r in results if not r["success"]]
    print(
        f"Discovered {summary['tournaments_discovered']} tournaments; "
        f"synced {len(results) - len(failed)}/{len(results)} "
        f"({summary['unsynced_before']} were never synced, "
        f"{summary['total_tournaments']} total)"
    )
    for r in failed:
        print(f"  failed {r['id']}: {r['message']}")
    for err in summary["errors"]:
        print(f"  error: {err}")
    return 1 if failed or summary["errors"] else 0


if __name__ == "__main__":
    raise SystemExit(main())
