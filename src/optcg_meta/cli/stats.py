from __future__ import annotations

"""
Compute meta statistics from the database and print or export them.

Usage:
  optcg_stats tiers                       # current format tier list
  optcg_stats tiers --format all --output tiers.csv
  optcg_stats matchups --deck OP02-013
  optcg_stats decklists --deck OP02-013 --format OP13
  optcg_stats players --output players.parquet
  optcg_stats formats
  optcg_stats leader --deck OP02-013      # every entry plus per-event trend
  optcg_stats player --player some-handle
  optcg_stats trends --output trends.csv
  optcg_stats cards --deck OP02-013       # inclusion rates for one leader
  optcg_stats tournaments                 # every event, special events tagged
  optcg_stats tournaments --tournament abc123
  optcg_stats dashboard --format all
  optcg_stats entries --deck OP02-013 --max-placing 8 --sort winrate
"""

import argparse
import os
from typing import Optional

import polars as pl

from optcg_meta.core.logging import setup_logging


def _write_frame(df: pl.DataFrame, out: Optional[str], fmt: Optional[str]) -> None:
    if not out:
        with pl.Config(tbl_rows=50, tbl_cols=-1):
            print(df.head(50))
        return
    if fmt is None:
        if out.endswith(".parquet"):
            fmt = "parquet"
        elif out.endswith(".ndjson"):
            fmt = "ndjson"
        elif out.endswith(".json"):
            fmt = "json"
        else:
            fmt = "csv"
    if fmt == "parquet":
        df.write_parquet(out)
    elif fmt == "ndjson":
        df.write_ndjson(out)
    elif fmt == "json":
        df.write_json(out)
    else:
        df.write_csv(out)
    print(f"Wrote {df.height} rows to {out}")


def _matrix_frame(matrix: dict[str, dict[str, dict]]) -> pl.DataFrame:
    rows = [
        {"deck_id": deck, "opponent_deck_id": opp, **cell}
        for deck, cells in matrix.items()
        for opp, cell in cells.items()
    ]
    return pl.DataFrame(rows) if rows else pl.DataFrame()


def _grouped_frame(groups) -> pl.DataFrame:
    rows = [
        {
            "fingerprint": g.fingerprint,
            "pilot_count": g.pilot_count,
            "total_wins": g.total_wins,
            "total_losses": g.total_losses,
            "total_ties": g.total_ties,
            "win_rate": g.win_rate,
            "best_placing": g.best_placing,
            "rep_tournament_id": g.rep_tournament_id,
            "rep_player": g.rep_player,
        }
        for g in groups
    ]
    return pl.DataFrame(rows) if rows else pl.DataFrame()


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Leader and player statistics")
    parser.add_argument(
        "command",
        choices=[
            "tiers",
            "matchups",
            "decklists",
            "players",
            "player",
            "leader",
            "share",
            "trends",
            "formats",
            "cards",
            "tournaments",
            "dashboard",
            "entries",
        ],
    )
    parser.add_argument("--db-url", type=str, default=None)
    parser.add_argument(
        "--format",
        dest="format_code",
        type=str,
        default=None,
        help="Set code (e.g. OP13), 'all', or omit for the current format",
    )
    parser.add_argument(
        "--deck", type=str, default=None, help="Leader deck id (e.g. OP02-013)"
    )
    parser.add_argument(
        "--player",
        type=str,
        default=None,
        help="Player id (entries: case-insensitive display name search)",
    )
    parser.add_argument(
        "--tournament",
        type=str,
        default=None,
        help=(
            "Tournament id (with --player, prints that decklist; with "
            "tournaments, prints its standings)"
        ),
    )
    parser.add_argument(
        "--max-placing",
        type=int,
        default=None,
        help="entries: keep placings at or above this rank",
    )
    parser.add_argument(
        "--sort",
        choices=["placing", "date", "winrate"],
        default="placing",
        help="entries: row order",
    )
    parser.add_argument(
        "--limit", type=int, default=50, help="Row limit for card listings"
    )
    parser.add_argument(
        "--output",
        type=str,
        default=None,
        help=(
            "Output filepath (infers format by extension: "
            ".csv, .json, .ndjson, .parquet)"
        ),
    )
    parser.add_argument(
        "--output-format",
        type=str,
        choices=["csv", "json", "ndjson", "parquet"],
        default=None,
        help="Explicit output format (overrides extension inference)",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default=os.getenv("LOG_LEVEL", "WARNING"),
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
    )
    args = parser.parse_args(argv)

    from optcg_meta.sql import create_engine
    from optcg_meta.stats import (
        get_all_formats,
        get_cards_by_leader,
        get_dashboard_stats,
        get_decklist_for_player,
        get_decklists,
        get_grouped_decklists,
        get_leader_detail,
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
        get_tournament_standings,
        get_tournaments,
        get_win_rate_trends,
        resolve_format_filter,
    )

    setup_logging(level=args.log_level, format_style="simple")
    engine = create_engine(args.db_url)

    if args.command in {"decklists", "leader"} and not args.deck:
        parser.error(f"--deck is required for {args.command}")
    if args.command == "player" and not args.player:
        parser.error("--player is required for player")

    # Commands that ignore the format filter
    if args.command == "formats":
        formats = get_all_formats(engine)
        df = pl.DataFrame(
            [
                {
                    "set_code": f.set_code,
                    "display_name": f.display_name,
                    "first_seen": f.first_seen,
                    "tournament_count": len(f.tournament_ids),
                }
                for f in formats
            ]
        )
        _write_frame(df, args.output, args.output_format)
        return 0
    if args.command == "leader":
        print(get_leader_trends(engine, args.deck))
        _write_frame(
            get_leader_detail(engine, args.deck), args.output, args.output_format
        )
        return 0
    if args.command == "player":
        if args.tournament:
            cards = get_decklist_for_player(engine, args.tournament, args.player)
            df = pl.DataFrame([vars(c) for c in cards]) if cards else pl.DataFrame()
        else:
            df = get_player_detail(engine, args.player)
        _write_frame(df, args.output, args.output_format)
        return 0
    if args.command == "tournaments":
        if args.tournament:
            df = get_tournament_standings(engine, args.tournament)
        else:
            df = get_tournaments(engine)
        _write_frame(df, args.output, args.output_format)
        return 0
    if args.command == "cards" and args.deck:
        _write_frame(
            get_cards_by_leader(engine, args.deck), args.output, args.output_format
        )
        return 0

    resolved = resolve_format_filter(engine, args.format_code)
    tournament_ids = resolved.tournament_ids
    print(f"Format: {resolved.active_format_value}")

    if args.command == "tiers":
        df = get_leader_stats(engine, tournament_ids)
    elif args.command == "matchups":
        if args.deck:
            df = get_matchup_data(engine, args.deck, tournament_ids)
        else:
            stats = get_leader_stats(engine, tournament_ids)
            ranked = stats.filter(pl.col("tier") != "U")["deck_id"].to_list()
            df = _matrix_frame(get_matchup_matrix(engine, ranked, tournament_ids))
    elif args.command == "decklists":
        df = _grouped_frame(
            get_grouped_decklists(engine, args.deck, tournament_ids)
        )
    elif args.command == "players":
        df = get_player_leaderboard(engine, tournament_ids)
    elif args.command == "dashboard":
        summary = get_dashboard_stats(engine, tournament_ids)
        print(
            f"Tournaments: {summary['total_tournaments']}, "
            f"unique players: {summary['unique_player_count']}"
        )
        df = get_recent_tournaments(engine, tournament_ids=tournament_ids)
    elif args.command == "entries":
        df = get_decklists(
            engine,
            deck_id=args.deck,
            tournament_id=args.tournament,
            max_placing=args.max_placing,
            tournament_ids=tournament_ids,
            player_search=args.player,
            sort_by=args.sort,
        )
    elif args.command == "share":
        df = get_meta_share(engine, tournament_ids)
    elif args.command == "trends":
        df = get_meta_trends(engine, tournament_ids).join(
            get_win_rate_trends(engine, tournament_ids).drop("leader_name"),
            on=["date", "deck_id"],
            how="left",
        )
    else:
        df = get_most_played_cards(engine, args.limit, tournament_ids)

    _write_frame(df, args.output, args.output_format)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
