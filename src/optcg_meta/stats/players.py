"""Player leaderboard and per-player history."""

from __future__ import annotations

from typing import Optional, Sequence

import polars as pl
from sqlalchemy.engine import Engine

from optcg_meta.core.constants import PLAYER_POINTS_TABLE
from optcg_meta.sql.load import load_standings_df

LEADERBOARD_SCHEMA: dict[str, pl.DataType] = {
    "rank": pl.Int64,
    "player": pl.Utf8,
    "display_name": pl.Utf8,
    "country": pl.Utf8,
    "total_points": pl.Int64,
    "total_wins": pl.Int64,
    "total_losses": pl.Int64,
    "total_ties": pl.Int64,
    "tournaments_played": pl.Int64,
    "win_rate": pl.Float64,
    "best_placing": pl.Int64,
    "top4_count": pl.Int64,
    "most_played_leader_name": pl.Utf8,
}


def placing_points_expr(
    points_table: Optional[Sequence[tuple[int, int]]] = None,
) -> pl.Expr:
    """Circuit points for one standing; dropped entries score nothing."""
    table = points_table or PLAYER_POINTS_TABLE
    expr = pl.when(pl.col("drop_round").is_not_null()).then(0)
    for max_placing, points in table:
        expr = expr.when(pl.col("placing") <= max_placing).then(points)
    return expr.otherwise(0)


def _most_played_leader(standings: pl.DataFrame) -> pl.DataFrame:
    # Most frequent leader name; ties go to the alphabetically first name
    return (
        standings.filter(pl.col("leader_name").is_not_null())
        .group_by(["player", "leader_name"])
        .agg(pl.len().alias("_n"))
        .sort(["player", "_n", "leader_name"], descending=[False, True, False])
        .group_by("player", maintain_order=True)
        .agg(pl.col("leader_name").first().alias("most_played_leader_name"))
    )


def compute_player_leaderboard(
    standings: pl.DataFrame,
    points_table: Optional[Sequence[tuple[int, int]]] = None,
) -> pl.DataFrame:
    """
    Rank players by circuit points, then win rate.

    Parameters
    ----------
    standings : pl.DataFrame
        Standings rows (player, display_name, country, placing, wins,
        losses, ties, drop_round, leader_name)
    points_table : sequence of (int, int), optional
        ``(max placing, points)`` pairs checked in order

    Returns
    -------
    pl.DataFrame
        One row per player, columns per ``LEADERBOARD_SCHEMA``
    """
    if standings.is_empty():
        return pl.DataFrame(schema=LEADERBOARD_SCHEMA)

    not_dropped = pl.col("drop_round").is_null()
    top4 = (not_dropped & (pl.col("placing") <= 4)).fill_null(False)

    board = (
        standings.with_columns(placing_points_expr(points_table).alias("_points"))
        .group_by("player")
        .agg(
            [
                pl.col("display_name").max(),
                pl.col("country").max(),
                pl.col("_points").sum().alias("total_points"),
                pl.col("wins").sum().alias("total_wins"),
                pl.col("losses").sum().alias("total_losses"),
                pl.col("ties").sum().alias("total_ties"),
                pl.len().alias("tournaments_played"),
                pl.col("placing").filter(not_dropped).min().alias("best_placing"),
                top4.sum().alias("top4_count"),
            ]
        )
        .with_columns(
            [
                pl.col(c).cast(pl.Int64).fill_null(0)
                for c in (
                    "total_points",
                    "total_wins",
                    "total_losses",
                    "total_ties",
                    "tournaments_played",
                    "best_placing",
                    "top4_count",
                )
            ]
        )
        .join(_most_played_leader(standings), on="player", how="left")
        .with_columns(
            [
                pl.coalesce(["display_name", "player"]).alias("display_name"),
                pl.col("country").fill_null(""),
                pl.col("most_played_leader_name").fill_null("Unknown"),
                (pl.col("total_wins") + pl.col("total_losses") + pl.col("total_ties"))
                .alias("_games"),
            ]
        )
        .with_columns(
            pl.when(pl.col("_games") > 0)
            .then(pl.col("total_wins").cast(pl.Float64) / pl.col("_games"))
            .otherwise(0.0)
            .alias("win_rate")
        )
        .sort(
            ["total_points", "win_rate", "player"], descending=[True, True, False]
        )
    )
    return board.with_columns(
        pl.int_range(1, board.height + 1, dtype=pl.Int64).alias("rank")
    ).select(list(LEADERBOARD_SCHEMA))


def get_player_leaderboard(
    engine: Engine, tournament_ids: Optional[Sequence[str]] = None
) -> pl.DataFrame:
    return compute_player_leaderboard(
        load_standings_df(engine, tournament_ids=tournament_ids)
    )


def get_player_detail(engine: Engine, player: str) -> pl.DataFrame:
    """Every standing for ``player``, newest tournament first."""
    return (
        load_standings_df(engine, player=player)
        .select(
            [
                "tournament_id",
                "tournament_name",
                "tournament_date",
                pl.col("tournament_player_count").alias("player_count"),
                "placing",
                "wins",
                "losses",
                "ties",
                "drop_round",
                "deck_id",
                "deck_name",
                "leader_name",
                "leader_set",
                "leader_number",
            ]
        )
        .sort("tournament_date", descending=True, nulls_last=True)
    )
