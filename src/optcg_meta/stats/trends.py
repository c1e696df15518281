"""Meta share and win rate over time."""

from __future__ import annotations

from typing import Optional, Sequence

import polars as pl
from sqlalchemy.engine import Engine

from optcg_meta.sql.load import load_standings_df


def compute_meta_trends(standings: pl.DataFrame) -> pl.DataFrame:
    """
    Entries per leader per tournament date.

    ``total`` is the combined player count of that date's tournaments and
    ``share`` is ``count / total`` (0 when the player count is unknown).
    """
    decks = standings.filter(pl.col("deck_id").is_not_null())
    schema = {
        "date": pl.Utf8,
        "deck_id": pl.Utf8,
        "leader_name": pl.Utf8,
        "count": pl.Int64,
        "total": pl.Int64,
        "share": pl.Float64,
    }
    if decks.is_empty():
        return pl.DataFrame(schema=schema)

    totals = (
        decks.select(["tournament_id", "tournament_date", "tournament_player_count"])
        .unique()
        .group_by("tournament_date")
        .agg(pl.col("tournament_player_count").sum().cast(pl.Int64).alias("total"))
    )
    return (
        decks.group_by(["tournament_date", "deck_id"])
        .agg(
            [
                pl.col("leader_name").min(),
                pl.len().cast(pl.Int64).alias("count"),
            ]
        )
        .join(totals, on="tournament_date", how="left")
        .with_columns(
            [
                pl.col("leader_name").fill_null("Unknown"),
                pl.col("total").fill_null(0),
            ]
        )
        .with_columns(
            pl.when(pl.col("total") > 0)
            .then(pl.col("count").cast(pl.Float64) / pl.col("total"))
            .otherwise(0.0)
            .alias("share")
        )
        .rename({"tournament_date": "date"})
        .select(list(schema))
        .sort(["date", "count", "deck_id"], descending=[False, True, False])
    )


def compute_win_rate_trends(standings: pl.DataFrame) -> pl.DataFrame:
    """Win rate per leader per tournament date."""
    return (
        standings.filter(pl.col("deck_id").is_not_null())
        .group_by(["tournament_date", "deck_id"])
        .agg(
            [
                pl.col("leader_name").min(),
                pl.col("wins").sum().cast(pl.Int64),
                pl.col("losses").sum().cast(pl.Int64),
                pl.col("ties").sum().cast(pl.Int64),
            ]
        )
        .with_columns(
            [
                pl.col("leader_name").fill_null("Unknown"),
                (pl.col("wins") + pl.col("losses") + pl.col("ties")).alias("_games"),
            ]
        )
        .with_columns(
            pl.when(pl.col("_games") > 0)
            .then(pl.col("wins").cast(pl.Float64) / pl.col("_games"))
            .otherwise(0.0)
            .alias("win_rate")
        )
        .rename({"tournament_date": "date"})
        .select(
            ["date", "deck_id", "leader_name", "wins", "losses", "ties", "win_rate"]
        )
        .sort(["date", "deck_id"])
    )


def get_meta_trends(
    engine: Engine, tournament_ids: Optional[Sequence[str]] = None
) -> pl.DataFrame:
    return compute_meta_trends(
        load_standings_df(engine, tournament_ids=tournament_ids, require_deck=True)
    )


def get_win_rate_trends(
    engine: Engine, tournament_ids: Optional[Sequence[str]] = None
) -> pl.DataFrame:
    return compute_win_rate_trends(
        load_standings_df(engine, tournament_ids=tournament_ids, require_deck=True)
    )
