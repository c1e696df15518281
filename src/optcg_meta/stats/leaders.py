"""
Leader (deck archetype) statistics.

Standings are reduced per ``deck_id`` in Polars rather than in SQL so that
every aggregate has an explicit numeric dtype before any arithmetic runs.
Dropped entries (``drop_round`` set) still count toward entries and record
totals but never toward placing-based metrics.
"""

from __future__ import annotations

import logging
from typing import Optional, Sequence

import polars as pl
from sqlalchemy.engine import Engine

from optcg_meta.core.config import TierConfig
from optcg_meta.core.constants import (
    PLACING_NORMALIZATION_SPAN,
    TOP4_PLACING_POINTS,
)
from optcg_meta.postprocess.tiers import PercentileTierSystem
from optcg_meta.sql.load import load_standings_df

logger = logging.getLogger(__name__)

LEADER_STATS_SCHEMA: dict[str, pl.DataType] = {
    "deck_id": pl.Utf8,
    "leader_name": pl.Utf8,
    "leader_set": pl.Utf8,
    "leader_number": pl.Utf8,
    "total_entries": pl.Int64,
    "total_wins": pl.Int64,
    "total_losses": pl.Int64,
    "total_ties": pl.Int64,
    "win_rate": pl.Float64,
    "avg_placing": pl.Float64,
    "top4_count": pl.Int64,
    "top4_rate": pl.Float64,
    "weighted_top4_score": pl.Float64,
    "tournament_wins": pl.Int64,
    "play_rate": pl.Float64,
    "conversion_rate": pl.Float64,
    "normalized_placing": pl.Float64,
    "composite_score": pl.Float64,
    "tier": pl.Utf8,
}

META_SHARE_SCHEMA: dict[str, pl.DataType] = {
    "deck_id": pl.Utf8,
    "leader_name": pl.Utf8,
    "leader_set": pl.Utf8,
    "leader_number": pl.Utf8,
    "count": pl.Int64,
    "share": pl.Float64,
}

_NOT_DROPPED = pl.col("drop_round").is_null()


def _safe_ratio(numerator: str, denominator: str) -> pl.Expr:
    return (
        pl.when(pl.col(denominator) > 0)
        .then(pl.col(numerator).cast(pl.Float64) / pl.col(denominator))
        .otherwise(0.0)
    )


def _weighted_top4_points() -> pl.Expr:
    expr = None
    for place, points in sorted(TOP4_PLACING_POINTS.items()):
        condition = _NOT_DROPPED & (pl.col("placing") == place)
        expr = (
            pl.when(condition).then(points)
            if expr is None
            else expr.when(condition).then(points)
        )
    return expr.otherwise(0)


def _aggregate_by_deck(standings: pl.DataFrame) -> pl.DataFrame:
    """Sum raw counts per deck and cast every aggregate explicitly."""
    top4 = (_NOT_DROPPED & (pl.col("placing") <= 4)).fill_null(False)
    first = (_NOT_DROPPED & (pl.col("placing") == 1)).fill_null(False)

    return (
        standings.filter(pl.col("deck_id").is_not_null())
        .group_by("deck_id")
        .agg(
            [
                pl.col("leader_name").min(),
                pl.col("leader_set").min(),
                pl.col("leader_number").min(),
                pl.len().alias("total_entries"),
                pl.col("wins").sum().alias("total_wins"),
                pl.col("losses").sum().alias("total_losses"),
                pl.col("ties").sum().alias("total_ties"),
                pl.col("placing").filter(_NOT_DROPPED).mean().alias("avg_placing"),
                top4.sum().alias("top4_count"),
                _weighted_top4_points().sum().alias("weighted_top4_points"),
                first.sum().alias("tournament_wins"),
            ]
        )
        .with_columns(
            [
                pl.col(c).cast(pl.Int64).fill_null(0)
                for c in (
                    "total_entries",
                    "total_wins",
                    "total_losses",
                    "total_ties",
                    "top4_count",
                    "weighted_top4_points",
                    "tournament_wins",
                )
            ]
            + [
                pl.col("avg_placing").cast(pl.Float64).fill_null(0.0),
                pl.col("leader_name").fill_null("Unknown"),
                pl.col("leader_set").fill_null(""),
                pl.col("leader_number").fill_null(""),
            ]
        )
        .sort("deck_id")
    )


def compute_leader_stats(
    standings: pl.DataFrame, tier_config: Optional[TierConfig] = None
) -> pl.DataFrame:
    """
    Compute per-leader statistics, composite score and tier.

    Parameters
    ----------
    standings : pl.DataFrame
        Standings rows with at least deck_id, leader_name, leader_set,
        leader_number, placing, wins, losses, ties and drop_round
    tier_config : TierConfig, optional
        Composite weights and tier cutoffs

    Returns
    -------
    pl.DataFrame
        One row per deck_id (see ``LEADER_STATS_SCHEMA``); qualified leaders
        first by composite score, then unranked leaders by composite score
    """
    cfg = tier_config or TierConfig()
    agg = _aggregate_by_deck(standings)
    if agg.is_empty():
        return pl.DataFrame(schema=LEADER_STATS_SCHEMA)

    # Play rate is relative to entries that have a deck at all
    total_entries = int(agg["total_entries"].sum())
    max_tournament_wins = max(1, int(agg["tournament_wins"].max()))

    stats = (
        agg.with_columns(
            (pl.col("total_wins") + pl.col("total_losses") + pl.col("total_ties"))
            .alias("_total_games")
        )
        .with_columns(
            [
                _safe_ratio("total_wins", "_total_games").alias("win_rate"),
                _safe_ratio("top4_count", "total_entries").alias("top4_rate"),
                (
                    pl.col("weighted_top4_points").cast(pl.Float64)
                    / (4 * pl.col("total_entries"))
                ).alias("weighted_top4_score"),
                (pl.col("total_entries").cast(pl.Float64) / total_entries).alias(
                    "play_rate"
                ),
                _safe_ratio("tournament_wins", "top4_count").alias(
                    "conversion_rate"
                ),
                (
                    1.0
                    - (pl.col("avg_placing") - 1.0) / PLACING_NORMALIZATION_SPAN
                )
                .clip(0.0, 1.0)
                .alias("normalized_placing"),
            ]
        )
        .with_columns(
            (
                cfg.weight_win_rate * pl.col("win_rate")
                + cfg.weight_top4_rate * pl.col("top4_rate")
                + cfg.weight_tournament_wins
                * (pl.col("tournament_wins").cast(pl.Float64) / max_tournament_wins)
                + cfg.weight_play_rate * pl.col("play_rate")
            ).alias("composite_score")
        )
    )

    tier_system = PercentileTierSystem(
        min_entries=cfg.min_entries,
        percentiles=cfg.percentiles,
        labels=cfg.labels,
    )
    tiered = tier_system.assign_tiers(stats, column_name="tier")
    return tiered.select(list(LEADER_STATS_SCHEMA))


def get_leader_stats(
    engine: Engine,
    tournament_ids: Optional[Sequence[str]] = None,
    tier_config: Optional[TierConfig] = None,
) -> pl.DataFrame:
    """Load standings (optionally restricted) and compute leader stats."""
    standings = load_standings_df(
        engine, tournament_ids=tournament_ids, require_deck=True
    )
    stats = compute_leader_stats(standings, tier_config)
    logger.debug(f"Computed stats for {stats.height} leaders")
    return stats


def get_leader_detail(engine: Engine, deck_id: str) -> pl.DataFrame:
    """Every standing piloting ``deck_id``, newest tournament first."""
    standings = load_standings_df(engine, deck_id=deck_id)
    return standings.select(
        [
            "tournament_id",
            "tournament_name",
            "tournament_date",
            pl.col("tournament_player_count").alias("player_count"),
            "player",
            "display_name",
            "placing",
            "wins",
            "losses",
            "ties",
            "drop_round",
            "deck_name",
            "leader_name",
            "leader_set",
            "leader_number",
        ]
    ).sort(["tournament_date", "placing"], descending=[True, False], nulls_last=True)


def compute_leader_trends(standings: pl.DataFrame) -> pl.DataFrame:
    """Per-tournament entries, play rate, win rate and top-4 count.

    ``standings`` should already be restricted to one deck.
    """
    top4 = (_NOT_DROPPED & (pl.col("placing") <= 4)).fill_null(False)
    return (
        standings.group_by(
            ["tournament_id", "tournament_date", "tournament_player_count"]
        )
        .agg(
            [
                pl.len().alias("entries"),
                pl.col("wins").sum().alias("wins"),
                pl.col("losses").sum().alias("losses"),
                pl.col("ties").sum().alias("ties"),
                top4.sum().alias("top4"),
            ]
        )
        .with_columns(
            [
                pl.col(c).cast(pl.Int64).fill_null(0)
                for c in ("entries", "wins", "losses", "ties", "top4")
            ]
        )
        .with_columns(
            (pl.col("wins") + pl.col("losses") + pl.col("ties")).alias("_games")
        )
        .with_columns(
            [
                _safe_ratio("entries", "tournament_player_count").alias(
                    "play_rate"
                ),
                _safe_ratio("wins", "_games").alias("win_rate"),
            ]
        )
        .select(
            [
                pl.col("tournament_date").alias("date"),
                "tournament_id",
                "play_rate",
                "win_rate",
                "entries",
                "top4",
            ]
        )
        .sort(["date", "tournament_id"])
    )


def get_leader_trends(engine: Engine, deck_id: str) -> pl.DataFrame:
    return compute_leader_trends(load_standings_df(engine, deck_id=deck_id))


def compute_meta_share(standings: pl.DataFrame) -> pl.DataFrame:
    """Entry count and share of the field per deck, most played first."""
    counts = (
        standings.filter(pl.col("deck_id").is_not_null())
        .group_by("deck_id")
        .agg(
            [
                pl.col("leader_name").min(),
                pl.col("leader_set").min(),
                pl.col("leader_number").min(),
                pl.len().cast(pl.Int64).alias("count"),
            ]
        )
    )
    if counts.is_empty():
        return pl.DataFrame(schema=META_SHARE_SCHEMA)
    total = int(counts["count"].sum())
    return (
        counts.with_columns(
            [
                pl.col("leader_name").fill_null("Unknown"),
                (pl.col("count").cast(pl.Float64) / total).alias("share"),
            ]
        )
        .sort(["count", "deck_id"], descending=[True, False])
        .select(list(META_SHARE_SCHEMA))
    )


def get_meta_share(
    engine: Engine, tournament_ids: Optional[Sequence[str]] = None
) -> pl.DataFrame:
    standings = load_standings_df(
        engine, tournament_ids=tournament_ids, require_deck=True
    )
    return compute_meta_share(standings)


def get_leader_name_map(engine: Engine) -> dict[str, str]:
    """Map each deck_id to its leader name ("Unknown" when missing)."""
    standings = load_standings_df(engine, require_deck=True)
    if standings.is_empty():
        return {}
    names = standings.group_by("deck_id").agg(pl.col("leader_name").min())
    return {
        row["deck_id"]: row["leader_name"] or "Unknown"
        for row in names.iter_rows(named=True)
    }
