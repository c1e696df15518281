"""
Tournament listings, per-tournament standings and dashboard summaries.

The plain listing keeps special events (tagged with ``is_special_event``);
only the statistics that go through a format filter leave them out.
"""

from __future__ import annotations

from typing import Any, Optional, Sequence

import polars as pl
from sqlalchemy.engine import Engine

from optcg_meta.core.config import FormatConfig
from optcg_meta.core.constants import (
    DEFAULT_RECENT_TOURNAMENTS,
    RECENT_WINNERS_LIMIT,
)
from optcg_meta.sql.load import load_standings_df, load_tournaments_df

WINNER_COLUMNS = {
    "player": "winner_player",
    "display_name": "winner_display_name",
    "placing": "winner_placing",
    "deck_id": "winner_deck_id",
    "leader_name": "winner_leader_name",
}


def special_event_expr(special_event_names: Sequence[str]) -> pl.Expr:
    """True where the tournament name contains a special event name."""
    if not special_event_names:
        return pl.lit(False)
    name = pl.col("name").fill_null("").str.to_lowercase()
    return pl.any_horizontal(
        [name.str.contains(s.lower(), literal=True) for s in special_event_names]
    )


def _restrict(
    tournaments: pl.DataFrame, tournament_ids: Optional[Sequence[str]]
) -> pl.DataFrame:
    if tournament_ids is None:
        return tournaments
    if len(tournament_ids) == 0:
        return tournaments.clear()
    return tournaments.filter(pl.col("id").is_in(list(tournament_ids)))


def _newest_first(tournaments: pl.DataFrame) -> pl.DataFrame:
    return tournaments.sort(["date", "id"], descending=[True, False])


def tag_special_events(
    tournaments: pl.DataFrame, config: Optional[FormatConfig] = None
) -> pl.DataFrame:
    cfg = config or FormatConfig()
    return tournaments.with_columns(
        special_event_expr(cfg.special_event_names).alias("is_special_event")
    )


def _by_placing(standings: pl.DataFrame) -> pl.DataFrame:
    return standings.sort(["placing", "player"], nulls_last=True)


def tournament_winners(standings: pl.DataFrame) -> pl.DataFrame:
    """Best placed non-dropped finisher of each tournament."""
    return (
        _by_placing(standings.filter(pl.col("drop_round").is_null()))
        .group_by("tournament_id", maintain_order=True)
        .first()
    )


def compute_recent_tournaments(
    tournaments: pl.DataFrame,
    standings: pl.DataFrame,
    limit: int = DEFAULT_RECENT_TOURNAMENTS,
) -> pl.DataFrame:
    """Newest tournaments with their winner columns (null when unsynced)."""
    recent = _newest_first(tournaments).head(limit)
    winners = tournament_winners(standings).select(
        ["tournament_id", *WINNER_COLUMNS]
    ).rename(WINNER_COLUMNS)
    return recent.join(
        winners, left_on="id", right_on="tournament_id", how="left"
    )


def compute_dashboard_stats(
    tournaments: pl.DataFrame,
    standings: pl.DataFrame,
    limit: int = RECENT_WINNERS_LIMIT,
) -> dict[str, Any]:
    """
    Headline numbers for a set of tournaments.

    Returns
    -------
    dict
        ``total_tournaments``, ``unique_player_count`` and ``recent_winners``,
        a frame of first-place, non-dropped standings, newest tournament first
    """
    winners = (
        standings.filter(
            (pl.col("placing") == 1)
            & pl.col("drop_round").is_null()
            & pl.col("tournament_date").is_not_null()
        )
        .sort(["tournament_date", "tournament_id"], descending=[True, False])
        .head(limit)
    )
    return {
        "total_tournaments": tournaments.height,
        "unique_player_count": standings["player"].n_unique(),
        "recent_winners": winners,
    }


def get_tournaments(
    engine: Engine, config: Optional[FormatConfig] = None
) -> pl.DataFrame:
    """Every tournament, newest first, with an ``is_special_event`` column."""
    return _newest_first(tag_special_events(load_tournaments_df(engine), config))


def get_tournament(engine: Engine, tournament_id: str) -> Optional[dict[str, Any]]:
    rows = load_tournaments_df(engine).filter(pl.col("id") == tournament_id)
    return rows.row(0, named=True) if rows.height else None


def get_tournament_standings(engine: Engine, tournament_id: str) -> pl.DataFrame:
    """One tournament's standings by placing (unplaced last)."""
    return _by_placing(load_standings_df(engine, tournament_ids=[tournament_id]))


def get_dashboard_stats(
    engine: Engine, tournament_ids: Optional[Sequence[str]] = None
) -> dict[str, Any]:
    tournaments = _restrict(load_tournaments_df(engine), tournament_ids)
    standings = load_standings_df(engine, tournament_ids=tournament_ids)
    return compute_dashboard_stats(tournaments, standings)


def get_recent_tournaments(
    engine: Engine,
    limit: int = DEFAULT_RECENT_TOURNAMENTS,
    tournament_ids: Optional[Sequence[str]] = None,
) -> pl.DataFrame:
    tournaments = _restrict(load_tournaments_df(engine), tournament_ids)
    recent = _newest_first(tournaments).head(limit)
    standings = load_standings_df(engine, tournament_ids=recent["id"].to_list())
    return compute_recent_tournaments(recent, standings, limit=limit)
