"""
Head-to-head matchup statistics between leaders.

Each pairing is viewed from both seats: once for player1 against player2 and
once for player2 against player1. Both seats are joined to their standings to
read the deck each player brought. A seat wins when ``winner`` equals its
player, ties when ``winner`` is null or empty, and loses otherwise. Byes have
no opponent standing and drop out of the join.
"""

from __future__ import annotations

from typing import Optional, Sequence

import polars as pl
from sqlalchemy.engine import Engine

from optcg_meta.sql.load import load_pairings_df, load_standings_df

MATCHUP_SCHEMA: dict[str, pl.DataType] = {
    "deck_id": pl.Utf8,
    "opponent_deck_id": pl.Utf8,
    "wins": pl.Int64,
    "losses": pl.Int64,
    "ties": pl.Int64,
    "total": pl.Int64,
    "win_rate": pl.Float64,
}


def _seats(pairings: pl.DataFrame) -> pl.DataFrame:
    """Both perspectives of each pairing as (tournament, player, opponent)."""
    first = pairings.select(
        [
            "tournament_id",
            pl.col("player1").alias("player"),
            pl.col("player2").alias("opponent"),
            "winner",
        ]
    )
    second = pairings.select(
        [
            "tournament_id",
            pl.col("player2").alias("player"),
            pl.col("player1").alias("opponent"),
            "winner",
        ]
    )
    return pl.concat([first, second]).filter(
        (pl.col("player").fill_null("") != "")
        & (pl.col("opponent").fill_null("") != "")
    )


def compute_matchups(
    pairings: pl.DataFrame,
    standings: pl.DataFrame,
    deck_ids: Optional[Sequence[str]] = None,
) -> pl.DataFrame:
    """
    Aggregate game outcomes per (deck, opponent deck).

    Parameters
    ----------
    pairings : pl.DataFrame
        Pairings with tournament_id, player1, player2 and winner
    standings : pl.DataFrame
        Standings with tournament_id, player and deck_id
    deck_ids : Sequence[str], optional
        Restrict both sides of the matchup to these decks

    Returns
    -------
    pl.DataFrame
        Columns described by ``MATCHUP_SCHEMA``
    """
    if pairings.is_empty() or standings.is_empty():
        return pl.DataFrame(schema=MATCHUP_SCHEMA)

    decks = standings.filter(pl.col("deck_id").is_not_null()).select(
        ["tournament_id", "player", "deck_id"]
    )
    opponents = decks.rename(
        {"player": "opponent", "deck_id": "opponent_deck_id"}
    )

    seats = _seats(pairings).join(
        decks, on=["tournament_id", "player"], how="inner"
    ).join(opponents, on=["tournament_id", "opponent"], how="inner")

    if deck_ids is not None:
        wanted = list(deck_ids)
        seats = seats.filter(
            pl.col("deck_id").is_in(wanted)
            & pl.col("opponent_deck_id").is_in(wanted)
        )

    winner = pl.col("winner").fill_null("")
    return (
        seats.group_by(["deck_id", "opponent_deck_id"])
        .agg(
            [
                (winner == pl.col("player")).sum().alias("wins"),
                ((winner != "") & (winner != pl.col("player"))).sum().alias(
                    "losses"
                ),
                (winner == "").sum().alias("ties"),
            ]
        )
        .with_columns(
            [pl.col(c).cast(pl.Int64) for c in ("wins", "losses", "ties")]
        )
        .with_columns(
            (pl.col("wins") + pl.col("losses") + pl.col("ties")).alias("total")
        )
        .with_columns(
            pl.when(pl.col("total") > 0)
            .then(pl.col("wins").cast(pl.Float64) / pl.col("total"))
            .otherwise(0.0)
            .alias("win_rate")
        )
        .select(list(MATCHUP_SCHEMA))
        .sort(["deck_id", "total", "opponent_deck_id"], descending=[False, True, False])
    )


def get_matchup_data(
    engine: Engine,
    deck_id: str,
    tournament_ids: Optional[Sequence[str]] = None,
) -> pl.DataFrame:
    """Matchups of ``deck_id`` against every opponent deck, most games first."""
    standings = load_standings_df(engine, tournament_ids=tournament_ids)
    pairings = load_pairings_df(engine, tournament_ids=tournament_ids)
    matchups = compute_matchups(pairings, standings)
    return (
        matchups.filter(pl.col("deck_id") == deck_id)
        .drop("deck_id")
        .sort(["total", "opponent_deck_id"], descending=[True, False])
    )


def matchup_matrix(matchups: pl.DataFrame) -> dict[str, dict[str, dict]]:
    """Nest long-form matchups as ``{deck: {opponent: cell}}``."""
    matrix: dict[str, dict[str, dict]] = {}
    for row in matchups.iter_rows(named=True):
        matrix.setdefault(row["deck_id"], {})[row["opponent_deck_id"]] = {
            "wins": row["wins"],
            "losses": row["losses"],
            "ties": row["ties"],
            "total": row["total"],
            "win_rate": row["win_rate"],
        }
    return matrix


def get_matchup_matrix(
    engine: Engine,
    deck_ids: Sequence[str],
    tournament_ids: Optional[Sequence[str]] = None,
) -> dict[str, dict[str, dict]]:
    """Pairwise matchup grid restricted to ``deck_ids`` on both sides."""
    if not deck_ids:
        return {}
    standings = load_standings_df(engine, tournament_ids=tournament_ids)
    pairings = load_pairings_df(engine, tournament_ids=tournament_ids)
    return matchup_matrix(compute_matchups(pairings, standings, deck_ids))
