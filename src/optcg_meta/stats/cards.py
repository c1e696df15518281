"""Card popularity across decklists."""

from __future__ import annotations

from typing import Optional, Sequence

import polars as pl
from sqlalchemy.engine import Engine

from optcg_meta.sql.load import load_decklist_cards_df, load_standings_df

CARD_KEY = ["card_name", "card_set", "card_number"]


def _card_usage(cards: pl.DataFrame) -> pl.DataFrame:
    """Decks running each card, with average and total copies."""
    return cards.group_by(CARD_KEY).agg(
        [
            pl.col("card_type").min(),
            pl.col("card_id").min(),
            pl.struct(["tournament_id", "standing_player"])
            .n_unique()
            .cast(pl.Int64)
            .alias("total_decks"),
            pl.col("count").mean().cast(pl.Float64).alias("avg_copies"),
            pl.col("count").sum().cast(pl.Int64).alias("total_copies"),
        ]
    )


def compute_most_played_cards(cards: pl.DataFrame, limit: int = 50) -> pl.DataFrame:
    """Cards ordered by how many decks include them."""
    return (
        _card_usage(cards)
        .sort(
            ["total_decks", "card_set", "card_number"],
            descending=[True, False, False],
        )
        .head(limit)
    )


def compute_cards_by_leader(cards: pl.DataFrame, total_decks: int) -> pl.DataFrame:
    """Card usage within one leader's decks plus inclusion rate.

    ``total_decks`` is the leader's standing count; it is floored at 1.
    """
    denominator = max(1, total_decks)
    return (
        _card_usage(cards)
        .with_columns(
            (pl.col("total_decks").cast(pl.Float64) / denominator).alias(
                "inclusion_rate"
            )
        )
        .sort(
            ["total_decks", "card_set", "card_number"],
            descending=[True, False, False],
        )
    )


def get_most_played_cards(
    engine: Engine,
    limit: int = 50,
    tournament_ids: Optional[Sequence[str]] = None,
) -> pl.DataFrame:
    cards = load_decklist_cards_df(engine, tournament_ids=tournament_ids)
    return compute_most_played_cards(cards, limit=limit)


def get_cards_by_leader(engine: Engine, deck_id: str) -> pl.DataFrame:
    cards = load_decklist_cards_df(engine, deck_id=deck_id)
    standings = load_standings_df(engine, deck_id=deck_id)
    return compute_cards_by_leader(cards, standings.height)
