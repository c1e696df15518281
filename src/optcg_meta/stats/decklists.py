"""
Decklist browsing, archetype fingerprinting and grouped decklists.

A fingerprint is the canonical string ``"{set}-{number}:{count}"`` of every
non-leader, non-DON card in a deck, sorted by (set, number) and joined with
``,``. Identical builds share a fingerprint regardless of who played them or
the order their cards were listed in.

Browsing works on individual registrations (one row per standing with a
deck) and never groups.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Iterable, Optional, Sequence

import polars as pl
from sqlalchemy.engine import Engine

from optcg_meta.core.constants import (
    DEFAULT_TOP_DECKLISTS,
    EXCLUDED_CARD_TYPES,
    MAX_DECKLIST_ROWS,
    MAX_GROUPED_DECKLISTS,
)
from optcg_meta.sql.load import load_decklist_cards_df, load_standings_df

DECKLIST_ENTRY_COLUMNS = [
    "tournament_id",
    "tournament_name",
    "tournament_date",
    "player",
    "display_name",
    "placing",
    "wins",
    "losses",
    "ties",
    "deck_id",
    "deck_name",
    "leader_name",
    "leader_set",
    "leader_number",
]

# sort mode -> (columns, descending)
DECKLIST_SORTS: dict[str, tuple[list[str], list[bool]]] = {
    "placing": (["tournament_date", "placing"], [True, False]),
    "date": (["tournament_date", "placing"], [True, False]),
    "winrate": (["wins", "losses", "tournament_date"], [True, False, True]),
}


@dataclass
class DeckCard:
    card_type: str
    card_name: str
    card_set: str
    card_number: str
    count: int


@dataclass
class ArchetypePilot:
    tournament_id: str
    tournament_name: Optional[str]
    tournament_date: Optional[str]
    player: str
    display_name: str
    placing: Optional[int]


@dataclass
class GroupedDecklist:
    """One archetype build and the pilots who registered it."""

    fingerprint: str
    total_wins: int
    total_losses: int
    total_ties: int
    pilot_count: int
    best_placing: Optional[int]
    # Fraction in [0, 1]
    win_rate: float
    rep_tournament_id: str
    rep_player: str
    pilots: list[ArchetypePilot] = field(default_factory=list)
    cards: list[DeckCard] = field(default_factory=list)

    @property
    def total_games(self) -> int:
        return self.total_wins + self.total_losses + self.total_ties

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def is_fingerprint_card(card_type: Optional[str]) -> bool:
    """False for leader and DON cards, which never define a build."""
    return (card_type or "").lower() not in EXCLUDED_CARD_TYPES


def _card_fields(card: Any) -> tuple[Optional[str], str, str, int]:
    if isinstance(card, dict):
        return (
            card.get("card_type", card.get("type")),
            str(card.get("card_set", card.get("set", ""))),
            str(card.get("card_number", card.get("number", ""))),
            int(card.get("count") or 0),
        )
    card_set, number, count = card[:3]
    return None, str(card_set), str(number), int(count)


def deck_fingerprint(cards: Iterable[Any]) -> str:
    """
    Canonical fingerprint of a decklist.

    Parameters
    ----------
    cards : iterable
        Either ``(set, number, count)`` tuples or dicts with
        ``card_set``/``card_number``/``count`` (and optionally ``card_type``)

    Returns
    -------
    str
        ``"OP02-013:4,OP03-050:2"`` style fingerprint
    """
    entries = []
    for card in cards:
        card_type, card_set, number, count = _card_fields(card)
        if not is_fingerprint_card(card_type):
            continue
        entries.append((card_set, number, count))
    return ",".join(f"{s}-{n}:{c}" for s, n, c in sorted(entries))


def compute_fingerprints(cards: pl.DataFrame) -> pl.DataFrame:
    """Fingerprint every (tournament_id, standing_player) deck in ``cards``."""
    if cards.is_empty():
        return pl.DataFrame(
            schema={
                "tournament_id": pl.Utf8,
                "standing_player": pl.Utf8,
                "fingerprint": pl.Utf8,
            }
        )
    keep = ~pl.col("card_type").fill_null("").str.to_lowercase().is_in(
        list(EXCLUDED_CARD_TYPES)
    )
    return (
        cards.filter(keep)
        .with_columns(
            pl.format(
                "{}-{}:{}", "card_set", "card_number", pl.col("count").cast(pl.Int64)
            ).alias("_entry")
        )
        .sort(
            ["tournament_id", "standing_player", "card_set", "card_number", "count"]
        )
        .group_by(["tournament_id", "standing_player"], maintain_order=True)
        .agg(pl.col("_entry").str.join(",").alias("fingerprint"))
    )


def _card_list(cards: pl.DataFrame) -> list[DeckCard]:
    return [
        DeckCard(
            card_type=row["card_type"],
            card_name=row["card_name"],
            card_set=row["card_set"],
            card_number=row["card_number"],
            count=int(row["count"] or 0),
        )
        for row in cards.sort(["card_type", "card_name"]).iter_rows(named=True)
    ]


def group_decklists(
    standings: pl.DataFrame,
    cards: pl.DataFrame,
    limit: int = MAX_GROUPED_DECKLISTS,
) -> list[GroupedDecklist]:
    """
    Merge identical builds into archetype groups.

    Parameters
    ----------
    standings : pl.DataFrame
        Standings of one leader with tournament_id, tournament_name,
        tournament_date, player, display_name, placing, wins, losses, ties
    cards : pl.DataFrame
        Decklist cards for those standings
    limit : int
        Maximum number of groups returned

    Returns
    -------
    list of GroupedDecklist
        Ordered by total games descending, then win rate descending
    """
    fingerprints = compute_fingerprints(cards)
    if fingerprints.is_empty() or standings.is_empty():
        return []

    pilots = standings.join(
        fingerprints,
        left_on=["tournament_id", "player"],
        right_on=["tournament_id", "standing_player"],
        how="inner",
    ).sort(
        ["placing", "wins", "tournament_id", "player"],
        descending=[False, True, False, False],
        nulls_last=True,
    )
    if pilots.is_empty():
        return []

    groups = (
        pilots.group_by("fingerprint", maintain_order=True)
        .agg(
            [
                pl.col("wins").sum().cast(pl.Int64).alias("total_wins"),
                pl.col("losses").sum().cast(pl.Int64).alias("total_losses"),
                pl.col("ties").sum().cast(pl.Int64).alias("total_ties"),
                pl.len().cast(pl.Int64).alias("pilot_count"),
                pl.col("placing").min().alias("best_placing"),
                # pilots are pre-sorted so the first row is the representative
                pl.col("tournament_id").first().alias("rep_tournament_id"),
                pl.col("player").first().alias("rep_player"),
            ]
        )
        .with_columns(
            (
                pl.col("total_wins") + pl.col("total_losses") + pl.col("total_ties")
            ).alias("_games")
        )
        .with_columns(
            pl.when(pl.col("_games") > 0)
            .then(pl.col("total_wins").cast(pl.Float64) / pl.col("_games"))
            .otherwise(0.0)
            .alias("win_rate")
        )
        .sort(
            ["_games", "win_rate", "fingerprint"], descending=[True, True, False]
        )
        .head(limit)
    )

    history = pilots.sort(
        ["tournament_date", "placing"], descending=[True, False], nulls_last=True
    )
    pilots_by_fp: dict[str, list[ArchetypePilot]] = {}
    for row in history.iter_rows(named=True):
        pilots_by_fp.setdefault(row["fingerprint"], []).append(
            ArchetypePilot(
                tournament_id=row["tournament_id"],
                tournament_name=row.get("tournament_name"),
                tournament_date=row.get("tournament_date"),
                player=row["player"],
                display_name=row.get("display_name") or row["player"],
                placing=row["placing"],
            )
        )

    result = []
    for row in groups.iter_rows(named=True):
        rep_cards = cards.filter(
            (pl.col("tournament_id") == row["rep_tournament_id"])
            & (pl.col("standing_player") == row["rep_player"])
        )
        result.append(
            GroupedDecklist(
                fingerprint=row["fingerprint"],
                total_wins=row["total_wins"],
                total_losses=row["total_losses"],
                total_ties=row["total_ties"],
                pilot_count=row["pilot_count"],
                best_placing=row["best_placing"],
                win_rate=row["win_rate"],
                rep_tournament_id=row["rep_tournament_id"],
                rep_player=row["rep_player"],
                pilots=pilots_by_fp.get(row["fingerprint"], []),
                cards=_card_list(rep_cards),
            )
        )
    return result


def get_grouped_decklists(
    engine: Engine,
    deck_id: str,
    tournament_ids: Optional[Sequence[str]] = None,
    limit: int = MAX_GROUPED_DECKLISTS,
) -> list[GroupedDecklist]:
    """Grouped builds for one leader, optionally restricted to tournaments."""
    standings = load_standings_df(
        engine, tournament_ids=tournament_ids, deck_id=deck_id
    )
    cards = load_decklist_cards_df(
        engine, tournament_ids=tournament_ids, deck_id=deck_id
    )
    return group_decklists(standings, cards, limit=limit)


def get_decklist_for_player(
    engine: Engine, tournament_id: str, player: str
) -> list[DeckCard]:
    """Full card list one player registered at one tournament."""
    cards = load_decklist_cards_df(
        engine, tournament_id=tournament_id, player=player
    )
    return _card_list(cards)


def _entries(standings: pl.DataFrame) -> pl.DataFrame:
    # Registrations with a deck at a known tournament
    return standings.filter(
        pl.col("deck_id").is_not_null() & pl.col("tournament_name").is_not_null()
    ).select(DECKLIST_ENTRY_COLUMNS)


def filter_decklists(
    standings: pl.DataFrame,
    *,
    deck_id: Optional[str] = None,
    tournament_id: Optional[str] = None,
    max_placing: Optional[int] = None,
    player_search: Optional[str] = None,
    sort_by: str = "placing",
    limit: int = MAX_DECKLIST_ROWS,
) -> pl.DataFrame:
    """
    Browse individual decklist registrations.

    Parameters
    ----------
    standings : pl.DataFrame
        Standings as produced by ``load_standings_df``
    deck_id, tournament_id : str, optional
        Exact matches
    max_placing : int, optional
        Keep placings at or above this rank; unplaced entries are dropped
    player_search : str, optional
        Case-insensitive substring of the display name
    sort_by : {"placing", "date", "winrate"}
        ``placing`` and ``date`` list the newest tournament first and its
        best finishers first; ``winrate`` orders by wins, then fewest losses
    limit : int
        Maximum rows returned

    Returns
    -------
    pl.DataFrame
        ``DECKLIST_ENTRY_COLUMNS``
    """
    if sort_by not in DECKLIST_SORTS:
        raise ValueError(
            f"sort_by must be one of {sorted(DECKLIST_SORTS)}, got {sort_by!r}"
        )
    entries = _entries(standings)
    if deck_id:
        entries = entries.filter(pl.col("deck_id") == deck_id)
    if tournament_id:
        entries = entries.filter(pl.col("tournament_id") == tournament_id)
    if max_placing:
        entries = entries.filter(pl.col("placing") <= max_placing)
    if player_search:
        entries = entries.filter(
            pl.col("display_name")
            .str.to_lowercase()
            .str.contains(player_search.lower(), literal=True)
        )

    columns, descending = DECKLIST_SORTS[sort_by]
    return entries.sort(
        columns + ["tournament_id", "player"],
        descending=descending + [False, False],
        nulls_last=True,
    ).head(limit)


def top_decklists(
    standings: pl.DataFrame, limit: int = DEFAULT_TOP_DECKLISTS
) -> pl.DataFrame:
    """Best placed registrations: placing, then newest, then most wins."""
    return (
        _entries(standings)
        .filter(pl.col("placing").is_not_null())
        .sort(
            ["placing", "tournament_date", "wins", "tournament_id", "player"],
            descending=[False, True, True, False, False],
        )
        .head(limit)
    )


def get_decklists(
    engine: Engine,
    *,
    deck_id: Optional[str] = None,
    tournament_id: Optional[str] = None,
    max_placing: Optional[int] = None,
    tournament_ids: Optional[Sequence[str]] = None,
    player_search: Optional[str] = None,
    sort_by: str = "placing",
) -> pl.DataFrame:
    standings = load_standings_df(
        engine, tournament_ids=tournament_ids, deck_id=deck_id, require_deck=True
    )
    return filter_decklists(
        standings,
        tournament_id=tournament_id,
        max_placing=max_placing,
        player_search=player_search,
        sort_by=sort_by,
    )


def get_top_decklists(
    engine: Engine, deck_id: str, limit: int = DEFAULT_TOP_DECKLISTS
) -> pl.DataFrame:
    return top_decklists(load_standings_df(engine, deck_id=deck_id), limit=limit)


def get_decklist_entry(
    engine: Engine, tournament_id: str, player: str
) -> Optional[dict[str, Any]]:
    """One registration's header row, or None if it does not exist."""
    standings = load_standings_df(
        engine, tournament_ids=[tournament_id], player=player
    )
    rows = standings.filter(pl.col("tournament_name").is_not_null()).select(
        DECKLIST_ENTRY_COLUMNS
    )
    return rows.row(0, named=True) if rows.height else None
