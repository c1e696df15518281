"""
Format detection and tournament membership.

A format is named after a competitive set (``OP14``, ``EB03``...). The current
format is the set whose first appearance in any decklist is the most recent.
Membership is inclusive: a tournament belongs to every format whose set
appears in at least one of its decklists, so during a transition it can sit
in two formats at once.

Scans are cached per engine and invalidated whenever the tournaments table
changes (row count or latest ``synced_at``).
"""

from __future__ import annotations

import logging
import re
import threading
from dataclasses import dataclass, field
from typing import Optional

import polars as pl
from sqlalchemy.engine import Engine

from optcg_meta.core.config import FormatConfig
from optcg_meta.sql.load import (
    load_card_sets_df,
    load_sync_watermark,
    load_tournaments_df,
)

logger = logging.getLogger(__name__)

ALL_FORMATS = "all"


@dataclass
class FormatInfo:
    set_code: str
    display_name: str
    first_seen: str
    tournament_ids: list[str] = field(default_factory=list)


@dataclass
class ResolvedFormat:
    """Tournament restriction plus selector state for a format parameter."""

    # None means no restriction
    tournament_ids: Optional[list[str]]
    active_format: Optional[FormatInfo]
    active_format_value: str
    format_options: list[dict]
    current_format_code: str


def format_set_code(code: str) -> str:
    """Display form of a set code: ``"OP14"`` -> ``"OP-14"``."""
    return re.sub(r"^(OP|EB|ST)(\d+)$", r"\1-\2", code)


def is_special_event(
    name: Optional[str], special_event_names: Optional[list[str]] = None
) -> bool:
    """True when ``name`` contains any special event name (case-insensitive)."""
    names = (
        special_event_names
        if special_event_names is not None
        else FormatConfig().special_event_names
    )
    lower = (name or "").lower()
    return any(s.lower() in lower for s in names)


class _CardSetCache:
    """Per-engine card-set scan keyed by the tournaments watermark."""

    def __init__(self):
        self._entries: dict[str, tuple[tuple, pl.DataFrame]] = {}
        self._lock = threading.Lock()

    def get(self, engine: Engine, use_cache: bool = True) -> pl.DataFrame:
        key = str(engine.url)
        watermark = load_sync_watermark(engine)
        with self._lock:
            cached = self._entries.get(key)
            if use_cache and cached is not None and cached[0] == watermark:
                return cached[1]
        card_sets = load_card_sets_df(engine)
        logger.debug(
            f"Scanned {card_sets.height} card-set appearances "
            f"(watermark={watermark})"
        )
        with self._lock:
            self._entries[key] = (watermark, card_sets)
        return card_sets

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()


_CARD_SET_CACHE = _CardSetCache()


def clear_format_cache() -> None:
    _CARD_SET_CACHE.clear()


def compute_formats(
    card_sets: pl.DataFrame, config: Optional[FormatConfig] = None
) -> list[FormatInfo]:
    """
    Derive every recognized format from (card_set, tournament) appearances.

    Parameters
    ----------
    card_sets : pl.DataFrame
        Distinct card_set, tournament_id, tournament_date rows
    config : FormatConfig, optional
        Set-code pattern and ignore list

    Returns
    -------
    list of FormatInfo
        Most recently introduced set first; equal first-seen dates are
        ordered by set code descending
    """
    cfg = config or FormatConfig()
    if card_sets.is_empty():
        return []
    recognized = card_sets.filter(pl.col("card_set").str.contains(cfg.set_pattern))
    if cfg.ignored_sets:
        recognized = recognized.filter(
            ~pl.col("card_set").is_in(list(cfg.ignored_sets))
        )
    formats = (
        recognized.group_by("card_set")
        .agg(
            [
                pl.col("tournament_date").min().alias("first_seen"),
                pl.col("tournament_id").unique().sort().alias("tournament_ids"),
            ]
        )
        .sort(["first_seen", "card_set"], descending=[True, True])
    )
    return [
        FormatInfo(
            set_code=row["card_set"],
            display_name=format_set_code(row["card_set"]),
            first_seen=row["first_seen"],
            tournament_ids=list(row["tournament_ids"]),
        )
        for row in formats.iter_rows(named=True)
    ]


def format_for_set(card_sets: pl.DataFrame, set_code: str) -> Optional[FormatInfo]:
    """Membership for one set code, whether or not it is a recognized format."""
    rows = card_sets.filter(pl.col("card_set") == set_code)
    if rows.is_empty():
        return None
    return FormatInfo(
        set_code=set_code,
        display_name=format_set_code(set_code),
        first_seen=rows["tournament_date"].min(),
        tournament_ids=sorted(rows["tournament_id"].unique().to_list()),
    )


def get_all_formats(
    engine: Engine,
    *,
    config: Optional[FormatConfig] = None,
    use_cache: bool = True,
) -> list[FormatInfo]:
    return compute_formats(_CARD_SET_CACHE.get(engine, use_cache), config)


def get_current_format(
    engine: Engine,
    *,
    config: Optional[FormatConfig] = None,
    use_cache: bool = True,
) -> Optional[FormatInfo]:
    """The format whose set first appeared most recently, if any."""
    formats = get_all_formats(engine, config=config, use_cache=use_cache)
    return formats[0] if formats else None


def get_format_by_set_code(
    engine: Engine, set_code: str, *, use_cache: bool = True
) -> Optional[FormatInfo]:
    return format_for_set(_CARD_SET_CACHE.get(engine, use_cache), set_code)


def get_special_event_ids(
    engine: Engine, config: Optional[FormatConfig] = None
) -> list[str]:
    """Ids of tournaments whose name matches a special event."""
    cfg = config or FormatConfig()
    if not cfg.special_event_names:
        return []
    tournaments = load_tournaments_df(engine)
    return [
        row["id"]
        for row in tournaments.select(["id", "name"]).iter_rows(named=True)
        if is_special_event(row["name"], cfg.special_event_names)
    ]


def get_standard_tournament_ids(
    engine: Engine, config: Optional[FormatConfig] = None
) -> list[str]:
    """Ids of every tournament that is not a special event."""
    cfg = config or FormatConfig()
    tournaments = load_tournaments_df(engine)
    return [
        row["id"]
        for row in tournaments.select(["id", "name"]).iter_rows(named=True)
        if not is_special_event(row["name"], cfg.special_event_names)
    ]


def resolve_format_filter(
    engine: Engine,
    format_param: Optional[str] = None,
    *,
    config: Optional[FormatConfig] = None,
    use_cache: bool = True,
) -> ResolvedFormat:
    """
    Turn a format parameter into the tournament ids statistics should use.

    ``None`` selects the current format, ``"all"`` selects every tournament,
    and any other value is treated as a set code. Special events are always
    removed from the returned ids.
    """
    cfg = config or FormatConfig()
    formats = get_all_formats(engine, config=cfg, use_cache=use_cache)
    current = formats[0] if formats else None

    active = current
    if format_param == ALL_FORMATS:
        active = None
    elif format_param and (current is None or format_param != current.set_code):
        active = get_format_by_set_code(engine, format_param, use_cache=use_cache)

    if active is not None:
        excluded = set(get_special_event_ids(engine, cfg))
        tournament_ids = [t for t in active.tournament_ids if t not in excluded]
    elif cfg.special_event_names:
        tournament_ids = get_standard_tournament_ids(engine, cfg)
    else:
        tournament_ids = None

    if format_param == ALL_FORMATS:
        active_value = ALL_FORMATS
    elif active is not None:
        active_value = active.set_code
    else:
        active_value = current.set_code if current else ALL_FORMATS

    return ResolvedFormat(
        tournament_ids=tournament_ids,
        active_format=active,
        active_format_value=active_value,
        format_options=[
            {
                "set_code": f.set_code,
                "display_name": f.display_name,
                "tournament_count": len(f.tournament_ids),
            }
            for f in formats
        ],
        current_format_code=current.set_code if current else "",
    )
