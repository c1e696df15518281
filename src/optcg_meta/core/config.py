"""Configuration dataclasses for sync and statistics."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import List, Optional

from optcg_meta.core.constants import (
    DEFAULT_API_DELAY,
    DEFAULT_GAME,
    DEFAULT_INSERT_BATCH_SIZE,
    DEFAULT_LIST_LIMIT,
    DEFAULT_NAME_FILTER,
    DEFAULT_ORGANIZER_ID,
    DEFAULT_TIMEOUT,
    FORMAT_SET_PATTERN,
    IGNORED_SETS,
    LIMITLESS_API_BASE_URL,
    MIN_ENTRIES_FOR_TIER,
    SPECIAL_EVENT_NAMES,
    TIER_LABELS,
    TIER_PERCENTILES,
    WEIGHT_PLAY_RATE,
    WEIGHT_TOP4_RATE,
    WEIGHT_TOURNAMENT_WINS,
    WEIGHT_WIN_RATE,
)


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


@dataclass
class SyncConfig:
    """Configuration for the ingestion pipeline."""

    base_url: str = LIMITLESS_API_BASE_URL
    game: str = DEFAULT_GAME
    # None disables the organizer filter on the list request
    organizer_id: Optional[str] = DEFAULT_ORGANIZER_ID
    name_filter: str = DEFAULT_NAME_FILTER
    list_limit: int = DEFAULT_LIST_LIMIT
    timeout: float = DEFAULT_TIMEOUT

    # Seconds between calls to the source
    api_delay: float = DEFAULT_API_DELAY
    insert_batch_size: int = DEFAULT_INSERT_BATCH_SIZE

    @classmethod
    def from_env(cls) -> "SyncConfig":
        """Build a config, overriding defaults from environment variables."""
        organizer = os.getenv("OPTCG_ORGANIZER_ID", DEFAULT_ORGANIZER_ID)
        return cls(
            base_url=os.getenv("LIMITLESS_API_BASE_URL")
            or LIMITLESS_API_BASE_URL,
            game=os.getenv("OPTCG_GAME") or DEFAULT_GAME,
            organizer_id=organizer.strip() or None,
            name_filter=os.getenv("OPTCG_NAME_FILTER", DEFAULT_NAME_FILTER),
            list_limit=_env_int("OPTCG_LIST_LIMIT", DEFAULT_LIST_LIMIT),
            timeout=_env_float("OPTCG_HTTP_TIMEOUT", DEFAULT_TIMEOUT),
            api_delay=_env_float("OPTCG_API_DELAY", DEFAULT_API_DELAY),
            insert_batch_size=_env_int(
                "OPTCG_BATCH_SIZE", DEFAULT_INSERT_BATCH_SIZE
            ),
        )


@dataclass
class TierConfig:
    """Configuration for composite scoring and tier assignment."""

    min_entries: int = MIN_ENTRIES_FOR_TIER
    percentiles: List[float] = field(
        default_factory=lambda: list(TIER_PERCENTILES)
    )
    labels: List[str] = field(default_factory=lambda: list(TIER_LABELS))

    # Composite score weights
    weight_win_rate: float = WEIGHT_WIN_RATE
    weight_top4_rate: float = WEIGHT_TOP4_RATE
    weight_tournament_wins: float = WEIGHT_TOURNAMENT_WINS
    weight_play_rate: float = WEIGHT_PLAY_RATE


@dataclass
class FormatConfig:
    """Configuration for format detection and special event exclusion."""

    set_pattern: str = FORMAT_SET_PATTERN
    ignored_sets: List[str] = field(default_factory=lambda: list(IGNORED_SETS))
    special_event_names: List[str] = field(
        default_factory=lambda: list(SPECIAL_EVENT_NAMES)
    )
