"""
Tier systems for leader classifications.

This module provides tier systems that bucket leaders into S/A/B/C tiers from
their rank within the qualified population, with under-sampled leaders kept
as unranked ("U").
"""

from abc import ABC, abstractmethod
from typing import List, Optional

import polars as pl

from optcg_meta.core.constants import (
    MIN_ENTRIES_FOR_TIER,
    TIER_LABELS,
    TIER_PERCENTILES,
    UNRANKED_TIER,
)


def percentile_tier(
    percentile: float,
    percentiles: Optional[List[float]] = None,
    labels: Optional[List[str]] = None,
) -> str:
    """
    Map a rank percentile to a tier label.

    Parameters
    ----------
    percentile : float
        Rank percentile in (0, 1], where 1.0 is the best rank
    percentiles : List[float], optional
        Descending percentile floors, one per label except the last
    labels : List[str], optional
        Tier labels, best first

    Returns
    -------
    str
        First label whose floor ``percentile`` reaches, else the last label
    """
    percentiles = TIER_PERCENTILES if percentiles is None else percentiles
    labels = TIER_LABELS if labels is None else labels
    for floor, label in zip(percentiles, labels):
        if percentile >= floor:
            return label
    return labels[-1]


class TierSystem(ABC):
    """Abstract base class for tier systems."""

    @abstractmethod
    def assign_tiers(
        self, df: pl.DataFrame, column_name: str = "tier"
    ) -> pl.DataFrame:
        """
        Assign tiers to a DataFrame.

        Parameters
        ----------
        df : pl.DataFrame
            DataFrame with one row per leader
        column_name : str
            Name for the tier column

        Returns
        -------
        pl.DataFrame
            DataFrame with added tier column
        """
        pass


class PercentileTierSystem(TierSystem):
    """Tier system based on rank percentile among qualified leaders."""

    def __init__(
        self,
        score_column: str = "composite_score",
        entries_column: str = "total_entries",
        min_entries: int = MIN_ENTRIES_FOR_TIER,
        percentiles: Optional[List[float]] = None,
        labels: Optional[List[str]] = None,
        unranked_label: str = UNRANKED_TIER,
    ):
        """
        Initialize percentile-based tier system.

        Parameters
        ----------
        score_column : str
            Column ranked in descending order
        entries_column : str
            Column holding the sample size per leader
        min_entries : int
            Leaders below this many entries are unranked
        percentiles : List[float], optional
            Descending percentile floors (0.0 to 1.0)
        labels : List[str], optional
            Tier labels, one more than ``percentiles``
        unranked_label : str
            Label for leaders below ``min_entries``
        """
        self.score_column = score_column
        self.entries_column = entries_column
        self.min_entries = min_entries
        self.percentiles = list(
            TIER_PERCENTILES if percentiles is None else percentiles
        )
        self.labels = list(TIER_LABELS if labels is None else labels)
        self.unranked_label = unranked_label
        if len(self.labels) != len(self.percentiles) + 1:
            raise ValueError(
                "labels must have exactly one more entry than percentiles"
            )

    def assign_tiers(
        self, df: pl.DataFrame, column_name: str = "tier"
    ) -> pl.DataFrame:
        """Assign tiers; qualified leaders first, each group by score."""
        for col in (self.score_column, self.entries_column):
            if col not in df.columns:
                raise ValueError(f"Column '{col}' not found in DataFrame")

        is_qualified = pl.col(self.entries_column) >= self.min_entries
        qualified = df.filter(is_qualified).sort(
            self.score_column, descending=True, maintain_order=True
        )
        unranked = df.filter(~is_qualified).sort(
            self.score_column, descending=True, maintain_order=True
        )

        total = qualified.height
        if total:
            # Rank-based: p = 1 - index / total over the sorted population
            tiers = [
                percentile_tier(1.0 - i / total, self.percentiles, self.labels)
                for i in range(total)
            ]
            qualified = qualified.with_columns(
                pl.Series(column_name, tiers, dtype=pl.Utf8)
            )
        else:
            qualified = qualified.with_columns(
                pl.lit(None, dtype=pl.Utf8).alias(column_name)
            )

        unranked = unranked.with_columns(
            pl.lit(self.unranked_label).alias(column_name)
        )
        return pl.concat([qualified, unranked], how="vertical_relaxed")
