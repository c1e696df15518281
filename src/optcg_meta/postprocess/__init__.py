"""Post-processing utilities for leader statistics."""

from __future__ import annotations

from optcg_meta.postprocess.tiers import (
    PercentileTierSystem,
    TierSystem,
    percentile_tier,
)

__all__ = [
    "TierSystem",
    "PercentileTierSystem",
    "percentile_tier",
]
