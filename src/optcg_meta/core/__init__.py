"""Shared constants, configuration and logging helpers."""

from __future__ import annotations

from optcg_meta.core.config import FormatConfig, SyncConfig, TierConfig
from optcg_meta.core.logging import get_logger, log_timing, setup_logging

__all__ = [
    "SyncConfig",
    "TierConfig",
    "FormatConfig",
    "setup_logging",
    "get_logger",
    "log_timing",
]
