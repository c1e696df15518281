"""
Optional Sentry reporting for the sync CLI and the HTTP endpoint.

Sentry is enabled only when ``SENTRY_DSN`` (or ``OPTCG_SENTRY_DSN``) holds an
http(s) DSN. ERROR logs become events, so every failed tournament sync is
reported without extra calls. Other settings: ``SENTRY_ENV``,
``SENTRY_RELEASE``, ``SENTRY_TRACES_SAMPLE_RATE``,
``SENTRY_PROFILES_SAMPLE_RATE`` and ``SENTRY_DEBUG``.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Any, Optional, Sequence
from urllib.parse import urlparse

logger = logging.getLogger(__name__)

DSN_ENV_VARS = ("SENTRY_DSN", "OPTCG_SENTRY_DSN")


@dataclass
class SentrySettings:
    dsn: str
    environment: str = "development"
    release: Optional[str] = None
    traces_sample_rate: float = 0.0
    profiles_sample_rate: float = 0.0
    debug: bool = False


def _sample_rate(name: str) -> float:
    """Rate from the environment clamped to [0, 1]; 0 when unset or invalid."""
    raw = os.getenv(name, "").strip()
    if not raw:
        return 0.0
    try:
        rate = float(raw)
    except ValueError:
        logger.debug(f"Ignoring non-numeric {name}={raw!r}")
        return 0.0
    return min(1.0, max(0.0, rate))


def read_sentry_settings() -> Optional[SentrySettings]:
    """Settings from the environment, or None when no usable DSN is set."""
    dsn = next((os.getenv(n) for n in DSN_ENV_VARS if os.getenv(n)), None)
    if not dsn:
        return None
    dsn = dsn.strip().strip("\"'")
    parsed = urlparse(dsn)
    if parsed.scheme not in {"http", "https"} or not parsed.netloc:
        logger.warning("Sentry disabled: DSN is not an http(s) URL")
        return None
    return SentrySettings(
        dsn=dsn,
        environment=os.getenv("SENTRY_ENV") or os.getenv("ENV") or "development",
        release=os.getenv("SENTRY_RELEASE") or None,
        traces_sample_rate=_sample_rate("SENTRY_TRACES_SAMPLE_RATE"),
        profiles_sample_rate=_sample_rate("SENTRY_PROFILES_SAMPLE_RATE"),
        debug=os.getenv("SENTRY_DEBUG", "").lower() in {"1", "true", "yes", "on"},
    )


def init_sentry(
    *, context: str, extra_integrations: Optional[Sequence[Any]] = None
) -> bool:
    """Start Sentry tagged with ``service=context``; returns whether it started."""
    settings = read_sentry_settings()
    if settings is None:
        logger.debug(f"Sentry not configured for {context}")
        return False

    import sentry_sdk
    from sentry_sdk.integrations.logging import LoggingIntegration

    integrations = [
        LoggingIntegration(level=logging.INFO, event_level=logging.ERROR),
        *(extra_integrations or []),
    ]
    sentry_sdk.init(
        dsn=settings.dsn,
        environment=settings.environment,
        release=settings.release,
        integrations=integrations,
        traces_sample_rate=settings.traces_sample_rate,
        profiles_sample_rate=settings.profiles_sample_rate,
        debug=settings.debug,
    )
    sentry_sdk.set_tag("service", context)
    logger.info(f"Sentry enabled for {context} ({settings.environment})")
    return True
