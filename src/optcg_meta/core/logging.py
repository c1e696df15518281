"""
Centralized logging configuration for the optcg_meta package.

Every module logs through ``logging.getLogger(__name__)``; this module wires
the ``optcg_meta`` logger tree to handlers and offers a timing helper for
long-running sync and query steps.
"""

from __future__ import annotations

import logging
import sys
import time
from contextlib import contextmanager
from pathlib import Path

ROOT_LOGGER_NAME = "optcg_meta"


def setup_logging(
    level: str | int = logging.INFO,
    log_file: str | Path | None = None,
    format_style: str = "detailed",
    include_timestamp: bool = True,
) -> logging.Logger:
    """Set up centralized logging for the optcg_meta package.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL). Defaults to logging.INFO.
        log_file: Optional file to write logs to. Defaults to None.
        format_style: Format style: "simple", "detailed", or "json". Defaults to "detailed".
        include_timestamp: Whether to include timestamps in log messages. Defaults to True.

    Returns:
        Configured logger instance.
    """
    if isinstance(level, str):
        level = getattr(logging, level.upper())

    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(level)

    logger.handlers.clear()

    if format_style == "simple":
        format_string = "%(levelname)s: %(message)s"
    elif format_style == "json":
        format_string = '{"timestamp": "%(asctime)s", "level": "%(levelname)s", "module": "%(name)s", "message": "%(message)s"}'
    else:
        if include_timestamp:
            format_string = "%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s"
        else:
            format_string = "%(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s"

    formatter = logging.Formatter(format_string)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    logger.propagate = False

    # Third-party HTTP chatter drowns out per-tournament progress
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("requests").setLevel(logging.WARNING)

    return logger


def get_logger(name: str) -> logging.Logger:
    """Get a logger for a specific module/component.

    Args:
        name: Name of the component (usually __name__).

    Returns:
        Logger instance nested under the package logger.
    """
    if name.startswith(ROOT_LOGGER_NAME):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


@contextmanager
def log_timing(
    logger: logging.Logger, operation: str, level: int = logging.INFO
):
    """Context manager to log the timing of operations.

    Args:
        logger: Logger to use for timing messages.
        operation: Description of the operation being timed.
        level: Logging level for timing messages. Defaults to logging.INFO.

    Examples:
        >>> logger = get_logger(__name__)
        >>> with log_timing(logger, "syncing tournament list"):
        ...     discovered = sync_tournament_list(engine)
    """
    start_time = time.time()
    logger.log(level, f"Starting {operation}")

    try:
        yield
        elapsed_time = time.time() - start_time
        logger.log(level, f"Completed {operation} in {elapsed_time:.2f}s")
    except Exception as exception:
        elapsed_time = time.time() - start_time
        logger.error(
            f"Failed {operation} after {elapsed_time:.2f}s: {exception}"
        )
        raise
