"""Logging configuration for jamroom processes (structlog to stdout)."""

from __future__ import annotations

import logging
import os
import sys

import structlog

from jamroom.config import settings


def _resolve_level(name: str) -> int | None:
    level = logging.getLevelName(name.strip().upper())
    return level if isinstance(level, int) else None


def configure_logging(level: str | None = None) -> int:
    """Configure structlog and return the numeric level in effect.

    Precedence: explicit ``level``, then ``LOG_LEVEL``, then
    ``settings.log_level`` (``JAMROOM_LOG_LEVEL``). An unknown name falls
    back to INFO with a warning.
    """
    requested = level or os.environ.get("LOG_LEVEL") or settings.log_level
    resolved = _resolve_level(requested)

    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="%Y-%m-%d %H:%M:%S"),
            structlog.dev.ConsoleRenderer(colors=False),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(resolved or logging.INFO),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stdout),
        cache_logger_on_first_use=False,
    )

    if resolved is None:
        structlog.get_logger().warning("logging.invalid_level", requested=requested, using="INFO")
        return logging.INFO
    return resolved
