"""Logging utilities.

Provides a configured structlog logger so every service logs the same way:
key/value events, ISO timestamps, JSON output in deployed environments and a
console renderer for local work (``LOG_JSON=false``).
"""

import logging
import sys

import structlog
from structlog.stdlib import BoundLogger

from sis.core.config import settings


def configure_logger() -> None:
    """Configure structlog processors and the level filter from settings."""
    renderer = structlog.processors.JSONRenderer() if settings.log_json else structlog.dev.ConsoleRenderer()
    level = logging.getLevelName(settings.log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.TimeStamper(fmt="iso"),
            *([structlog.processors.format_exc_info] if settings.log_json else []),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stdout),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> BoundLogger:
    """Get a configured structlog logger.

    Args:
        name: The name of the logger, typically __name__

    Returns:
        A configured structlog BoundLogger instance
    """
    if not structlog.is_configured():
        configure_logger()
    return structlog.get_logger(name)
