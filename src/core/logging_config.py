"""Structured logging configuration.

This module initializes structlog with a stable JSON event format routed
through standard logging, so stdout stays reserved for command output.
Modules log event names with keyword fields instead of formatted strings.
"""

from __future__ import annotations

import logging
from typing import Any

import structlog

_CONFIGURED = False


def get_logger(name: str) -> Any:
    """Return a module logger instance.

    Args:
        name: Logger name, usually __name__.

    Returns:
        A structlog logger with structured output.
    """
    _configure_once()
    return structlog.get_logger(name)


def configure_log_level(level_name: str) -> None:
    """Emit events at or above the given level to stderr.

    Args:
        level_name: Standard level name such as ``INFO`` or ``DEBUG``.
    """
    logging.basicConfig(level=level_name.upper(), format="%(message)s", force=True)


def _configure_once() -> None:
    """Apply the shared processor chain on first use."""
    global _CONFIGURED
    if _CONFIGURED:
        return
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.add_log_level,
            structlog.processors.JSONRenderer(),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
    _CONFIGURED = True
