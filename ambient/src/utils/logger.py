"""
Ambient Memory - Logging
=========================
Provides a pre-configured logger factory for consistent, readable
log output across all ambient-memory modules.

Logging verbosity is driven by ``settings.ENV``:
  • ``"dev"``  → DEBUG level  (pipeline-level verbose messages visible)
  • ``"prod"`` → WARNING level (store failures & warnings only)

Output goes to stdout unless ``set_log_stream`` redirects it; the store
worker sends logs to stderr because its stdout carries the response.

Usage:
    from ambient.src.utils.logger import get_logger
    logger = get_logger(__name__)
    logger.debug("ambient-memory: injecting %d chars of context", n)
"""

from __future__ import annotations

import logging
import sys
from typing import TextIO

from ambient.config.settings import settings

# ── Resolve default level from environment mode ───────────────────────
_ENV_LEVEL_MAP = {
    "dev": logging.DEBUG,
    "prod": logging.WARNING,
}
_DEFAULT_LEVEL = _ENV_LEVEL_MAP.get(settings.ENV, logging.INFO)

_FORMATTER = logging.Formatter(
    fmt="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)

_stream: TextIO = sys.stdout
_handlers: list[logging.StreamHandler] = []


def set_log_stream(stream: TextIO) -> None:
    """Send all ambient-memory log output, past and future loggers, to *stream*."""
    global _stream
    _stream = stream
    for handler in _handlers:
        handler.setStream(stream)


def get_logger(name: str, level: int | None = None) -> logging.Logger:
    """
    Create and return a named logger with a standardised formatter.

    Args:
        name:  Typically ``__name__`` of the calling module.
        level: Explicit logging level override.
               If *None*, the level is derived from ``settings.ENV``.

    Returns:
        A configured ``logging.Logger`` instance.
    """
    resolved_level = level if level is not None else _DEFAULT_LEVEL
    logger = logging.getLogger(name)

    # One handler per named logger; repeated calls reuse it
    if not logger.handlers:
        logger.setLevel(resolved_level)

        handler = logging.StreamHandler(_stream)
        handler.setLevel(resolved_level)
        handler.setFormatter(_FORMATTER)
        logger.addHandler(handler)
        _handlers.append(handler)

        # The root logger never sees these records
        logger.propagate = False

    return logger
