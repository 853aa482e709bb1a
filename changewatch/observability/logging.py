"""
Logger factory for changewatch modules.

All module loggers live under the ``changewatch`` namespace. One stream handler
is attached to that namespace logger, not to the root logger, so the API
server's own uvicorn logging is left alone. Records still propagate upward.
"""

from __future__ import annotations

import logging
import threading

from changewatch.config import LOG_LEVEL

PACKAGE_LOGGER = "changewatch"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_handler: logging.Handler | None = None
_lock = threading.Lock()


def _level_from(value: str | int) -> int:
    if isinstance(value, int):
        return value
    return logging.getLevelNamesMapping().get(value.upper(), logging.INFO)


def configure_logging(level: str | int | None = None) -> logging.Logger:
    """
    Attach the package handler (once) and set the package log level.

    Args:
        level: Level name or number; defaults to CHANGEWATCH_LOG_LEVEL

    Returns:
        The ``changewatch`` namespace logger
    """
    global _handler

    package_logger = logging.getLogger(PACKAGE_LOGGER)
    with _lock:
        if _handler is None:
            _handler = logging.StreamHandler()
            _handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
            package_logger.addHandler(_handler)
    package_logger.setLevel(_level_from(LOG_LEVEL if level is None else level))
    return package_logger


def get_logger(name: str) -> logging.Logger:
    """Return a logger in the changewatch namespace; module loggers inherit its level."""
    if _handler is None:
        configure_logging()
    if name != PACKAGE_LOGGER and not name.startswith(f"{PACKAGE_LOGGER}."):
        name = f"{PACKAGE_LOGGER}.{name}"
    return logging.getLogger(name)
