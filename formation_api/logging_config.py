"""Logging setup for the Formation API process.

One level, resolved from ``FORMATION_LOG_LEVEL``, drives the API logger, the
engine (every ``formation.*`` module logger inherits from ``formation``) and
uvicorn, so a single switch turns on host and optimizer debug output.
"""

from __future__ import annotations

import logging
import os

from formation.exceptions import ConfigurationError

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"

API_LOGGER = "formation.api"
ENGINE_LOGGER = "formation"
UVICORN_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access")


def resolve_log_level(level: str | None = None) -> str:
    """Explicit level, else ``FORMATION_LOG_LEVEL``, else INFO."""
    raw = level if level is not None else os.getenv("FORMATION_LOG_LEVEL")
    name = (raw or "INFO").strip().upper()
    if not isinstance(logging.getLevelName(name), int):
        raise ConfigurationError(f"Unknown log level {raw!r}")
    return name


def configure_logging(level: str | None = None) -> logging.Logger:
    """Configure root output and align engine, API and uvicorn loggers.

    Returns:
        The API logger (``formation.api``).
    """
    resolved = resolve_log_level(level)
    logging.basicConfig(level=resolved, format=LOG_FORMAT, datefmt=LOG_DATEFMT)

    for name in (ENGINE_LOGGER, API_LOGGER, *UVICORN_LOGGERS):
        logging.getLogger(name).setLevel(resolved)

    api_logger = logging.getLogger(API_LOGGER)
    api_logger.debug("Logging configured at %s", resolved)
    return api_logger
