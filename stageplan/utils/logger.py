"""Logging setup shared by the API, the CLI and the allocation engine."""

from __future__ import annotations

import logging
import sys
from typing import Optional

from stageplan.utils.config import get_settings


LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

_handler_installed = False


def configure_logging(level: Optional[str] = None) -> None:
    """Install the stdout handler once and apply the requested level.

    Without an explicit ``level`` the configured ``STAGEPLAN_LOG_LEVEL`` is
    used on first call and later calls leave the level alone. An explicit
    level always wins, so the CLI can raise verbosity after module loggers
    already exist.
    """
    global _handler_installed
    resolved = (level or get_settings().log_level).upper()
    if logging.getLevelName(resolved) == f"Level {resolved}":
        raise ValueError(f"unknown log level {resolved!r}")

    if not _handler_installed:
        logging.basicConfig(level=resolved, format=LOG_FORMAT, stream=sys.stdout)
        _handler_installed = True
    elif level is not None:
        logging.getLogger().setLevel(resolved)


def get_logger(name: str) -> logging.Logger:
    configure_logging()
    return logging.getLogger(name)
