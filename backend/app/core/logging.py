"""Logging setup for the auth service."""

from __future__ import annotations

import logging
import os

_QUIET_LOGGERS = ("sqlalchemy.engine", "passlib")


def setup_logging(level: str | None = None) -> None:
    if logging.getLogger().handlers:
        return

    level_name = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    logging.basicConfig(
        level=level_name,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
