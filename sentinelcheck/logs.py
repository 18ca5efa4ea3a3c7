"""Logging configuration."""

from __future__ import annotations

import logging
import os

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def resolve_level(debug: bool = False) -> int:
    """--debug wins; otherwise SENTINELCHECK_LOG_LEVEL, if it names a level."""
    if debug:
        return logging.DEBUG
    name = (os.getenv("SENTINELCHECK_LOG_LEVEL") or "WARNING").strip().upper()
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else logging.WARNING


def configure_logging(debug: bool = False) -> None:
    logging.basicConfig(level=resolve_level(debug), format=LOG_FORMAT)


__all__ = ["configure_logging", "resolve_level"]
