"""Central logging configuration utilities for kp_copy.

The project deliberately keeps logging lightweight to avoid external deps.
"""

from __future__ import annotations

import logging
import os
from typing import Optional

_LEVEL_MAP = {
    "CRITICAL": logging.CRITICAL,
    "PANIC": logging.CRITICAL,
    "FATAL": logging.CRITICAL,
    "ERROR": logging.ERROR,
    "WARNING": logging.WARNING,
    "WARN": logging.WARNING,
    "INFO": logging.INFO,
    "DEBUG": logging.DEBUG,
    "NOTSET": logging.NOTSET,
}

LEVEL_NAMES = ("debug", "info", "warn", "warning", "error", "fatal", "panic")


def resolve_level(level: str | int | None) -> int:
    """Translate a level name (case-insensitive) into a logging level."""
    if level is None:
        level = os.environ.get("KP_LOG_LEVEL", "INFO")
    if isinstance(level, str):
        return _LEVEL_MAP.get(level.upper(), logging.INFO)
    return level


def configure_logging(level: str | int | None = None, *, force: bool = False) -> None:
    """Configure root logger.

    Order of precedence for level:
    1. Explicit `level` argument if given
    2. Environment variable `KP_LOG_LEVEL`
    3. Fallback to `INFO`
    """
    logging.basicConfig(
        level=resolve_level(level),
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        force=force,
    )


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Get a project logger."""
    return logging.getLogger(name or "kp_copy")


__all__ = ["LEVEL_NAMES", "configure_logging", "get_logger", "resolve_level"]
