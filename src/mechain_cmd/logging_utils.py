"""Logging helpers for mechain-cmd."""

from __future__ import annotations

import logging
import sys

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
LOG_DATEFMT = "%Y-%m-%dT%H:%M:%S"


def resolve_level(name: str | None) -> int:
    if not name:
        return logging.WARNING
    level = logging.getLevelName(name.strip().upper())
    if not isinstance(level, int):
        raise ValueError(f"unknown log level: {name}")
    return level


def configure_logging(level: str | int | None = None, *, stream=None) -> None:  # noqa: ANN001
    """Route package logs to stderr; CLI output itself is printed, not logged."""
    resolved = level if isinstance(level, int) else resolve_level(level)
    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATEFMT))

    root = logging.getLogger("mechain_cmd")
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(resolved)
    root.propagate = False
