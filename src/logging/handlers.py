# src/logging/handlers.py — v2
"""Rotating file handler for the ``logs/`` directory under the data dir."""

from __future__ import annotations

import logging
import re
from logging.handlers import RotatingFileHandler
from pathlib import Path

from jobpilot.config.settings import Settings

_SIZE = re.compile(r"^(\d+(?:\.\d+)?)\s*(B|KB|MB|GB)?$", re.IGNORECASE)
_MULTIPLIERS = {"B": 1, "KB": 1024, "MB": 1024**2, "GB": 1024**3}


def parse_size(size_str: str) -> int:
    """Parse '10MB', '512KB', '1.5GB' or a bare byte count into bytes."""
    match = _SIZE.match(size_str.strip())
    if not match:
        raise ValueError(f"Invalid size format: {size_str!r}. Use e.g. '10MB'.")
    unit = (match.group(2) or "B").upper()
    return int(float(match.group(1)) * _MULTIPLIERS[unit])


def default_log_file(settings: Settings) -> Path:
    """``<data_dir>/logs/jobpilot.log`` unless LOG_FILE overrides it."""
    if settings.log_file is not None:
        return Path(settings.log_file).expanduser()
    return settings.resolved_data_dir / "logs" / "jobpilot.log"


def create_rotating_handler(
    log_file: str,
    rotation: str = "10MB",
    retention: int = 5,
) -> logging.Handler:
    """Create a size-rotated file handler, creating parent directories."""
    path = Path(log_file).expanduser()
    path.parent.mkdir(parents=True, exist_ok=True)
    return RotatingFileHandler(
        filename=str(path),
        maxBytes=parse_size(rotation),
        backupCount=retention,
        encoding="utf-8",
    )
