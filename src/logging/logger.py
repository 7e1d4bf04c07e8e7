# src/logging/logger.py — v3
"""Logger setup for the ``jobpilot`` root logger.

Both formatters stamp records with the orchestration context (purpose,
fingerprint prefix, provider, state) and mask anything shaped like a cloud
API key before the line leaves the process.
"""

from __future__ import annotations

import json
import logging
import re
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from jobpilot.logging.context import LogContext, get_context

ROOT_LOGGER = "jobpilot"

# OpenAI (sk-..., sk-proj-...) and Anthropic (sk-ant-...) key shapes.
_API_KEY = re.compile(r"\bsk-[A-Za-z0-9_\-]{8,}")
REDACTED = "sk-***"


def redact(text: str) -> str:
    """Mask API-key-shaped tokens in ``text``."""
    return _API_KEY.sub(REDACTED, text)


class _ContextFormatter(logging.Formatter):
    def message(self, record: logging.LogRecord) -> str:
        return redact(record.getMessage())

    def exception(self, record: logging.LogRecord) -> str | None:
        if record.exc_info and record.exc_info[1] is not None:
            return redact(self.formatException(record.exc_info))
        return None

    @staticmethod
    def timestamp(record: logging.LogRecord) -> datetime:
        return datetime.fromtimestamp(record.created, tz=timezone.utc)


class JsonFormatter(_ContextFormatter):
    """One JSON object per line; context fields nest under ``context``."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": self.timestamp(record).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": self.message(record),
        }
        context = get_context().as_dict()
        if context:
            entry["context"] = context
        if record.levelno >= logging.ERROR:
            entry["location"] = f"{record.module}:{record.lineno}"
        exc = self.exception(record)
        if exc:
            entry["exception"] = exc
        return json.dumps(entry, default=str)


class TextFormatter(_ContextFormatter):
    """``time [LEVEL] logger [purpose:fp] <provider> (state) - message``."""

    def format(self, record: logging.LogRecord) -> str:
        parts = [
            self.timestamp(record).strftime("%Y-%m-%d %H:%M:%S"),
            f"[{record.levelname:8s}]",
            record.name,
            *_context_tags(get_context()),
            f"- {self.message(record)}",
        ]
        line = " ".join(parts)
        exc = self.exception(record)
        return f"{line}\n{exc}" if exc else line


def _context_tags(ctx: LogContext) -> list[str]:
    tags: list[str] = []
    if ctx.purpose:
        tags.append(f"[{ctx.purpose}:{ctx.fingerprint}]" if ctx.fingerprint else f"[{ctx.purpose}]")
    if ctx.provider:
        tags.append(f"<{ctx.provider}>")
    if ctx.state:
        tags.append(f"({ctx.state})")
    return tags


def get_logger(name: str) -> logging.Logger:
    """Child of the ``jobpilot`` root logger; setup_logging() configures it."""
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")


def setup_logging(
    level: str = "INFO",
    log_format: str = "text",
    log_file: str | Path | None = None,
    rotation: str = "10MB",
    retention: int = 5,
) -> None:
    """Configure the jobpilot root logger.

    Re-running replaces the handlers instead of stacking them.

    Args:
        level: DEBUG, INFO, WARNING or ERROR.
        log_format: "json" or "text".
        log_file: Rotating log file; None logs to stderr only.
        rotation: Size that triggers rotation, e.g. "10MB".
        retention: Rotated files to keep.
    """
    root = logging.getLogger(ROOT_LOGGER)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    for handler in root.handlers:
        handler.close()
    root.handlers.clear()

    formatter: logging.Formatter = JsonFormatter() if log_format == "json" else TextFormatter()

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_file:
        from jobpilot.logging.handlers import create_rotating_handler

        handlers.append(create_rotating_handler(str(log_file), rotation=rotation, retention=retention))
    for handler in handlers:
        handler.setFormatter(formatter)
        root.addHandler(handler)
