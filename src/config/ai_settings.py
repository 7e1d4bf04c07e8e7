# src/config/ai_settings.py — v1
"""User-facing AI settings record and its persistence.

The record is versioned and handed to every orchestration call through a
SettingsProvider, so routing can be tested without real persistence.
"""

from __future__ import annotations

import logging
import sqlite3
import threading
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, SecretStr

from jobpilot.core.errors import ValidationError

logger = logging.getLogger(__name__)


class AiMode(str, Enum):
    LOCAL = "local"
    CLOUD = "cloud"
    HYBRID = "hybrid"


class CloudProvider(str, Enum):
    OPENAI = "openai"
    ANTHROPIC = "anthropic"


class AiSettings(BaseModel):
    """Process-wide AI settings record."""

    mode: AiMode = AiMode.CLOUD
    local_model_path: Path | None = None
    cloud_provider: CloudProvider | None = None
    api_key: SecretStr | None = None
    model_name: str | None = None
    version: int = 0

    @property
    def has_api_key(self) -> bool:
        return self.api_key is not None and bool(self.api_key.get_secret_value())

    def api_key_value(self) -> str | None:
        """Plain API key, or None when unset or blank."""
        if not self.has_api_key:
            return None
        return self.api_key.get_secret_value()  # type: ignore[union-attr]


def validate_ai_settings(settings: AiSettings) -> None:
    """Reject records that can never work.

    Raises:
        ValidationError: Cloud mode without an API key.
    """
    if settings.mode == AiMode.CLOUD and not settings.has_api_key:
        raise ValidationError(
            "Cloud mode requires an API key. Add one or switch to Local or Hybrid mode.",
            field="api_key",
        )


class SettingsProvider(ABC):
    """Source of the current AiSettings record."""

    @abstractmethod
    def load(self) -> AiSettings:
        """Return the current record (defaults on first run)."""

    @abstractmethod
    def save(self, settings: AiSettings) -> AiSettings:
        """Validate and persist ``settings``; return the stored record."""


class InMemorySettingsProvider(SettingsProvider):
    """Settings held in memory, for tests and one-shot scripts."""

    def __init__(self, settings: AiSettings | None = None) -> None:
        self._settings = settings or AiSettings()
        self._lock = threading.Lock()

    def load(self) -> AiSettings:
        with self._lock:
            return self._settings.model_copy()

    def save(self, settings: AiSettings) -> AiSettings:
        validate_ai_settings(settings)
        with self._lock:
            stored = settings.model_copy(update={"version": self._settings.version + 1})
            self._settings = stored
            return stored.model_copy()


_SCHEMA = """
CREATE TABLE IF NOT EXISTS ai_settings (
    id INTEGER PRIMARY KEY CHECK (id = 1),
    mode TEXT NOT NULL DEFAULT 'cloud',
    cloud_provider TEXT,
    api_key TEXT,
    model_name TEXT,
    local_model_path TEXT,
    version INTEGER NOT NULL DEFAULT 0,
    updated_at TEXT NOT NULL
);
"""


class SqliteSettingsStore(SettingsProvider):
    """Single-row settings table in the application database."""

    def __init__(self, db_path: Path | str) -> None:
        self._db_path = Path(db_path).expanduser()
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()
        self._conn = sqlite3.connect(str(self._db_path), check_same_thread=False)
        self._conn.executescript(_SCHEMA)

    def load(self) -> AiSettings:
        with self._lock:
            row = self._conn.execute(
                "SELECT mode, cloud_provider, api_key, model_name, local_model_path, version "
                "FROM ai_settings WHERE id = 1"
            ).fetchone()
            if row is None:
                default = AiSettings()
                self._write(default)
                logger.info("Created default AI settings (mode=%s)", default.mode.value)
                return default

        mode, cloud_provider, api_key, model_name, local_model_path, version = row
        return AiSettings(
            mode=_parse_mode(mode),
            cloud_provider=_parse_provider(cloud_provider),
            api_key=SecretStr(api_key) if api_key else None,
            model_name=model_name,
            local_model_path=Path(local_model_path) if local_model_path else None,
            version=version,
        )

    def save(self, settings: AiSettings) -> AiSettings:
        validate_ai_settings(settings)
        with self._lock:
            row = self._conn.execute(
                "SELECT version FROM ai_settings WHERE id = 1"
            ).fetchone()
            current_version = row[0] if row else 0
            stored = settings.model_copy(update={"version": current_version + 1})
            self._write(stored)
        logger.info(
            "Saved AI settings v%d (mode=%s, provider=%s, local_model=%s)",
            stored.version,
            stored.mode.value,
            stored.cloud_provider.value if stored.cloud_provider else None,
            stored.local_model_path,
        )
        return stored

    def close(self) -> None:
        self._conn.close()

    def _write(self, settings: AiSettings) -> None:
        self._conn.execute(
            """INSERT INTO ai_settings
               (id, mode, cloud_provider, api_key, model_name, local_model_path, version, updated_at)
               VALUES (1, ?, ?, ?, ?, ?, ?, ?)
               ON CONFLICT(id) DO UPDATE SET
                  mode = excluded.mode,
                  cloud_provider = excluded.cloud_provider,
                  api_key = excluded.api_key,
                  model_name = excluded.model_name,
                  local_model_path = excluded.local_model_path,
                  version = excluded.version,
                  updated_at = excluded.updated_at""",
            (
                settings.mode.value,
                settings.cloud_provider.value if settings.cloud_provider else None,
                settings.api_key_value(),
                settings.model_name,
                str(settings.local_model_path) if settings.local_model_path else None,
                settings.version,
                datetime.now(timezone.utc).isoformat(),
            ),
        )
        self._conn.commit()


def _parse_mode(value: str | None) -> AiMode:
    try:
        return AiMode((value or "").lower())
    except ValueError:
        logger.warning("Unknown AI mode %r in settings, using cloud", value)
        return AiMode.CLOUD


def _parse_provider(value: str | None) -> CloudProvider | None:
    if not value:
        return None
    try:
        return CloudProvider(value.lower())
    except ValueError:
        logger.warning("Unknown cloud provider %r in settings, ignoring", value)
        return None
