# src/config/settings.py — v1
"""Typed deployment configuration loaded from .env via pydantic-settings.

Holds everything that does not change while the app runs: storage locations,
cache bounds, chunk budget, timeouts, retry policy, logging. The user's AI
choices (mode, API key, model path) live in ``config.ai_settings``.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import ValidationError as PydanticValidationError
from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from jobpilot.core.errors import ConfigurationError


class Settings(BaseSettings):
    """Application settings loaded from .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="JOBPILOT_",
        extra="ignore",
    )

    # === Storage ===
    data_dir: Path = Path("~/.jobpilot")
    model_dir: Path | None = None
    db_path: Path | None = None
    model_extension: str = ".gguf"

    # === Cache ===
    cache_enabled: bool = True
    cache_backend: Literal["sqlite", "json"] = "sqlite"
    cache_max_size_mb: float | None = None
    cache_max_entries: int | None = None
    cache_partial_results: bool = False

    # === Chunking ===
    chunk_max_chars: int = 6000
    chunk_min_chars: int = 200

    # === Cloud ===
    default_openai_model: str = "gpt-4o-mini"
    default_anthropic_model: str = "claude-3-5-haiku-latest"
    cloud_timeout_s: float = 90.0
    cloud_max_tokens: int = 2048
    cloud_temperature: float = 0.3
    cloud_max_retries: int = 3
    retry_base_delay_s: float = 0.5
    retry_max_delay_s: float = 10.0
    retry_backoff_factor: float = 2.0
    rate_limit_requests: int = 50
    rate_limit_window_s: float = 60.0

    # === Local ===
    local_context_size: int = 4096
    local_max_tokens: int = 1000
    local_temperature: float = 0.2
    local_threads: int | None = None
    local_max_reprompts: int = 2

    # === Downloads ===
    download_timeout_s: float = 60.0
    download_chunk_bytes: int = 1024 * 1024

    # === Logging ===
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["json", "text"] = "text"
    log_file: Path | None = None
    log_rotation: str = "10MB"
    log_retention: int = 5

    # --- Validators ---

    @field_validator("chunk_max_chars", "chunk_min_chars")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("chunk sizes must be > 0")
        return v

    @model_validator(mode="after")
    def validate_config_consistency(self) -> Settings:
        """Validate cross-field consistency rules."""
        errors: list[str] = []

        if not 60.0 <= self.cloud_timeout_s <= 120.0:
            errors.append("CLOUD_TIMEOUT_S must be between 60 and 120 seconds")

        if self.chunk_min_chars >= self.chunk_max_chars:
            errors.append("CHUNK_MIN_CHARS must be < CHUNK_MAX_CHARS")

        if self.cache_max_size_mb is not None and self.cache_max_size_mb < 0:
            errors.append("CACHE_MAX_SIZE_MB must be >= 0")

        if self.cache_max_entries is not None and self.cache_max_entries < 0:
            errors.append("CACHE_MAX_ENTRIES must be >= 0")

        if self.cloud_max_retries < 0 or self.local_max_reprompts < 0:
            errors.append("retry counts must be >= 0")

        if not self.model_extension.startswith("."):
            errors.append("MODEL_EXTENSION must start with '.'")

        if errors:
            raise ConfigurationError("; ".join(errors))

        return self

    # --- Helpers ---

    @property
    def resolved_data_dir(self) -> Path:
        return Path(self.data_dir).expanduser()

    @property
    def resolved_model_dir(self) -> Path:
        """Directory scanned for model files."""
        if self.model_dir is not None:
            return Path(self.model_dir).expanduser()
        return self.resolved_data_dir / "models"

    @property
    def resolved_db_path(self) -> Path:
        """SQLite file holding the settings record and the sqlite cache."""
        if self.db_path is not None:
            return Path(self.db_path).expanduser()
        return self.resolved_data_dir / "jobpilot.db"

    @property
    def cache_root(self) -> Path:
        """Root directory for the JSON cache backend."""
        return self.resolved_data_dir / "cache"


def load_settings(**overrides: object) -> Settings:
    """Load settings from .env with optional overrides.

    Raises:
        ConfigurationError: If a value is malformed or the configuration is
            internally inconsistent.
    """
    try:
        return Settings(**overrides)  # type: ignore[arg-type]
    except PydanticValidationError as e:
        fields = sorted({".".join(str(p) for p in err["loc"]) for err in e.errors() if err["loc"]})
        raise ConfigurationError(
            f"Invalid configuration: {e.error_count()} error(s) in {', '.join(fields) or 'settings'}",
            missing=fields,
        ) from e
