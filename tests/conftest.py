# tests/conftest.py — v1
"""Shared test fixtures for all unit and integration tests.

Provides temp-dir settings, a frozen-clock cache and settings providers.
No network or real model files are touched.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from jobpilot.cache.response_cache import ResponseCache
from jobpilot.cache.sqlite_store import SqliteCacheStore
from jobpilot.config.ai_settings import (
    AiMode,
    AiSettings,
    CloudProvider,
    InMemorySettingsProvider,
)
from jobpilot.config.settings import Settings
from jobpilot.llm.adapters.local_adapter import release_model_handles
from tests.fakes import FrozenClock


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Settings rooted in a temp dir, ignoring any local .env."""
    return Settings(_env_file=None, data_dir=tmp_path / "data")


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture
def cache(tmp_path: Path, clock: FrozenClock) -> ResponseCache:
    store = SqliteCacheStore(tmp_path / "cache.db")
    yield ResponseCache(store, clock=clock)
    store.close()


@pytest.fixture
def model_file(tmp_path: Path) -> Path:
    """An existing, well-named model file."""
    models = tmp_path / "models"
    models.mkdir(exist_ok=True)
    path = models / "phi-3-mini-q4.gguf"
    path.write_bytes(b"GGUF" + b"\x00" * 16)
    return path


@pytest.fixture
def cloud_settings() -> AiSettings:
    return AiSettings(
        mode=AiMode.CLOUD,
        cloud_provider=CloudProvider.OPENAI,
        api_key="sk-test",
    )


@pytest.fixture
def settings_provider(cloud_settings: AiSettings) -> InMemorySettingsProvider:
    return InMemorySettingsProvider(cloud_settings)


@pytest.fixture(autouse=True)
def _release_local_models():
    """Drop cached local model handles between tests."""
    yield
    release_model_handles()
