# src/cache/cache_factory.py — v3
"""Factory for cache store instantiation."""

from __future__ import annotations

from jobpilot.cache.base_cache_store import BaseCacheStore
from jobpilot.config.settings import Settings


def create_cache_store(settings: Settings | None = None) -> BaseCacheStore:
    """Instantiate the configured cache backend.

    Args:
        settings: Application settings. Defaults to a fresh Settings().

    Returns:
        Configured BaseCacheStore implementation.
    """
    settings = settings or Settings()
    backend = settings.cache_backend

    if backend == "sqlite":
        from jobpilot.cache.sqlite_store import SqliteCacheStore
        return SqliteCacheStore(db_path=settings.resolved_db_path)

    if backend == "json":
        from jobpilot.cache.json_store import JsonCacheStore
        return JsonCacheStore(cache_root=settings.cache_root)

    raise ValueError(
        f"Unknown cache backend: {backend!r}. Supported: sqlite, json"
    )
