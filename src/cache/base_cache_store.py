# src/cache/base_cache_store.py — v2
"""Abstract cache store interface.

Stores are dumb persistence: no TTL or eviction policy lives here, that is
ResponseCache's job. Keys are (purpose, fingerprint) pairs.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime

from jobpilot.cache.models import CacheEntry, CacheEntryInfo


class BaseCacheStore(ABC):
    """Unified interface for cache storage backends."""

    @abstractmethod
    async def get(self, purpose: str, fingerprint: str) -> CacheEntry | None:
        """Retrieve an entry by key, expired or not."""

    @abstractmethod
    async def put(self, entry: CacheEntry) -> CacheEntry:
        """Store an entry, replacing any entry with the same key.

        Returns the stored entry with its insertion ``sequence`` assigned.
        """

    @abstractmethod
    async def delete(self, keys: list[tuple[str, str]]) -> int:
        """Remove entries by key. Returns the number removed."""

    @abstractmethod
    async def delete_purpose(self, purpose: str) -> int:
        """Remove every entry of a purpose. Returns the number removed."""

    @abstractmethod
    async def clear(self) -> int:
        """Remove every entry. Returns the number removed."""

    @abstractmethod
    async def delete_expired(self, now: datetime) -> int:
        """Remove entries whose ``expires_at`` is before ``now``."""

    @abstractmethod
    async def list_index(self) -> list[CacheEntryInfo]:
        """List metadata for every entry, without payloads."""
