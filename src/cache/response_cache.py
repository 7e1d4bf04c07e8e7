# src/cache/response_cache.py — v1
"""Policy layer over a cache store: TTL, stats, cleanup and eviction.

All mutations run under one asyncio.Lock, so an eviction pass never
interleaves with a put.
"""

from __future__ import annotations

import asyncio
import logging
from collections import Counter
from datetime import datetime, timedelta, timezone
from typing import Callable

from jobpilot.cache.base_cache_store import BaseCacheStore
from jobpilot.cache.models import CacheEntry, CacheEntryInfo, CacheStats

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ResponseCache:
    """Keyed store of AI outputs with expiry and bounded growth."""

    def __init__(self, store: BaseCacheStore, clock: Clock | None = None) -> None:
        self._store = store
        self._clock = clock or utc_now
        self._lock = asyncio.Lock()

    @property
    def store(self) -> BaseCacheStore:
        return self._store

    async def get(self, purpose: str, fingerprint: str) -> CacheEntry | None:
        """Return the live entry for a key, or None.

        An expired entry reads as a miss but stays in storage until
        cleanup_expired() or an eviction removes it.
        """
        entry = await self._store.get(purpose, fingerprint)
        if entry is None:
            return None
        if entry.is_expired(self._clock()):
            logger.debug("Cache entry %s/%s expired", purpose, fingerprint[:12])
            return None
        return entry

    async def put(
        self,
        purpose: str,
        fingerprint: str,
        payload: bytes,
        ttl: timedelta | None = None,
        schema_tag: str = "",
    ) -> CacheEntry:
        """Store a payload, fully replacing any prior value for the key."""
        now = self._clock()
        entry = CacheEntry(
            purpose=purpose,
            fingerprint=fingerprint,
            payload=payload,
            schema_tag=schema_tag,
            created_at=now,
            expires_at=now + ttl if ttl is not None else None,
            size_bytes=len(payload),
        )
        async with self._lock:
            stored = await self._store.put(entry)
        logger.debug(
            "Cached %s/%s (%d bytes, seq=%d)",
            purpose, fingerprint[:12], stored.size_bytes, stored.sequence,
        )
        return stored

    async def stats(self) -> CacheStats:
        """Aggregate counts and sizes over every stored entry."""
        index = await self._store.list_index()
        if not index:
            return CacheStats()
        now = self._clock()
        created = [info.created_at for info in index]
        return CacheStats(
            total_entries=len(index),
            total_size_bytes=sum(info.size_bytes for info in index),
            expired_entries=sum(1 for info in index if info.is_expired(now)),
            entries_by_purpose=dict(Counter(info.purpose for info in index)),
            oldest_created_at=min(created),
            newest_created_at=max(created),
        )

    async def clear_by_purpose(self, purpose: str) -> int:
        async with self._lock:
            removed = await self._store.delete_purpose(purpose)
        logger.info("Cleared %d cache entries for purpose %s", removed, purpose)
        return removed

    async def clear_all(self) -> int:
        async with self._lock:
            removed = await self._store.clear()
        logger.info("Cleared all cache entries (%d)", removed)
        return removed

    async def cleanup_expired(self) -> int:
        """Remove entries whose expiry lies in the past. Idempotent."""
        async with self._lock:
            removed = await self._store.delete_expired(self._clock())
        if removed:
            logger.info("Removed %d expired cache entries", removed)
        return removed

    async def evict_by_size(self, max_bytes: int) -> int:
        """Remove oldest entries until total size is within ``max_bytes``.

        Stops once a single entry remains, even if that entry alone is
        larger than the bound.

        Raises:
            ValueError: If ``max_bytes`` is negative.
        """
        if max_bytes < 0:
            raise ValueError("max_bytes must be >= 0")
        async with self._lock:
            index = _oldest_first(await self._store.list_index())
            total = sum(info.size_bytes for info in index)
            victims: list[CacheEntryInfo] = []
            while total > max_bytes and len(index) - len(victims) > 1:
                oldest = index[len(victims)]
                victims.append(oldest)
                total -= oldest.size_bytes
            removed = await self._store.delete([info.key for info in victims])
        if removed:
            logger.info(
                "Evicted %d cache entries by size (bound=%d bytes, now=%d bytes)",
                removed, max_bytes, total,
            )
        return removed

    async def evict_by_count(self, max_entries: int) -> int:
        """Remove oldest entries until at most ``max_entries`` remain.

        Raises:
            ValueError: If ``max_entries`` is negative.
        """
        if max_entries < 0:
            raise ValueError("max_entries must be >= 0")
        async with self._lock:
            index = _oldest_first(await self._store.list_index())
            excess = max(0, len(index) - max_entries)
            victims = index[:excess]
            removed = await self._store.delete([info.key for info in victims])
        if removed:
            logger.info("Evicted %d cache entries by count (bound=%d)", removed, max_entries)
        return removed


def _oldest_first(index: list[CacheEntryInfo]) -> list[CacheEntryInfo]:
    return sorted(index, key=lambda info: (info.created_at, info.sequence))
