# tests/unit/cache/test_unit_response_cache.py — v1
"""Tests for cache/response_cache.py — TTL, stats, cleanup and eviction."""

from __future__ import annotations

from datetime import timedelta

import pytest


class TestGetPut:
    @pytest.mark.asyncio
    async def test_roundtrip(self, cache, clock):
        stored = await cache.put("parse_job", "fp1", b"payload", ttl=timedelta(days=1))
        assert stored.created_at == clock.now
        assert stored.expires_at == clock.now + timedelta(days=1)
        entry = await cache.get("parse_job", "fp1")
        assert entry.payload == b"payload"

    @pytest.mark.asyncio
    async def test_no_ttl_never_expires(self, cache, clock):
        await cache.put("parse_job", "fp1", b"x")
        clock.advance(days=10_000)
        assert await cache.get("parse_job", "fp1") is not None

    @pytest.mark.asyncio
    async def test_expired_reads_as_miss_but_stays(self, cache, clock):
        await cache.put("parse_job", "fp1", b"x", ttl=timedelta(hours=1))
        clock.advance(hours=2)
        assert await cache.get("parse_job", "fp1") is None
        stats = await cache.stats()
        assert stats.total_entries == 1
        assert stats.expired_entries == 1

    @pytest.mark.asyncio
    async def test_expiry_boundary_is_exclusive(self, cache, clock):
        await cache.put("parse_job", "fp1", b"x", ttl=timedelta(hours=1))
        clock.advance(hours=1)
        assert await cache.get("parse_job", "fp1") is not None

    @pytest.mark.asyncio
    async def test_put_replaces(self, cache):
        await cache.put("parse_job", "fp1", b"one")
        await cache.put("parse_job", "fp1", b"three")
        entry = await cache.get("parse_job", "fp1")
        assert entry.payload == b"three"
        assert (await cache.stats()).total_entries == 1


class TestStats:
    @pytest.mark.asyncio
    async def test_empty(self, cache):
        stats = await cache.stats()
        assert stats.total_entries == 0
        assert stats.total_size_bytes == 0
        assert stats.oldest_created_at is None

    @pytest.mark.asyncio
    async def test_counts_by_purpose(self, cache, clock):
        start = clock.now
        for i in range(3):
            await cache.put("parse_job", f"p{i}", b"12345")
            clock.advance(minutes=1)
        for i in range(2):
            await cache.put("generate_summary", f"s{i}", b"123")
            clock.advance(minutes=1)
        stats = await cache.stats()
        assert stats.total_entries == 5
        assert stats.total_size_bytes == 3 * 5 + 2 * 3
        assert stats.entries_by_purpose == {"parse_job": 3, "generate_summary": 2}
        assert stats.oldest_created_at == start
        assert stats.newest_created_at == start + timedelta(minutes=4)


class TestClearAndCleanup:
    @pytest.mark.asyncio
    async def test_clear_by_purpose(self, cache):
        await cache.put("parse_job", "a", b"x")
        await cache.put("rewrite_text", "b", b"x")
        assert await cache.clear_by_purpose("parse_job") == 1
        assert await cache.get("parse_job", "a") is None
        assert await cache.get("rewrite_text", "b") is not None

    @pytest.mark.asyncio
    async def test_clear_all(self, cache):
        await cache.put("parse_job", "a", b"x")
        await cache.put("rewrite_text", "b", b"x")
        assert await cache.clear_all() == 2
        assert (await cache.stats()).total_entries == 0

    @pytest.mark.asyncio
    async def test_cleanup_expired_is_idempotent(self, cache, clock):
        await cache.put("parse_job", "short", b"x", ttl=timedelta(hours=1))
        await cache.put("parse_job", "long", b"x", ttl=timedelta(days=30))
        clock.advance(days=1)
        assert await cache.cleanup_expired() == 1
        assert await cache.cleanup_expired() == 0
        assert await cache.get("parse_job", "long") is not None


class TestEviction:
    async def _fill(self, cache, clock, sizes):
        for i, size in enumerate(sizes):
            await cache.put("parse_job", f"fp{i}", b"x" * size)
            clock.advance(seconds=1)

    @pytest.mark.asyncio
    async def test_evict_by_size_oldest_first(self, cache, clock):
        await self._fill(cache, clock, [100, 100, 100, 100])
        removed = await cache.evict_by_size(250)
        assert removed == 2
        assert await cache.get("parse_job", "fp0") is None
        assert await cache.get("parse_job", "fp1") is None
        assert await cache.get("parse_job", "fp3") is not None
        assert (await cache.stats()).total_size_bytes <= 250

    @pytest.mark.asyncio
    async def test_evict_by_size_within_bound_is_noop(self, cache, clock):
        await self._fill(cache, clock, [10, 10])
        assert await cache.evict_by_size(1000) == 0

    @pytest.mark.asyncio
    async def test_evict_by_size_keeps_last_entry(self, cache, clock):
        await self._fill(cache, clock, [100, 500])
        removed = await cache.evict_by_size(50)
        assert removed == 1
        stats = await cache.stats()
        assert stats.total_entries == 1
        assert await cache.get("parse_job", "fp1") is not None

    @pytest.mark.asyncio
    async def test_same_timestamp_tiebreak_by_sequence(self, cache):
        await cache.put("parse_job", "first", b"x" * 10)
        await cache.put("parse_job", "second", b"x" * 10)
        await cache.evict_by_count(1)
        assert await cache.get("parse_job", "first") is None
        assert await cache.get("parse_job", "second") is not None

    @pytest.mark.asyncio
    async def test_evict_by_count(self, cache, clock):
        await self._fill(cache, clock, [1, 1, 1, 1, 1])
        assert await cache.evict_by_count(2) == 3
        assert (await cache.stats()).total_entries == 2
        assert await cache.get("parse_job", "fp4") is not None

    @pytest.mark.asyncio
    async def test_evict_by_count_zero_empties(self, cache, clock):
        await self._fill(cache, clock, [1, 1])
        assert await cache.evict_by_count(0) == 2

    @pytest.mark.asyncio
    async def test_negative_bounds_rejected(self, cache):
        with pytest.raises(ValueError):
            await cache.evict_by_size(-1)
        with pytest.raises(ValueError):
            await cache.evict_by_count(-1)

    @pytest.mark.asyncio
    async def test_rewritten_entry_counts_as_newest(self, cache, clock):
        await self._fill(cache, clock, [1, 1, 1])
        await cache.put("parse_job", "fp0", b"y")
        await cache.evict_by_count(1)
        assert await cache.get("parse_job", "fp0") is not None
