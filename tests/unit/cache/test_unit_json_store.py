# tests/unit/cache/test_unit_json_store.py — v2
"""Tests for cache/json_store.py."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from jobpilot.cache.json_store import JsonCacheStore
from jobpilot.cache.models import CacheEntry

T0 = datetime(2026, 2, 16, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
def store(tmp_path):
    return JsonCacheStore(cache_root=tmp_path / "cache")


def make_entry(purpose="parse_job", fingerprint="fp1", payload=b"\x00binary\xff", expires_at=None):
    return CacheEntry(
        purpose=purpose,
        fingerprint=fingerprint,
        payload=payload,
        created_at=T0,
        expires_at=expires_at,
        size_bytes=len(payload),
    )


class TestJsonCacheStore:
    @pytest.mark.asyncio
    async def test_put_and_get_binary_payload(self, store):
        await store.put(make_entry())
        result = await store.get("parse_job", "fp1")
        assert result is not None
        assert result.payload == b"\x00binary\xff"

    @pytest.mark.asyncio
    async def test_file_layout(self, store, tmp_path):
        await store.put(make_entry())
        assert (tmp_path / "cache" / "parse_job" / "fp1.json").exists()
        assert not list((tmp_path / "cache").rglob("*.tmp"))

    @pytest.mark.asyncio
    async def test_get_missing(self, store):
        assert await store.get("parse_job", "nope") is None

    @pytest.mark.asyncio
    async def test_sequence_increases(self, store):
        a = await store.put(make_entry(fingerprint="a"))
        b = await store.put(make_entry(fingerprint="b"))
        a2 = await store.put(make_entry(fingerprint="a"))
        assert a.sequence < b.sequence < a2.sequence
        assert [i.fingerprint for i in await store.list_index()] == ["b", "a"]

    @pytest.mark.asyncio
    async def test_sequence_survives_reopen(self, store, tmp_path):
        await store.put(make_entry(fingerprint="a"))
        last = await store.put(make_entry(fingerprint="b"))
        reopened = JsonCacheStore(tmp_path / "cache")
        nxt = await reopened.put(make_entry(fingerprint="c"))
        assert nxt.sequence > last.sequence

    @pytest.mark.asyncio
    async def test_delete_and_purpose(self, store):
        await store.put(make_entry(fingerprint="a"))
        await store.put(make_entry(fingerprint="b"))
        await store.put(make_entry(purpose="rewrite_text", fingerprint="c"))
        assert await store.delete([("parse_job", "a")]) == 1
        assert await store.delete_purpose("parse_job") == 1
        assert await store.clear() == 1
        assert await store.list_index() == []

    @pytest.mark.asyncio
    async def test_delete_expired(self, store):
        await store.put(make_entry(fingerprint="old", expires_at=T0 + timedelta(hours=1)))
        await store.put(make_entry(fingerprint="new", expires_at=T0 + timedelta(days=9)))
        assert await store.delete_expired(T0 + timedelta(days=1)) == 1
        assert await store.delete_expired(T0 + timedelta(days=1)) == 0

    @pytest.mark.asyncio
    async def test_corrupt_file_skipped(self, store, tmp_path):
        await store.put(make_entry(fingerprint="good"))
        bad = tmp_path / "cache" / "parse_job" / "bad.json"
        bad.write_text("{not json", encoding="utf-8")
        index = await store.list_index()
        assert [i.fingerprint for i in index] == ["good"]
        assert await store.get("parse_job", "bad") is None
