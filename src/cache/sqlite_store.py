# src/cache/sqlite_store.py — v2
"""SQLite-based cache store (CACHE_BACKEND=sqlite, default).

Uses stdlib sqlite3. Timestamps are stored as UTC ISO-8601 strings; the
autoincrement ``seq`` column records insertion order.
"""

from __future__ import annotations

import logging
import sqlite3
from datetime import datetime, timezone
from pathlib import Path

from jobpilot.cache.base_cache_store import BaseCacheStore
from jobpilot.cache.models import CacheEntry, CacheEntryInfo

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS ai_cache (
    seq INTEGER PRIMARY KEY AUTOINCREMENT,
    purpose TEXT NOT NULL,
    fingerprint TEXT NOT NULL,
    payload BLOB NOT NULL,
    schema_tag TEXT NOT NULL DEFAULT '',
    created_at TEXT NOT NULL,
    expires_at TEXT,
    size_bytes INTEGER NOT NULL,
    UNIQUE (purpose, fingerprint)
);
CREATE INDEX IF NOT EXISTS idx_ai_cache_purpose ON ai_cache(purpose);
CREATE INDEX IF NOT EXISTS idx_ai_cache_created ON ai_cache(created_at, seq);
"""

_INFO_COLUMNS = "purpose, fingerprint, schema_tag, created_at, expires_at, size_bytes, seq"


class SqliteCacheStore(BaseCacheStore):
    """SQLite-backed cache store."""

    def __init__(self, db_path: Path | str) -> None:
        self._db_path = Path(db_path).expanduser()
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(str(self._db_path), check_same_thread=False)
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.executescript(_SCHEMA)

    async def get(self, purpose: str, fingerprint: str) -> CacheEntry | None:
        """Retrieve cache entry by key."""
        row = self._conn.execute(
            f"SELECT {_INFO_COLUMNS}, payload FROM ai_cache "
            "WHERE purpose = ? AND fingerprint = ?",
            (purpose, fingerprint),
        ).fetchone()
        if row is None:
            return None
        info = _row_to_info(row[:7])
        return CacheEntry(**info.model_dump(), payload=bytes(row[7]))

    async def put(self, entry: CacheEntry) -> CacheEntry:
        """Store an entry; a same-key entry is replaced and gets a new sequence."""
        with self._conn:
            self._conn.execute(
                "DELETE FROM ai_cache WHERE purpose = ? AND fingerprint = ?",
                (entry.purpose, entry.fingerprint),
            )
            cursor = self._conn.execute(
                """INSERT INTO ai_cache
                   (purpose, fingerprint, payload, schema_tag, created_at, expires_at, size_bytes)
                   VALUES (?, ?, ?, ?, ?, ?, ?)""",
                (
                    entry.purpose,
                    entry.fingerprint,
                    sqlite3.Binary(entry.payload),
                    entry.schema_tag,
                    _to_iso(entry.created_at),
                    _to_iso(entry.expires_at) if entry.expires_at else None,
                    entry.size_bytes,
                ),
            )
        return entry.model_copy(update={"sequence": cursor.lastrowid})

    async def delete(self, keys: list[tuple[str, str]]) -> int:
        """Remove entries by key."""
        if not keys:
            return 0
        with self._conn:
            cursor = self._conn.executemany(
                "DELETE FROM ai_cache WHERE purpose = ? AND fingerprint = ?", keys,
            )
        return cursor.rowcount

    async def delete_purpose(self, purpose: str) -> int:
        with self._conn:
            cursor = self._conn.execute("DELETE FROM ai_cache WHERE purpose = ?", (purpose,))
        return cursor.rowcount

    async def clear(self) -> int:
        with self._conn:
            cursor = self._conn.execute("DELETE FROM ai_cache")
        return cursor.rowcount

    async def delete_expired(self, now: datetime) -> int:
        expired = [
            info.key for info in await self.list_index() if info.is_expired(now)
        ]
        return await self.delete(expired)

    async def list_index(self) -> list[CacheEntryInfo]:
        """List metadata for all entries in insertion order."""
        cursor = self._conn.execute(f"SELECT {_INFO_COLUMNS} FROM ai_cache ORDER BY seq")
        entries: list[CacheEntryInfo] = []
        for row in cursor.fetchall():
            try:
                entries.append(_row_to_info(row))
            except ValueError as e:
                logger.warning("Skipping unreadable cache row %s/%s: %s", row[0], row[1], e)
        return entries

    def close(self) -> None:
        """Close the database connection."""
        self._conn.close()


def _row_to_info(row: tuple) -> CacheEntryInfo:
    purpose, fingerprint, schema_tag, created_at, expires_at, size_bytes, seq = row
    return CacheEntryInfo(
        purpose=purpose,
        fingerprint=fingerprint,
        schema_tag=schema_tag,
        created_at=_from_iso(created_at),
        expires_at=_from_iso(expires_at) if expires_at else None,
        size_bytes=size_bytes,
        sequence=seq,
    )


def _to_iso(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat()


def _from_iso(value: str) -> datetime:
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed
