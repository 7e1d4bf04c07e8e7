# src/cache/json_store.py — v2
"""JSON file-based cache store (CACHE_BACKEND=json).

Stores cache entries as individual JSON files under
``<cache_root>/<purpose>/<fingerprint>.json``. Payload bytes are base64
encoded inside the document.
"""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path

from pydantic import ValidationError as PydanticValidationError

from jobpilot.cache.base_cache_store import BaseCacheStore
from jobpilot.cache.models import CacheEntry, CacheEntryInfo

logger = logging.getLogger(__name__)


class JsonCacheStore(BaseCacheStore):
    """File-based cache store using JSON files."""

    def __init__(self, cache_root: Path | str) -> None:
        self._root = Path(cache_root).expanduser()
        self._root.mkdir(parents=True, exist_ok=True)
        self._sequence = max(
            (entry.sequence for entry in self._read_all()), default=0,
        )

    async def get(self, purpose: str, fingerprint: str) -> CacheEntry | None:
        """Retrieve cache entry by key."""
        path = self._entry_path(purpose, fingerprint)
        if not path.exists():
            return None
        return self._read(path)

    async def put(self, entry: CacheEntry) -> CacheEntry:
        """Store a cache entry under the next sequence number."""
        self._sequence += 1
        stored = entry.model_copy(update={"sequence": self._sequence})
        path = self._entry_path(entry.purpose, entry.fingerprint)
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp = path.with_suffix(".json.tmp")
        tmp.write_text(stored.model_dump_json(indent=2), encoding="utf-8")
        tmp.replace(path)
        return stored

    async def delete(self, keys: list[tuple[str, str]]) -> int:
        """Remove cache entries."""
        removed = 0
        for purpose, fingerprint in keys:
            path = self._entry_path(purpose, fingerprint)
            if path.exists():
                path.unlink()
                removed += 1
        return removed

    async def delete_purpose(self, purpose: str) -> int:
        keys = [(purpose, path.stem) for path in self._purpose_dir(purpose).glob("*.json")]
        return await self.delete(keys)

    async def clear(self) -> int:
        keys = [info.key for info in await self.list_index()]
        return await self.delete(keys)

    async def delete_expired(self, now: datetime) -> int:
        expired = [info.key for info in await self.list_index() if info.is_expired(now)]
        return await self.delete(expired)

    async def list_index(self) -> list[CacheEntryInfo]:
        """List metadata of all cached entries, ordered by sequence."""
        infos = [entry.info() for entry in self._read_all()]
        infos.sort(key=lambda info: info.sequence)
        return infos

    def _read_all(self) -> list[CacheEntry]:
        entries: list[CacheEntry] = []
        if not self._root.is_dir():
            return entries
        for path in self._root.glob("*/*.json"):
            entry = self._read(path)
            if entry is not None:
                entries.append(entry)
        return entries

    def _read(self, path: Path) -> CacheEntry | None:
        try:
            return CacheEntry.model_validate_json(path.read_text(encoding="utf-8"))
        except (OSError, PydanticValidationError) as e:
            logger.warning("Failed to read cache entry %s: %s", path, e)
            return None

    def _purpose_dir(self, purpose: str) -> Path:
        return self._root / _safe_name(purpose)

    def _entry_path(self, purpose: str, fingerprint: str) -> Path:
        """Return file path for a cache key."""
        return self._purpose_dir(purpose) / f"{_safe_name(fingerprint)}.json"


def _safe_name(value: str) -> str:
    return value.replace("/", "_").replace("\\", "_")
