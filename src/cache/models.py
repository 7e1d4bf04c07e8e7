# src/cache/models.py — v1
"""Cache domain models: CacheEntryInfo, CacheEntry, CacheStats."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class CacheEntryInfo(BaseModel):
    """Entry metadata without the payload (used for stats and eviction)."""

    purpose: str
    fingerprint: str
    created_at: datetime
    expires_at: datetime | None = None
    size_bytes: int = 0
    sequence: int = 0
    schema_tag: str = ""

    @property
    def key(self) -> tuple[str, str]:
        return (self.purpose, self.fingerprint)

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at is not None and self.expires_at < now


class CacheEntry(CacheEntryInfo):
    """Single cached AI output; ``payload`` is opaque serialized bytes."""

    model_config = ConfigDict(ser_json_bytes="base64", val_json_bytes="base64")

    payload: bytes

    def info(self) -> CacheEntryInfo:
        return CacheEntryInfo(**self.model_dump(exclude={"payload"}))


class CacheStats(BaseModel):
    """Aggregate view of the cache."""

    total_entries: int = 0
    total_size_bytes: int = 0
    expired_entries: int = 0
    entries_by_purpose: dict[str, int] = Field(default_factory=dict)
    oldest_created_at: datetime | None = None
    newest_created_at: datetime | None = None
