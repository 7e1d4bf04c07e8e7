# src/chunking/models.py — v1
"""Chunk, per-chunk outcome and merge result models."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class Chunk(BaseModel):
    """One slice of a long input document."""

    index: int
    content: str
    char_start: int = 0
    char_end: int = 0

    @property
    def char_count(self) -> int:
        return len(self.content)


class ChunkResult(BaseModel):
    """Outcome of invoking the model on one chunk: a payload or an error."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    chunk_index: int
    payload: dict[str, Any] | None = None
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def chunk_number(self) -> int:
        """One-based position, as reported to callers."""
        return self.chunk_index + 1


class MergeResult(BaseModel):
    """Merged payload of a chunked call."""

    payload: dict[str, Any]
    # one-based chunk numbers
    failed_chunks: list[int] = Field(default_factory=list)
    item_count: int = 0
    chunk_count: int = 0

    @property
    def partial(self) -> bool:
        return bool(self.failed_chunks)
