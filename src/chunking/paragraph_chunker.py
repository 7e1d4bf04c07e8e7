# src/chunking/paragraph_chunker.py — v1
"""Split long documents into bounded chunks on natural boundaries.

Boundaries are tried in order: blank lines (paragraphs), line breaks,
sentence ends, whitespace. A hard cut at the size limit is the last resort.
"""

from __future__ import annotations

import re

from jobpilot.chunking.models import Chunk
from jobpilot.config.settings import Settings

# Separators in order of preference; each keeps its delimiter on the left piece.
_BOUNDARIES: tuple[re.Pattern[str], ...] = (
    re.compile(r"\n[ \t]*\n"),
    re.compile(r"\n"),
    re.compile(r"(?<=[.!?])\s+"),
    re.compile(r"\s+"),
)


class ParagraphChunker:
    """Boundary-preferring chunker with a hard character budget."""

    def __init__(self, max_chars: int = 6000, min_chars: int = 200) -> None:
        if max_chars <= 0:
            raise ValueError("max_chars must be > 0")
        self._max = max_chars
        self._min = min(min_chars, max_chars)

    @classmethod
    def from_settings(cls, settings: Settings) -> ParagraphChunker:
        return cls(max_chars=settings.chunk_max_chars, min_chars=settings.chunk_min_chars)

    @property
    def max_chars(self) -> int:
        return self._max

    def needs_chunking(self, text: str) -> bool:
        return len(text) > self._max

    def split(self, text: str) -> list[Chunk]:
        """Split ``text`` into ordered chunks of at most ``max_chars``."""
        if not text.strip():
            return []
        pieces = self._split_recursive(text, 0)
        chunks: list[Chunk] = []
        offset = 0
        for piece in self._pack(pieces):
            start = text.find(piece, offset)
            if start < 0:
                start = offset
            end = start + len(piece)
            stripped = piece.strip()
            if stripped:
                chunks.append(Chunk(
                    index=len(chunks),
                    content=stripped,
                    char_start=start,
                    char_end=end,
                ))
            offset = end
        return chunks

    def _split_recursive(self, text: str, level: int) -> list[str]:
        """Break ``text`` into pieces no longer than max_chars."""
        if len(text) <= self._max:
            return [text]
        if level >= len(_BOUNDARIES):
            return [text[i : i + self._max] for i in range(0, len(text), self._max)]

        parts = _split_keep(text, _BOUNDARIES[level])
        if len(parts) == 1:
            return self._split_recursive(text, level + 1)

        pieces: list[str] = []
        for part in parts:
            pieces.extend(self._split_recursive(part, level + 1))
        return pieces

    def _pack(self, pieces: list[str]) -> list[str]:
        """Greedily join adjacent pieces up to max_chars."""
        packed: list[str] = []
        current = ""
        for piece in pieces:
            if current and len(current) + len(piece) > self._max:
                packed.append(current)
                current = piece
            else:
                current += piece
        if current:
            # Fold a short tail into its predecessor when it fits.
            if packed and len(current.strip()) < self._min and len(packed[-1]) + len(current) <= self._max:
                packed[-1] += current
            else:
                packed.append(current)
        return packed


def _split_keep(text: str, pattern: re.Pattern[str]) -> list[str]:
    """Split on ``pattern`` keeping each separator attached to the left part."""
    parts: list[str] = []
    last = 0
    for match in pattern.finditer(text):
        if match.end() == 0:
            continue
        parts.append(text[last : match.end()])
        last = match.end()
    if last < len(text):
        parts.append(text[last:])
    return [p for p in parts if p]
