# src/chunking/merger.py — v1
"""Merge per-chunk outputs into one payload.

Failed chunks are reported by one-based chunk number.

Extraction strategy: list fields are unioned across chunks with
near-duplicate suppression, scalar fields keep the first non-empty value,
nested objects merge recursively. Summary strategy: the first successful
chunk wins.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Literal

from jobpilot.cache.fingerprint import hamming_distance, normalize_for_comparison, simhash
from jobpilot.chunking.models import ChunkResult, MergeResult
from jobpilot.core.errors import TotalFailure

logger = logging.getLogger(__name__)

MergeStrategy = Literal["extraction", "summary"]

SIMHASH_THRESHOLD = 3


def merge_results(
    results: list[ChunkResult],
    strategy: MergeStrategy = "extraction",
    simhash_threshold: int = SIMHASH_THRESHOLD,
) -> MergeResult:
    """Merge chunk results in chunk order.

    Raises:
        TotalFailure: If every chunk failed.
        ValueError: If ``results`` is empty or the strategy is unknown.
    """
    if not results:
        raise ValueError("merge_results() needs at least one chunk result")

    ordered = sorted(results, key=lambda r: r.chunk_index)
    succeeded = [r for r in ordered if r.ok and r.payload is not None]
    failed = [r for r in ordered if not r.ok]

    if not succeeded:
        first = failed[0] if failed else ordered[0]
        raise TotalFailure(
            f"All {len(ordered)} chunk(s) failed; first failure at chunk {first.chunk_number}",
            first_failed_chunk=first.chunk_number,
            errors=[r.error for r in failed if r.error is not None],
        )

    if strategy == "summary":
        payload = dict(succeeded[0].payload or {})
    elif strategy == "extraction":
        payload = {}
        for result in succeeded:
            payload = _merge_objects(payload, result.payload or {}, simhash_threshold)
    else:
        raise ValueError(f"Unknown merge strategy: {strategy!r}")

    failed_chunks = [r.chunk_number for r in failed]
    if failed_chunks:
        logger.warning(
            "Merged %d/%d chunks; failed chunks: %s",
            len(succeeded), len(ordered), failed_chunks,
        )
    return MergeResult(
        payload=payload,
        failed_chunks=failed_chunks,
        item_count=_count_items(payload),
        chunk_count=len(ordered),
    )


def _merge_objects(
    base: dict[str, Any], incoming: dict[str, Any], threshold: int,
) -> dict[str, Any]:
    merged = dict(base)
    for key, value in incoming.items():
        current = merged.get(key)
        if isinstance(value, list):
            merged[key] = _union(current if isinstance(current, list) else [], value, threshold)
        elif isinstance(value, dict):
            merged[key] = _merge_objects(
                current if isinstance(current, dict) else {}, value, threshold,
            )
        elif _is_empty(current):
            merged[key] = value
    return merged


def _union(existing: list[Any], incoming: list[Any], threshold: int) -> list[Any]:
    """Append items from ``incoming`` unless a near-duplicate is already present."""
    result = list(existing)
    text_keys = {_text_key(item) for item in result if isinstance(item, str)}
    object_hashes = [_object_hash(item) for item in result if not isinstance(item, str)]

    for item in incoming:
        if _is_empty(item):
            continue
        if isinstance(item, str):
            key = _text_key(item)
            if key in text_keys:
                continue
            text_keys.add(key)
        else:
            item_hash = _object_hash(item)
            if any(hamming_distance(item_hash, h) <= threshold for h in object_hashes):
                continue
            object_hashes.append(item_hash)
        result.append(item)
    return result


def _text_key(value: str) -> str:
    return normalize_for_comparison(value)


def _object_hash(value: Any) -> str:
    return simhash(json.dumps(value, sort_keys=True, ensure_ascii=False, default=str))


def _is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, dict)):
        return not value
    return False


def _count_items(payload: Any) -> int:
    """Number of list items anywhere in the payload."""
    if isinstance(payload, dict):
        return sum(_count_items(v) for v in payload.values())
    if isinstance(payload, list):
        return len(payload)
    return 0
