# src/cache/fingerprint.py — v2
"""Cache keys for AI calls, plus SimHash helpers for near-duplicate detection.

A fingerprint hashes only what changes the output: the purpose, the
normalized input text and the output-affecting options. Secrets and
provider settings never enter the key, so cache hits survive a key change.
"""

from __future__ import annotations

import hashlib
import json
import re
import unicodedata
from typing import Any, Iterable

from pydantic import BaseModel


def compute_fingerprint(
    purpose: str,
    text: str,
    options: dict[str, Any] | None = None,
    option_keys: Iterable[str] | None = None,
) -> str:
    """Compute the cache fingerprint for one AI call.

    Args:
        purpose: Task purpose tag.
        text: Raw input text (normalized before hashing).
        options: Call options.
        option_keys: Names of the options that affect the output. When given,
            every other option is ignored.

    Returns:
        SHA-256 hex digest.
    """
    selected = _select_options(options or {}, option_keys)
    document = {
        "purpose": purpose,
        "text": normalize_input_text(text),
        "options": _canonical(selected),
    }
    encoded = json.dumps(
        document, sort_keys=True, separators=(",", ":"), ensure_ascii=False,
    )
    return hashlib.sha256(encoded.encode("utf-8")).hexdigest()


def normalize_input_text(text: str) -> str:
    """Normalize text so cosmetic whitespace edits keep the same key.

    NFC, CRLF to LF, trailing spaces dropped per line, blank-line runs
    collapsed, outer whitespace stripped. Case is preserved.
    """
    text = unicodedata.normalize("NFC", text)
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    text = "\n".join(line.rstrip() for line in text.split("\n"))
    text = re.sub(r"\n{3,}", "\n\n", text)
    return text.strip()


def _select_options(
    options: dict[str, Any], option_keys: Iterable[str] | None,
) -> dict[str, Any]:
    if option_keys is None:
        items = options.items()
    else:
        keys = set(option_keys)
        items = ((k, v) for k, v in options.items() if k in keys)
    return {k: v for k, v in items if v is not None}


def _canonical(value: Any) -> Any:
    """Convert a value into JSON-stable primitives."""
    if isinstance(value, BaseModel):
        return _canonical(value.model_dump(mode="json"))
    if isinstance(value, dict):
        return {str(k): _canonical(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_canonical(v) for v in value]
    if isinstance(value, (set, frozenset)):
        return sorted(_canonical(v) for v in value)
    if isinstance(value, str):
        return normalize_input_text(value)
    if value is None or isinstance(value, (bool, int, float)):
        return value
    return str(value)


# --- Near-duplicate detection ---


def simhash(text: str, n: int = 3) -> str:
    """SimHash over word n-gram shingles of the normalized text.

    Returns a 16-char hex string.
    """
    normalized = normalize_for_comparison(text)
    if not normalized:
        return "0" * 16

    shingles = _make_shingles(normalized, n)
    vector = [0] * 64
    for shingle in shingles:
        h = int(hashlib.md5(shingle.encode("utf-8")).hexdigest(), 16)  # noqa: S324
        for i in range(64):
            if h & (1 << i):
                vector[i] += 1
            else:
                vector[i] -= 1

    fingerprint = 0
    for i in range(64):
        if vector[i] >= 0:
            fingerprint |= 1 << i

    return f"{fingerprint:016x}"


def hamming_distance(hash_a: str, hash_b: str) -> int:
    """Hamming distance between two SimHash hex strings."""
    if not hash_a and not hash_b:
        return 0
    if not hash_a or not hash_b:
        return 64
    try:
        a = int(hash_a, 16)
        b = int(hash_b, 16)
    except ValueError:
        return 64
    return bin(a ^ b).count("1")


def normalize_for_comparison(text: str) -> str:
    """Lowercase, strip punctuation, collapse whitespace."""
    text = text.lower()
    text = re.sub(r"[^\w\s+#]", " ", text)
    text = re.sub(r"\s+", " ", text).strip()
    return text


def _make_shingles(text: str, n: int) -> list[str]:
    words = text.split()
    if len(words) < n:
        return [text]
    return [" ".join(words[i : i + n]) for i in range(len(words) - n + 1)]
