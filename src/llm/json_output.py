# src/llm/json_output.py — v1
"""Extract and validate structured JSON from raw model text."""

from __future__ import annotations

import json
import re
from typing import Any

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from jobpilot.core.errors import ResponseFormatError

_FENCE = re.compile(r"```(?:json|JSON)?\s*\n?(.*?)```", re.DOTALL)


def extract_json(text: str) -> dict[str, Any]:
    """Pull the first JSON object out of model output.

    Accepts bare JSON, JSON inside Markdown code fences, or JSON surrounded
    by prose.

    Raises:
        ValueError: If no JSON object can be decoded.
    """
    candidates: list[str] = [text.strip()]
    candidates.extend(m.group(1).strip() for m in _FENCE.finditer(text))

    for candidate in candidates:
        if not candidate:
            continue
        try:
            value = json.loads(candidate)
        except json.JSONDecodeError:
            continue
        if isinstance(value, dict):
            return value

    decoder = json.JSONDecoder()
    for match in re.finditer(r"\{", text):
        try:
            value, _ = decoder.raw_decode(text, match.start())
        except json.JSONDecodeError:
            continue
        if isinstance(value, dict):
            return value

    raise ValueError("No JSON object found in model output")


def parse_structured(
    text: str, output_shape: type[BaseModel], provider: str,
) -> dict[str, Any]:
    """Decode ``text`` and validate it against ``output_shape``.

    Returns the validated payload as a plain dict (JSON mode).

    Raises:
        ResponseFormatError: Output is not JSON or does not fit the shape.
    """
    try:
        data = extract_json(text)
    except ValueError as e:
        raise ResponseFormatError(
            f"{provider} returned non-JSON output", provider=provider,
        ) from e
    try:
        model = output_shape.model_validate(data)
    except PydanticValidationError as e:
        raise ResponseFormatError(
            f"{provider} output does not match {output_shape.__name__}: "
            f"{e.error_count()} validation error(s)",
            provider=provider,
        ) from e
    return model.model_dump(mode="json")
