# src/llm/models.py — v2
"""Provider-neutral request and response types: Prompt, InferenceResult."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class Prompt(BaseModel):
    """One inference request: system instruction plus user content."""

    system: str
    user: str
    max_tokens: int | None = None
    temperature: float | None = None

    def with_reminder(self, reminder: str) -> Prompt:
        """Copy of this prompt with ``reminder`` appended to the user content."""
        return self.model_copy(update={"user": f"{self.user}\n\n{reminder}"})

    def as_text(self) -> str:
        """Single-string rendering for completion-style local models."""
        return f"{self.system}\n\n{self.user}"


class InferenceResult(BaseModel):
    """Validated output of one adapter call."""

    payload: dict[str, Any]
    raw_text: str = ""
    provider: str
    model: str = ""
    latency_ms: int = 0
    input_tokens: int = 0
    output_tokens: int = 0
    attempts: int = Field(default=1, ge=1)
