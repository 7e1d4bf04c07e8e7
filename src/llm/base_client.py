# src/llm/base_client.py — v2
"""Abstract inference adapter interface shared by local and cloud providers."""

from __future__ import annotations

from abc import ABC, abstractmethod

from pydantic import BaseModel

from jobpilot.llm.models import InferenceResult, Prompt


class BaseInferenceAdapter(ABC):
    """Unified interface for all inference providers."""

    @abstractmethod
    async def invoke(self, prompt: Prompt, output_shape: type[BaseModel]) -> InferenceResult:
        """Run one request and return output validated against ``output_shape``.

        Raises:
            ProviderError: Subclass tagged transient or permanent.
        """

    @abstractmethod
    async def ping(self) -> str:
        """Cheap liveness check; returns a short human-readable status."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Provider identifier (local, openai, anthropic)."""
