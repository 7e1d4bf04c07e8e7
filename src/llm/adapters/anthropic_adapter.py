# src/llm/adapters/anthropic_adapter.py — v3
"""Anthropic Claude adapter.

Uses the official anthropic SDK Messages API. Structured output is
requested through the system prompt and validated by the caller.
"""

from __future__ import annotations

import json
import logging
from typing import Any

import anthropic
from pydantic import BaseModel

from jobpilot.core.errors import NetworkError, ProviderError
from jobpilot.llm.adapters.cloud_adapter import CloudInferenceAdapter, Completion
from jobpilot.llm.models import Prompt

logger = logging.getLogger(__name__)


class AnthropicAdapter(CloudInferenceAdapter):
    """Adapter for Anthropic Claude models."""

    display_name = "Anthropic"

    def __init__(
        self,
        model: str = "claude-3-5-haiku-latest",
        api_key: str = "",
        client: Any = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(model=model, api_key=api_key, **kwargs)
        self.__client = client

    @property
    def provider_name(self) -> str:
        return "anthropic"

    @property
    def _client(self) -> Any:
        """Lazy-init Anthropic client (only on first API call)."""
        if self.__client is None:
            self.__client = anthropic.AsyncAnthropic(
                api_key=self._api_key, timeout=self._timeout_s, max_retries=0,
            )
        return self.__client

    async def _complete(
        self, prompt: Prompt, json_schema: type[BaseModel] | None,
    ) -> Completion:
        system = prompt.system
        if json_schema is not None:
            system = (
                f"{system}\n\nRespond with a single JSON object matching this schema:\n"
                f"{json.dumps(json_schema.model_json_schema())}"
            )
        response = await self._client.messages.create(
            model=self._model,
            max_tokens=prompt.max_tokens or self._max_tokens,
            temperature=(
                prompt.temperature if prompt.temperature is not None else self._temperature
            ),
            system=system,
            messages=[{"role": "user", "content": prompt.user}],
        )
        return Completion(
            text=self._extract_content(response),
            model=getattr(response, "model", None) or self._model,
            input_tokens=response.usage.input_tokens,
            output_tokens=response.usage.output_tokens,
        )

    def _translate_error(self, error: Exception) -> ProviderError:
        if isinstance(error, anthropic.APITimeoutError):
            return NetworkError("Anthropic request timed out", provider=self.provider_name)
        if isinstance(error, anthropic.APIConnectionError):
            return NetworkError(
                f"Could not reach Anthropic: {error}", provider=self.provider_name,
            )
        if isinstance(error, anthropic.APIStatusError):
            return self._error_for_status(error.status_code, str(error))
        return ProviderError(
            f"Unexpected Anthropic error: {error}",
            provider=self.provider_name,
            transient=False,
        )

    @staticmethod
    def _extract_content(response: Any) -> str:
        """Extract text from Anthropic response content blocks."""
        for block in response.content:
            if getattr(block, "type", None) == "text":
                return block.text
        return ""
