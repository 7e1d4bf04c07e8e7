# src/llm/adapters/openai_adapter.py — v2
"""OpenAI chat-completions adapter.

Uses the official openai SDK with JSON mode. SDK retries are disabled;
retry and timeout policy live in CloudInferenceAdapter.
"""

from __future__ import annotations

from typing import Any

import openai
from pydantic import BaseModel

from jobpilot.core.errors import NetworkError, ProviderError
from jobpilot.llm.adapters.cloud_adapter import CloudInferenceAdapter, Completion
from jobpilot.llm.models import Prompt


class OpenAIAdapter(CloudInferenceAdapter):
    """OpenAI GPT adapter."""

    display_name = "OpenAI"

    def __init__(
        self,
        model: str = "gpt-4o-mini",
        api_key: str = "",
        client: Any = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(model=model, api_key=api_key, **kwargs)
        self._client = client

    @property
    def provider_name(self) -> str:
        return "openai"

    @property
    def client(self) -> Any:
        """Lazy-init the SDK client (only on first API call)."""
        if self._client is None:
            self._client = openai.AsyncOpenAI(
                api_key=self._api_key, timeout=self._timeout_s, max_retries=0,
            )
        return self._client

    async def _complete(
        self, prompt: Prompt, json_schema: type[BaseModel] | None,
    ) -> Completion:
        kwargs: dict[str, Any] = {
            "model": self._model,
            "messages": [
                {"role": "system", "content": prompt.system},
                {"role": "user", "content": prompt.user},
            ],
            "max_tokens": prompt.max_tokens or self._max_tokens,
            "temperature": (
                prompt.temperature if prompt.temperature is not None else self._temperature
            ),
        }
        if json_schema is not None:
            kwargs["response_format"] = {"type": "json_object"}

        resp = await self.client.chat.completions.create(**kwargs)

        choice = resp.choices[0]
        usage = resp.usage
        return Completion(
            text=choice.message.content or "",
            model=getattr(resp, "model", None) or self._model,
            input_tokens=usage.prompt_tokens if usage else 0,
            output_tokens=usage.completion_tokens if usage else 0,
        )

    def _translate_error(self, error: Exception) -> ProviderError:
        if isinstance(error, openai.APITimeoutError):
            return NetworkError("OpenAI request timed out", provider=self.provider_name)
        if isinstance(error, openai.APIConnectionError):
            return NetworkError(
                f"Could not reach OpenAI: {error}", provider=self.provider_name,
            )
        if isinstance(error, openai.APIStatusError):
            return self._error_for_status(error.status_code, str(error))
        return ProviderError(
            f"Unexpected OpenAI error: {error}", provider=self.provider_name, transient=False,
        )
