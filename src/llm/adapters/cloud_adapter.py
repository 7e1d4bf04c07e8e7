# src/llm/adapters/cloud_adapter.py — v1
"""Shared behaviour of remote chat-completion adapters.

Subclasses implement one raw completion call and the translation of their
SDK's exceptions. This base adds the rate limiter, the per-call timeout,
bounded retry of transient failures and output validation.
"""

from __future__ import annotations

import asyncio
import logging
import time
from abc import abstractmethod
from dataclasses import dataclass

from pydantic import BaseModel

from jobpilot.core.errors import (
    AuthenticationError,
    NetworkError,
    ProviderError,
    RateLimitError,
)
from jobpilot.llm.base_client import BaseInferenceAdapter
from jobpilot.llm.json_output import parse_structured
from jobpilot.llm.models import InferenceResult, Prompt
from jobpilot.llm.rate_limiter import RateLimiter
from jobpilot.llm.retry import RetryConfig, with_retry

logger = logging.getLogger(__name__)


@dataclass
class Completion:
    """Raw text answer from a remote API."""

    text: str
    model: str
    input_tokens: int = 0
    output_tokens: int = 0


class CloudInferenceAdapter(BaseInferenceAdapter):
    """Base class for OpenAI and Anthropic adapters."""

    display_name = "Cloud"

    def __init__(
        self,
        model: str,
        api_key: str,
        timeout_s: float = 90.0,
        max_tokens: int = 2048,
        temperature: float = 0.3,
        retry_config: RetryConfig | None = None,
        rate_limiter: RateLimiter | None = None,
    ) -> None:
        self._model = model
        self._api_key = api_key
        self._timeout_s = timeout_s
        self._max_tokens = max_tokens
        self._temperature = temperature
        self._retry = retry_config or RetryConfig()
        self._limiter = rate_limiter or RateLimiter()

    @property
    def model(self) -> str:
        return self._model

    async def invoke(self, prompt: Prompt, output_shape: type[BaseModel]) -> InferenceResult:
        """Call the remote API and validate the answer against ``output_shape``."""
        attempts = 0

        async def attempt() -> Completion:
            nonlocal attempts
            attempts += 1
            return await self._timed_complete(prompt, json_schema=output_shape)

        start = time.monotonic()
        completion = await with_retry(
            attempt, config=self._retry, label=self.provider_name,
        )
        latency_ms = int((time.monotonic() - start) * 1000)
        payload = parse_structured(completion.text, output_shape, self.provider_name)
        logger.debug(
            "%s call ok: model=%s tokens=%d/%d latency=%dms attempts=%d",
            self.provider_name, completion.model, completion.input_tokens,
            completion.output_tokens, latency_ms, attempts,
        )
        return InferenceResult(
            payload=payload,
            raw_text=completion.text,
            provider=self.provider_name,
            model=completion.model,
            latency_ms=latency_ms,
            input_tokens=completion.input_tokens,
            output_tokens=completion.output_tokens,
            attempts=attempts,
        )

    async def ping(self) -> str:
        """One tiny completion, no retries; raises on auth or network failure."""
        probe = Prompt(system="Reply with OK.", user="ping", max_tokens=5, temperature=0.0)
        await self._timed_complete(probe, json_schema=None)
        return f"Successfully connected to {self.display_name} ({self._model})"

    async def _timed_complete(
        self, prompt: Prompt, json_schema: type[BaseModel] | None,
    ) -> Completion:
        await self._limiter.acquire()
        try:
            return await asyncio.wait_for(
                self._complete(prompt, json_schema), timeout=self._timeout_s,
            )
        except asyncio.TimeoutError as e:
            raise NetworkError(
                f"{self.display_name} request timed out after {self._timeout_s:.0f}s",
                provider=self.provider_name,
            ) from e
        except ProviderError:
            raise
        except Exception as e:
            raise self._translate_error(e) from e

    @abstractmethod
    async def _complete(
        self, prompt: Prompt, json_schema: type[BaseModel] | None,
    ) -> Completion:
        """Issue one chat-completion request through the SDK."""

    @abstractmethod
    def _translate_error(self, error: Exception) -> ProviderError:
        """Map an SDK exception to the provider error taxonomy."""

    def _error_for_status(self, status: int | None, detail: str) -> ProviderError:
        """Map an HTTP status to a provider error."""
        name = self.provider_name
        if status in (401, 403):
            return AuthenticationError(
                f"{self.display_name} rejected the API key (HTTP {status}). "
                "Check your API key in Settings.",
                provider=name,
            )
        if status == 429:
            return RateLimitError(f"{self.display_name} rate limit exceeded", provider=name)
        if status is None or status >= 500 or status == 408:
            return NetworkError(f"{self.display_name} API error: {detail}", provider=name)
        return ProviderError(
            f"{self.display_name} API error (HTTP {status}): {detail}",
            provider=name,
            transient=False,
        )
