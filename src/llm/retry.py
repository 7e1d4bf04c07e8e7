# src/llm/retry.py — v2
"""Bounded retry with exponential backoff and jitter for provider calls.

Only transient provider errors (network, rate limit) are retried. The last
error is re-raised unchanged once attempts run out, so callers still see
its kind.
"""

from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

from jobpilot.config.settings import Settings
from jobpilot.core.errors import NetworkError, ProviderError, RateLimitError

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[Any]]


@dataclass(frozen=True)
class RetryConfig:
    """Retry configuration for transient provider errors."""

    max_retries: int = 3
    base_delay_s: float = 0.5
    max_delay_s: float = 10.0
    backoff_factor: float = 2.0
    jitter: bool = True

    @classmethod
    def from_settings(cls, settings: Settings) -> RetryConfig:
        return cls(
            max_retries=settings.cloud_max_retries,
            base_delay_s=settings.retry_base_delay_s,
            max_delay_s=settings.retry_max_delay_s,
            backoff_factor=settings.retry_backoff_factor,
        )


NO_RETRY = RetryConfig(max_retries=0)


def is_retryable(error: BaseException) -> bool:
    """Whether ``error`` is worth another attempt against the same provider."""
    return isinstance(error, (NetworkError, RateLimitError)) and error.transient


def compute_delay(config: RetryConfig, attempt: int) -> float:
    """Compute delay for a given attempt (0-based), capped at max_delay_s."""
    delay = config.base_delay_s * (config.backoff_factor ** attempt)
    if config.jitter:
        delay *= 0.5 + random.random()  # noqa: S311
    return min(delay, config.max_delay_s)


async def with_retry(
    fn: Callable[..., Awaitable[Any]],
    *args: Any,
    config: RetryConfig | None = None,
    label: str = "provider",
    sleep: Sleep = asyncio.sleep,
    **kwargs: Any,
) -> Any:
    """Execute an async function, retrying transient provider errors.

    Raises:
        ProviderError: The last error when it is permanent or retries are
            exhausted.
    """
    config = config or RetryConfig()
    attempts = 0

    while True:
        try:
            return await fn(*args, **kwargs)
        except ProviderError as e:
            attempts += 1
            if not is_retryable(e) or attempts > config.max_retries:
                if attempts > 1:
                    logger.warning(
                        "%s gave up after %d attempt(s): %s [%s]", label, attempts, e, e.kind,
                    )
                raise

            delay = compute_delay(config, attempts - 1)
            logger.warning(
                "%s %s error (attempt %d/%d), retrying in %.1fs",
                label, e.kind, attempts, config.max_retries, delay,
            )
            await sleep(delay)
