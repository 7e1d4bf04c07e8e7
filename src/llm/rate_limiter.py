# src/llm/rate_limiter.py — v1
"""Token-bucket rate limiter for remote API calls."""

from __future__ import annotations

import asyncio
import time
from typing import Callable


class RateLimiter:
    """Allow ``max_requests`` per ``window_s`` seconds, refilled continuously."""

    def __init__(
        self,
        max_requests: int = 50,
        window_s: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_requests <= 0 or window_s <= 0:
            raise ValueError("max_requests and window_s must be > 0")
        self._max = max_requests
        self._window = window_s
        self._clock = clock
        self._tokens = float(max_requests)
        self._last_refill = clock()
        self._lock = asyncio.Lock()

    @property
    def available_tokens(self) -> int:
        self._refill()
        return int(self._tokens)

    def try_acquire(self) -> bool:
        """Take a token if one is available, without waiting."""
        self._refill()
        if self._tokens >= 1:
            self._tokens -= 1
            return True
        return False

    async def acquire(self) -> None:
        """Wait until a token is available, then take it."""
        async with self._lock:
            while not self.try_acquire():
                await asyncio.sleep(self._seconds_until_token())

    def _refill(self) -> None:
        now = self._clock()
        elapsed = now - self._last_refill
        if elapsed > 0:
            self._tokens = min(self._max, self._tokens + elapsed * self._max / self._window)
            self._last_refill = now

    def _seconds_until_token(self) -> float:
        missing = 1 - self._tokens
        return max(0.01, missing * self._window / self._max)
