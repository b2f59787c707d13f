"""Async token bucket used to pace outbound embedding/generation calls and reindex runs."""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable

from manual_rag.observability.logger import get_logger

logger = get_logger("token_bucket")


class TokenBucket:
    """Refills ``rate`` tokens per second up to ``capacity``.

    A ``rate`` of zero or less disables throttling. ``clock`` and ``sleep`` can
    be swapped for deterministic tests.
    """

    def __init__(
        self,
        rate: float,
        capacity: int = 1,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        name: str = "default",
    ) -> None:
        self._rate = rate
        self._capacity = max(1, capacity)
        self._clock = clock
        self._sleep = sleep
        self._name = name
        self._tokens = float(self._capacity)
        self._updated = clock()
        self._lock = asyncio.Lock()

    @property
    def unlimited(self) -> bool:
        return self._rate <= 0

    def _refill(self) -> None:
        now = self._clock()
        elapsed = max(0.0, now - self._updated)
        self._tokens = min(float(self._capacity), self._tokens + elapsed * self._rate)
        self._updated = now

    async def acquire(self, tokens: int = 1) -> float:
        """Wait until ``tokens`` are available. Returns seconds spent waiting."""
        if self.unlimited:
            return 0.0
        if tokens > self._capacity:
            raise ValueError(f"Cannot acquire {tokens} tokens from a bucket of {self._capacity}")

        waited = 0.0
        async with self._lock:
            while True:
                self._refill()
                if self._tokens >= tokens:
                    self._tokens -= tokens
                    break
                delay = (tokens - self._tokens) / self._rate
                await self._sleep(delay)
                waited += delay
        if waited:
            logger.debug("rate_limited", limiter=self._name, waited_s=round(waited, 3))
        return waited
