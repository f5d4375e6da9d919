"""
Request pacing for outbound scan traffic.

A token bucket caps the request rate against a target; a semaphore caps
how many requests are in flight at once.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field


@dataclass
class TokenBucketRateLimiter:
    """
    Async token bucket.

    Holds up to `burst` tokens (twice the rate by default) and refills at
    `rate` tokens per second.
    """

    rate: float = 10.0
    burst: float = 0.0
    _tokens: float = field(init=False, repr=False)
    _updated: float = field(init=False, repr=False)
    _lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False)

    def __post_init__(self) -> None:
        if self.rate <= 0:
            raise ValueError("rate must be positive")
        if self.burst <= 0:
            self.burst = self.rate * 2
        self._tokens = self.burst
        self._updated = time.monotonic()

    def _refill(self) -> None:
        now = time.monotonic()
        self._tokens = min(self.burst, self._tokens + (now - self._updated) * self.rate)
        self._updated = now

    async def acquire(self) -> None:
        """Take one token, sleeping until one is available."""
        async with self._lock:
            self._refill()
            if self._tokens < 1.0:
                await asyncio.sleep((1.0 - self._tokens) / self.rate)
                self._refill()
            self._tokens -= 1.0


class RequestThrottle:
    """Combine a concurrency bound with a request rate limit."""

    def __init__(self, max_concurrency: int = 8, rate: float = 10.0) -> None:
        self._semaphore = asyncio.Semaphore(max_concurrency)
        self._bucket = TokenBucketRateLimiter(rate=rate)
        self.max_concurrency = max_concurrency

    async def __aenter__(self) -> "RequestThrottle":
        await self._semaphore.acquire()
        try:
            await self._bucket.acquire()
        except BaseException:
            self._semaphore.release()
            raise
        return self

    async def __aexit__(self, *exc: object) -> None:
        self._semaphore.release()
