"""Sliding-window request limiter for the REST API."""

from __future__ import annotations

import asyncio
import logging
import time
from collections import deque
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RateLimitStats:
    requests_in_window: int
    max_requests: int
    window_seconds: float


class SlidingWindowRateLimiter:
    """
    Allows at most ``max_requests`` acquisitions per ``window_seconds``.

    When the window is full, :meth:`acquire` sleeps until the oldest request
    leaves the window. Acquisitions are serialized with an asyncio lock so
    concurrent callers queue in order.

    Args:
        max_requests: Requests allowed per window (default: 60)
        window_seconds: Window length (default: 60 seconds)
        clock: Monotonic time source (injectable for tests)
        sleep: Awaitable delay (injectable for tests)
    """

    def __init__(
        self,
        max_requests: int = 60,
        window_seconds: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        if max_requests < 1:
            raise ValueError(f"max_requests must be >= 1, got {max_requests}")
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._sleep = sleep
        self._requests: deque[float] = deque()
        self._lock = asyncio.Lock()

    def _evict(self, now: float) -> None:
        cutoff = now - self.window_seconds
        while self._requests and self._requests[0] <= cutoff:
            self._requests.popleft()

    async def acquire(self) -> None:
        async with self._lock:
            now = self._clock()
            self._evict(now)
            if len(self._requests) >= self.max_requests:
                wait = self.window_seconds - (now - self._requests[0])
                if wait > 0:
                    logger.info(f"Rate limit reached, waiting {wait:.2f}s")
                    await self._sleep(wait)
                now = self._clock()
                self._evict(now)
                # the clock may not have advanced under a fake sleep
                while len(self._requests) >= self.max_requests:
                    self._requests.popleft()
            self._requests.append(now)

    def stats(self) -> RateLimitStats:
        self._evict(self._clock())
        return RateLimitStats(
            requests_in_window=len(self._requests),
            max_requests=self.max_requests,
            window_seconds=self.window_seconds,
        )

    def reset(self) -> None:
        self._requests.clear()
