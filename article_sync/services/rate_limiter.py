"""
Request pacing for the summarization API.

Keeps the sequential enrichment loop under the provider's
requests-per-minute allowance.
"""
import asyncio
import time
from collections import deque
from typing import Awaitable, Callable

import structlog

logger = structlog.get_logger()


class RateLimiter:
    """
    Sliding-window pacer for a single outbound API.

    `acquire()` returns at once while fewer than `max_requests` calls were
    made in the last `period_seconds`; otherwise it sleeps until the
    oldest call leaves the window. Callers are expected to be sequential.
    """

    def __init__(
        self,
        max_requests: int,
        period_seconds: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        if max_requests <= 0 or period_seconds <= 0:
            raise ValueError("Rate limit must be positive")
        self.max_requests = max_requests
        self.period_seconds = period_seconds
        self._clock = clock
        self._sleep = sleep
        self._sent: deque[float] = deque()

    def _prune(self, now: float):
        cutoff = now - self.period_seconds
        while self._sent and self._sent[0] <= cutoff:
            self._sent.popleft()

    async def acquire(self) -> float:
        """
        Wait for a free slot and record the request.

        Returns:
            Seconds spent waiting
        """
        waited = 0.0
        now = self._clock()
        self._prune(now)

        while len(self._sent) >= self.max_requests:
            delay = self._sent[0] + self.period_seconds - now
            logger.debug("Rate limited", wait_seconds=round(delay, 1))
            await self._sleep(delay)
            waited += delay
            now = self._clock()
            self._prune(now)

        self._sent.append(now)
        return waited
