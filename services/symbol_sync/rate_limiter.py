"""
Rate Limiter

Token bucket that refills continuously, so a quota of N per minute allows
one permit every 60/N seconds once the initial burst is spent. Waiting is
done with asyncio.sleep and never blocks the event loop.
"""

import asyncio
import time
from typing import Awaitable, Callable, Optional

from shared.utils.logger import get_logger

logger = get_logger(__name__)

# Tolerance for float drift in refill arithmetic
_EPSILON = 1e-9


class RateLimiter:
    """
    Async token bucket

    Args:
        requests_per_minute: Sustained permit rate
        burst: Bucket capacity (defaults to the per-minute quota)
        clock: Monotonic clock in seconds
        sleep: Coroutine used to wait for a refill
    """

    def __init__(
        self,
        requests_per_minute: int,
        burst: Optional[int] = None,
        clock: Optional[Callable[[], float]] = None,
        sleep: Optional[Callable[[float], Awaitable[None]]] = None
    ):
        if requests_per_minute <= 0:
            raise ValueError("requests_per_minute must be greater than zero")

        self.requests_per_minute = requests_per_minute
        self.capacity = float(burst if burst is not None else requests_per_minute)
        if self.capacity < 1:
            raise ValueError("burst must allow at least one permit")

        self._rate = requests_per_minute / 60.0
        self._clock = clock or time.monotonic
        self._sleep = sleep or asyncio.sleep
        self._tokens = self.capacity
        self._updated_at = self._clock()
        self._lock = asyncio.Lock()

    @property
    def available(self) -> float:
        self._refill()
        return self._tokens

    def _refill(self) -> None:
        now = self._clock()
        elapsed = max(0.0, now - self._updated_at)
        self._tokens = min(self.capacity, self._tokens + elapsed * self._rate)
        self._updated_at = now

    async def acquire(self) -> None:
        """Suspend until a permit is available, then take it"""
        async with self._lock:
            while True:
                self._refill()
                if self._tokens >= 1.0 - _EPSILON:
                    self._tokens = max(0.0, self._tokens - 1.0)
                    return

                wait_seconds = (1.0 - self._tokens) / self._rate
                logger.debug("rate_limiter_waiting", wait_seconds=round(wait_seconds, 3))
                await self._sleep(wait_seconds)
