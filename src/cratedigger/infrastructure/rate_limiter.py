"""Serial rate limiter for external API calls.

Hey future me - Discogs and YouTube don't want bursts, they want a steady drip. So instead
of a token bucket we run every call of one provider through a single-worker queue:

    - one call at a time per provider (asyncio.Lock, FIFO on CPython)
    - at least min_gap_seconds between the end of one call and the start of the next
    - the timestamp is recorded in `finally` so a failed call still counts

Each gateway OWNS its limiter. No module-level singletons here - tests build a limiter with
a fake clock + recorded sleep and never wait for real.

USAGE:
    limiter = SerialRateLimiter(min_gap_seconds=1.2, name="discogs")
    data = await limiter.run(lambda: client.get(url))
"""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

Clock = Callable[[], float]
Sleep = Callable[[float], Awaitable[None]]


@dataclass
class SerialRateLimiter:
    """Runs tasks one by one with a minimum gap between dispatches.

    Attributes:
        min_gap_seconds: Minimum time between two task starts
        name: Provider name for logging
        clock: Monotonic time source (injectable for tests)
        sleep: Async sleep (injectable for tests)
    """

    min_gap_seconds: float
    name: str = "default"
    clock: Clock = time.monotonic
    sleep: Sleep = asyncio.sleep

    _lock: asyncio.Lock = field(default_factory=asyncio.Lock, init=False)
    _last_dispatch: float | None = field(default=None, init=False)

    async def run(self, task: Callable[[], Awaitable[T]]) -> T:
        """Queue a task behind every previously queued one and run it.

        The task's exception (if any) propagates to this caller only; the queue keeps going.
        """
        async with self._lock:
            await self._wait_for_gap()
            try:
                return await task()
            finally:
                self._last_dispatch = self.clock()

    async def _wait_for_gap(self) -> None:
        if self._last_dispatch is None:
            return
        elapsed = self.clock() - self._last_dispatch
        remaining = self.min_gap_seconds - elapsed
        if remaining > 0:
            logger.debug(f"RateLimiter[{self.name}]: waiting {remaining:.2f}s before next call")
            await self.sleep(remaining)

    @property
    def last_dispatch(self) -> float | None:
        """Clock value when the last task finished (for debugging)."""
        return self._last_dispatch


__all__ = ["Clock", "SerialRateLimiter", "Sleep"]
