import asyncio
import time
from typing import Awaitable, Callable, Optional


class MinIntervalRateLimiter:
    """
    Gate that keeps at least ``interval`` seconds between consecutive
    acquisitions. The first acquisition never waits.
    """

    def __init__(
        self,
        interval: float,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.interval = interval
        self._clock = clock
        self._sleep = sleep
        self._last: Optional[float] = None
        self._lock = asyncio.Lock()

    async def acquire(self) -> float:
        """Wait if needed and return the seconds waited."""
        async with self._lock:
            waited = 0.0
            if self._last is not None:
                remaining = self.interval - (self._clock() - self._last)
                if remaining > 0:
                    await self._sleep(remaining)
                    waited = remaining
            self._last = self._clock()
            return waited

    def reset(self) -> None:
        self._last = None
