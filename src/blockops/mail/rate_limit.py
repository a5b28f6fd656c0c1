import asyncio
import time


class IntervalLimiter:
    """
    Spaces successive provider calls at least ``interval_ms`` apart.

    The interval runs from the end of the previous call when it was made
    through ``limit()``, and from the previous ``acquire()`` otherwise, so a
    slow provider call never shortens the pause before the next one.
    """

    def __init__(self, interval_ms: int = 100) -> None:
        self._interval = max(0, int(interval_ms)) / 1000
        self._last_call: float | None = None
        self._lock = asyncio.Lock()

    @property
    def interval_ms(self) -> int:
        return int(self._interval * 1000)

    async def acquire(self) -> None:
        async with self._lock:
            if self._last_call is not None and self._interval > 0:
                wait = self._last_call + self._interval - time.monotonic()
                if wait > 0:
                    await asyncio.sleep(wait)
            self._last_call = time.monotonic()

    def release(self) -> None:
        self._last_call = time.monotonic()

    def limit(self):
        return self._LimitContextManager(self)

    class _LimitContextManager:
        def __init__(self, limiter):
            self.limiter = limiter

        async def __aenter__(self):
            await self.limiter.acquire()
            return self

        async def __aexit__(self, exc_type, exc_val, exc_tb):
            self.limiter.release()
            return False


__all__ = ["IntervalLimiter"]
