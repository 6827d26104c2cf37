"""Request pacing for market data fetches.

Bounds the number of in-flight requests and enforces a minimum spacing
between request starts, independent of the exchange library's own limiter.
"""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager


class RequestPacer:
    """Semaphore-bounded concurrency with a minimum interval between starts.

    Usage:
        async with pacer.slot():
            await client.fetch_candles(...)
    """

    def __init__(self, max_concurrent: int, min_interval: float = 0.0) -> None:
        self._semaphore = asyncio.Semaphore(max(1, max_concurrent))
        self._min_interval = max(0.0, min_interval)
        self._lock = asyncio.Lock()
        self._last_start: float | None = None

    @property
    def min_interval(self) -> float:
        return self._min_interval

    async def _wait_turn(self) -> None:
        async with self._lock:
            loop = asyncio.get_running_loop()
            now = loop.time()
            if self._last_start is not None:
                wait = self._last_start + self._min_interval - now
                if wait > 0:
                    await asyncio.sleep(wait)
                    now = loop.time()
            self._last_start = now

    @asynccontextmanager
    async def slot(self) -> AsyncIterator[None]:
        """Hold one concurrency slot for the duration of a request."""
        async with self._semaphore:
            await self._wait_turn()
            yield
