import asyncio, time
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

class FixedIntervalLimiter:
    """Courtesy limiter for a single provider.

    Callers enter ``slot()`` around each outbound request. Only one request
    holds the slot at a time, and a new request starts no sooner than
    ``interval`` seconds after the previous one released it.
    """
    def __init__(self, interval: float):
        self.interval = max(0.0, interval)
        self.last: Optional[float] = None
        self.lock = asyncio.Lock()

    @asynccontextmanager
    async def slot(self) -> AsyncIterator[None]:
        async with self.lock:
            if self.last is not None:
                wait = self.interval - (time.monotonic() - self.last)
                if wait > 0:
                    await asyncio.sleep(wait)
            try:
                yield
            finally:
                self.last = time.monotonic()
