from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Tuple, Type, TypeVar

from backend.app.core.logging import get_logger

T = TypeVar("T")

logger = get_logger(__name__)


async def retry_async(
    fn: Callable[[], Awaitable[T]],
    *,
    max_retries: int = 2,
    backoff_base: float = 1.0,
    retry_on: Tuple[Type[BaseException], ...] = (Exception,),
    description: str = "call",
) -> T:
    """Await ``fn`` and retry it up to ``max_retries`` times.

    Sleeps ``backoff_base * 2**attempt`` seconds between attempts. The last
    failure is re-raised unchanged.
    """
    attempt = 0
    while True:
        try:
            return await fn()
        except retry_on as exc:
            if attempt >= max_retries:
                raise
            delay = backoff_base * (2 ** attempt)
            logger.warning("Attempt %d of %s failed, retrying in %.1fs: %s", attempt + 1, description, delay, exc)
            await asyncio.sleep(delay)
            attempt += 1
