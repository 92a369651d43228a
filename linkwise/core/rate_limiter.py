"""Rate limiters for the remote reader tiers, using aiolimiter.

All limiters are singleton instances shared across the process.
"""

import time
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from aiolimiter import AsyncLimiter

from linkwise.core.config import settings
from linkwise.core.metrics import rate_limiter_throttled_total

T = TypeVar("T")

# Each limiter enforces N requests per second
jina_limiter = AsyncLimiter(
    max_rate=settings.JINA_RATE_LIMIT,
    time_period=1.0,
)

firecrawl_limiter = AsyncLimiter(
    max_rate=settings.FIRECRAWL_RATE_LIMIT,
    time_period=1.0,
)


async def rate_limited_call(
    limiter: AsyncLimiter,
    api_name: str,
    func: Callable[..., Awaitable[T]],
    *args: Any,
    **kwargs: Any,
) -> T:
    """Execute ``func`` once a token is available from ``limiter``.

    Counts a throttle event whenever the wait for a token exceeds 10ms.

    Args:
        limiter: AsyncLimiter instance to use
        api_name: API name for metrics labeling
        func: Async function to call
        *args: Positional arguments for func
        **kwargs: Keyword arguments for func

    Returns:
        Result from func
    """
    start = time.monotonic()
    async with limiter:
        if time.monotonic() - start > 0.01:
            rate_limiter_throttled_total.labels(api_name=api_name).inc()
        return await func(*args, **kwargs)
