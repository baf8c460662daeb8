"""
Retry helper with exponential backoff for outbound calls
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Tuple, Type

logger = logging.getLogger(__name__)


def compute_backoff(attempt: int, base_delay: float = 1.0, factor: float = 2.0, max_delay: float = 30.0) -> float:
    """Delay before retry number attempt (0-based): base_delay * factor**attempt, capped"""
    if attempt < 0:
        raise ValueError("attempt must be >= 0")
    return min(max_delay, base_delay * (factor ** attempt))


async def retry_async(
    func: Callable[..., Awaitable[Any]],
    *args,
    retries: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 30.0,
    factor: float = 2.0,
    retry_on: Tuple[Type[BaseException], ...] = (Exception,),
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    **kwargs
) -> Any:
    """
    Await func(*args, **kwargs), retrying on the listed exceptions

    Args:
        func: Coroutine function to call
        retries: Number of retries after the first attempt
        base_delay: Delay before the first retry, in seconds
        max_delay: Upper bound for any single delay
        factor: Growth factor between consecutive delays
        retry_on: Exception types that trigger a retry
        sleep: Awaitable sleep, injectable for tests

    Returns:
        Whatever func returns

    Raises:
        The last exception once retries are exhausted, or any exception not in retry_on
    """
    name = getattr(func, '__name__', 'call')

    for attempt in range(retries + 1):
        try:
            return await func(*args, **kwargs)
        except retry_on as e:
            if attempt < retries:
                delay = compute_backoff(attempt, base_delay, factor, max_delay)
                logger.warning(f"{name} failed (attempt {attempt + 1}/{retries + 1}): {e}; retrying in {delay:.2f}s")
                await sleep(delay)  # Exponential backoff
            else:
                logger.error(f"{name} failed after {attempt + 1} attempts: {e}")
                raise
