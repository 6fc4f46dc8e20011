"""Retry with exponential backoff for calls to the remote domain."""

import asyncio
import logging
import random
from functools import wraps
from typing import Callable, Tuple, Type, TypeVar

T = TypeVar("T")

logger = logging.getLogger(__name__)


def backoff_delay(
    attempt: int,
    base_delay: float = 1.0,
    max_delay: float = 30.0,
    jitter: bool = True,
) -> float:
    """Seconds to wait before retry number ``attempt`` (0-based)."""
    delay = min(base_delay * 2**attempt, max_delay)
    if jitter:
        # 50% to 150% of the nominal delay
        delay *= 0.5 + random.random()
    return delay


def async_retry_with_backoff(
    max_retries: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 30.0,
    jitter: bool = True,
    retryable_exceptions: Tuple[Type[Exception], ...] = (Exception,),
) -> Callable:
    """Retry an async call on transient failures.

    Only ``retryable_exceptions`` are retried; anything else propagates at once.
    After ``max_retries`` retries the last error propagates unchanged, so
    callers classify it exactly as they would a first-attempt failure.

    Args:
        max_retries: Retries after the first attempt
        base_delay: Delay before the first retry in seconds
        max_delay: Upper bound for any single delay
        jitter: Randomize delays
        retryable_exceptions: Exception types considered transient
    """

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        async def wrapper(*args, **kwargs) -> T:
            attempt = 0
            while True:
                try:
                    return await func(*args, **kwargs)
                except retryable_exceptions as e:
                    if attempt >= max_retries:
                        logger.debug("%s gave up after %d attempts", func.__qualname__, attempt + 1)
                        raise
                    delay = backoff_delay(attempt, base_delay, max_delay, jitter)
                    attempt += 1
                    logger.warning(
                        "%s failed (%s), retry %d/%d in %.2fs",
                        func.__qualname__,
                        type(e).__name__,
                        attempt,
                        max_retries,
                        delay,
                    )
                    await asyncio.sleep(delay)

        return wrapper

    return decorator
