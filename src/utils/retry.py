"""
QBot - Retry Utilities
======================

Exponential backoff retry decorator for transient failures.

Only network-ish errors are retried (connection drops, timeouts, Roblox
429/5xx). Auth and not-found errors propagate immediately.
"""

import asyncio
import random
from functools import wraps
from typing import Callable, Any, Optional

import aiohttp

from src.core.logger import logger
from src.services.roblox.errors import TRANSIENT_ROBLOX_ERRORS, RateLimitError


# Specific exceptions that should be retried (transient errors)
RETRYABLE_EXCEPTIONS = (
    aiohttp.ClientConnectionError,
    asyncio.TimeoutError,
    ConnectionError,
    TimeoutError,
) + TRANSIENT_ROBLOX_ERRORS


def exponential_backoff(
    max_retries: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 30.0,
) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """
    Decorator that retries async functions with exponential backoff.

    delay = min(base_delay * 2**attempt, max_delay) plus up to 10% jitter.
    A RateLimitError carrying a Retry-After hint waits at least that long.

    Example:
        @exponential_backoff(max_retries=3, base_delay=1)
        async def get_group_roles(self): ...
    """

    def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
        @wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            last_exception: Optional[BaseException] = None

            for attempt in range(max_retries):
                try:
                    return await func(*args, **kwargs)
                except RETRYABLE_EXCEPTIONS as e:
                    last_exception = e
                    if attempt == max_retries - 1:
                        logger.error("Retries Exhausted", [
                            ("Function", func.__name__),
                            ("Attempts", max_retries),
                            ("Error", str(e) or type(e).__name__),
                        ])
                        raise

                    delay: float = min(base_delay * (2 ** attempt), max_delay)
                    if isinstance(e, RateLimitError) and e.retry_after:
                        delay = max(delay, min(e.retry_after, max_delay))
                    delay += random.uniform(0, delay * 0.1)

                    logger.warning("Retry Attempt Failed", [
                        ("Function", func.__name__),
                        ("Attempt", f"{attempt + 1}/{max_retries}"),
                        ("Error", str(e) or type(e).__name__),
                        ("Next Try", f"{delay:.1f}s"),
                    ])
                    await asyncio.sleep(delay)

            if last_exception:
                raise last_exception
            raise RuntimeError(f"{func.__name__} failed without exception")

        return wrapper

    return decorator


__all__ = [
    "RETRYABLE_EXCEPTIONS",
    "exponential_backoff",
]
