"""LLM call retry with linear backoff and per-attempt timeout."""

import asyncio
from collections.abc import Awaitable, Callable
from typing import TypeVar

from loguru import logger

T = TypeVar("T")

# HTTP status codes and error patterns that indicate a transient failure
_RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 504}
_RETRYABLE_PATTERNS = (
    "rate limit",
    "timeout",
    "timed out",
    "connection",
    "server error",
    "overloaded",
    "too many requests",
    "temporarily unavailable",
)


def is_retryable(error: BaseException) -> bool:
    """Check if an error is transient, i.e. worth the caller trying again later."""
    if isinstance(error, (asyncio.TimeoutError, TimeoutError, ConnectionError)):
        return True

    error_str = str(error).lower()

    if any(pattern in error_str for pattern in _RETRYABLE_PATTERNS):
        return True

    for code in _RETRYABLE_STATUS_CODES:
        if str(code) in error_str:
            return True

    return False


def linear_backoff(attempt: int, base_delay: float) -> float:
    """Delay before the next attempt: attempt index (1-based) times the base."""
    return attempt * base_delay


async def with_retry(
    fn: Callable[[], Awaitable[T]],
    max_attempts: int = 3,
    base_delay: float = 1.0,
    timeout: float | None = None,
) -> T:
    """Call an async function, retrying any failure with linear backoff.

    Args:
        fn: Zero-argument coroutine factory; called once per attempt.
        max_attempts: Total attempts including the first.
        base_delay: Seconds; the wait after attempt n is ``n * base_delay``.
        timeout: Per-attempt timeout in seconds. Expiry counts as a failure.

    Returns:
        The return value of fn.

    Raises:
        The last exception once all attempts are exhausted.
    """
    attempt = 0
    while True:
        attempt += 1
        try:
            if timeout is None:
                return await fn()
            return await asyncio.wait_for(fn(), timeout=timeout)
        except Exception as e:
            if attempt >= max_attempts:
                logger.error(f"LLM call failed after {attempt} attempts: {e}")
                raise

            delay = linear_backoff(attempt, base_delay)
            logger.warning(
                f"LLM call attempt {attempt}/{max_attempts} failed, retrying in {delay}s: {e}"
            )
            await asyncio.sleep(delay)
