"""
ReleaseForge — Bounded retry with exponential backoff.

Every retryable call in the pipeline (page fetch, compare API, feature
extraction) goes through with_retry with its own budget. Delay before
attempt n+1 is base_delay * 2**(n-1); there is no jitter.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, TypeVar

from releaseforge.errors import RetryExhaustedError
from releaseforge.utils.logging import logger

T = TypeVar("T")

DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_BASE_DELAY = 1.0


def backoff_delay(attempt: int, base_delay: float) -> float:
    return base_delay * (2 ** (attempt - 1))


async def with_retry(
    operation: Callable[[int], Awaitable[T]],
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    base_delay: float = DEFAULT_BASE_DELAY,
    name: str = "operation",
    retry_on: tuple[type[BaseException], ...] = (Exception,),
) -> T:
    """
    Call operation(attempt) until it succeeds or max_attempts is reached.

    Raises RetryExhaustedError wrapping the last failure. Exceptions not
    listed in retry_on propagate immediately.
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be >= 1")

    last_err: BaseException | None = None
    for attempt in range(1, max_attempts + 1):
        try:
            return await operation(attempt)
        except retry_on as exc:
            last_err = exc
            logger.warning("  %s attempt %d/%d failed: %s", name, attempt, max_attempts, exc)
            if attempt < max_attempts:
                delay = backoff_delay(attempt, base_delay)
                logger.info("  Retrying %s in %.1fs", name, delay)
                await asyncio.sleep(delay)

    raise RetryExhaustedError(name, max_attempts, last_err)  # type: ignore[arg-type]
