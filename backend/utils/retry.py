"""Bounded async retry with per-attempt timeout and fixed backoff."""

import asyncio
import logging
from typing import Awaitable, Callable, Optional, Tuple, Type, TypeVar

from errors import RetryExhaustedError

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def retry_async(
    operation: Callable[[int], Awaitable[T]],
    max_attempts: int,
    attempt_timeout: Optional[float] = None,
    backoff: float = 0.0,
    retry_on: Tuple[Type[BaseException], ...] = (Exception,),
    on_failure: Optional[Callable[[int, BaseException], None]] = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """Run ``operation`` until it succeeds or attempts run out.

    Attempts are strictly sequential. Each one is bounded by
    ``asyncio.wait_for`` when attempt_timeout is set, which cancels the
    in-flight call on timeout. Cancelling the caller cancels the current
    attempt and propagates immediately (no further attempts).

    Args:
        operation: Coroutine factory, called with the 1-based attempt number
        max_attempts: Upper bound on attempts (at least one is always made)
        attempt_timeout: Seconds per attempt, None for unbounded
        backoff: Seconds to wait between attempts
        retry_on: Exception types that trigger another attempt; anything
                  else propagates unchanged
        on_failure: Called with (attempt, error) after each failed attempt
        sleep: Sleep function (injectable for tests)

    Returns:
        The first successful result

    Raises:
        RetryExhaustedError: Every attempt failed; carries the last error
    """
    max_attempts = max(1, max_attempts)
    last_error: Optional[BaseException] = None

    for attempt in range(1, max_attempts + 1):
        try:
            if attempt_timeout is not None:
                return await asyncio.wait_for(operation(attempt), timeout=attempt_timeout)
            return await operation(attempt)
        except retry_on as e:
            last_error = e
            if on_failure is not None:
                on_failure(attempt, e)

        if attempt < max_attempts:
            logger.info(f"Retrying in {backoff * 1000:.0f}ms... (attempt {attempt + 1}/{max_attempts})")
            await sleep(backoff)

    raise RetryExhaustedError(
        f"All {max_attempts} attempt(s) failed",
        attempts=max_attempts,
        last_error=last_error,
    )
