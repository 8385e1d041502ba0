"""
Retry utilities with bounded attempts and per-attempt timeouts.
"""

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, Tuple, Type, TypeVar
import logging

from login_autofill.utils.clock import Clock, get_clock

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class RetryConfig:
    """
    Configuration for retry behavior.

    Attributes:
        max_attempts: Maximum number of attempts
        initial_delay_ms: Delay before the first retry
        max_delay_ms: Maximum delay between retries
        backoff_multiplier: Multiplier for exponential backoff
        attempt_timeout_ms: Timeout applied to each attempt (None for no limit)
        retry_on: Exception types to retry on; anything else propagates at once
        on_retry: Callback function called on each retry
    """
    max_attempts: int = 3
    initial_delay_ms: int = 250
    max_delay_ms: int = 5000
    backoff_multiplier: float = 2.0
    attempt_timeout_ms: Optional[int] = None
    retry_on: Tuple[Type[Exception], ...] = (asyncio.TimeoutError,)
    on_retry: Optional[Callable[[int, Exception], None]] = None


async def retry_async(
    func: Callable[[], Awaitable[T]],
    config: RetryConfig,
    clock: Optional[Clock] = None,
) -> T:
    """
    Execute an async callable with retry logic.

    Args:
        func: Zero-argument callable returning a fresh awaitable per attempt
        config: Retry configuration
        clock: Clock used for the delay between attempts

    Returns:
        Result of the first successful attempt

    Raises:
        The last exception if all attempts fail, or the first exception
        not listed in ``config.retry_on``
    """
    clock = clock or get_clock()
    last_exception: Optional[Exception] = None
    delay_ms: float = config.initial_delay_ms
    attempts = max(1, config.max_attempts)

    for attempt in range(attempts):
        try:
            if config.attempt_timeout_ms is not None:
                return await asyncio.wait_for(func(), timeout=config.attempt_timeout_ms / 1000)
            return await func()
        except config.retry_on as e:
            last_exception = e

            if attempt == attempts - 1:
                break

            logger.warning(
                f"Attempt {attempt + 1}/{attempts} failed: {e or type(e).__name__}. "
                f"Retrying in {delay_ms:.0f}ms..."
            )

            if config.on_retry:
                config.on_retry(attempt + 1, e)

            await clock.sleep(delay_ms)
            delay_ms = min(delay_ms * config.backoff_multiplier, config.max_delay_ms)

    raise last_exception  # type: ignore
