"""Retry utilities for emwin-tg.

Provides a bounded, fixed-delay retry policy for transient fetch failures.
Every feed tick gets a fresh set of attempts; a tick that exhausts them
gives up until the next tick rather than backing off further.

Example:
    >>> from emwin_tg.utils.retry import with_retry, RetryConfig
    >>>
    >>> config = RetryConfig(max_attempts=3, delay=4.0)
    >>> result = await with_retry(fetcher.fetch, config)
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TypeVar

from emwin_tg.core.exceptions import FetchError, RetryExhausted

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryConfig:
    """Configuration for retry behavior.

    Example:
        >>> from emwin_tg.utils.retry import RetryConfig
        >>> config = RetryConfig()
        >>> config.max_attempts, config.delay
        (3, 4.0)
        >>> config.should_retry(FetchError("u", "boom"), attempt=1)
        True
        >>> config.should_retry(ValueError("bug"), attempt=1)
        False

    Attributes:
        max_attempts: Maximum total attempts (including first try)
        delay: Seconds to wait between a failed attempt and the next one
        retry_on: Exception types that should trigger retry
        on_retry: Callback called on each retry (exception, attempt, delay)
    """

    max_attempts: int = 3
    delay: float = 4.0
    retry_on: tuple[type[Exception], ...] = (FetchError,)
    on_retry: Callable[[Exception, int, float], None] | None = None

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.delay < 0:
            raise ValueError("delay must not be negative")

    def should_retry(self, exc: Exception, attempt: int) -> bool:
        """Determine if we should retry after an exception.

        Args:
            exc: The exception that occurred
            attempt: Current attempt number (1-indexed)

        Returns:
            True if another attempt should be made
        """
        if attempt >= self.max_attempts:
            return False
        return isinstance(exc, self.retry_on)


async def with_retry(
    func: Callable[[], Awaitable[T]],
    config: RetryConfig | None = None,
    *,
    label: str = "operation",
) -> T:
    """Execute an async function with retry logic.

    Args:
        func: Async function to execute
        config: Retry configuration (default: 3 attempts, 4s apart)
        label: Name used in log messages (e.g. the feed URL)

    Returns:
        The result of the first successful attempt

    Raises:
        RetryExhausted: If every attempt failed with a retryable error
        Exception: Any non-retryable error, immediately and unwrapped
    """
    config = config or RetryConfig()

    for attempt in range(1, config.max_attempts + 1):
        try:
            return await func()
        except Exception as e:
            if not isinstance(e, config.retry_on):
                raise
            if not config.should_retry(e, attempt):
                raise RetryExhausted(e, attempt) from e

            logger.warning(
                "error retrieving %s (attempt %d/%d), will retry in %.1fs: %s",
                label,
                attempt,
                config.max_attempts,
                config.delay,
                e,
            )
            if config.on_retry:
                config.on_retry(e, attempt, config.delay)

            await asyncio.sleep(config.delay)

    # Unreachable: the final attempt either returns or raises.
    raise AssertionError("retry loop exited without a result")


__all__ = [
    "RetryConfig",
    "RetryExhausted",
    "with_retry",
]
