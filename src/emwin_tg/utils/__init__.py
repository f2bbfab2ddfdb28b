"""emwin-tg utilities."""

from emwin_tg.utils.retry import (
    RetryConfig,
    RetryExhausted,
    with_retry,
)

__all__ = [
    # Retry
    "RetryConfig",
    "RetryExhausted",
    "with_retry",
]
