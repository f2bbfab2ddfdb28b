"""Periodic ticker for feed refetching.

A Ticker fires immediately on first use and then once per interval. When
the consumer falls behind, missed ticks collapse into a single tick that is
delivered as soon as the consumer asks, and the schedule restarts from that
moment. There is never a burst of catch-up ticks.

Example:
    >>> import asyncio
    >>> from emwin_tg.scheduler.ticker import Ticker
    >>> async def two_ticks():
    ...     ticker = Ticker(0.01)
    ...     await ticker.tick()
    ...     await ticker.tick()
    ...     return ticker.count
    >>> asyncio.run(two_ticks())
    2
"""

from __future__ import annotations

import asyncio
from datetime import timedelta


class Ticker:
    """Async ticker with delay-on-miss behavior.

    Uses the running event loop's monotonic clock, so it is only usable from
    inside a coroutine. A Ticker has no error conditions; it ticks until its
    owner stops asking.

    Example:
        >>> import asyncio
        >>> from datetime import timedelta
        >>> from emwin_tg.scheduler.ticker import Ticker
        >>> async def main():
        ...     ticks = 0
        ...     async for _ in Ticker(timedelta(milliseconds=5)):
        ...         ticks += 1
        ...         if ticks == 3:
        ...             break
        ...     return ticks
        >>> asyncio.run(main())
        3

    Attributes:
        interval: Seconds between ticks.
        count: Number of ticks delivered so far.
    """

    def __init__(self, interval: float | timedelta) -> None:
        """Initialize ticker.

        Args:
            interval: Time between ticks (seconds or timedelta).

        Raises:
            ValueError: If interval is not positive.
        """
        if isinstance(interval, timedelta):
            interval = interval.total_seconds()
        if interval <= 0:
            raise ValueError("interval must be positive")

        self.interval = float(interval)
        self.count = 0
        self._deadline: float | None = None

    @property
    def deadline(self) -> float | None:
        """Loop time at which the next tick is due (None before the first)."""
        return self._deadline

    async def tick(self) -> float:
        """Wait for the next tick.

        Returns:
            Loop time at which the tick was delivered.
        """
        loop = asyncio.get_running_loop()
        now = loop.time()
        if self._deadline is None:
            self._deadline = now

        if now < self._deadline:
            await asyncio.sleep(self._deadline - now)
            now = loop.time()
            # Sleeping may overshoot slightly; keep the original grid.
            self._deadline += self.interval
        else:
            # Due or overdue: deliver now and restart the schedule from here.
            self._deadline = now + self.interval

        self.count += 1
        return now

    def reset(self) -> None:
        """Make the next tick fire immediately."""
        self._deadline = None

    def __aiter__(self) -> Ticker:
        return self

    async def __anext__(self) -> float:
        return await self.tick()
