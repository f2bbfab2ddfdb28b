"""Bounded fan-in channel from many feed cycles to one consumer.

Every feed cycle of a stream sends its results into one ``FeedMerger``;
the stream's consumer receives them one at a time. The buffer is bounded:
a producer that finds it full waits for space instead of dropping results,
which is what pushes back on fast feeds when the consumer is slow.

Delivery follows readiness. Whichever feed has a result ready first puts
it first; producers waiting for space are admitted in the order they
started waiting, and feeds whose ticks coincide start in the order they
were enumerated. A batch sent by one producer keeps its own order,
although results from other feeds may be interleaved with it.

Example:
    >>> import asyncio
    >>> from emwin_tg.queue.merger import FeedMerger
    >>> async def main():
    ...     merger = FeedMerger(capacity=2)
    ...     await merger.send("a")
    ...     await merger.send("b")
    ...     return [await merger.receive(), await merger.receive()]
    >>> asyncio.run(main())
    ['a', 'b']
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable
from typing import Generic, TypeVar

from emwin_tg.core.exceptions import ChannelClosedError

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_CAPACITY = 50

_CLOSED = object()


class FeedMerger(Generic[T]):
    """Multi-producer, single-consumer bounded channel.

    Uses an ``asyncio.Queue`` for buffering and wakeups. Closing discards
    anything still buffered, refuses further sends, and wakes a waiting
    receiver so it can observe the close.

    Example:
        >>> import asyncio
        >>> from emwin_tg.queue.merger import FeedMerger
        >>> async def main():
        ...     merger = FeedMerger()
        ...     await merger.send_batch(["x", "y"])
        ...     discarded = merger.close()
        ...     return discarded, await merger.send("z")
        >>> asyncio.run(main())
        (2, False)
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY) -> None:
        """Initialize the channel.

        Args:
            capacity: Maximum number of pending results.
        """
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self._capacity = capacity
        self._queue: asyncio.Queue[object] = asyncio.Queue(maxsize=capacity)
        self._closed = False
        self._sent = 0
        self._received = 0

    @property
    def capacity(self) -> int:
        """Maximum number of pending results."""
        return self._capacity

    @property
    def pending(self) -> int:
        """Results buffered but not yet received."""
        return 0 if self._closed else self._queue.qsize()

    @property
    def is_closed(self) -> bool:
        """True once the channel has been closed."""
        return self._closed

    @property
    def sent(self) -> int:
        """Total results accepted into the buffer."""
        return self._sent

    @property
    def received(self) -> int:
        """Total results handed to the consumer."""
        return self._received

    async def send(self, result: T) -> bool:
        """Put one result, waiting while the buffer is full.

        Returns:
            False if the channel is closed and the result was discarded.
        """
        if self._closed:
            return False
        await self._queue.put(result)
        if self._closed:
            return False
        self._sent += 1
        return True

    async def send_batch(self, results: Iterable[T]) -> int:
        """Put results in order, stopping early if the channel closes.

        Returns:
            Number of results accepted.
        """
        accepted = 0
        for result in results:
            if not await self.send(result):
                break
            accepted += 1
        return accepted

    async def receive(self) -> T:
        """Wait for the next result.

        Raises:
            ChannelClosedError: If the channel is (or becomes) closed.
        """
        if self._closed:
            raise ChannelClosedError("feed merger is closed")
        item = await self._queue.get()
        if item is _CLOSED or self._closed:
            raise ChannelClosedError("feed merger is closed")
        self._received += 1
        return item  # type: ignore[return-value]

    def close(self) -> int:
        """Close the channel and discard anything still buffered.

        This is idempotent - calling multiple times is safe.

        Returns:
            Number of buffered results discarded.
        """
        if self._closed:
            return 0
        self._closed = True

        discarded = 0
        while True:
            try:
                self._queue.get_nowait()
            except asyncio.QueueEmpty:
                break
            discarded += 1

        # Wake a receiver blocked in get(); senders woken by the drain see
        # the closed flag.
        self._queue.put_nowait(_CLOSED)

        if discarded:
            logger.debug("feed merger closed, discarded %d pending results", discarded)
        return discarded

    def __aiter__(self) -> FeedMerger[T]:
        return self

    async def __anext__(self) -> T:
        try:
            return await self.receive()
        except ChannelClosedError:
            raise StopAsyncIteration from None
