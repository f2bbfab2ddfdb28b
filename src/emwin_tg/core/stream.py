"""ProductStream - the public, infinite stream of EMWIN products.

A stream owns everything one consumer needs:

- one ``FetchCycle`` task per feed, started in the source's feed order
- one ``SeenRegistry`` shared by all feeds, so a product published in
  several overlapping archives is delivered once
- one bounded ``FeedMerger`` all cycles send into
- one HTTP client, created on demand unless one is supplied

Each item of the stream is either a ``Product`` or an ``EmwinError``.
Failures are delivered in-band and never end the stream; the consumer
decides what to do with them.

Example:
    >>> from emwin_tg import TextStream, Product
    >>>
    >>> async with TextStream() as stream:
    ...     async for result in stream:
    ...         if isinstance(result, Product):
    ...             print(result.filename, result.text[:100])
    ...         else:
    ...             print("error:", result)
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

from emwin_tg.archive.expander import ArchiveExpander
from emwin_tg.cache.seen import SeenRegistry
from emwin_tg.core.config import Settings, get_settings
from emwin_tg.core.cycle import FetchCycle
from emwin_tg.core.exceptions import ChannelClosedError
from emwin_tg.http.client import default_client
from emwin_tg.metrics.collector import CollectionMetrics
from emwin_tg.pipeline import ProductPipeline
from emwin_tg.queue.merger import FeedMerger
from emwin_tg.sources import ImageSource, Source, TextSource, resolve_feeds
from emwin_tg.utils.retry import RetryConfig

if TYPE_CHECKING:
    import httpx

    from emwin_tg.models.feed import FeedDescriptor
    from emwin_tg.models.product import ProductResult

logger = logging.getLogger(__name__)

# Client teardown scheduled by close(); the loop only keeps weak references.
_closing: set[asyncio.Task[None]] = set()


def _log_task_failure(task: asyncio.Task[None]) -> None:
    # Must not reference the stream, or running tasks would keep it alive.
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.error("Task %s failed: %r", task.get_name(), exc)


class ProductStream:
    """Merged, deduplicated stream of products from a set of feeds.

    Feed tasks start on ``start()``, on entering ``async with``, or on the
    first ``__anext__``, whichever comes first. Closing the stream cancels
    every feed task and discards anything still buffered.

    Args:
        source: A ``Source`` subclass or a sequence of feed descriptors.
        client: Shared HTTP client. If omitted, the stream creates one
            and closes it in ``aclose()``.
        settings: Settings (default: loaded from the environment).
        metrics: Optional metrics collector. If omitted and
            ``settings.enable_metrics`` is set, a Prometheus-exporting
            collector is created.

    Raises:
        ConfigurationError: If the feed set is empty or has duplicate names.
    """

    def __init__(
        self,
        source: type[Source] | Sequence[FeedDescriptor],
        *,
        client: httpx.AsyncClient | None = None,
        settings: Settings | None = None,
        metrics: CollectionMetrics | None = None,
    ) -> None:
        self._feeds = resolve_feeds(source)
        self._settings = settings or get_settings()
        if metrics is None and self._settings.enable_metrics:
            metrics = CollectionMetrics(enable_prometheus=True)
        self._metrics = metrics

        self._owns_client = client is None
        self._client = client or default_client(
            user_agent=self._settings.user_agent,
            timeout=self._settings.request_timeout,
        )

        self._seen = SeenRegistry(retention=self._settings.retention_window)
        self._pipeline = ProductPipeline(
            self._seen,
            ArchiveExpander(max_member_size=self._settings.max_member_size),
        )
        self._merger: FeedMerger[ProductResult] = FeedMerger(self._settings.buffer_capacity)
        self._retry = RetryConfig(
            max_attempts=self._settings.fetch_attempts,
            delay=self._settings.retry_delay,
        )

        self._cycles = [
            FetchCycle(
                feed,
                self._client,
                self._pipeline,
                self._merger,
                retry=self._retry,
                metrics=metrics,
            )
            for feed in self._feeds
        ]
        self._tasks: list[asyncio.Task[None]] = []
        self._client_close: asyncio.Task[None] | None = None
        self._started = False
        self._closed = False

    # =========================================================================
    # Properties
    # =========================================================================

    @property
    def feeds(self) -> tuple[FeedDescriptor, ...]:
        """Feeds this stream polls, in start order."""
        return self._feeds

    @property
    def cycles(self) -> list[FetchCycle]:
        """Per-feed fetch cycles, in start order."""
        return list(self._cycles)

    @property
    def running(self) -> bool:
        """True while the stream is started and not closed."""
        return self._started and not self._closed

    @property
    def closed(self) -> bool:
        """True once the stream has been closed."""
        return self._closed

    @property
    def pending(self) -> int:
        """Results buffered and not yet consumed."""
        return self._merger.pending

    @property
    def seen(self) -> SeenRegistry:
        """The registry shared by all feeds."""
        return self._seen

    @property
    def metrics(self) -> CollectionMetrics | None:
        """Metrics collector, if one is attached."""
        return self._metrics

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def start(self) -> None:
        """Start one task per feed.

        Must be called with a running event loop. Calling it again, or
        after the stream is closed, does nothing.
        """
        if self._started or self._closed:
            return
        self._started = True
        if self._metrics is not None:
            self._metrics.start()

        for cycle in self._cycles:
            task = asyncio.create_task(cycle.run(), name=f"emwin-tg:{cycle.feed.name}")
            task.add_done_callback(_log_task_failure)
            self._tasks.append(task)

        logger.info(
            "Started %d feeds: %s",
            len(self._tasks),
            ", ".join(feed.name for feed in self._feeds),
        )

    def close(self) -> None:
        """Stop every feed task and discard buffered results.

        Takes effect immediately. A client the stream created is closed in
        the background when an event loop is running; use ``aclose()`` to
        wait for the tasks and the client to finish.
        """
        if self._closed:
            return
        self._closed = True

        for task in self._tasks:
            if not task.done():
                task.cancel()
        discarded = self._merger.close()
        logger.debug("Stream closed (%d results discarded)", discarded)

        if self._owns_client:
            try:
                loop = asyncio.get_running_loop()
            except RuntimeError:
                return
            self._client_close = loop.create_task(
                self._client.aclose(), name="emwin-tg:client-close"
            )
            _closing.add(self._client_close)
            self._client_close.add_done_callback(_closing.discard)
            self._client_close.add_done_callback(_log_task_failure)

    async def aclose(self) -> None:
        """Close the stream and wait for teardown."""
        self.close()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
        if self._owns_client:
            if self._client_close is not None:
                await self._client_close
            else:
                await self._client.aclose()

    async def __aenter__(self) -> ProductStream:
        """Async context manager entry."""
        self.start()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Async context manager exit."""
        await self.aclose()

    def __del__(self) -> None:
        # The loop may already be gone during interpreter shutdown.
        with contextlib.suppress(Exception):
            self.close()

    # =========================================================================
    # Iteration
    # =========================================================================

    def __aiter__(self) -> ProductStream:
        return self

    async def __anext__(self) -> ProductResult:
        """Wait for the next product or error.

        Raises:
            StopAsyncIteration: Once the stream is closed.
        """
        if self._closed:
            raise StopAsyncIteration
        self.start()
        try:
            return await self._merger.receive()
        except ChannelClosedError:
            raise StopAsyncIteration from None

    def __repr__(self) -> str:
        state = "closed" if self._closed else "running" if self._started else "idle"
        return f"{type(self).__name__}(feeds={len(self._feeds)}, state={state})"


class TextStream(ProductStream):
    """Stream of text products from the telecommunications gateway.

    Example:
        >>> stream = TextStream()
        >>> [feed.name for feed in stream.feeds]
        ['text-2min', 'text-6min', 'text-20min', 'text-3hour']
    """

    def __init__(
        self,
        *,
        client: httpx.AsyncClient | None = None,
        settings: Settings | None = None,
        metrics: CollectionMetrics | None = None,
    ) -> None:
        super().__init__(TextSource, client=client, settings=settings, metrics=metrics)


class ImageStream(ProductStream):
    """Stream of image products from the telecommunications gateway."""

    def __init__(
        self,
        *,
        client: httpx.AsyncClient | None = None,
        settings: Settings | None = None,
        metrics: CollectionMetrics | None = None,
    ) -> None:
        super().__init__(ImageSource, client=client, settings=settings, metrics=metrics)


__all__ = [
    "ImageStream",
    "ProductStream",
    "TextStream",
]
