"""Per-feed fetch cycle - tick, fetch with retries, expand, deliver.

Each feed of a stream runs one ``FetchCycle`` as its own task:

    waiting -> fetching -> (retrying -> fetching)* -> processing -> waiting

On every tick the feed is fetched conditionally, with up to three attempts
separated by a fixed pause. An unchanged feed ends the tick quietly. A
changed feed is expanded and its new products are sent, in name order, to
the shared merger. If every attempt fails the last error is sent instead
and the cycle carries on at the next tick; errors never end a cycle.

Example:
    >>> cycle = FetchCycle(feed, client, pipeline, merger)
    >>> task = asyncio.create_task(cycle.run())
"""

from __future__ import annotations

import logging
from dataclasses import replace
from enum import Enum
from typing import TYPE_CHECKING

from emwin_tg.core.exceptions import ArchiveFormatError, RetryExhausted
from emwin_tg.http.fetcher import ConditionalFetcher
from emwin_tg.scheduler.ticker import Ticker
from emwin_tg.utils.retry import RetryConfig, with_retry

if TYPE_CHECKING:
    import httpx

    from emwin_tg.metrics.collector import CollectionMetrics
    from emwin_tg.models.feed import FeedDescriptor, ValidatorState
    from emwin_tg.models.product import ProductResult
    from emwin_tg.pipeline import BatchResult, ProductPipeline
    from emwin_tg.queue.merger import FeedMerger

logger = logging.getLogger(__name__)


class CycleState(str, Enum):
    """Where a fetch cycle currently is.

    Example:
        >>> CycleState.WAITING.value
        'waiting'
    """

    IDLE = "idle"  # Not started
    WAITING = "waiting"  # Waiting for the next tick
    FETCHING = "fetching"  # Request in flight
    RETRYING = "retrying"  # Pausing before another attempt
    PROCESSING = "processing"  # Expanding and delivering a batch
    FINISHED = "finished"  # Tick budget spent or consumer gone


class FetchCycle:
    """Long-running fetch loop for one feed.

    Args:
        feed: The feed to poll.
        client: Shared HTTP client.
        pipeline: Pipeline holding the shared seen registry.
        merger: Channel the results are sent to.
        retry: Retry policy per tick (default: 3 attempts, 4s apart).
        metrics: Optional metrics collector.
    """

    def __init__(
        self,
        feed: FeedDescriptor,
        client: httpx.AsyncClient,
        pipeline: ProductPipeline,
        merger: FeedMerger[ProductResult],
        *,
        retry: RetryConfig | None = None,
        metrics: CollectionMetrics | None = None,
    ) -> None:
        self._feed = feed
        self._fetcher = ConditionalFetcher(feed, client)
        self._pipeline = pipeline
        self._merger = merger
        self._retry = retry or RetryConfig()
        self._metrics = metrics
        self._state = CycleState.IDLE
        self._ticks = 0

    @property
    def feed(self) -> FeedDescriptor:
        """The feed this cycle polls."""
        return self._feed

    @property
    def state(self) -> CycleState:
        """Current state of the cycle."""
        return self._state

    @property
    def ticks(self) -> int:
        """Ticks consumed so far."""
        return self._ticks

    @property
    def validators(self) -> ValidatorState:
        """Validators from the feed's last successful fetch."""
        return self._fetcher.state

    async def run(self) -> None:
        """Poll the feed until the tick budget is spent or the merger closes."""
        ticker = Ticker(self._feed.interval)
        remaining = self._feed.max_ticks

        try:
            while remaining is None or remaining > 0:
                if remaining is not None:
                    remaining -= 1

                self._state = CycleState.WAITING
                await ticker.tick()
                self._ticks += 1

                if self._merger.is_closed:
                    logger.debug("%s: consumer gone, stopping", self._feed.name)
                    return

                if not await self.run_once():
                    return
        finally:
            self._state = CycleState.FINISHED

    async def run_once(self) -> bool:
        """Handle a single tick.

        Returns:
            False if the merger closed while delivering.
        """
        payload = await self._fetch()
        if payload is None:
            return True
        if isinstance(payload, Exception):
            return await self._deliver_error(payload)

        self._state = CycleState.PROCESSING
        try:
            batch = await self._expand(payload)
        except ArchiveFormatError as e:
            logger.error("%s: %s", self._feed.url, e)
            return await self._deliver_error(e)

        self._record_batch(batch)
        accepted = await self._merger.send_batch(batch.results)
        return accepted == len(batch.results)

    async def _fetch(self) -> bytes | Exception | None:
        """Fetch with retries; None when unchanged, the error when exhausted."""
        name = self._feed.name
        self._state = CycleState.FETCHING
        retry = replace(self._retry, on_retry=self._on_retry)

        try:
            if self._metrics is not None:
                with self._metrics.time_operation("fetch", feed=name):
                    payload = await with_retry(self._fetch_attempt, retry, label=self._feed.url)
            else:
                payload = await with_retry(self._fetch_attempt, retry, label=self._feed.url)
        except RetryExhausted as e:
            logger.error("retries exhausted on %s: %s", self._feed.url, e.last_error)
            self._record_fetch("error")
            return e.last_error

        if payload is None:
            self._record_fetch("not_modified")
        else:
            logger.info("%s: read %d bytes", self._feed.url, len(payload))
            self._record_fetch("fresh")
        return payload

    async def _fetch_attempt(self) -> bytes | None:
        self._state = CycleState.FETCHING
        return await self._fetcher.fetch()

    def _on_retry(self, exc: Exception, attempt: int, delay: float) -> None:
        self._state = CycleState.RETRYING
        if self._retry.on_retry is not None:
            self._retry.on_retry(exc, attempt, delay)

    async def _expand(self, payload: bytes) -> BatchResult:
        if self._metrics is None:
            return await self._pipeline.run(payload, self._feed.name)
        with self._metrics.time_operation("expand", feed=self._feed.name):
            return await self._pipeline.run(payload, self._feed.name)

    async def _deliver_error(self, error: Exception) -> bool:
        if self._metrics is not None:
            self._metrics.record_error(self._feed.name, type(error).__name__)
        return await self._merger.send(error)

    def _record_fetch(self, outcome: str) -> None:
        if self._metrics is not None:
            self._metrics.record_fetch(self._feed.name, outcome)

    def _record_batch(self, batch: BatchResult) -> None:
        if self._metrics is None:
            return
        name = self._feed.name
        self._metrics.record_duplicates(name, batch.duplicates)
        for product in batch.products:
            self._metrics.record_products(name, category=product.mime_type or "unknown")
        for error in batch.errors:
            self._metrics.record_error(name, type(error).__name__)

    def __repr__(self) -> str:
        return f"FetchCycle(feed={self._feed.name!r}, state={self._state.value!r}, ticks={self._ticks})"


__all__ = [
    "CycleState",
    "FetchCycle",
]
