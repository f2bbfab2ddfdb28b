"""Tests for FetchCycle.

Tests cover:
- Retries within one tick
- Exhausted retries delivered as a single error
- Idempotence under 304 Not Modified
- Tick budgets
- Archive format errors
- Stopping when the consumer goes away
"""

from __future__ import annotations

import io
import zipfile
from datetime import timedelta

import httpx
import pytest

from emwin_tg.cache.seen import SeenRegistry
from emwin_tg.core.cycle import CycleState, FetchCycle
from emwin_tg.core.exceptions import ArchiveFormatError, FetchError
from emwin_tg.metrics.collector import CollectionMetrics
from emwin_tg.models.feed import FeedDescriptor, ValidatorState
from emwin_tg.models.product import Product
from emwin_tg.pipeline import ProductPipeline
from emwin_tg.queue.merger import FeedMerger
from emwin_tg.utils.retry import RetryConfig

URL = "https://example.com/feeds/txtmin02.zip"


def make_zip(members: dict[str, bytes]) -> bytes:
    """Helper to build an in-memory archive."""
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w") as zf:
        for name, data in members.items():
            zf.writestr(name, data)
    return buf.getvalue()


def make_feed(max_ticks: int | None) -> FeedDescriptor:
    return FeedDescriptor(
        name="text-2min",
        url=URL,
        interval=timedelta(milliseconds=10),
        max_ticks=max_ticks,
    )


class ScriptedServer:
    """Mock transport handler that plays back one response per request."""

    def __init__(self, *responses: httpx.Response):
        self._responses = list(responses)
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self._responses.pop(0)


class ConditionalServer:
    """Mock transport handler serving one archive with an entity tag."""

    def __init__(self, payload: bytes, etag: str = '"v1"'):
        self.payload = payload
        self.etag = etag
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.headers.get("If-None-Match") == self.etag:
            return httpx.Response(304)
        return httpx.Response(200, content=self.payload, headers={"ETag": self.etag})


async def drain(merger: FeedMerger) -> list:
    """Collect everything currently buffered."""
    items = []
    while merger.pending:
        items.append(await merger.receive())
    return items


@pytest.fixture
def merger() -> FeedMerger:
    return FeedMerger()


@pytest.fixture
def pipeline() -> ProductPipeline:
    return ProductPipeline(SeenRegistry())


def make_cycle(handler, feed, pipeline, merger, **kwargs) -> tuple[FetchCycle, httpx.AsyncClient]:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    kwargs.setdefault("retry", RetryConfig(delay=0))
    return FetchCycle(feed, client, pipeline, merger, **kwargs), client


# =============================================================================
# Retries Within a Tick
# =============================================================================


class TestRetries:
    """Tests for attempts within one tick."""

    async def test_fail_twice_then_succeed(self, pipeline, merger):
        """Two failures then a success surface no error."""
        server = ScriptedServer(
            httpx.Response(503),
            httpx.Response(503),
            httpx.Response(200, content=make_zip({"B.TXT": b"b", "A.TXT": b"a"})),
        )
        cycle, client = make_cycle(server, make_feed(1), pipeline, merger)

        async with client:
            await cycle.run()

        results = await drain(merger)
        assert [r.filename for r in results] == ["A.TXT", "B.TXT"]
        assert all(isinstance(r, Product) for r in results)
        assert len(server.requests) == 3

    async def test_exhausted_delivers_one_error(self, pipeline, merger):
        """Three failures in a tick surface exactly one error."""
        server = ScriptedServer(httpx.Response(500), httpx.Response(502), httpx.Response(503))
        cycle, client = make_cycle(server, make_feed(1), pipeline, merger)

        async with client:
            await cycle.run()

        results = await drain(merger)
        assert len(results) == 1
        assert isinstance(results[0], FetchError)
        assert results[0].status_code == 503
        assert len(server.requests) == 3

    async def test_recovers_next_tick(self, pipeline, merger):
        """After an exhausted tick the next tick starts clean."""
        server = ScriptedServer(
            httpx.Response(200, content=make_zip({"A.TXT": b"a"}), headers={"ETag": '"v1"'}),
            httpx.Response(500),
            httpx.Response(500),
            httpx.Response(500),
            httpx.Response(304),
            httpx.Response(200, content=make_zip({"A.TXT": b"a", "B.TXT": b"b"}), headers={"ETag": '"v2"'}),
        )
        cycle, client = make_cycle(server, make_feed(4), pipeline, merger)

        async with client:
            await cycle.run()

        results = await drain(merger)
        assert isinstance(results[0], Product)
        assert isinstance(results[1], FetchError)
        assert [r.filename for r in results[2:]] == ["B.TXT"]

        # The failed tick left the validators from the first success.
        assert server.requests[4].headers["If-None-Match"] == '"v1"'
        assert cycle.validators == ValidatorState(etag='"v2"')

    async def test_validators_unchanged_by_failure(self, pipeline, merger):
        """An exhausted tick does not touch the validators."""
        server = ScriptedServer(
            httpx.Response(200, content=make_zip({}), headers={"ETag": '"v1"'}),
            httpx.Response(500),
            httpx.Response(500),
            httpx.Response(500),
        )
        cycle, client = make_cycle(server, make_feed(2), pipeline, merger)

        async with client:
            await cycle.run()

        assert cycle.validators == ValidatorState(etag='"v1"')

    async def test_retry_settings_used(self, pipeline, merger):
        """The configured attempt count applies."""
        server = ScriptedServer(*(httpx.Response(500) for _ in range(5)))
        cycle, client = make_cycle(
            server, make_feed(1), pipeline, merger, retry=RetryConfig(max_attempts=5, delay=0)
        )

        async with client:
            await cycle.run()

        assert len(server.requests) == 5
        assert len(await drain(merger)) == 1


# =============================================================================
# Not Modified
# =============================================================================


class TestNotModified:
    """Tests for ticks where nothing changed."""

    async def test_idempotent_under_not_modified(self, pipeline, merger):
        """Unchanged content emits nothing after the first tick."""
        server = ConditionalServer(make_zip({"A.TXT": b"a", "B.TXT": b"b"}))
        cycle, client = make_cycle(server, make_feed(4), pipeline, merger)

        async with client:
            await cycle.run()

        assert [r.filename for r in await drain(merger)] == ["A.TXT", "B.TXT"]
        assert len(server.requests) == 4
        assert all(r.headers.get("If-None-Match") == '"v1"' for r in server.requests[1:])

    async def test_changed_archive_only_new_products(self, pipeline, merger):
        """A republished archive yields only products not yet delivered."""
        server = ScriptedServer(
            httpx.Response(200, content=make_zip({"A.TXT": b"a"}), headers={"ETag": '"v1"'}),
            httpx.Response(200, content=make_zip({"A.TXT": b"a", "C.TXT": b"c"}), headers={"ETag": '"v2"'}),
        )
        cycle, client = make_cycle(server, make_feed(2), pipeline, merger)

        async with client:
            await cycle.run()

        assert [r.filename for r in await drain(merger)] == ["A.TXT", "C.TXT"]


# =============================================================================
# Tick Budget and Lifecycle
# =============================================================================


class TestLifecycle:
    """Tests for tick budgets and stopping."""

    async def test_initial_state(self, pipeline, merger):
        """A new cycle is idle."""
        cycle, client = make_cycle(ScriptedServer(), make_feed(1), pipeline, merger)
        await client.aclose()

        assert cycle.state is CycleState.IDLE
        assert cycle.ticks == 0
        assert cycle.validators.is_empty

    async def test_max_ticks(self, pipeline, merger):
        """A bounded feed stops after its budget."""
        server = ConditionalServer(make_zip({"A.TXT": b"a"}))
        cycle, client = make_cycle(server, make_feed(3), pipeline, merger)

        async with client:
            await cycle.run()

        assert cycle.ticks == 3
        assert cycle.state is CycleState.FINISHED
        assert len(server.requests) == 3

    async def test_zero_ticks(self, pipeline, merger):
        """A zero budget never fetches."""
        server = ScriptedServer()
        cycle, client = make_cycle(server, make_feed(0), pipeline, merger)

        async with client:
            await cycle.run()

        assert cycle.ticks == 0
        assert server.requests == []
        assert cycle.state is CycleState.FINISHED

    async def test_stops_when_merger_closed(self, pipeline, merger):
        """A closed merger ends an unbounded cycle without fetching."""
        server = ScriptedServer()
        cycle, client = make_cycle(server, make_feed(None), pipeline, merger)
        merger.close()

        async with client:
            await cycle.run()

        assert cycle.ticks == 1
        assert server.requests == []
        assert cycle.state is CycleState.FINISHED

    async def test_repr(self, pipeline, merger):
        """repr names the feed and state."""
        cycle, client = make_cycle(ScriptedServer(), make_feed(1), pipeline, merger)
        await client.aclose()

        assert "text-2min" in repr(cycle)


# =============================================================================
# Archive Errors
# =============================================================================


class TestArchiveErrors:
    """Tests for payloads that are not archives."""

    async def test_format_error_delivered_not_retried(self, pipeline, merger):
        """A non-archive payload is one error, with no further attempts."""
        server = ScriptedServer(httpx.Response(200, content=b"<html>maintenance</html>"))
        cycle, client = make_cycle(server, make_feed(1), pipeline, merger)

        async with client:
            await cycle.run()

        results = await drain(merger)
        assert len(results) == 1
        assert isinstance(results[0], ArchiveFormatError)
        assert len(server.requests) == 1


# =============================================================================
# Metrics
# =============================================================================


class TestCycleMetrics:
    """Tests for metrics recording."""

    async def test_outcomes_recorded(self, pipeline, merger):
        """Fetch outcomes, products and errors are counted per feed."""
        metrics = CollectionMetrics()
        server = ScriptedServer(
            httpx.Response(200, content=make_zip({"A.TXT": b"a", "B.GIF": b"g"}), headers={"ETag": '"v1"'}),
            httpx.Response(304),
            httpx.Response(500),
            httpx.Response(500),
            httpx.Response(500),
        )
        cycle, client = make_cycle(server, make_feed(3), pipeline, merger, metrics=metrics)

        async with client:
            await cycle.run()

        summary = metrics.summary()
        assert summary.fetches["text-2min"] == {"fresh": 1, "not_modified": 1, "error": 1}
        assert summary.products_by_feed == {"text-2min": 2}
        assert summary.products_by_category == {"text/plain": 1, "image/gif": 1}
        assert summary.errors_by_feed == {"text-2min": 1}
        assert "fetch" in summary.operation_times
