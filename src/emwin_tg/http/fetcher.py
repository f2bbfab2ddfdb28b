"""Conditional retrieval of a single feed.

The fetcher remembers the ``ETag`` and ``Last-Modified`` validators of the
last successful response and sends them back as ``If-None-Match`` and
``If-Modified-Since``. An unchanged feed then costs a ``304`` instead of a
full archive download.

Example:
    >>> import asyncio
    >>> from datetime import timedelta
    >>> import httpx
    >>> from emwin_tg.http.fetcher import ConditionalFetcher
    >>> from emwin_tg.models.feed import FeedDescriptor
    >>> def handler(request):
    ...     if request.headers.get("If-None-Match") == '"v1"':
    ...         return httpx.Response(304)
    ...     return httpx.Response(200, content=b"PK...", headers={"ETag": '"v1"'})
    >>> feed = FeedDescriptor(name="f", url="https://example.com/f.zip", interval=timedelta(seconds=60))
    >>> async def twice():
    ...     async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
    ...         fetcher = ConditionalFetcher(feed, client)
    ...         return await fetcher.fetch(), await fetcher.fetch()
    >>> asyncio.run(twice())
    (b'PK...', None)
"""

from __future__ import annotations

import logging

import httpx

from emwin_tg.core.exceptions import FetchError
from emwin_tg.models.feed import FeedDescriptor, ValidatorState

logger = logging.getLogger(__name__)


class ConditionalFetcher:
    """Performs conditional GETs against one feed endpoint.

    One fetcher exists per feed and owns that feed's ``ValidatorState``;
    nothing else reads or writes it. The underlying client may be shared
    with other fetchers.

    Args:
        feed: The feed to retrieve.
        client: HTTP client used for the request.
        state: Initial validators (default: empty).
    """

    def __init__(
        self,
        feed: FeedDescriptor,
        client: httpx.AsyncClient,
        state: ValidatorState | None = None,
    ) -> None:
        self._feed = feed
        self._client = client
        self._state = state or ValidatorState()

    @property
    def feed(self) -> FeedDescriptor:
        """The feed this fetcher retrieves."""
        return self._feed

    @property
    def state(self) -> ValidatorState:
        """Validators from the last successful retrieval."""
        return self._state

    async def fetch(self) -> bytes | None:
        """Retrieve the feed if it changed.

        Returns:
            The response body, or None if the server reported the resource
            unchanged since the last successful fetch.

        Raises:
            FetchError: On any transport failure or unexpected status. The
                validator state is left untouched.
        """
        url = self._feed.url
        validators = self._state

        try:
            request = self._client.build_request("GET", url, headers=validators.headers())
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise FetchError(url, f"invalid request: {e}") from e

        logger.debug("GET %s", url)
        try:
            response = await self._client.send(request, stream=True)
        except httpx.HTTPError as e:
            logger.debug("%s: %s", e, url)
            raise FetchError(url, f"request failed: {e}") from e

        try:
            if response.status_code == httpx.codes.NOT_MODIFIED and not validators.is_empty:
                logger.debug("304 Not Modified: %s", url)
                await self._drain(response)
                return None

            if not response.is_success:
                logger.debug("%d %s: %s", response.status_code, response.reason_phrase, url)
                raise FetchError(
                    url,
                    f"HTTP {response.status_code} {response.reason_phrase}".rstrip(),
                    status_code=response.status_code,
                )

            try:
                body = await response.aread()
            except httpx.HTTPError as e:
                raise FetchError(url, f"reading body failed: {e}") from e

            self._state = ValidatorState(
                etag=response.headers.get("ETag"),
                last_modified=response.headers.get("Last-Modified"),
            )
            logger.debug("%d %s %s", response.status_code, response.reason_phrase, url)
            return body
        finally:
            await response.aclose()

    async def _drain(self, response: httpx.Response) -> None:
        """Consume any body so the connection can be reused; errors are ignored."""
        try:
            async for _ in response.aiter_raw():
                pass
        except httpx.HTTPError as e:
            logger.debug("discarding 304 body of %s failed: %s", self._feed.url, e)

    def __repr__(self) -> str:
        return f"ConditionalFetcher(feed={self._feed.name!r}, state={self._state!r})"
