"""emwin-tg HTTP utilities.

Provides the shared client factory and the conditional fetcher.

Example:
    >>> from emwin_tg.http import ConditionalFetcher, default_client
    >>>
    >>> async with default_client() as client:
    ...     fetcher = ConditionalFetcher(feed, client)
    ...     body = await fetcher.fetch()  # None when unchanged
"""

from emwin_tg.http.client import default_client, http_client
from emwin_tg.http.fetcher import ConditionalFetcher

__all__ = [
    "ConditionalFetcher",
    "default_client",
    "http_client",
]
