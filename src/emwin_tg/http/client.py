"""Shared HTTP client construction.

All feeds of a stream share one ``httpx.AsyncClient``; it is safe to use
from concurrent tasks and pools connections across them.

Example:
    >>> from emwin_tg.http.client import default_client
    >>> client = default_client(user_agent="Your Software v1.0 (author@example.com)")
    >>> client.headers["User-Agent"]
    'Your Software v1.0 (author@example.com)'
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

import httpx

from emwin_tg.core.config import DEFAULT_USER_AGENT


def client_headers(user_agent: str = DEFAULT_USER_AGENT) -> dict[str, str]:
    """Default headers sent with every feed request."""
    return {
        "User-Agent": user_agent,
        "Accept": "*/*",
    }


def default_client(
    user_agent: str = DEFAULT_USER_AGENT,
    timeout: float = 30.0,
    **kwargs: Any,
) -> httpx.AsyncClient:
    """Build the client used when the caller does not supply one.

    The NWS has restricted other APIs by requiring a ``User-Agent``. If you
    supply your own client, be sure to give it one.

    Args:
        user_agent: Identity string sent as ``User-Agent``.
        timeout: Per-operation timeout in seconds.
        **kwargs: Additional arguments for ``httpx.AsyncClient``.

    Returns:
        A new, open ``httpx.AsyncClient``. The caller owns it.
    """
    return httpx.AsyncClient(
        headers=client_headers(user_agent),
        timeout=httpx.Timeout(timeout),
        follow_redirects=True,
        **kwargs,
    )


@asynccontextmanager
async def http_client(**kwargs: Any) -> AsyncIterator[httpx.AsyncClient]:
    """Context manager for the default client.

    Example:
        >>> async with http_client(user_agent="tests") as client:
        ...     response = await client.get("https://example.com/")
    """
    client = default_client(**kwargs)
    try:
        yield client
    finally:
        await client.aclose()


__all__ = [
    "client_headers",
    "default_client",
    "http_client",
]
