"""Feed models - what to poll and what was last seen there.

A ``FeedDescriptor`` is static configuration: where a feed lives and how
often it is republished. A ``ValidatorState`` carries the HTTP validators
from the last successful retrieval of one feed so the next request can be
conditional.

Example:
    >>> from datetime import timedelta
    >>> from emwin_tg.models.feed import FeedDescriptor, ValidatorState
    >>> feed = FeedDescriptor(
    ...     name="text-2min",
    ...     url="https://example.com/txtmin02.zip",
    ...     interval=timedelta(seconds=47),
    ... )
    >>> feed.max_ticks is None
    True
    >>> ValidatorState().headers()
    {}
"""

from __future__ import annotations

from datetime import timedelta

from pydantic import ConfigDict, Field, field_validator

from emwin_tg.models.base import EmwinModel


class FeedDescriptor(EmwinModel):
    """One independently scheduled remote feed.

    Example:
        >>> from datetime import timedelta
        >>> from emwin_tg.models.feed import FeedDescriptor
        >>> feed = FeedDescriptor(
        ...     name="text-6min",
        ...     url="https://example.com/txtmin06.zip",
        ...     interval=timedelta(minutes=6),
        ...     max_ticks=3,
        ... )
        >>> feed.interval_seconds
        360.0
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str = Field(..., min_length=1, description="Feed identifier used in logs and metrics")
    url: str = Field(..., min_length=1, description="Absolute URL of the archive")
    interval: timedelta = Field(..., description="Time between fetches")
    max_ticks: int | None = Field(
        default=None,
        ge=0,
        description="Stop after this many ticks; None runs until cancelled",
    )

    @field_validator("interval")
    @classmethod
    def _positive_interval(cls, value: timedelta) -> timedelta:
        if value <= timedelta(0):
            raise ValueError("interval must be positive")
        return value

    @property
    def interval_seconds(self) -> float:
        """Refetch interval in seconds."""
        return self.interval.total_seconds()


class ValidatorState(EmwinModel):
    """Entity tag / last-modified pair for conditional retrieval.

    Created empty, replaced after every successful fetch, and left alone
    when the server answers ``304 Not Modified`` or the fetch fails.

    Example:
        >>> from emwin_tg.models.feed import ValidatorState
        >>> state = ValidatorState(etag='"abc"')
        >>> state.headers()
        {'If-None-Match': '"abc"'}
        >>> state.is_empty
        False
    """

    etag: str | None = None
    last_modified: str | None = None

    @property
    def is_empty(self) -> bool:
        """True when no validator has been recorded yet."""
        return self.etag is None and self.last_modified is None

    def headers(self) -> dict[str, str]:
        """Conditional request headers for the validators present."""
        headers: dict[str, str] = {}
        if self.etag is not None:
            headers["If-None-Match"] = self.etag
        if self.last_modified is not None:
            headers["If-Modified-Since"] = self.last_modified
        return headers
