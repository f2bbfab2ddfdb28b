"""EMWIN telecommunications gateway sources.

A source is a fixed table of feeds that together cover one kind of
product. The gateway republishes overlapping archives on different
schedules: a short-window archive refreshed often for low latency, and
longer-window archives that fill gaps after outages. The longer text
archives are only sampled a few times at startup, after which the
frequent feed and the hourly archive keep the stream complete.

The order of ``feeds`` is the order feed cycles are started in.

Example:
    >>> from emwin_tg.sources import TextSource
    >>> [feed.name for feed in TextSource.feeds]
    ['text-2min', 'text-6min', 'text-20min', 'text-3hour']
    >>> TextSource.get("text-6min").max_ticks
    3
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import timedelta
from typing import ClassVar

from emwin_tg.core.exceptions import ConfigurationError
from emwin_tg.models.feed import FeedDescriptor

TG_BASE_URL = "https://tgftp.nws.noaa.gov/SL.us008001/CU.EMWIN/DF.xt/DC.gsatR/OPS/"


class Source:
    """Base class for feed sources.

    Override ``feeds`` to define a new source.

    Class Variables:
        name: Short source identifier.
        description: One-line description.
        feeds: Feed descriptors, in start order.

    Example:
        >>> from datetime import timedelta
        >>> from emwin_tg.models.feed import FeedDescriptor
        >>> from emwin_tg.sources import Source
        >>>
        >>> class MirrorSource(Source):
        ...     name = "mirror"
        ...     feeds = (
        ...         FeedDescriptor(
        ...             name="mirror-2min",
        ...             url="https://mirror.example.com/txtmin02.zip",
        ...             interval=timedelta(seconds=47),
        ...         ),
        ...     )
        >>> MirrorSource.names()
        ['mirror-2min']
    """

    name: ClassVar[str] = "custom"
    description: ClassVar[str] = ""
    feeds: ClassVar[tuple[FeedDescriptor, ...]] = ()

    @classmethod
    def names(cls) -> list[str]:
        """Feed names, in start order."""
        return [feed.name for feed in cls.feeds]

    @classmethod
    def get(cls, name: str) -> FeedDescriptor:
        """Look up a feed by name.

        Raises:
            KeyError: If the source has no such feed.
        """
        for feed in cls.feeds:
            if feed.name == name:
                return feed
        raise KeyError(name)


class TextSource(Source):
    """Text products from the EMWIN telecommunications gateway.

    See the text product catalog at
    https://www.weather.gov/media/emwin/EMWIN_Text_Product_Catalog_210525-1448.pdf

    Provides on average ~90 seconds of latency, yielding products up to
    3-4 hours old.
    """

    name = "text"
    description = "EMWIN text products"
    feeds = (
        FeedDescriptor(
            name="text-2min",
            url=TG_BASE_URL + "txtmin02.zip",
            interval=timedelta(seconds=47),
        ),
        FeedDescriptor(
            name="text-6min",
            url=TG_BASE_URL + "txtmin06.zip",
            interval=timedelta(minutes=6),
            max_ticks=3,
        ),
        FeedDescriptor(
            name="text-20min",
            url=TG_BASE_URL + "txtmin20.zip",
            interval=timedelta(minutes=20),
            max_ticks=3,
        ),
        FeedDescriptor(
            name="text-3hour",
            url=TG_BASE_URL + "txthrs03.zip",
            # Regenerated hourly
            interval=timedelta(hours=1),
        ),
    )


class ImageSource(Source):
    """Image products from the EMWIN telecommunications gateway.

    See the image product catalog at
    https://www.weather.gov/media/emwin/EMWIN_Image_and_Text_Data_Capture_Catalog_v1.3e.pdf
    """

    name = "image"
    description = "EMWIN image products"
    feeds = (
        FeedDescriptor(
            name="image-15min",
            url=TG_BASE_URL + "imgmin15.zip",
            interval=timedelta(seconds=352),
        ),
        FeedDescriptor(
            name="image-3hour",
            url=TG_BASE_URL + "imghrs03.zip",
            # Regenerated hourly
            interval=timedelta(hours=1),
        ),
    )


SOURCES: dict[str, type[Source]] = {
    TextSource.name: TextSource,
    ImageSource.name: ImageSource,
}


def get_source(name: str) -> type[Source]:
    """Look up a built-in source by name.

    Raises:
        ConfigurationError: If no source has that name.
    """
    try:
        return SOURCES[name]
    except KeyError:
        raise ConfigurationError(
            f"Unknown source {name!r}; expected one of {sorted(SOURCES)}"
        ) from None


def resolve_feeds(source: type[Source] | Sequence[FeedDescriptor]) -> tuple[FeedDescriptor, ...]:
    """Normalize a source class or feed sequence into a validated tuple.

    Raises:
        ConfigurationError: If there are no feeds or two share a name.
    """
    if isinstance(source, type) and issubclass(source, Source):
        feeds = tuple(source.feeds)
    else:
        feeds = tuple(source)

    if not feeds:
        raise ConfigurationError("At least one feed is required")

    seen: set[str] = set()
    for feed in feeds:
        if not isinstance(feed, FeedDescriptor):
            raise ConfigurationError(f"Expected FeedDescriptor, got {type(feed).__name__}")
        if feed.name in seen:
            raise ConfigurationError(f"Feed '{feed.name}' is configured twice")
        seen.add(feed.name)
    return feeds
