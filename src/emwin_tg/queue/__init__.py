"""Channels between feed cycles and the stream consumer."""

from emwin_tg.queue.merger import DEFAULT_CAPACITY, FeedMerger

__all__ = [
    "DEFAULT_CAPACITY",
    "FeedMerger",
]
