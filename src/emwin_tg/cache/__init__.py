"""Deduplication state shared by all feeds of a stream."""

from emwin_tg.cache.seen import RETENTION_WINDOW, SeenRegistry

__all__ = [
    "RETENTION_WINDOW",
    "SeenRegistry",
]
