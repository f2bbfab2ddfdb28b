"""Archive handling for fetched EMWIN batches."""

from emwin_tg.archive.expander import NESTED_SUFFIX, ArchiveExpander

__all__ = [
    "ArchiveExpander",
    "NESTED_SUFFIX",
]
