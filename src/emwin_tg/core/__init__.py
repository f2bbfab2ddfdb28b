"""Core configuration, errors, and orchestration.

The stream and fetch cycle live in ``emwin_tg.core.stream`` and
``emwin_tg.core.cycle``; they are imported from there (or from the
top-level package) to keep this package free of import cycles.
"""

from emwin_tg.core.exceptions import (
    ArchiveFormatError,
    ArchiveMemberError,
    ChannelClosedError,
    ConfigurationError,
    EmwinError,
    FetchError,
    RetryExhausted,
)

__all__ = [
    "ArchiveFormatError",
    "ArchiveMemberError",
    "ChannelClosedError",
    "ConfigurationError",
    "EmwinError",
    "FetchError",
    "RetryExhausted",
]
