"""
emwin-tg - EMWIN products from the NWS telecommunications gateway.

The NWS republishes Emergency Managers Weather Information Network (EMWIN)
products as a set of periodically regenerated ZIP archives. emwin-tg polls
those archives, expands them, and yields each product once as part of an
infinite async stream.

Key Features:
- Conditional GETs (ETag / Last-Modified), so unchanged archives cost little
- Fixed-delay retries, with exhausted retries delivered in-band as errors
- Deduplication across overlapping feeds with a six-hour window
- Bounded buffering with backpressure on the feeds

Quick Start:
    >>> from emwin_tg import TextStream, Product
    >>> async with TextStream() as stream:
    ...     async for result in stream:
    ...         if isinstance(result, Product):
    ...             print(result.filename)

Architecture:
    Sources: TextSource, ImageSource
    Streams: ProductStream, TextStream, ImageStream
    Per feed: Ticker -> ConditionalFetcher -> ProductPipeline -> FeedMerger
"""

__version__ = "0.1.0"

# Archive handling
from emwin_tg.archive.expander import ArchiveExpander

# Dedup
from emwin_tg.cache.seen import SeenRegistry

# Configuration
from emwin_tg.core.config import Settings, get_settings

# Core orchestration
from emwin_tg.core.cycle import CycleState, FetchCycle

# Errors
from emwin_tg.core.exceptions import (
    ArchiveFormatError,
    ArchiveMemberError,
    ChannelClosedError,
    ConfigurationError,
    EmwinError,
    FetchError,
    RetryExhausted,
)
from emwin_tg.core.stream import ImageStream, ProductStream, TextStream

# HTTP utilities
from emwin_tg.http import ConditionalFetcher, default_client

# Metrics collection
from emwin_tg.metrics import CollectionMetrics, MetricsSummary

# Models
from emwin_tg.models.feed import FeedDescriptor, ValidatorState
from emwin_tg.models.product import Product, ProductResult
from emwin_tg.pipeline import BatchResult, ProductPipeline

# Delivery
from emwin_tg.queue.merger import FeedMerger

# Scheduling
from emwin_tg.scheduler.ticker import Ticker

# Sources
from emwin_tg.sources import ImageSource, Source, TextSource

# Retry utilities
from emwin_tg.utils.retry import RetryConfig, with_retry

__all__ = [
    # Models
    "FeedDescriptor",
    "Product",
    "ProductResult",
    "ValidatorState",
    # Sources
    "Source",
    "TextSource",
    "ImageSource",
    # Streams
    "ProductStream",
    "TextStream",
    "ImageStream",
    # Per-feed machinery
    "Ticker",
    "ConditionalFetcher",
    "default_client",
    "FetchCycle",
    "CycleState",
    "ArchiveExpander",
    "SeenRegistry",
    "FeedMerger",
    # Pipeline
    "ProductPipeline",
    "BatchResult",
    # Retry
    "RetryConfig",
    "RetryExhausted",
    "with_retry",
    # Configuration
    "Settings",
    "get_settings",
    # Errors
    "EmwinError",
    "FetchError",
    "ArchiveFormatError",
    "ArchiveMemberError",
    "ConfigurationError",
    "ChannelClosedError",
    # Metrics
    "CollectionMetrics",
    "MetricsSummary",
    # Version
    "__version__",
]
