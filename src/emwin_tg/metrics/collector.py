"""Metrics collector for feed streams.

Tracks what each feed cycle did: how fetches turned out, how many products
were new or duplicate, which errors surfaced, and where time went. Supports
optional Prometheus integration.

Example:
    >>> from emwin_tg.metrics import CollectionMetrics
    >>>
    >>> metrics = CollectionMetrics()
    >>>
    >>> # Time operations
    >>> with metrics.time_operation("fetch", feed="text-2min"):
    ...     # ... fetch operation ...
    ...     pass
    >>>
    >>> metrics.record_fetch("text-2min", "fresh")
    >>> metrics.record_products("text-2min", category="text/plain", count=42)
    >>> metrics.record_error("text-2min", "FetchError")
    >>>
    >>> print(metrics.summary())
"""

from __future__ import annotations

import logging
import time
from collections import defaultdict
from collections.abc import Generator
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

logger = logging.getLogger(__name__)

FETCH_OUTCOMES = ("fresh", "not_modified", "error")


@dataclass
class MetricsSummary:
    """Summary of collected metrics.

    Attributes:
        total_products: Products delivered
        total_duplicates: Listed products suppressed as already seen
        total_errors: Errors delivered
        total_fetch_time: Total time spent fetching
        total_expand_time: Total time spent expanding archives
        fetches: Fetch outcome counts by feed
        products_by_feed: Products grouped by feed
        products_by_category: Products grouped by MIME type
        errors_by_feed: Errors grouped by feed
        operation_times: Total time by operation type and feed
    """

    total_products: int = 0
    total_duplicates: int = 0
    total_errors: int = 0
    total_fetch_time: float = 0.0
    total_expand_time: float = 0.0
    fetches: dict[str, dict[str, int]] = field(default_factory=dict)
    products_by_feed: dict[str, int] = field(default_factory=dict)
    products_by_category: dict[str, int] = field(default_factory=dict)
    errors_by_feed: dict[str, int] = field(default_factory=dict)
    operation_times: dict[str, dict[str, float]] = field(default_factory=dict)

    def __str__(self) -> str:
        """Format summary as human-readable string."""
        lines = [
            "EMWIN Stream Metrics",
            "=" * 40,
            f"Total products: {self.total_products:,}",
            f"Total duplicates: {self.total_duplicates:,}",
            f"Total errors: {self.total_errors}",
            f"Total fetch time: {self.total_fetch_time:.2f}s",
            f"Total expand time: {self.total_expand_time:.2f}s",
        ]

        if self.fetches:
            lines.append("\nFetches by feed:")
            for feed, outcomes in sorted(self.fetches.items()):
                counts = ", ".join(f"{k}={v}" for k, v in sorted(outcomes.items()))
                lines.append(f"  {feed}: {counts}")

        if self.products_by_category:
            lines.append("\nProducts by type:")
            for cat, count in sorted(self.products_by_category.items(), key=lambda x: -x[1]):
                lines.append(f"  {cat}: {count:,}")

        if self.errors_by_feed:
            lines.append("\nErrors by feed:")
            for feed, count in sorted(self.errors_by_feed.items()):
                lines.append(f"  {feed}: {count}")

        return "\n".join(lines)

    def to_dict(self) -> dict[str, Any]:
        """Convert summary to dictionary for JSON serialization."""
        return {
            "total_products": self.total_products,
            "total_duplicates": self.total_duplicates,
            "total_errors": self.total_errors,
            "total_fetch_time": self.total_fetch_time,
            "total_expand_time": self.total_expand_time,
            "fetches": self.fetches,
            "products_by_feed": self.products_by_feed,
            "products_by_category": self.products_by_category,
            "errors_by_feed": self.errors_by_feed,
        }


class CollectionMetrics:
    """Collects metrics for feed stream operations.

    Intended to be updated from the event loop thread only.

    Example:
        >>> metrics = CollectionMetrics()
        >>> metrics.start()
        >>> metrics.record_fetch("image-15min", "not_modified")
        >>> metrics.record_products("image-15min", category="image/gif", count=3)
        >>> metrics.summary().total_products
        3

    Attributes:
        prometheus_enabled: Whether Prometheus metrics are enabled
    """

    def __init__(
        self,
        enable_prometheus: bool = False,
        prometheus_prefix: str = "emwin",
    ):
        """Initialize metrics collector.

        Args:
            enable_prometheus: If True, also export to Prometheus
                              (requires prometheus_client package)
            prometheus_prefix: Prefix for Prometheus metric names
        """
        self._fetches: dict[str, dict[str, int]] = defaultdict(lambda: defaultdict(int))
        self._products_by_feed: dict[str, int] = defaultdict(int)
        self._products_by_category: dict[str, int] = defaultdict(int)
        self._duplicates_by_feed: dict[str, int] = defaultdict(int)
        self._errors_by_feed: dict[str, int] = defaultdict(int)
        self._operation_times: dict[str, dict[str, list[float]]] = defaultdict(lambda: defaultdict(list))
        self._start_time: datetime | None = None
        self._prometheus_enabled = False
        self._prometheus_prefix = prometheus_prefix

        if enable_prometheus:
            self._init_prometheus()

    @property
    def prometheus_enabled(self) -> bool:
        """Whether Prometheus metrics are enabled."""
        return self._prometheus_enabled

    @property
    def started_at(self) -> datetime | None:
        """When collection started, if ``start()`` was called."""
        return self._start_time

    def _init_prometheus(self) -> None:
        """Initialize Prometheus metrics if available."""
        try:
            from prometheus_client import Counter, Histogram
        except ImportError:
            logger.warning(
                "prometheus_client not installed. "
                "Install with: pip install emwin-tg[metrics]"
            )
            return

        prefix = self._prometheus_prefix

        self._prom_fetches = Counter(
            f"{prefix}_fetches_total",
            "Feed fetches by outcome",
            ["feed", "outcome"],
        )
        self._prom_products = Counter(
            f"{prefix}_products_total",
            "Products delivered",
            ["feed", "category"],
        )
        self._prom_duplicates = Counter(
            f"{prefix}_duplicates_total",
            "Listed products suppressed as already seen",
            ["feed"],
        )
        self._prom_errors = Counter(
            f"{prefix}_errors_total",
            "Errors delivered",
            ["feed", "error_type"],
        )
        self._prom_fetch_duration = Histogram(
            f"{prefix}_fetch_duration_seconds",
            "Time to fetch a feed, including retries",
            ["feed"],
            buckets=(0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0),
        )
        self._prom_expand_duration = Histogram(
            f"{prefix}_expand_duration_seconds",
            "Time to expand an archive",
            ["feed"],
            buckets=(0.01, 0.05, 0.1, 0.5, 1.0, 5.0, 10.0),
        )

        self._prometheus_enabled = True
        logger.info("Prometheus metrics enabled")

    def start(self) -> None:
        """Mark the start of collection."""
        self._start_time = datetime.now(UTC)

    def record_fetch(self, feed: str, outcome: str) -> None:
        """Record how one fetch turned out.

        Args:
            feed: Feed name
            outcome: One of "fresh", "not_modified" or "error"
        """
        if outcome not in FETCH_OUTCOMES:
            raise ValueError(f"Unknown fetch outcome: {outcome!r}")
        self._fetches[feed][outcome] += 1

        if self._prometheus_enabled:
            self._prom_fetches.labels(feed=feed, outcome=outcome).inc()

    def record_products(
        self,
        feed: str,
        category: str = "unknown",
        count: int = 1,
    ) -> None:
        """Record delivered products.

        Args:
            feed: Feed name
            category: Product category (MIME type)
            count: Number of products
        """
        self._products_by_feed[feed] += count
        self._products_by_category[category] += count

        if self._prometheus_enabled:
            self._prom_products.labels(feed=feed, category=category).inc(count)

    def record_duplicates(self, feed: str, count: int) -> None:
        """Record listed products that were already seen."""
        if count <= 0:
            return
        self._duplicates_by_feed[feed] += count

        if self._prometheus_enabled:
            self._prom_duplicates.labels(feed=feed).inc(count)

    def record_error(
        self,
        feed: str,
        error_type: str = "unknown",
    ) -> None:
        """Record an error.

        Args:
            feed: Feed name
            error_type: Type of error (e.g. the exception class name)
        """
        self._errors_by_feed[feed] += 1

        if self._prometheus_enabled:
            self._prom_errors.labels(feed=feed, error_type=error_type).inc()

    @contextmanager
    def time_operation(
        self,
        operation: str,
        feed: str = "default",
    ) -> Generator[None, None, None]:
        """Context manager to time an operation.

        Args:
            operation: Operation type ("fetch", "expand")
            feed: Feed name

        Example:
            >>> metrics = CollectionMetrics()
            >>> with metrics.time_operation("expand", feed="text-2min"):
            ...     pass
        """
        start = time.perf_counter()
        try:
            yield
        finally:
            duration = time.perf_counter() - start
            self._operation_times[operation][feed].append(duration)

            if self._prometheus_enabled:
                if operation == "fetch":
                    self._prom_fetch_duration.labels(feed=feed).observe(duration)
                elif operation == "expand":
                    self._prom_expand_duration.labels(feed=feed).observe(duration)

    def summary(self) -> MetricsSummary:
        """Get metrics summary.

        Returns:
            MetricsSummary with aggregated metrics
        """
        fetch_times = self._operation_times.get("fetch", {})
        expand_times = self._operation_times.get("expand", {})

        operation_totals = {
            op: {feed: sum(times) for feed, times in feeds.items()}
            for op, feeds in self._operation_times.items()
        }

        return MetricsSummary(
            total_products=sum(self._products_by_feed.values()),
            total_duplicates=sum(self._duplicates_by_feed.values()),
            total_errors=sum(self._errors_by_feed.values()),
            total_fetch_time=sum(sum(times) for times in fetch_times.values()),
            total_expand_time=sum(sum(times) for times in expand_times.values()),
            fetches={feed: dict(outcomes) for feed, outcomes in self._fetches.items()},
            products_by_feed=dict(self._products_by_feed),
            products_by_category=dict(self._products_by_category),
            errors_by_feed=dict(self._errors_by_feed),
            operation_times=operation_totals,
        )

    def reset(self) -> None:
        """Reset all metrics."""
        self._fetches.clear()
        self._products_by_feed.clear()
        self._products_by_category.clear()
        self._duplicates_by_feed.clear()
        self._errors_by_feed.clear()
        self._operation_times.clear()
        self._start_time = None

    def to_dict(self) -> dict[str, Any]:
        """Export metrics as dictionary."""
        return self.summary().to_dict()


__all__ = [
    "CollectionMetrics",
    "FETCH_OUTCOMES",
    "MetricsSummary",
]
