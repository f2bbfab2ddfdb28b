"""emwin-tg metrics and observability.

Provides structured metrics collection for monitoring feed streams.
Supports optional Prometheus integration.

Example:
    >>> from emwin_tg.metrics import CollectionMetrics
    >>>
    >>> metrics = CollectionMetrics()
    >>> metrics.record_fetch("text-2min", "not_modified")
    >>> metrics.record_products("text-2min", category="text/plain", count=12)
    >>>
    >>> # Get summary
    >>> print(metrics.summary())
"""

from emwin_tg.metrics.collector import CollectionMetrics, MetricsSummary

__all__ = [
    "CollectionMetrics",
    "MetricsSummary",
]
