"""Time-windowed registry of product names already delivered.

EMWIN archives are republished on a schedule and overlap heavily, so the
same product shows up in many consecutive batches. The registry remembers
every name it was shown together with when it was last shown, and answers
which names in a new batch have not been seen within the retention window.

Example:
    >>> from emwin_tg.cache.seen import SeenRegistry
    >>> seen = SeenRegistry()
    >>> seen.filter_new(["A.TXT", "B.TXT"])
    ['A.TXT', 'B.TXT']
    >>> seen.filter_new(["B.TXT", "C.TXT"])
    ['C.TXT']
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterable
from datetime import UTC, datetime, timedelta

logger = logging.getLogger(__name__)

RETENTION_WINDOW = timedelta(hours=6)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class SeenRegistry:
    """Shared "seen" set keyed by product name.

    One registry is shared by every feed of a stream, so a name delivered
    from one feed suppresses the same name arriving from another. All
    access goes through a single lock; callers run on worker threads.

    A name is new when it is absent or was last seen a full retention
    window ago or longer. Seeing a name again refreshes its timestamp, so
    products that stay in circulation are never re-delivered.

    Example:
        >>> from datetime import UTC, datetime, timedelta
        >>> from emwin_tg.cache.seen import SeenRegistry
        >>> seen = SeenRegistry()
        >>> t0 = datetime(2024, 1, 1, tzinfo=UTC)
        >>> seen.filter_new(["X.TXT"], now=t0)
        ['X.TXT']
        >>> seen.filter_new(["X.TXT"], now=t0 + timedelta(hours=5))
        []
        >>> seen.filter_new(["Y.TXT"], now=t0 + timedelta(hours=12))
        ['Y.TXT']
        >>> "X.TXT" in seen
        False
    """

    def __init__(
        self,
        retention: timedelta = RETENTION_WINDOW,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        """Initialize the registry.

        Args:
            retention: How long a name stays "seen" after its last sighting.
            clock: Source of the current time.
        """
        if retention <= timedelta(0):
            raise ValueError("retention must be positive")
        self._retention = retention
        self._clock = clock
        self._last_seen: dict[str, datetime] = {}
        self._lock = threading.Lock()

    @property
    def retention(self) -> timedelta:
        """Retention window."""
        return self._retention

    def filter_new(self, names: Iterable[str], now: datetime | None = None) -> list[str]:
        """Record a batch of names and return those not seen before.

        Names are processed in the order given and the registry is updated
        as it goes, so a name repeated within one batch is only returned
        the first time. Stale entries are evicted on every call.

        Args:
            names: Member names, normally sorted.
            now: Timestamp for this call (default: the registry's clock).

        Returns:
            The genuinely new names, in input order.
        """
        with self._lock:
            if now is None:
                now = self._clock()
            self._evict(now)

            new: list[str] = []
            for name in names:
                previous = self._last_seen.get(name)
                if previous is not None:
                    # Seen recently: refresh, never move backwards.
                    self._last_seen[name] = max(previous, now)
                    continue

                logger.debug("new file: %s", name)
                self._last_seen[name] = now
                new.append(name)

            return new

    def _evict(self, now: datetime) -> int:
        """Remove every entry last seen a full retention window ago."""
        before = len(self._last_seen)
        cutoff = now - self._retention
        self._last_seen = {
            name: seen_at for name, seen_at in self._last_seen.items() if seen_at > cutoff
        }
        after = len(self._last_seen)
        if before != after:
            logger.debug("seen registry culled from %d -> %d entries", before, after)
        return before - after

    def last_seen(self, name: str) -> datetime | None:
        """When a name was last seen, if it is still retained."""
        with self._lock:
            return self._last_seen.get(name)

    def __contains__(self, name: object) -> bool:
        with self._lock:
            return name in self._last_seen

    def __len__(self) -> int:
        """Number of retained names (stale entries are dropped on next filter)."""
        with self._lock:
            return len(self._last_seen)
