"""Pipeline - from a fetched archive to the products worth delivering.

The pipeline handles the complete flow of:
1. Opening the fetched bytes as an archive
2. Listing member names in sorted order
3. Filtering names through the shared seen registry
4. Extracting each new member into a Product

A member that fails to extract becomes an error in the batch in place of
its product; its siblings are unaffected. An archive that cannot be opened
at all raises ``ArchiveFormatError``.

Example:
    >>> import io, zipfile
    >>> from emwin_tg.cache.seen import SeenRegistry
    >>> from emwin_tg.pipeline import ProductPipeline
    >>> buf = io.BytesIO()
    >>> with zipfile.ZipFile(buf, "w") as zf:
    ...     zf.writestr("B.TXT", "b")
    ...     zf.writestr("A.TXT", "a")
    >>> pipeline = ProductPipeline(SeenRegistry())
    >>> batch = pipeline.process(buf.getvalue(), feed_name="test")
    >>> [p.filename for p in batch.products]
    ['A.TXT', 'B.TXT']
    >>> pipeline.process(buf.getvalue(), feed_name="test").duplicates
    2
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from datetime import UTC, datetime

from emwin_tg.archive.expander import ArchiveExpander
from emwin_tg.cache.seen import SeenRegistry
from emwin_tg.core.exceptions import ArchiveMemberError, EmwinError
from emwin_tg.models.product import Product, ProductResult

logger = logging.getLogger(__name__)


@dataclass
class BatchResult:
    """Outcome of expanding one fetched archive.

    Example:
        >>> from emwin_tg.pipeline import BatchResult
        >>> batch = BatchResult(feed_name="text-2min", listed=10, new=4)
        >>> batch.duplicates
        6
    """

    feed_name: str
    listed: int = 0
    new: int = 0
    results: list[ProductResult] = field(default_factory=list)
    duration_ms: float = 0.0
    started_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @property
    def duplicates(self) -> int:
        """Listed members suppressed as already seen."""
        return self.listed - self.new

    @property
    def products(self) -> list[Product]:
        """Successfully extracted products, in delivery order."""
        return [r for r in self.results if isinstance(r, Product)]

    @property
    def errors(self) -> list[EmwinError]:
        """Per-member failures, in delivery order."""
        return [r for r in self.results if isinstance(r, EmwinError)]


class ProductPipeline:
    """Expands archives and keeps only products not delivered before.

    Archive work is blocking, so ``run()`` executes ``process()`` on a
    worker thread. The seen registry may be shared by several pipelines.

    Args:
        seen: Registry of names already delivered.
        expander: Archive expander (default: 8 MiB member limit).
    """

    def __init__(
        self,
        seen: SeenRegistry,
        expander: ArchiveExpander | None = None,
    ) -> None:
        self._seen = seen
        self._expander = expander or ArchiveExpander()

    @property
    def seen(self) -> SeenRegistry:
        """The shared seen registry."""
        return self._seen

    @property
    def expander(self) -> ArchiveExpander:
        """The archive expander."""
        return self._expander

    def process(self, payload: bytes, feed_name: str = "archive") -> BatchResult:
        """Expand one payload into new products.

        Args:
            payload: Raw archive bytes.
            feed_name: Feed name for logging and the result.

        Returns:
            BatchResult with products and per-member errors in name order.

        Raises:
            ArchiveFormatError: If the payload is not a readable archive.
        """
        start_time = time.perf_counter()
        batch = BatchResult(feed_name=feed_name)

        with self._expander.open(payload) as archive:
            names = self._expander.expand(archive)
            new_names = self._seen.filter_new(names)
            batch.listed = len(names)
            batch.new = len(new_names)

            logger.info("%s: %d of %d products are new", feed_name, batch.new, batch.listed)

            for name in new_names:
                try:
                    batch.results.append(self._expander.extract(archive, name))
                except ArchiveMemberError as e:
                    logger.warning("%s: %s", feed_name, e)
                    batch.results.append(e)

        batch.duration_ms = (time.perf_counter() - start_time) * 1000
        return batch

    async def run(self, payload: bytes, feed_name: str = "archive") -> BatchResult:
        """Run ``process()`` on a worker thread."""
        return await asyncio.to_thread(self.process, payload, feed_name)
