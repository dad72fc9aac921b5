"""Paged collections of cached items.

Providers typically return long collections (an album's tracks, a
playlist's songs) one page at a time.  :class:`ItemBatch` pairs one page of
items with the :class:`~etagcache.models.Batch` window it came from, and
:meth:`ItemBatch.resize` re-slices a page for a consumer that wants a
different page size without refetching.
"""

from __future__ import annotations

from typing import Generic, TypeVar

from pydantic import BaseModel, Field

from etagcache.models import Batch

T = TypeVar("T")


class ItemBatch(BaseModel, Generic[T]):
    """One page of items together with its pagination window.

    Example::

        page = ItemBatch[str](items=["1", "2", "3", "4"], batch=Batch.first_of_size(4))
        halves = page.resize(2)
        assert [b.batch.offset for b in halves] == [0, 2]
    """

    items: list[T] = Field(default_factory=list)
    batch: Batch

    @classmethod
    def empty(cls) -> ItemBatch[T]:
        """Return a page with no items and a one-item window."""
        return cls(items=[], batch=Batch.first_of_size(1))

    def resize(self, batch_size: int) -> list[ItemBatch[T]]:
        """Re-slice this page into pages of at most *batch_size* items.

        Growing the page size keeps the items together and only relabels
        the window.  Shrinking it splits the items into consecutive pages
        whose offsets continue from this page's offset.

        Raises:
            ValueError: If *batch_size* is smaller than 1.
        """
        if batch_size < 1:
            raise ValueError(f"batch_size must be at least 1, got {batch_size}")

        if batch_size > self.batch.batch_size:
            relabelled = self.batch.model_copy(update={"batch_size": batch_size})
            return [type(self)(items=list(self.items), batch=relabelled)]

        return [
            type(self)(
                items=self.items[start:start + batch_size],
                batch=Batch(
                    offset=self.batch.offset + start,
                    batch_size=batch_size,
                    total=self.batch.total,
                ),
            )
            for start in range(0, len(self.items), batch_size)
        ]
