"""Read-only, paginated views over the stocking store."""

from __future__ import annotations

from collections.abc import AsyncIterator

from pytrout._constants import DEFAULT_PAGE_SIZE
from pytrout.models.filters import PageCursor, StockingFilters
from pytrout.models.stocking import StockingRecord
from pytrout.store import StockingStore


class QueryService:
    """Filtered keyset pagination for presentation code.

    Chaining :meth:`next_page` with the cursor of each page's last record
    visits every matching record exactly once, in canonical order, while
    the store only grows. Records inserted ahead of the cursor are not
    seen by that walk.
    """

    def __init__(self, store: StockingStore, *, page_size: int = DEFAULT_PAGE_SIZE) -> None:
        self._store = store
        self._page_size = page_size

    def _size(self, page_size: int | None) -> int:
        return self._page_size if page_size is None else page_size

    async def first_page(
        self,
        filters: StockingFilters | None = None,
        page_size: int | None = None,
    ) -> list[StockingRecord]:
        return await self._store.query_page(filters, None, self._size(page_size))

    async def next_page(
        self,
        filters: StockingFilters | None,
        cursor: PageCursor,
        page_size: int | None = None,
    ) -> list[StockingRecord]:
        return await self._store.query_page(filters, cursor, self._size(page_size))

    async def iterate(
        self,
        filters: StockingFilters | None = None,
        page_size: int | None = None,
    ) -> AsyncIterator[StockingRecord]:
        """Yield every matching record, fetching one page at a time."""
        size = self._size(page_size)
        page = await self.first_page(filters, size)
        while page:
            for record in page:
                yield record
            if len(page) < size:
                return
            page = await self.next_page(filters, PageCursor.from_record(page[-1]), size)

    async def counties(self) -> list[str]:
        return await self._store.distinct_counties()

    async def categories(self) -> list[str]:
        return await self._store.distinct_categories()

    async def recent_for_waterbody(self, waterbody: str, limit: int = 10) -> list[StockingRecord]:
        return await self._store.recent_for_waterbody(waterbody, limit)
