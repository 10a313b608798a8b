"""Continuation-link pagination.

The walker asks for the first page without a link, then keeps passing the
previous page's ``@odata.nextLink`` back until a page arrives without one.
The server-supplied link already encodes the original query options.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Awaitable, Callable
from time import perf_counter
from typing import Any

from ..models.page import ODataPage
from .telemetry import log_fetch_all_complete, log_page_fetched, log_page_limit_reached

FetchPage = Callable[[str | None], Awaitable[ODataPage]]


class PageWalker:
    """Follows next links across an entity set.

    Args:
        fetch_page: Coroutine returning the page for a continuation link
            (None for the first page)
        entity: Entity set name, used for logging only
        max_pages: Optional safety cutoff; the walk stops after this many pages
            even if the server still returns a next link
    """

    def __init__(
        self,
        fetch_page: FetchPage,
        *,
        entity: str = "",
        max_pages: int | None = None,
    ) -> None:
        if max_pages is not None and max_pages < 1:
            raise ValueError("max_pages must be at least 1")
        self._fetch_page = fetch_page
        self._entity = entity
        self._max_pages = max_pages
        self.pages_fetched = 0
        self.truncated = False

    async def iter_pages(self) -> AsyncIterator[ODataPage]:
        """Yield pages in arrival order."""
        next_link: str | None = None
        self.pages_fetched = 0
        self.truncated = False

        while True:
            start = perf_counter()
            page = await self._fetch_page(next_link)
            self.pages_fetched += 1
            log_page_fetched(
                entity=self._entity,
                page=self.pages_fetched,
                records=len(page.value),
                has_next_link=page.has_next,
                latency_ms=(perf_counter() - start) * 1000.0,
            )
            yield page

            if page.next_link is None:
                return
            if self._max_pages is not None and self.pages_fetched >= self._max_pages:
                self.truncated = True
                return
            next_link = page.next_link

    async def fetch_all(self) -> list[Any]:
        """Concatenate the records of every page."""
        records: list[Any] = []
        async for page in self.iter_pages():
            records.extend(page.value)

        if self.truncated:
            log_page_limit_reached(
                entity=self._entity, max_pages=self._max_pages or 0, records=len(records)
            )
        log_fetch_all_complete(
            entity=self._entity, pages=self.pages_fetched, total_records=len(records)
        )
        return records
