"""Cursor-based enumeration over a remote listing endpoint."""

from __future__ import annotations

import logging
from typing import Any, Callable, Iterator

from mechain_cmd.cancellation import CancellationToken
from mechain_cmd.errors import OperationCancelledError, TransportFailureError
from mechain_cmd.types import ListingFilter, Page, PageCursor

logger = logging.getLogger(__name__)

FetchPage = Callable[[ListingFilter, PageCursor], Page]


class Paginator:
    """Lazy, forward-only enumeration of a listing endpoint.

    A failed fetch stops the enumeration. ``last_cursor`` is the cursor of the
    next page to fetch, so a caller can resume from it with ``start=``; nothing
    is persisted across runs.
    """

    def __init__(self, fetch: FetchPage) -> None:
        self._fetch = fetch
        self.last_cursor = PageCursor()
        self.pages_fetched = 0

    def next_page(self, cursor: PageCursor, listing_filter: ListingFilter) -> Page:
        if cursor.exhausted:
            raise ValueError("cursor is exhausted; no further pages exist")
        page = self._fetch(listing_filter, cursor)
        self.pages_fetched += 1
        if not page.cursor.exhausted and page.cursor.token in ("", cursor.token):
            raise TransportFailureError(
                "listing endpoint reported more pages without a new continuation token"
            )
        logger.debug(
            "fetched page %d with %d items (exhausted=%s)",
            self.pages_fetched,
            len(page.items),
            page.cursor.exhausted,
        )
        return page

    def iter_pages(
        self,
        listing_filter: ListingFilter,
        *,
        start: PageCursor | None = None,
        cancel: CancellationToken | None = None,
    ) -> Iterator[Page]:
        cursor = start or PageCursor()
        self.last_cursor = cursor
        while not cursor.exhausted:
            if cancel is not None and cancel.cancelled:
                raise OperationCancelledError("cancelled before fetching the next page")
            page = self.next_page(cursor, listing_filter)
            cursor = page.cursor
            self.last_cursor = cursor
            yield page

    def iter_items(
        self,
        listing_filter: ListingFilter,
        *,
        start: PageCursor | None = None,
        cancel: CancellationToken | None = None,
    ) -> Iterator[Any]:
        for page in self.iter_pages(listing_filter, start=start, cancel=cancel):
            yield from page.items
