"""
Lazy iteration over paginated collections.

A page fetcher returns Page objects; iterate_pages drives it forward and
flattens the items. Each call starts a new, independent sequence.
"""

import logging
from collections.abc import AsyncIterator, Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

PageFetcher = Callable[[Any], Awaitable["Page[T]"]]


@dataclass
class Page(Generic[T]):
    """
    One page of a collection.

    Attributes:
        items: Items in provider order
        has_more: True if another page may exist
        next_cursor: Cursor, offset or URI for the next page
    """

    items: list[T] = field(default_factory=list)
    has_more: bool = False
    next_cursor: Any = None

    @classmethod
    def from_sized(cls, items: Sequence[T], page_size: int, next_cursor: Any = None) -> "Page[T]":
        """
        Build a page for providers without an explicit has-more signal.

        A full page is assumed to have a successor; the next fetch confirms it.
        """
        items = list(items)
        return cls(items=items, has_more=page_size > 0 and len(items) >= page_size, next_cursor=next_cursor)


async def iterate_pages(
    fetch_page: PageFetcher,
    first_cursor: Any = None,
    max_pages: int | None = None,
) -> AsyncIterator[T]:
    """
    Yield items across pages in order.

    Stops when a page reports no more results, has no next cursor, or
    repeats the cursor it was fetched with.

    Args:
        fetch_page: Coroutine function fetching the page for a cursor
        first_cursor: Cursor for the first page
        max_pages: Optional cap on pages fetched

    Yields:
        Items of each page, in page order
    """
    cursor = first_cursor
    pages_fetched = 0

    while True:
        page = await fetch_page(cursor)
        pages_fetched += 1

        for item in page.items:
            yield item

        if not page.has_more or page.next_cursor is None:
            return
        if page.next_cursor == cursor:
            logger.warning(
                "Pagination cursor did not advance, stopping",
                extra={"cursor": str(cursor), "pages_fetched": pages_fetched},
            )
            return
        if max_pages is not None and pages_fetched >= max_pages:
            logger.debug("Page limit reached", extra={"pages_fetched": pages_fetched})
            return
        cursor = page.next_cursor


async def collect(items: AsyncIterator[T], limit: int | None = None) -> list[T]:
    """Drain an async iterator into a list, optionally stopping after limit items."""
    result: list[T] = []
    async for item in items:
        result.append(item)
        if limit is not None and len(result) >= limit:
            break
    return result


__all__ = ["Page", "PageFetcher", "iterate_pages", "collect"]
