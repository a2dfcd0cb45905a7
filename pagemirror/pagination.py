"""
Cursor pagination for pagemirror.

This module provides the Page container returned by every PageFetcher and the
PagingIterator that walks a remote collection one page at a time.
"""

from collections.abc import Callable, Iterator
from dataclasses import dataclass
from typing import Generic, TypeVar

from ._logging import logger, redact_key
from .exceptions import ProtocolError

T = TypeVar("T")


@dataclass
class Page(Generic[T]):
    """
    Represents a single page of results with pagination cursor.

    Attributes:
        items: Items of this page, in server order
        next_cursor: Cursor for the next page (None or "" if this is the last page)
        count: Number of items in this page
    """

    items: list[T]
    next_cursor: str | None = None
    count: int = -1

    def __post_init__(self) -> None:
        if self.count < 0:
            self.count = len(self.items)

    @property
    def has_more(self) -> bool:
        """Returns True if there are more pages available."""
        return bool(self.next_cursor)


# Given the cursor of the page to load (None for the first page), returns that page.
PageFetcher = Callable[[str | None], Page[T]]

# Drops ineligible items from a fetched batch.
PageFilter = Callable[[list[T]], list[T]]


class PagingIterator(Generic[T]):
    """
    Restartable lazy walk over a cursor-paginated collection.

    Every call to next_batch() performs exactly one fetch. An empty page that
    still carries a cursor does not end the walk; only a page without a cursor
    does. A failing fetch leaves the cursor where it was, so calling
    next_batch() again repeats the same request.

    Instances are not meant to be shared between independent scans: each
    logical scan owns its iterator.
    """

    def __init__(
        self,
        fetcher: PageFetcher[T],
        page_filter: PageFilter[T] | None = None,
        name: str = "collection",
    ) -> None:
        self.fetcher = fetcher
        self.page_filter = page_filter
        self.name = name

        self._cursor: str | None = None
        self._exhausted = False
        self.pages_fetched = 0

    @property
    def has_next(self) -> bool:
        """True until a fetched page reports no next cursor."""
        return not self._exhausted

    @property
    def cursor(self) -> str | None:
        """Cursor that the next fetch will send (None before the first page)."""
        return self._cursor

    def reset(self) -> None:
        """Returns to the initial cursor state. Safe to call at any time."""
        self._cursor = None
        self._exhausted = False

    def next_batch(self) -> list[T]:
        """
        Fetches the next page and returns its (filtered) items.

        Raises:
            StopIteration: If the collection was already fully walked
            ProtocolError: If the fetcher did not return a Page
        """
        if self._exhausted:
            raise StopIteration

        logger.debug(
            "Fetching page",
            extra={
                "collection": self.name,
                "operation": "fetch_page",
                "page": self.pages_fetched,
                "cursor_hash": redact_key(self._cursor),
            },
        )

        page = self.fetcher(self._cursor)
        if not isinstance(page, Page):
            raise ProtocolError(
                f"Page fetcher for '{self.name}' returned {type(page).__name__}, expected Page"
            )

        items = list(page.items)
        if self.page_filter is not None:
            items = self.page_filter(items)

        # Only advance once the page has arrived intact and passed the filter
        self.pages_fetched += 1
        if page.has_more:
            self._cursor = page.next_cursor
        else:
            self._cursor = None
            self._exhausted = True

        logger.debug(
            "Page received",
            extra={
                "collection": self.name,
                "operation": "fetch_page",
                "count": page.count,
                "kept": len(items),
                "has_more": page.has_more,
            },
        )
        return items

    def collect_all(self) -> list[T]:
        """
        Walks the whole collection from the start and concatenates every page.
        WARNING: Loads the entire collection into memory.
        """
        self.reset()
        result: list[T] = []
        while self.has_next:
            result.extend(self.next_batch())
        return result

    def __iter__(self) -> Iterator[list[T]]:
        return self

    def __next__(self) -> list[T]:
        return self.next_batch()
