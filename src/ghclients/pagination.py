"""Pagination over GitHub REST collections.

The engine never builds requests itself. Callers hand it a page-fetch
function that returns one page of items together with the raw response, and
the engine decides which pages to request from the response's ``Link``
header.

Three strategies are offered:

- :meth:`PaginationEngine.get_all_data` fetches every page, the remaining
  pages concurrently, and returns the items in page order.
- :meth:`PaginationEngine.get_all_data_until` stops as soon as one page
  satisfies a predicate. After the first page, it scans from both ends of the
  collection at once: the first half of the pages ascending and the second
  half descending. Recently created items tend to sit on the first or last
  pages depending on the endpoint's sort order, so this finds them sooner than
  a front-to-back scan. When several pages match, the page returned is not
  necessarily the lowest numbered one.
- :meth:`PaginationEngine.get_all_filtered_data` fetches every page and
  filters the full collection.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import TypeVar

import httpx

from ghclients.config import MAX_QTY_PER_PAGE, MIN_QTY_PER_PAGE
from ghclients.errors import PaginationError, is_known_error
from ghclients.link_header import LinkHeaderParser
from ghclients.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

PageFetchFunc = Callable[[int, int], Awaitable[tuple[list[T], httpx.Response]]]

PAGINATION_ERROR_MESSAGE = "There was an issue getting all of the data using pagination."


def _pagination_error(error: Exception) -> PaginationError:
    logger.debug("Pagination failed: %s", error)
    return PaginationError(f"{PAGINATION_ERROR_MESSAGE}\n{error}")


def _next_page_after(
    parser: LinkHeaderParser, response: httpx.Response, current_page: int
) -> int:
    link_header = parser.to_link_header(response)
    if link_header is None or link_header.next_page <= current_page:
        return 0
    return link_header.next_page


def clamp_page(page: int) -> int:
    """Clamp a page number to a minimum of 1."""
    return max(page, 1)


def clamp_qty_per_page(qty_per_page: int) -> int:
    """Clamp a page size into GitHub's allowed range of 1 to 100."""
    return max(MIN_QTY_PER_PAGE, min(qty_per_page, MAX_QTY_PER_PAGE))


def create_alternate_page_groups(total_pages: int) -> tuple[list[int], list[int]]:
    """Split pages ``1..total_pages`` into two halves for alternating requests.

    Args:
        total_pages: The total number of pages.

    Returns:
        The first half of the pages in ascending order and the second half in
        descending order. For 5 pages: ``([1, 2], [5, 4, 3])``.
    """
    first_half_end = total_pages // 2
    first_half = list(range(1, first_half_end + 1))
    second_half = list(range(total_pages, first_half_end, -1))
    return first_half, second_half


class PaginationEngine:
    """Drives a page-fetch function over a paginated collection.

    The engine is stateless between calls; one instance can be shared by
    every client.
    """

    def __init__(self, link_parser: LinkHeaderParser | None = None) -> None:
        self._link_parser = link_parser or LinkHeaderParser()

    async def get_all_data(
        self,
        fetch: PageFetchFunc[T],
        page: int = 1,
        qty_per_page: int = MAX_QTY_PER_PAGE,
    ) -> list[T]:
        """Get every item from the given page to the last page.

        The first page is fetched on its own; the remaining pages are then
        requested concurrently. Items are returned in page order regardless
        of the order the requests complete in. If the last page fetched still
        links to a ``next`` page, as when GitHub omits the ``last`` link, the
        following pages are fetched one at a time.

        Args:
            fetch: Function that returns one page of items and its response.
            page: The page to start from. Values below 1 are treated as 1.
            qty_per_page: Items per page, clamped to 1-100.

        Returns:
            All items from the start page onward.

        Raises:
            GitHubClientError: Known client errors raised by ``fetch`` are
                re-raised unchanged.
            PaginationError: If ``fetch`` raises any other exception.
        """
        page = clamp_page(page)
        qty_per_page = clamp_qty_per_page(qty_per_page)

        try:
            items, response = await fetch(page, qty_per_page)
            all_data = list(items)

            link_header = self._link_parser.to_link_header(response)
            if link_header is None:
                # No pagination information: a single page
                return all_data

            remaining_pages = range(page + 1, link_header.total_pages + 1)
            logger.debug(
                "Fetching %d remaining pages concurrently (last page %d)",
                len(remaining_pages),
                link_header.total_pages,
                extra={"diagnostic_tag": "pagination"},
            )

            results = await asyncio.gather(
                *(fetch(page_number, qty_per_page) for page_number in remaining_pages)
            )
            for page_items, _ in results:
                all_data.extend(page_items)
            pages_fetched = 1 + len(remaining_pages)

            # Without a "last" link the header only reaches the next page
            last_page = max(link_header.total_pages, page)
            last_response = results[-1][1] if results else response
            next_page = _next_page_after(self._link_parser, last_response, last_page)
            while next_page:
                page_items, last_response = await fetch(next_page, qty_per_page)
                all_data.extend(page_items)
                pages_fetched += 1
                last_page = next_page
                next_page = _next_page_after(self._link_parser, last_response, last_page)
        except Exception as e:
            if is_known_error(e):
                raise
            raise _pagination_error(e) from e

        logger.debug("Retrieved %d items across %d pages", len(all_data), pages_fetched)
        return all_data

    async def get_all_data_until(
        self,
        fetch: PageFetchFunc[T],
        page: int = 1,
        qty_per_page: int = MAX_QTY_PER_PAGE,
        until: Callable[[list[T]], bool] | None = None,
    ) -> list[T]:
        """Get the first page of items found that satisfies ``until``.

        The start page is checked first. If it does not match, the remaining
        pages are requested two at a time, one from each end of the
        collection (see :func:`create_alternate_page_groups`). Both requests
        of a round are awaited before their results are checked, the
        ascending half first.

        Args:
            fetch: Function that returns one page of items and its response.
            page: The page to start from. Values below 1 are treated as 1.
            qty_per_page: Items per page, clamped to 1-100.
            until: Predicate over one page of items; paging stops at the
                first page for which it returns True.

        Returns:
            The items of the matching page, or an empty list if no page matches.

        Raises:
            ValueError: If ``until`` is not given.
            GitHubClientError: Known client errors raised by ``fetch`` are
                re-raised unchanged.
            PaginationError: If ``fetch`` raises any other exception.
        """
        if until is None:
            raise ValueError("The 'until' predicate is required")

        page = clamp_page(page)
        qty_per_page = clamp_qty_per_page(qty_per_page)

        try:
            items, response = await fetch(page, qty_per_page)

            if until(items):
                return items

            link_header = self._link_parser.to_link_header(response)
            total_pages = link_header.total_pages if link_header else 0

            group_a, group_b = create_alternate_page_groups(total_pages)

            # Pages up to the start page have already been covered
            group_a = [p for p in group_a if p > page]
            group_b = [p for p in group_b if p > page]

            for round_number in range(max(len(group_a), len(group_b))):
                page_a = group_a[round_number] if round_number < len(group_a) else None
                page_b = group_b[round_number] if round_number < len(group_b) else None

                logger.debug(
                    "Searching pages %s and %s",
                    page_a,
                    page_b,
                    extra={"diagnostic_tag": "pagination"},
                )

                items_a, items_b = await asyncio.gather(
                    self._fetch_items(fetch, page_a, qty_per_page),
                    self._fetch_items(fetch, page_b, qty_per_page),
                )

                if items_a and until(items_a):
                    return items_a

                if items_b and until(items_b):
                    return items_b
        except Exception as e:
            if is_known_error(e):
                raise
            raise _pagination_error(e) from e

        return []

    async def get_all_filtered_data(
        self,
        fetch: PageFetchFunc[T],
        page: int = 1,
        qty_per_page: int = MAX_QTY_PER_PAGE,
        filter: Callable[[list[T]], list[T]] | None = None,
    ) -> list[T]:
        """Get every item from the given page onward, then filter the collection.

        Args:
            fetch: Function that returns one page of items and its response.
            page: The page to start from. Values below 1 are treated as 1.
            qty_per_page: Items per page, clamped to 1-100.
            filter: Function applied once to the full collection.

        Returns:
            The filtered items.

        Raises:
            ValueError: If ``filter`` is not given.
            GitHubClientError: Known client errors are re-raised unchanged.
            PaginationError: If ``fetch`` or ``filter`` raises any other exception.
        """
        if filter is None:
            raise ValueError("The 'filter' function is required")

        all_data = await self.get_all_data(fetch, page, qty_per_page)

        try:
            return filter(all_data)
        except Exception as e:
            if is_known_error(e):
                raise
            raise _pagination_error(e) from e

    @staticmethod
    async def _fetch_items(fetch: PageFetchFunc[T], page: int | None, qty_per_page: int) -> list[T]:
        if page is None:
            return []
        items, _ = await fetch(page, qty_per_page)
        return items
