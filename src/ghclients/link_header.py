"""Parsing of GitHub ``Link`` response headers into page pointers.

GitHub paginates REST collections with a standard ``Link`` header::

    <https://api.github.com/repositories/1/labels?page=2&per_page=100>; rel="next",
    <https://api.github.com/repositories/1/labels?page=5&per_page=100>; rel="last"

The parser reduces that header to the previous, next and last page numbers.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

import httpx

LINK_HEADER_NAME = "Link"

_PAGE_NUMBER_PATTERN = re.compile(r"(?:^|[?&<])page=([0-9]+)")


@dataclass(frozen=True)
class PageLink:
    """One section of a ``Link`` header: the page URL and its metadata."""

    page_url: str
    metadata: str


@dataclass(frozen=True)
class LinkHeaderInfo:
    """Pagination information parsed from a ``Link`` header.

    A relation missing from the header leaves its page number at 0.

    Attributes:
        prev_page: The previous page number.
        next_page: The next page number.
        total_pages: The last page number, which is also the total page count.
        page_data: Every section of the header in order, including relations
            that do not set a page number (such as ``rel="first"``).
    """

    prev_page: int = 0
    next_page: int = 0
    total_pages: int = 0
    page_data: tuple[PageLink, ...] = ()


class LinkHeaderParser:
    """Parses ``Link`` headers to collect pagination information."""

    def to_link_header(
        self, response_or_header: httpx.Response | str | None
    ) -> LinkHeaderInfo | None:
        """Parse the ``Link`` header of a response, or a raw header string.

        Args:
            response_or_header: An HTTP response whose ``Link`` header is read,
                or the header value itself.

        Returns:
            The parsed pagination information, or None when there is no
            ``Link`` header. None means "no pagination information": callers
            treat the collection as a single page. When the header has a
            ``next`` link but no ``last`` link, ``total_pages`` is at least
            the ``next`` page.
        """
        if isinstance(response_or_header, httpx.Response):
            header = response_or_header.headers.get(LINK_HEADER_NAME)
        else:
            header = response_or_header

        if not header or not header.strip():
            return None

        prev_page = 0
        next_page = 0
        total_pages = 0
        page_data: list[PageLink] = []

        for section in (s.strip() for s in header.split(",")):
            if not section:
                continue

            url_part, _, metadata = section.partition(";")
            page_link = PageLink(page_url=url_part.strip(), metadata=metadata.strip())
            page_data.append(page_link)

            if 'rel="prev"' in page_link.metadata:
                prev_page = self._get_page_number(page_link.page_url)
            elif 'rel="next"' in page_link.metadata:
                next_page = self._get_page_number(page_link.page_url)
            elif 'rel="last"' in page_link.metadata:
                total_pages = self._get_page_number(page_link.page_url)

        total_pages = max(total_pages, next_page)

        return LinkHeaderInfo(
            prev_page=prev_page,
            next_page=next_page,
            total_pages=total_pages,
            page_data=tuple(page_data),
        )

    @staticmethod
    def _get_page_number(page_url: str) -> int:
        match = _PAGE_NUMBER_PATTERN.search(page_url)
        return int(match.group(1)) if match else 0


_default_parser = LinkHeaderParser()


def parse_link_header(
    response_or_header: httpx.Response | str | None,
) -> LinkHeaderInfo | None:
    """Parse a ``Link`` header with a shared :class:`LinkHeaderParser`."""
    return _default_parser.to_link_header(response_or_header)
