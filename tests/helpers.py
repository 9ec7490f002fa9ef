"""Test helper functions for the GitHub clients tests.

Usage
=====

Import and use helpers directly in tests::

    from tests.helpers import FakeClock, FakeCollection, make_link_header, make_response

    def test_example():
        collection = FakeCollection(total_items=250, qty_per_page=100)
        items = asyncio.run(PaginationEngine().get_all_data(collection.fetch))
        assert items == list(range(250))
"""

from __future__ import annotations

import json
from collections.abc import Callable
from typing import Any

import httpx

from ghclients.config import (
    Config,
    GitHubConfig,
    LoggingConfig,
    PaginationConfig,
    RateLimitConfig,
)

API_URL = "https://api.github.com"
REPO_URL = f"{API_URL}/repos/octocat/hello-world"


def make_config(
    token: str = "test-token",
    api_url: str = "",
    default_backoff_ms: int = 60_000,
    backoff_multiplier: float = 1.2,
    max_in_flight: int = 100,
    admission_poll_seconds: float = 1.0,
    max_rate_limit_retries: int = 5,
    default_qty_per_page: int = 100,
    log_level: str = "INFO",
) -> Config:
    """Create a Config with test-friendly defaults."""
    return Config(
        github=GitHubConfig(token=token, api_url=api_url),
        rate_limit=RateLimitConfig(
            default_backoff_ms=default_backoff_ms,
            backoff_multiplier=backoff_multiplier,
            max_in_flight=max_in_flight,
            admission_poll_seconds=admission_poll_seconds,
            max_rate_limit_retries=max_rate_limit_retries,
        ),
        pagination=PaginationConfig(default_qty_per_page=default_qty_per_page),
        logging_config=LoggingConfig(level=log_level),
    )


def make_link_header(
    page: int, total_pages: int, qty_per_page: int = 100, url: str = f"{REPO_URL}/labels"
) -> str:
    """Build a GitHub style ``Link`` header for ``page`` of ``total_pages``."""
    sections = []
    if page > 1:
        sections.append(f'<{url}?page={page - 1}&per_page={qty_per_page}>; rel="prev"')
        sections.append(f'<{url}?page=1&per_page={qty_per_page}>; rel="first"')
    if page < total_pages:
        sections.append(f'<{url}?page={page + 1}&per_page={qty_per_page}>; rel="next"')
    sections.append(f'<{url}?page={total_pages}&per_page={qty_per_page}>; rel="last"')
    return ", ".join(sections)


def make_response(
    status_code: int = 200,
    json_body: Any = None,
    headers: dict[str, str] | None = None,
    url: str = REPO_URL,
    method: str = "GET",
) -> httpx.Response:
    """Create an httpx.Response bound to a request."""
    return httpx.Response(
        status_code,
        content=json.dumps(json_body if json_body is not None else []).encode(),
        headers={"Content-Type": "application/json", **(headers or {})},
        request=httpx.Request(method, url),
    )


def rate_limit_headers(remaining: int = 0, reset: int = 1_700_000_000) -> dict[str, str]:
    """The full set of ``x-ratelimit-*`` headers."""
    return {
        "x-ratelimit-limit": "5000",
        "x-ratelimit-remaining": str(remaining),
        "x-ratelimit-reset": str(reset),
        "x-ratelimit-resource": "core",
        "x-ratelimit-used": str(5000 - remaining),
    }


class FakeClock:
    """Stand-in for ``asyncio.sleep`` that records waits instead of sleeping."""

    def __init__(self, on_sleep: Callable[[float], None] | None = None) -> None:
        self.sleeps: list[float] = []
        self._on_sleep = on_sleep

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        if self._on_sleep is not None:
            self._on_sleep(seconds)

    @property
    def total_ms(self) -> int:
        return round(sum(self.sleeps) * 1000)


class FakeCollection:
    """A paginated collection of ``total_items`` integers served by ``fetch``.

    Responses carry a ``Link`` header whenever the collection spans more than
    one page, the way GitHub does. Every requested page number is recorded in
    ``calls``.
    """

    def __init__(self, total_items: int, qty_per_page: int = 100) -> None:
        self.items = list(range(total_items))
        self.qty_per_page = qty_per_page
        self.calls: list[int] = []

    @property
    def total_pages(self) -> int:
        return -(-len(self.items) // self.qty_per_page)

    def page_items(self, page: int) -> list[int]:
        start = (page - 1) * self.qty_per_page
        return self.items[start : start + self.qty_per_page]

    async def fetch(self, page: int, qty_per_page: int) -> tuple[list[int], httpx.Response]:
        assert qty_per_page == self.qty_per_page
        self.calls.append(page)

        headers = {}
        if self.total_pages > 1:
            headers["Link"] = make_link_header(page, self.total_pages, qty_per_page)

        return self.page_items(page), make_response(headers=headers)


def json_handler(
    routes: dict[str, Callable[[httpx.Request], httpx.Response]],
) -> Callable[[httpx.Request], httpx.Response]:
    """Build an ``httpx.MockTransport`` handler that dispatches on the URL path.

    Unknown paths answer 404.
    """

    def handler(request: httpx.Request) -> httpx.Response:
        route = routes.get(request.url.path)
        if route is None:
            return httpx.Response(404, json={"message": "Not Found"})
        return route(request)

    return handler
