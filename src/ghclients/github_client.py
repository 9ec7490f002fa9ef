"""Shared base for the GitHub resource clients.

A :class:`GitHubClient` does not implement pagination or rate limiting
itself. It holds an :class:`~ghclients.http_client.AsyncGitHubHttpClient`
(which owns the rate limit monitor) and a
:class:`~ghclients.pagination.PaginationEngine`, both of which can be injected
so several clients share them or tests replace them.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, Self, TypeVar

import httpx

from ghclients.config import MAX_QTY_PER_PAGE
from ghclients.errors import AuthError, GitHubClientError, NotFoundError
from ghclients.http_client import AsyncGitHubHttpClient
from ghclients.logging import get_logger
from ghclients.pagination import PageFetchFunc, PaginationEngine, clamp_qty_per_page
from ghclients.rate_limit import RateLimitMonitor

logger = get_logger(__name__)

# GitHub API default base URL
DEFAULT_GITHUB_API_URL = "https://api.github.com"

GITHUB_API_VERSION = "2022-11-28"

T = TypeVar("T")


class GitHubClient:
    """Base for clients scoped to one repository.

    Sets the GitHub headers on the transport and exposes the three pagination
    strategies to subclasses.
    """

    def __init__(
        self,
        owner_name: str,
        repo_name: str,
        token: str | None = None,
        *,
        base_url: str | None = None,
        http: AsyncGitHubHttpClient | None = None,
        pagination: PaginationEngine | None = None,
        default_qty_per_page: int = MAX_QTY_PER_PAGE,
    ) -> None:
        """Initialize the client.

        Args:
            owner_name: The user or organization that owns the repository.
            repo_name: The repository name.
            token: GitHub token. Without one, requests are unauthenticated.
            base_url: Optional custom API base URL for GitHub Enterprise
                (e.g. "https://your-ghe-host/api/v3").
            http: Transport to send requests through. A new one with its own
                rate limit monitor is created if not given.
            pagination: Pagination engine. A new one is created if not given.
            default_qty_per_page: Page size used when walking collections.

        Raises:
            ValueError: If ``owner_name`` or ``repo_name`` is empty.
        """
        self.owner_name = owner_name
        self.repo_name = repo_name
        self.base_url = (base_url or DEFAULT_GITHUB_API_URL).rstrip("/")
        self.http = http or AsyncGitHubHttpClient()
        self.pagination = pagination or PaginationEngine()
        self.default_qty_per_page = clamp_qty_per_page(default_qty_per_page)

        self.http.update_or_add("Accept", "application/vnd.github+json")
        self.http.update_or_add("X-GitHub-Api-Version", GITHUB_API_VERSION)
        if token:
            self.http.update_or_add("Authorization", f"Bearer {token}")

    @property
    def owner_name(self) -> str:
        """The user or organization that owns the repository."""
        return self._owner_name

    @owner_name.setter
    def owner_name(self, value: str) -> None:
        if not value or not value.strip():
            raise ValueError("The owner name must not be empty.")
        self._owner_name = value.strip()

    @property
    def repo_name(self) -> str:
        """The repository name."""
        return self._repo_name

    @repo_name.setter
    def repo_name(self, value: str) -> None:
        if not value or not value.strip():
            raise ValueError("The repository name must not be empty.")
        self._repo_name = value.strip()

    @property
    def repo_url(self) -> str:
        """REST URL of the repository."""
        return f"{self.base_url}/repos/{self.owner_name}/{self.repo_name}"

    @property
    def monitor(self) -> RateLimitMonitor:
        """The rate limit monitor of the underlying transport."""
        return self.http.monitor

    def contains_token(self) -> bool:
        """Return True if requests are sent with an Authorization header."""
        return self.http.contains_header("Authorization")

    def reset_rate_limit_backoff(self) -> None:
        """Reset the primary rate limit wait to its default.

        Call at the start of a new multi-request operation.
        """
        self.monitor.reset_backoff()

    def _page_size(self, qty_per_page: int | None) -> int:
        # An explicit 0 is passed on and clamped by the engine
        return self.default_qty_per_page if qty_per_page is None else qty_per_page

    async def get_all_data(
        self, fetch: PageFetchFunc[T], page: int = 1, qty_per_page: int | None = None
    ) -> list[T]:
        """Fetch every page. See :meth:`PaginationEngine.get_all_data`."""
        return await self.pagination.get_all_data(
            fetch, page, self._page_size(qty_per_page)
        )

    async def get_all_data_until(
        self,
        fetch: PageFetchFunc[T],
        until: Callable[[list[T]], bool],
        page: int = 1,
        qty_per_page: int | None = None,
    ) -> list[T]:
        """Fetch pages until one satisfies ``until``.

        See :meth:`PaginationEngine.get_all_data_until`.
        """
        return await self.pagination.get_all_data_until(
            fetch, page, self._page_size(qty_per_page), until
        )

    async def get_all_filtered_data(
        self,
        fetch: PageFetchFunc[T],
        filter: Callable[[list[T]], list[T]],
        page: int = 1,
        qty_per_page: int | None = None,
    ) -> list[T]:
        """Fetch every page and filter. See :meth:`PaginationEngine.get_all_filtered_data`."""
        return await self.pagination.get_all_filtered_data(
            fetch, page, self._page_size(qty_per_page), filter
        )

    def check_response(
        self,
        response: httpx.Response,
        error_class: type[GitHubClientError],
        error_message: str,
        not_found_message: str | None = None,
    ) -> None:
        """Raise the matching client error for an unsuccessful response.

        Args:
            response: The response to check.
            error_class: Error raised for unexpected statuses.
            error_message: Message used for unexpected statuses; the status
                and reason are appended.
            not_found_message: Message for a 404. If None, a 404 means the
                owner or repository does not exist and raises NotFoundError.

        Raises:
            AuthError: On 401.
            NotFoundError: On 404 when ``not_found_message`` is None.
            GitHubClientError: ``error_class`` for any other unsuccessful status.
        """
        if response.is_success:
            return

        if response.status_code == 401:
            raise AuthError(self.http.build_error_msg(error_message, response))

        if response.status_code == 404:
            if not_found_message is None:
                raise NotFoundError(
                    f"The organization '{self.owner_name}' or repository "
                    f"'{self.repo_name}' does not exist."
                )
            raise error_class(not_found_message)

        raise error_class(self.http.build_error_msg(error_message, response))

    async def get_page(
        self,
        url: str,
        error_class: type[GitHubClientError],
        error_message: str,
        params: dict[str, Any] | None = None,
        items_key: str | None = None,
        not_found_message: str | None = None,
    ) -> tuple[list[dict[str, Any]], httpx.Response]:
        """GET one page of a collection.

        Args:
            url: Collection URL without query string.
            error_class: Error raised for unexpected statuses.
            error_message: Message for unexpected statuses.
            params: Query parameters, including ``page`` and ``per_page``.
                Parameters set to None are left out.
            items_key: Key holding the item list for endpoints that wrap
                their items in an object (e.g. ``workflow_runs``).
            not_found_message: Message for a 404, see :meth:`check_response`.

        Returns:
            The page's JSON items and the response, ready for the pagination engine.
        """
        if params:
            query = httpx.QueryParams({k: v for k, v in params.items() if v is not None})
            url = f"{url}?{query}"

        logger.with_context(
            owner=self.owner_name, repo=self.repo_name, page=(params or {}).get("page")
        ).debug("GET %s", url, extra={"diagnostic_tag": "pagination"})
        response = await self.http.send_get(url)
        self.check_response(response, error_class, error_message, not_found_message)

        data = self.http.get_response_data(response)
        if items_key is not None:
            data = data.get(items_key) or []
        return data, response

    async def close(self) -> None:
        """Close the underlying transport."""
        await self.http.aclose()

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()
