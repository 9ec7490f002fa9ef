"""Tests for the GitHubClient base."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from ghclients.errors import AuthError, LabelError, NotFoundError
from ghclients.github_client import DEFAULT_GITHUB_API_URL, GITHUB_API_VERSION, GitHubClient
from ghclients.http_client import AsyncGitHubHttpClient
from ghclients.pagination import PaginationEngine
from ghclients.rate_limit import RateLimitMonitor
from tests.helpers import FakeClock, make_link_header, make_response, rate_limit_headers

HttpFactory = Callable[[Callable[[httpx.Request], httpx.Response]], AsyncGitHubHttpClient]


class TestConstruction:
    """Tests for client construction and repository coordinates."""

    def test_sets_github_headers(self) -> None:
        client = GitHubClient("octocat", "hello-world", "secret")

        headers = client.http.headers
        assert headers["Accept"] == "application/vnd.github+json"
        assert headers["X-GitHub-Api-Version"] == GITHUB_API_VERSION
        assert headers["Authorization"] == "Bearer secret"
        assert client.contains_token()

    def test_without_token(self) -> None:
        client = GitHubClient("octocat", "hello-world")

        assert not client.contains_token()

    def test_trims_owner_and_repo(self) -> None:
        client = GitHubClient("  octocat ", " hello-world  ")

        assert client.owner_name == "octocat"
        assert client.repo_name == "hello-world"
        assert client.repo_url == f"{DEFAULT_GITHUB_API_URL}/repos/octocat/hello-world"

    @pytest.mark.parametrize(("owner", "repo"), [("", "repo"), ("owner", "  ")])
    def test_empty_owner_or_repo_raises(self, owner: str, repo: str) -> None:
        with pytest.raises(ValueError, match="must not be empty"):
            GitHubClient(owner, repo)

    def test_setter_rejects_empty_value(self) -> None:
        client = GitHubClient("octocat", "hello-world")

        with pytest.raises(ValueError):
            client.repo_name = ""

        assert client.repo_name == "hello-world"

    def test_enterprise_base_url(self) -> None:
        client = GitHubClient("octocat", "hello-world", base_url="https://ghe.example.com/api/v3/")

        assert client.repo_url == "https://ghe.example.com/api/v3/repos/octocat/hello-world"

    def test_shares_injected_transport_and_engine(self) -> None:
        http = AsyncGitHubHttpClient()
        engine = PaginationEngine()

        first = GitHubClient("octocat", "one", http=http, pagination=engine)
        second = GitHubClient("octocat", "two", http=http, pagination=engine)

        assert first.monitor is second.monitor
        assert first.pagination is second.pagination

    def test_default_qty_per_page_is_clamped(self) -> None:
        assert GitHubClient("o", "r", default_qty_per_page=500).default_qty_per_page == 100


class TestRateLimitBackoff:
    """Tests for resetting the rate limit backoff."""

    def test_reset_rate_limit_backoff(self) -> None:
        monitor = RateLimitMonitor(sleep=FakeClock().sleep)
        client = GitHubClient("octocat", "hello-world", http=AsyncGitHubHttpClient(monitor=monitor))
        response = make_response(403, headers=rate_limit_headers(remaining=0))

        asyncio.run(monitor.wait_if_rate_limited(response))
        assert monitor.state.backoff_ms == 72_000

        client.reset_rate_limit_backoff()

        assert monitor.state.backoff_ms == 60_000


class TestPaginationDelegation:
    """Tests for the pagination strategy methods."""

    def test_uses_default_qty_per_page(self) -> None:
        engine = MagicMock(spec=PaginationEngine)
        engine.get_all_data = AsyncMock(return_value=[1, 2])
        client = GitHubClient("o", "r", pagination=engine, default_qty_per_page=30)
        fetch = AsyncMock()

        result = asyncio.run(client.get_all_data(fetch))

        assert result == [1, 2]
        engine.get_all_data.assert_awaited_once_with(fetch, 1, 30)

    @pytest.mark.asyncio
    async def test_explicit_zero_qty_per_page_is_not_replaced_by_default(self) -> None:
        engine = MagicMock(spec=PaginationEngine)
        engine.get_all_data = AsyncMock(return_value=[])
        engine.get_all_data_until = AsyncMock(return_value=[])
        engine.get_all_filtered_data = AsyncMock(return_value=[])
        client = GitHubClient("o", "r", pagination=engine, default_qty_per_page=30)
        fetch = AsyncMock()

        def until(page: list[int]) -> bool:
            return True

        def keep(items: list[int]) -> list[int]:
            return items

        await client.get_all_data(fetch, qty_per_page=0)
        await client.get_all_data_until(fetch, until, qty_per_page=0)
        await client.get_all_filtered_data(fetch, keep, qty_per_page=0)

        engine.get_all_data.assert_awaited_once_with(fetch, 1, 0)
        engine.get_all_data_until.assert_awaited_once_with(fetch, 1, 0, until)
        engine.get_all_filtered_data.assert_awaited_once_with(fetch, 1, 0, keep)

    @pytest.mark.asyncio
    async def test_explicit_zero_qty_per_page_is_clamped_to_one(self) -> None:
        seen: list[int] = []

        async def fetch(page: int, qty_per_page: int) -> tuple[list[int], httpx.Response]:
            seen.append(qty_per_page)
            return [page], make_response()

        client = GitHubClient("o", "r", default_qty_per_page=30)

        await client.get_all_data(fetch, qty_per_page=0)

        assert seen == [1]

    def test_until_and_filter_forwarded(self) -> None:
        engine = MagicMock(spec=PaginationEngine)
        engine.get_all_data_until = AsyncMock(return_value=[])
        engine.get_all_filtered_data = AsyncMock(return_value=[])
        client = GitHubClient("o", "r", pagination=engine)
        fetch = AsyncMock()

        def until(page: list[int]) -> bool:
            return True

        def keep(items: list[int]) -> list[int]:
            return items

        asyncio.run(client.get_all_data_until(fetch, until, page=2, qty_per_page=10))
        asyncio.run(client.get_all_filtered_data(fetch, keep))

        engine.get_all_data_until.assert_awaited_once_with(fetch, 2, 10, until)
        engine.get_all_filtered_data.assert_awaited_once_with(fetch, 1, 100, keep)


class TestCheckResponse:
    """Tests for mapping unsuccessful responses to errors."""

    def test_success_does_nothing(self) -> None:
        GitHubClient("o", "r").check_response(make_response(200), LabelError, "failed")

    def test_unauthorized_raises_auth_error(self) -> None:
        with pytest.raises(AuthError, match="401"):
            GitHubClient("o", "r").check_response(make_response(401), LabelError, "failed")

    def test_not_found_without_message_raises_not_found(self) -> None:
        with pytest.raises(NotFoundError, match="organization 'o' or repository 'r'"):
            GitHubClient("o", "r").check_response(make_response(404), LabelError, "failed")

    def test_not_found_with_message_raises_resource_error(self) -> None:
        with pytest.raises(LabelError, match="^no such label$"):
            GitHubClient("o", "r").check_response(
                make_response(404), LabelError, "failed", not_found_message="no such label"
            )

    def test_other_status_raises_resource_error_with_status(self) -> None:
        with pytest.raises(LabelError) as exc_info:
            GitHubClient("o", "r").check_response(make_response(500), LabelError, "failed")

        assert str(exc_info.value) == "failed\nError: 500(Internal Server Error)"


class TestGetPage:
    """Tests for fetching one page of a collection."""

    def test_builds_query_and_returns_items(self, make_http: HttpFactory) -> None:
        captured: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            captured.append(request)
            return httpx.Response(
                200, json=[{"id": 1}], headers={"Link": make_link_header(1, 2)}
            )

        client = GitHubClient("octocat", "hello-world", http=make_http(handler))

        items, response = asyncio.run(
            client.get_page(
                f"{client.repo_url}/labels",
                LabelError,
                "failed",
                params={"page": 1, "per_page": 50, "state": None},
            )
        )

        assert items == [{"id": 1}]
        assert "Link" in response.headers
        params = captured[0].url.params
        assert params["page"] == "1"
        assert params["per_page"] == "50"
        assert "state" not in params

    def test_unwraps_items_key(self, make_http: HttpFactory) -> None:
        client = GitHubClient(
            "o",
            "r",
            http=make_http(
                lambda request: httpx.Response(200, json={"total_count": 1, "runs": [{"id": 5}]})
            ),
        )

        items, _ = asyncio.run(
            client.get_page(f"{client.repo_url}/x", LabelError, "failed", items_key="runs")
        )

        assert items == [{"id": 5}]


class TestLifecycle:
    """Tests for closing the client."""

    def test_async_context_manager_closes_transport(self) -> None:
        http = MagicMock(spec=AsyncGitHubHttpClient)
        http.aclose = AsyncMock()

        async def run() -> None:
            async with GitHubClient("o", "r", http=http):
                pass

        asyncio.run(run())

        http.aclose.assert_awaited_once()
