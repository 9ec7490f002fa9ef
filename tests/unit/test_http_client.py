"""Tests for the async GitHub HTTP transport."""

from __future__ import annotations

import json
from collections.abc import Callable

import httpx
import pytest

from ghclients.errors import RateLimitHeaderError, TransportError
from ghclients.http_client import RAW_CONTENT_TYPE, AsyncGitHubHttpClient
from ghclients.rate_limit import RateLimitMonitor
from tests.helpers import FakeClock, make_response, rate_limit_headers

URL = "https://api.github.com/repos/octocat/hello-world/labels"

HttpFactory = Callable[[Callable[[httpx.Request], httpx.Response]], AsyncGitHubHttpClient]


class TestHeaders:
    """Tests for the shared header bag."""

    def test_update_or_add_replaces_case_insensitively(self) -> None:
        http = AsyncGitHubHttpClient()

        http.update_or_add("Accept", "text/plain")
        http.update_or_add("accept", "application/json")

        assert http.headers == {"accept": "application/json"}

    def test_contains_header(self) -> None:
        http = AsyncGitHubHttpClient()
        http.update_or_add("Authorization", "Bearer abc")

        assert http.contains_header("authorization")
        assert not http.contains_header("Accept")

    def test_headers_returns_copy(self) -> None:
        http = AsyncGitHubHttpClient()
        http.update_or_add("Accept", "application/json")

        http.headers["Accept"] = "changed"

        assert http.headers == {"Accept": "application/json"}

    @pytest.mark.asyncio
    async def test_headers_are_sent(self, make_http: HttpFactory) -> None:
        captured: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            captured.append(request)
            return httpx.Response(200, json=[])

        http = make_http(handler)
        http.update_or_add("X-GitHub-Api-Version", "2022-11-28")

        await http.send_get(URL)

        assert captured[0].headers["X-GitHub-Api-Version"] == "2022-11-28"


class TestSend:
    """Tests for sending requests."""

    @pytest.mark.asyncio
    async def test_send_get_returns_response(self, make_http: HttpFactory) -> None:
        http = make_http(lambda request: httpx.Response(200, json=[{"name": "bug"}]))

        response = await http.send_get(URL)

        assert response.status_code == 200
        assert http.get_response_data(response) == [{"name": "bug"}]

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("method", "send"),
        [
            ("POST", "send_post"),
            ("PATCH", "send_patch"),
            ("PUT", "send_put"),
        ],
    )
    async def test_body_is_sent_as_json(
        self, make_http: HttpFactory, method: str, send: str
    ) -> None:
        captured: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            captured.append(request)
            return httpx.Response(200, json={})

        http = make_http(handler)

        await getattr(http, send)(URL, {"labels": ["bug"]})

        request = captured[0]
        assert request.method == method
        assert json.loads(request.content) == {"labels": ["bug"]}
        assert request.headers["Content-Type"] == "application/json"

    @pytest.mark.asyncio
    async def test_string_body_is_sent_unchanged(self, make_http: HttpFactory) -> None:
        captured: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            captured.append(request)
            return httpx.Response(201, json={})

        http = make_http(handler)

        await http.send_post(URL, '{"name": "bug"}')

        assert captured[0].content == b'{"name": "bug"}'

    @pytest.mark.asyncio
    async def test_send_delete(self, make_http: HttpFactory) -> None:
        methods: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            methods.append(request.method)
            return httpx.Response(204)

        http = make_http(handler)

        response = await http.send_delete(URL)

        assert response.status_code == 204
        assert methods == ["DELETE"]

    @pytest.mark.asyncio
    async def test_empty_url_raises(self, make_http: HttpFactory) -> None:
        http = make_http(lambda request: httpx.Response(200))

        with pytest.raises(ValueError, match="GET"):
            await http.send_get("  ")

    @pytest.mark.asyncio
    async def test_connection_error_raises_transport_error(self, make_http: HttpFactory) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        http = make_http(handler)

        with pytest.raises(TransportError, match="connection refused") as exc_info:
            await http.send_get(URL)

        assert isinstance(exc_info.value.__cause__, httpx.ConnectError)

    @pytest.mark.asyncio
    async def test_timeout_raises_transport_error(self, make_http: HttpFactory) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("read timed out", request=request)

        http = make_http(handler)

        with pytest.raises(TransportError, match="timed out"):
            await http.send_get(URL)

    @pytest.mark.asyncio
    async def test_admission_slot_released_after_request(
        self, make_http: HttpFactory, monitor: RateLimitMonitor
    ) -> None:
        http = make_http(lambda request: httpx.Response(200, json=[]))

        await http.send_get(URL)

        assert monitor.in_flight == 0


class TestRateLimitRetry:
    """Tests for waiting out and retrying rate limited requests."""

    @pytest.mark.asyncio
    async def test_retries_after_retry_after(
        self, make_http: HttpFactory, fake_clock: FakeClock
    ) -> None:
        responses = [
            httpx.Response(403, headers={"retry-after": "2"}, json={"message": "slow down"}),
            httpx.Response(200, json=[{"name": "bug"}]),
        ]
        http = make_http(lambda request: responses.pop(0))

        response = await http.send_get(URL)

        assert response.status_code == 200
        assert fake_clock.total_ms == 2000

    @pytest.mark.asyncio
    async def test_retries_after_zero_second_retry_after(
        self, make_http: HttpFactory, fake_clock: FakeClock
    ) -> None:
        """A ``retry-after: 0`` response is re-sent right away rather than returned."""
        calls = 0

        def handler(request: httpx.Request) -> httpx.Response:
            nonlocal calls
            calls += 1
            if calls == 1:
                return httpx.Response(403, headers={"retry-after": "0"})
            return httpx.Response(200, json=[{"name": "bug"}])

        http = make_http(handler)

        response = await http.send_get(URL)

        assert response.status_code == 200
        assert calls == 2
        assert fake_clock.total_ms == 0

    @pytest.mark.asyncio
    async def test_retries_after_primary_limit(
        self, make_http: HttpFactory, fake_clock: FakeClock, monitor: RateLimitMonitor
    ) -> None:
        responses = [
            httpx.Response(403, headers=rate_limit_headers(remaining=0)),
            httpx.Response(429, headers=rate_limit_headers(remaining=0)),
            httpx.Response(200, json=[]),
        ]
        http = make_http(lambda request: responses.pop(0))

        response = await http.send_get(URL)

        assert response.status_code == 200
        assert fake_clock.total_ms == 60_000 + 72_000
        assert monitor.state.backoff_ms == 86_400

    @pytest.mark.asyncio
    async def test_does_not_retry_without_rate_limit_signal(self, make_http: HttpFactory) -> None:
        calls = 0

        def handler(request: httpx.Request) -> httpx.Response:
            nonlocal calls
            calls += 1
            return httpx.Response(403, json={"message": "Forbidden"})

        http = make_http(handler)

        response = await http.send_get(URL)

        assert response.status_code == 403
        assert calls == 1

    @pytest.mark.asyncio
    async def test_gives_up_after_max_retries(self, fake_clock: FakeClock) -> None:
        calls = 0

        def handler(request: httpx.Request) -> httpx.Response:
            nonlocal calls
            calls += 1
            return httpx.Response(429, headers={"retry-after": "1"})

        http = AsyncGitHubHttpClient(
            monitor=RateLimitMonitor(sleep=fake_clock.sleep),
            transport=httpx.MockTransport(handler),
            max_rate_limit_retries=2,
        )

        response = await http.send_get(URL)

        assert response.status_code == 429
        assert calls == 3

    @pytest.mark.asyncio
    @pytest.mark.parametrize("value", ["later", "-5"])
    async def test_invalid_retry_after_propagates(
        self, make_http: HttpFactory, fake_clock: FakeClock, value: str
    ) -> None:
        http = make_http(lambda request: httpx.Response(403, headers={"retry-after": value}))

        with pytest.raises(RateLimitHeaderError):
            await http.send_get(URL)

        assert fake_clock.sleeps == []


class TestResponseHelpers:
    """Tests for response helpers."""

    def test_get_response_data_returns_text_for_raw_accept(self) -> None:
        http = AsyncGitHubHttpClient()
        http.update_or_add("Accept", RAW_CONTENT_TYPE)
        response = httpx.Response(200, text="# README")

        assert http.get_response_data(response) == "# README"

    def test_build_error_msg(self) -> None:
        response = make_response(404)

        message = AsyncGitHubHttpClient.build_error_msg("Could not get labels.", response)

        assert message == "Could not get labels.\nError: 404(Not Found)"


class TestLifecycle:
    """Tests for client lifecycle."""

    @pytest.mark.asyncio
    async def test_context_manager_closes_client(self, make_http: HttpFactory) -> None:
        async with make_http(lambda request: httpx.Response(200, json=[])) as http:
            await http.send_get(URL)
            assert http._client is not None

        assert http._client is None

    @pytest.mark.asyncio
    async def test_aclose_without_requests_is_noop(self) -> None:
        http = AsyncGitHubHttpClient()

        await http.aclose()

        assert http._client is None
