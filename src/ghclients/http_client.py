"""Async HTTP transport shared by the GitHub clients.

Every request passes through a :class:`~ghclients.rate_limit.RateLimitMonitor`:
the monitor's admission gate before it is sent, and its rate limit check after
the response arrives. A request that was held back by a rate limit is sent
again once the wait is over, so callers only ever see the final response.
"""

from __future__ import annotations

import json
from typing import Any, Self

import httpx

from ghclients.config import DEFAULT_MAX_RATE_LIMIT_RETRIES
from ghclients.errors import TransportError
from ghclients.logging import get_logger
from ghclients.rate_limit import RateLimitMonitor

logger = get_logger(__name__)

# Default timeout for HTTP requests (connect, read, write, pool)
DEFAULT_TIMEOUT = httpx.Timeout(10.0, read=30.0)

# Accept header value under which GitHub returns raw file content
RAW_CONTENT_TYPE = "application/vnd.github.v3.raw"


class AsyncGitHubHttpClient:
    """Sends GET/POST/PATCH/PUT/DELETE requests with a shared header bag.

    Uses connection pooling via a lazily created ``httpx.AsyncClient``.

    Example::

        async with AsyncGitHubHttpClient() as http:
            http.update_or_add("Accept", "application/vnd.github+json")
            response = await http.send_get("https://api.github.com/repos/octocat/hello-world")
    """

    def __init__(
        self,
        monitor: RateLimitMonitor | None = None,
        timeout: httpx.Timeout | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        max_rate_limit_retries: int = DEFAULT_MAX_RATE_LIMIT_RETRIES,
    ) -> None:
        """Initialize the transport.

        Args:
            monitor: Rate limit monitor consulted around every request.
                A default monitor is created if not given.
            timeout: Optional custom timeout configuration.
            transport: Optional httpx transport, e.g. ``httpx.MockTransport`` in tests.
            max_rate_limit_retries: Times a rate limited request is re-sent before
                its response is returned as is.
        """
        self.monitor = monitor or RateLimitMonitor()
        self.timeout = timeout or DEFAULT_TIMEOUT
        self._transport = transport
        self._max_rate_limit_retries = max_rate_limit_retries
        self._headers: dict[str, str] = {}
        # Reusable HTTP client for connection pooling - lazily initialized
        self._client: httpx.AsyncClient | None = None

    @property
    def headers(self) -> dict[str, str]:
        """A copy of the headers sent with every request."""
        return dict(self._headers)

    def update_or_add(self, name: str, value: str) -> None:
        """Set a header, replacing any existing value with the same name."""
        for existing in list(self._headers):
            if existing.lower() == name.lower():
                del self._headers[existing]
        self._headers[name] = value

    def contains_header(self, name: str) -> bool:
        """Check whether a header with the given name is set (case-insensitive)."""
        return any(existing.lower() == name.lower() for existing in self._headers)

    def _get_header(self, name: str) -> str | None:
        for existing, value in self._headers.items():
            if existing.lower() == name.lower():
                return value
        return None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout, transport=self._transport)
        return self._client

    async def send_get(self, url: str) -> httpx.Response:
        """Get a resource using the GET method."""
        return await self._send("GET", url)

    async def send_post(self, url: str, body: str | dict[str, Any] | list[Any]) -> httpx.Response:
        """Create a resource using the POST method."""
        return await self._send("POST", url, body)

    async def send_patch(self, url: str, body: str | dict[str, Any] | list[Any]) -> httpx.Response:
        """Update a resource using the PATCH method."""
        return await self._send("PATCH", url, body)

    async def send_put(self, url: str, body: str | dict[str, Any] | list[Any]) -> httpx.Response:
        """Replace a resource using the PUT method."""
        return await self._send("PUT", url, body)

    async def send_delete(self, url: str) -> httpx.Response:
        """Delete a resource using the DELETE method."""
        return await self._send("DELETE", url)

    async def _send(
        self,
        method: str,
        url: str,
        body: str | dict[str, Any] | list[Any] | None = None,
    ) -> httpx.Response:
        """Send a request, waiting out and retrying rate limited responses.

        Raises:
            ValueError: If the URL is empty.
            TransportError: If the request could not be completed.
            RateLimitHeaderError: If a rate limit response carries an invalid
                ``retry-after`` header.
        """
        if not url or not url.strip():
            raise ValueError(f"The url for the {method} request is empty.")

        content: str | None = None
        if body is not None:
            content = body if isinstance(body, str) else json.dumps(body)

        request_headers = self._headers
        if content is not None and not self.contains_header("Content-Type"):
            request_headers = {"Content-Type": "application/json", **self._headers}

        attempt = 0
        while True:
            try:
                async with self.monitor.admit():
                    response = await self._get_client().request(
                        method, url, content=content, headers=request_headers
                    )
            except httpx.TimeoutException as e:
                raise TransportError(f"{method} {url} timed out: {e}") from e
            except httpx.RequestError as e:
                raise TransportError(f"{method} {url} failed: {e}") from e

            waited_ms = await self.monitor.wait_if_rate_limited(response)
            if waited_ms is None or attempt >= self._max_rate_limit_retries:
                return response

            attempt += 1
            logger.info(
                "Retrying %s %s after rate limit wait (attempt %d/%d)",
                method,
                url,
                attempt,
                self._max_rate_limit_retries,
            )

    def get_response_data(self, response: httpx.Response) -> Any:
        """Read the body of a response.

        Returns:
            The raw text when raw content was requested through the Accept
            header, otherwise the parsed JSON body.
        """
        if self._get_header("Accept") == RAW_CONTENT_TYPE:
            return response.text
        return response.json()

    @staticmethod
    def build_error_msg(error_message: str, response: httpx.Response) -> str:
        """Append the status code and reason of a response to an error message."""
        return f"{error_message}\nError: {response.status_code}({response.reason_phrase})"

    async def aclose(self) -> None:
        """Close the HTTP client and release resources."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.aclose()
