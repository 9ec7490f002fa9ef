"""GitHub rate limit monitoring for the async HTTP transport.

GitHub signals two kinds of throttling:

- Secondary (abuse) rate limits carry a ``retry-after`` header with the number
  of seconds to wait.
- The primary hourly quota is exhausted when ``x-ratelimit-remaining`` is
  ``0`` and the status is 403 or 429.

:class:`RateLimitMonitor` inspects every response for those signals and
suspends the caller until it is safe to continue. A rate limit is never
surfaced as an error: the wait is the behavior. The primary limit wait grows
by 20% for each consecutive hit until :meth:`RateLimitMonitor.reset_backoff`
is called.

The monitor also acts as an admission gate, holding back new requests while
too many are already outstanding.

See https://docs.github.com/en/rest/using-the-rest-api/rate-limits-for-the-rest-api
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING

import httpx

from ghclients.config import (
    DEFAULT_BACKOFF_MS,
    DEFAULT_BACKOFF_MULTIPLIER,
    DEFAULT_MAX_IN_FLIGHT,
    MIN_ADMISSION_POLL_SECONDS,
)
from ghclients.errors import RateLimitHeaderError
from ghclients.logging import get_logger

if TYPE_CHECKING:
    from ghclients.config import Config

logger = get_logger(__name__)

LIMIT_HEADER = "x-ratelimit-limit"
REMAINING_HEADER = "x-ratelimit-remaining"
RESET_HEADER = "x-ratelimit-reset"
RESOURCE_HEADER = "x-ratelimit-resource"
USED_HEADER = "x-ratelimit-used"
RETRY_AFTER_HEADER = "retry-after"

RATE_LIMIT_HEADER_NAMES = (
    LIMIT_HEADER,
    REMAINING_HEADER,
    RESET_HEADER,
    RESOURCE_HEADER,
    USED_HEADER,
)

# Statuses GitHub uses when the primary quota is exhausted
PRIMARY_LIMIT_STATUSES = frozenset({403, 429})

SleepFunc = Callable[[float], Awaitable[None]]


@dataclass(frozen=True)
class RateLimitHeaders:
    """The ``x-ratelimit-*`` headers of a GitHub response.

    Attributes:
        limit: Maximum requests allowed in the current window.
        remaining: Requests left in the current window.
        reset: Window reset time in UTC epoch seconds.
        resource: The rate limit resource the request counted against.
        used: Requests made in the current window.
    """

    limit: int
    remaining: int
    reset: int
    resource: str
    used: int

    @property
    def reset_at(self) -> datetime:
        """The window reset time as an aware UTC datetime."""
        return datetime.fromtimestamp(self.reset, tz=UTC)

    @classmethod
    def from_response(
        cls, response: httpx.Response, required: bool = False
    ) -> RateLimitHeaders | None:
        """Read the rate limit headers from a response.

        Args:
            response: The response to inspect.
            required: If True, missing or malformed headers raise instead of
                returning None.

        Returns:
            The parsed headers, or None if any are missing or malformed and
            ``required`` is False.

        Raises:
            RateLimitHeaderError: If ``required`` is True and any header is
                missing or malformed.
        """
        missing = [name for name in RATE_LIMIT_HEADER_NAMES if name not in response.headers]
        if missing:
            if required:
                raise RateLimitHeaderError(
                    f"Response is missing rate limit headers: {', '.join(missing)}"
                )
            return None

        try:
            return cls(
                limit=int(response.headers[LIMIT_HEADER]),
                remaining=int(response.headers[REMAINING_HEADER]),
                reset=int(response.headers[RESET_HEADER]),
                resource=response.headers[RESOURCE_HEADER],
                used=int(response.headers[USED_HEADER]),
            )
        except ValueError as e:
            if required:
                raise RateLimitHeaderError(f"Response has malformed rate limit headers: {e}") from e
            return None


@dataclass
class RateLimitState:
    """Backoff accumulator for the primary rate limit.

    Owned by exactly one :class:`RateLimitMonitor`.

    Attributes:
        default_backoff_ms: The wait the accumulator starts from and resets to.
        backoff_ms: The wait applied the next time the primary limit is hit.
        consecutive_hits: Primary limit hits since the last reset.
    """

    default_backoff_ms: int = DEFAULT_BACKOFF_MS
    backoff_ms: int = field(init=False)
    consecutive_hits: int = field(default=0, init=False)

    def __post_init__(self) -> None:
        self.backoff_ms = self.default_backoff_ms

    def grow(self, multiplier: float) -> None:
        """Record a primary limit hit and grow the next wait."""
        self.consecutive_hits += 1
        self.backoff_ms = round(self.backoff_ms * multiplier)

    def reset(self) -> None:
        """Restore the default wait."""
        self.backoff_ms = self.default_backoff_ms
        self.consecutive_hits = 0


class RateLimitMonitor:
    """Pauses requests when GitHub signals a rate limit.

    Usage:
        monitor = RateLimitMonitor()

        async with monitor.admit():
            response = await client.get(url)
        await monitor.wait_if_rate_limited(response)

    The monitor is meant to be shared by all requests of one client. It is
    not thread-safe: all of its users must run on the same event loop.
    """

    def __init__(
        self,
        state: RateLimitState | None = None,
        *,
        backoff_multiplier: float = DEFAULT_BACKOFF_MULTIPLIER,
        max_in_flight: int = DEFAULT_MAX_IN_FLIGHT,
        admission_poll_seconds: float = MIN_ADMISSION_POLL_SECONDS,
        sleep: SleepFunc | None = None,
    ) -> None:
        """Initialize the monitor.

        Args:
            state: Backoff accumulator. A fresh one with the default wait is
                created if not given.
            backoff_multiplier: Growth factor applied after each primary limit hit.
            max_in_flight: Outstanding requests allowed before :meth:`admit` holds
                new ones back.
            admission_poll_seconds: Interval at which a held-back request re-checks.
            sleep: Coroutine function used to suspend. Defaults to ``asyncio.sleep``;
                tests pass a fake clock.
        """
        self._state = state or RateLimitState()
        self._backoff_multiplier = backoff_multiplier
        self._max_in_flight = max_in_flight
        self._admission_poll_seconds = admission_poll_seconds
        self._sleep: SleepFunc = sleep or asyncio.sleep
        self._in_flight = 0

    @classmethod
    def from_config(cls, config: Config, sleep: SleepFunc | None = None) -> RateLimitMonitor:
        """Create a monitor from configuration.

        Args:
            config: Configuration holding the rate limit settings.
            sleep: Optional replacement for ``asyncio.sleep``.

        Returns:
            A configured RateLimitMonitor.
        """
        rate_limit = config.rate_limit
        return cls(
            RateLimitState(default_backoff_ms=rate_limit.default_backoff_ms),
            backoff_multiplier=rate_limit.backoff_multiplier,
            max_in_flight=rate_limit.max_in_flight,
            admission_poll_seconds=rate_limit.admission_poll_seconds,
            sleep=sleep,
        )

    @property
    def state(self) -> RateLimitState:
        """The backoff accumulator owned by this monitor."""
        return self._state

    @property
    def in_flight(self) -> int:
        """Number of requests currently admitted and not yet finished."""
        return self._in_flight

    def reset_backoff(self) -> None:
        """Reset the primary limit wait to its default.

        Call this at the start of a new logical operation so backoff growth
        from a previous operation does not carry over.
        """
        self._state.reset()
        logger.debug("Rate limit backoff reset to %sms", self._state.backoff_ms)

    async def wait_if_rate_limited(self, response: httpx.Response) -> int | None:
        """Suspend if the response signals a rate limit.

        The ``retry-after`` header takes precedence over the primary limit
        check and does not affect the backoff accumulator.

        Args:
            response: The completed response to inspect.

        Returns:
            The number of milliseconds waited, or None if the response does not
            signal a rate limit. A signaled limit can mean a wait of 0 ms
            (``retry-after: 0``); the request should still be re-sent.

        Raises:
            RateLimitHeaderError: If ``retry-after`` is present but not a
                non-negative integer.
        """
        retry_after = response.headers.get(RETRY_AFTER_HEADER)
        if retry_after is not None:
            try:
                seconds = int(retry_after.strip())
            except ValueError as e:
                raise RateLimitHeaderError(
                    f"Invalid {RETRY_AFTER_HEADER} header value: {retry_after!r}"
                ) from e
            if seconds < 0:
                raise RateLimitHeaderError(
                    f"Invalid {RETRY_AFTER_HEADER} header value: {retry_after!r}"
                )
            wait_ms = seconds * 1000

            logger.warning(
                "Secondary rate limit reached%s. Waiting %s seconds before continuing.",
                self._describe(response),
                wait_ms // 1000,
                extra={"wait_ms": wait_ms},
            )
            await self._sleep(wait_ms / 1000)
            return wait_ms

        if self._is_primary_limit_exhausted(response):
            wait_ms = self._state.backoff_ms
            logger.warning(
                "Primary rate limit exhausted%s. Waiting %.1f seconds before continuing.",
                self._describe(response),
                wait_ms / 1000,
                extra={"wait_ms": wait_ms},
            )
            await self._sleep(wait_ms / 1000)
            self._state.grow(self._backoff_multiplier)
            return wait_ms

        return None

    @asynccontextmanager
    async def admit(self) -> AsyncIterator[None]:
        """Hold the caller back while too many requests are outstanding.

        Polls every ``admission_poll_seconds`` until fewer than
        ``max_in_flight`` requests are in flight, then counts the caller as
        in flight until the context exits.
        """
        while self._in_flight >= self._max_in_flight:
            logger.debug(
                "%d requests in flight (max %d), waiting %.1fs",
                self._in_flight,
                self._max_in_flight,
                self._admission_poll_seconds,
                extra={"diagnostic_tag": "rate_limit"},
            )
            await self._sleep(self._admission_poll_seconds)

        self._in_flight += 1
        try:
            yield
        finally:
            self._in_flight -= 1

    @staticmethod
    def _is_primary_limit_exhausted(response: httpx.Response) -> bool:
        return (
            response.headers.get(REMAINING_HEADER) == "0"
            and response.status_code in PRIMARY_LIMIT_STATUSES
        )

    @staticmethod
    def _describe(response: httpx.Response) -> str:
        # Detail is best effort; incomplete headers only shorten the message
        headers = RateLimitHeaders.from_response(response)
        if headers is None:
            return ""
        return (
            f" (resource: {headers.resource}, used: {headers.used}/{headers.limit}, "
            f"resets at: {headers.reset_at.isoformat()})"
        )
