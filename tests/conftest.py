"""Shared pytest fixtures for the GitHub clients tests."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator

import httpx
import pytest

from ghclients.http_client import AsyncGitHubHttpClient
from ghclients.rate_limit import RateLimitMonitor
from tests.helpers import FakeClock


@pytest.fixture
def fake_clock() -> FakeClock:
    """A fake sleep that records every wait."""
    return FakeClock()


@pytest.fixture
def monitor(fake_clock: FakeClock) -> RateLimitMonitor:
    """A rate limit monitor that never really sleeps."""
    return RateLimitMonitor(sleep=fake_clock.sleep)


@pytest.fixture
def make_http(
    monitor: RateLimitMonitor,
) -> Callable[[Callable[[httpx.Request], httpx.Response]], AsyncGitHubHttpClient]:
    """Factory for a transport backed by ``httpx.MockTransport``.

    Usage::

        def test_example(make_http):
            http = make_http(lambda request: httpx.Response(200, json=[]))
    """

    def factory(handler: Callable[[httpx.Request], httpx.Response]) -> AsyncGitHubHttpClient:
        return AsyncGitHubHttpClient(monitor=monitor, transport=httpx.MockTransport(handler))

    return factory


@pytest.fixture(autouse=True)
def reset_root_logger() -> Iterator[None]:
    """Restore root logger handlers and level after tests that call setup_logging."""
    root_logger = logging.getLogger()
    handlers = root_logger.handlers[:]
    level = root_logger.level
    yield
    root_logger.handlers = handlers
    root_logger.setLevel(level)
    logging.getLogger("ghclients").setLevel(logging.NOTSET)
