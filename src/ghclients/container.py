"""Dependency Injection container for the GitHub clients.

Wires one rate limit monitor, one HTTP transport and one pagination engine
shared by every resource client the container creates, so all requests made
through the container count against the same rate limit state.

Usage:
    container = create_container(load_config())
    issues = container.issue_client("octocat", "hello-world")
    labels = container.label_client("octocat", "hello-world")

    # Tests override the transport
    container.http_client.override(AsyncGitHubHttpClient(transport=mock_transport))
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from dependency_injector import containers, providers

from ghclients.clients import (
    IssueClient,
    LabelClient,
    ReleaseClient,
    TagClient,
    WorkflowClient,
)
from ghclients.http_client import AsyncGitHubHttpClient
from ghclients.pagination import PaginationEngine
from ghclients.rate_limit import RateLimitMonitor

if TYPE_CHECKING:
    from ghclients.config import Config


def create_rate_limit_monitor(config: Config) -> RateLimitMonitor:
    """Create the rate limit monitor.

    Args:
        config: Application configuration.

    Returns:
        RateLimitMonitor configured from the rate limit settings.
    """
    return RateLimitMonitor.from_config(config)


def create_http_client(config: Config, monitor: RateLimitMonitor) -> AsyncGitHubHttpClient:
    """Create the HTTP transport.

    Args:
        config: Application configuration.
        monitor: Rate limit monitor consulted around every request.

    Returns:
        AsyncGitHubHttpClient using the monitor.
    """
    return AsyncGitHubHttpClient(
        monitor=monitor,
        max_rate_limit_retries=config.rate_limit.max_rate_limit_retries,
    )


def github_token(config: Config) -> str | None:
    """The configured token, None if unset."""
    return config.github.token or None


def github_api_url(config: Config) -> str | None:
    """The configured API base URL, None to use github.com."""
    return config.github.api_url or None


def default_qty_per_page(config: Config) -> int:
    return config.pagination.default_qty_per_page


class ClientsContainer(containers.DeclarativeContainer):
    """Container for the GitHub resource clients.

    ClientsContainer
    ├── config (Config)
    ├── rate_limit_monitor (singleton)
    ├── http_client (singleton)
    ├── pagination_engine (singleton)
    └── label_client, issue_client, tag_client, release_client,
        workflow_client (factories taking owner_name, repo_name)
    """

    config: providers.Dependency[Config] = providers.Dependency()

    rate_limit_monitor = providers.Singleton(create_rate_limit_monitor, config)

    http_client = providers.Singleton(create_http_client, config, rate_limit_monitor)

    pagination_engine = providers.Singleton(PaginationEngine)

    token = providers.Callable(github_token, config)
    base_url = providers.Callable(github_api_url, config)
    qty_per_page = providers.Callable(default_qty_per_page, config)

    # Resource clients are created per repository; owner_name and repo_name
    # are passed positionally when the provider is called
    label_client = providers.Factory(
        LabelClient,
        token=token,
        base_url=base_url,
        http=http_client,
        pagination=pagination_engine,
        default_qty_per_page=qty_per_page,
    )

    issue_client = providers.Factory(
        IssueClient,
        token=token,
        base_url=base_url,
        http=http_client,
        pagination=pagination_engine,
        default_qty_per_page=qty_per_page,
    )

    tag_client = providers.Factory(
        TagClient,
        token=token,
        base_url=base_url,
        http=http_client,
        pagination=pagination_engine,
        default_qty_per_page=qty_per_page,
    )

    release_client = providers.Factory(
        ReleaseClient,
        token=token,
        base_url=base_url,
        http=http_client,
        pagination=pagination_engine,
        default_qty_per_page=qty_per_page,
    )

    workflow_client = providers.Factory(
        WorkflowClient,
        token=token,
        base_url=base_url,
        http=http_client,
        pagination=pagination_engine,
        default_qty_per_page=qty_per_page,
    )


def create_container(config: Config | None = None) -> ClientsContainer:
    """Create and configure the clients container.

    Args:
        config: Optional configuration. If not provided, loads from environment.

    Returns:
        A ClientsContainer with the configuration provided.
    """
    from ghclients.config import load_config

    if config is None:
        config = load_config()

    container = ClientsContainer()
    container.config.override(providers.Object(config))
    return container
