"""GitHub Clients - paginated, rate limit aware GitHub REST API clients."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("github-clients")
except PackageNotFoundError:
    # Package is not installed (e.g., running from source without pip install)
    __version__ = "0.0.0.dev0"

# Re-export core public API
from ghclients.clients import (
    IssueClient,
    LabelClient,
    ReleaseClient,
    TagClient,
    WorkflowClient,
)
from ghclients.config import Config, load_config
from ghclients.container import ClientsContainer, create_container
from ghclients.errors import (
    AuthError,
    ErrorKind,
    GitHubClientError,
    IssueError,
    LabelError,
    NotFoundError,
    PaginationError,
    RateLimitHeaderError,
    ReleaseError,
    TagError,
    TransportError,
    WorkflowError,
)
from ghclients.github_client import GitHubClient
from ghclients.http_client import AsyncGitHubHttpClient
from ghclients.link_header import LinkHeaderInfo, LinkHeaderParser, PageLink
from ghclients.pagination import PaginationEngine
from ghclients.rate_limit import RateLimitMonitor, RateLimitState

# NOTE: Update this list when adding new exports to this module.
__all__ = [
    "__version__",
    "AsyncGitHubHttpClient",
    "AuthError",
    "ClientsContainer",
    "Config",
    "ErrorKind",
    "GitHubClient",
    "GitHubClientError",
    "IssueClient",
    "IssueError",
    "LabelClient",
    "LabelError",
    "LinkHeaderInfo",
    "LinkHeaderParser",
    "NotFoundError",
    "PageLink",
    "PaginationEngine",
    "PaginationError",
    "RateLimitHeaderError",
    "RateLimitMonitor",
    "RateLimitState",
    "ReleaseClient",
    "ReleaseError",
    "TagClient",
    "TagError",
    "TransportError",
    "WorkflowClient",
    "WorkflowError",
    "create_container",
    "load_config",
]
