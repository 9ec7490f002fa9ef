"""Error types raised by the GitHub clients.

Every error carries an :class:`ErrorKind` tag. The pagination engine uses the
tag to decide whether an exception raised by a page-fetch function is one it
must let through untouched, or an unrecognized failure it wraps in a
:class:`PaginationError`.
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(Enum):
    """Classification tag carried by every client error."""

    AUTH = "auth"
    NOT_FOUND = "not_found"
    ISSUE = "issue"
    LABEL = "label"
    TAG = "tag"
    RELEASE = "release"
    WORKFLOW = "workflow"
    TRANSPORT = "transport"
    RATE_LIMIT_HEADER = "rate_limit_header"
    PAGINATION = "pagination"

    @property
    def is_known(self) -> bool:
        """Whether errors of this kind pass through pagination unchanged."""
        return self is not ErrorKind.PAGINATION


class GitHubClientError(Exception):
    """Base class for all errors raised by the GitHub clients."""

    kind: ErrorKind = ErrorKind.PAGINATION


class AuthError(GitHubClientError):
    """Raised when GitHub rejects the credentials of a request."""

    kind = ErrorKind.AUTH

    def __init__(self, message: str | None = None) -> None:
        super().__init__(
            message
            or "Authentication error occurred. Please check your credentials and try again."
        )


class NotFoundError(GitHubClientError):
    """Raised when a requested owner, repository or resource does not exist."""

    kind = ErrorKind.NOT_FOUND


class IssueError(GitHubClientError):
    """Raised when an issue operation fails."""

    kind = ErrorKind.ISSUE


class LabelError(GitHubClientError):
    """Raised when a label operation fails."""

    kind = ErrorKind.LABEL


class TagError(GitHubClientError):
    """Raised when a tag operation fails."""

    kind = ErrorKind.TAG


class ReleaseError(GitHubClientError):
    """Raised when a release operation fails."""

    kind = ErrorKind.RELEASE


class WorkflowError(GitHubClientError):
    """Raised when a workflow run operation fails."""

    kind = ErrorKind.WORKFLOW


class TransportError(GitHubClientError):
    """Raised when the underlying HTTP request could not be completed."""

    kind = ErrorKind.TRANSPORT


class RateLimitHeaderError(GitHubClientError):
    """Raised when rate limit headers needed to compute a wait are missing or invalid."""

    kind = ErrorKind.RATE_LIMIT_HEADER


class PaginationError(GitHubClientError):
    """Raised when a page fetch fails for a reason the pagination engine does not recognize."""

    kind = ErrorKind.PAGINATION


def is_known_error(error: BaseException) -> bool:
    """Return True if the error carries a known :class:`ErrorKind` tag.

    Args:
        error: The exception to classify.

    Returns:
        True for tagged client errors of a known kind, False for everything else
        (including untagged exceptions and :class:`PaginationError`).
    """
    kind = getattr(error, "kind", None)
    return isinstance(kind, ErrorKind) and kind.is_known
