"""Configuration loading from environment variables."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

# Valid log levels
VALID_LOG_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})

# GitHub REST page size bounds
MIN_QTY_PER_PAGE = 1
MAX_QTY_PER_PAGE = 100

# Admission gate poll interval bounds (seconds)
MIN_ADMISSION_POLL_SECONDS = 1.0
MAX_ADMISSION_POLL_SECONDS = 5.0

DEFAULT_BACKOFF_MS = 60_000
DEFAULT_BACKOFF_MULTIPLIER = 1.2
DEFAULT_MAX_IN_FLIGHT = 100
DEFAULT_MAX_RATE_LIMIT_RETRIES = 5


@dataclass(frozen=True)
class GitHubConfig:
    """GitHub API credentials and endpoint.

    Attributes:
        token: Personal access token or app token. Empty means unauthenticated.
        api_url: Custom REST API URL for GitHub Enterprise (empty = github.com).
    """

    token: str = ""
    api_url: str = ""

    @property
    def configured(self) -> bool:
        """Check if a GitHub token is configured."""
        return bool(self.token)


@dataclass(frozen=True)
class RateLimitConfig:
    """Rate limit handling settings.

    Attributes:
        default_backoff_ms: Wait applied the first time the primary limit is hit.
        backoff_multiplier: Growth factor applied to the wait after each consecutive hit.
        max_in_flight: Requests allowed to be outstanding before new ones are held back.
        admission_poll_seconds: How often a held-back request re-checks the in-flight count.
        max_rate_limit_retries: Times a rate limited request is re-sent before its
            response is handed back as is.
    """

    default_backoff_ms: int = DEFAULT_BACKOFF_MS
    backoff_multiplier: float = DEFAULT_BACKOFF_MULTIPLIER
    max_in_flight: int = DEFAULT_MAX_IN_FLIGHT
    admission_poll_seconds: float = MIN_ADMISSION_POLL_SECONDS
    max_rate_limit_retries: int = DEFAULT_MAX_RATE_LIMIT_RETRIES


@dataclass(frozen=True)
class PaginationConfig:
    """Pagination defaults.

    Attributes:
        default_qty_per_page: Page size used by resource clients (1-100).
    """

    default_qty_per_page: int = MAX_QTY_PER_PAGE


@dataclass(frozen=True)
class LoggingConfig:
    """Logging settings.

    Attributes:
        level: Log level name.
        json: Whether to emit JSON formatted logs.
        diagnostic_tags: Comma-separated diagnostic tags to enable.
    """

    level: str = "INFO"
    json: bool = False
    diagnostic_tags: str = ""


@dataclass(frozen=True)
class Config:
    """Configuration loaded from environment.

    This dataclass is frozen (immutable) to prevent accidental modification
    after creation.
    """

    github: GitHubConfig = field(default_factory=GitHubConfig)
    rate_limit: RateLimitConfig = field(default_factory=RateLimitConfig)
    pagination: PaginationConfig = field(default_factory=PaginationConfig)
    logging_config: LoggingConfig = field(default_factory=LoggingConfig)


def _invalid(name: str, value: object, reason: str, default: object) -> None:
    logging.warning("Invalid %s: %r %s, using default %r", name, value, reason, default)


def _parse_positive_int(value: str, name: str, default: int) -> int:
    """Parse a positive integer setting, warning and falling back to ``default``."""
    try:
        parsed = int(value)
    except ValueError:
        _invalid(name, value, "is not a valid integer", default)
        return default

    if parsed <= 0:
        _invalid(name, parsed, "is not positive", default)
        return default
    return parsed


def _parse_bounded_int(value: str, name: str, default: int, min_value: int, max_value: int) -> int:
    """Parse an integer setting and clamp it into ``[min_value, max_value]``.

    Unparseable values fall back to ``default``; out of range values are
    clamped, with a warning.
    """
    parsed = _parse_positive_int(value, name, default)
    clamped = max(min_value, min(parsed, max_value))
    if clamped != parsed:
        logging.warning(
            "Invalid %s: %d is outside %d-%d, using %d", name, parsed, min_value, max_value, clamped
        )
    return clamped


def _parse_bounded_float(
    value: str, name: str, default: float, min_value: float, max_value: float = float("inf")
) -> float:
    """Parse a number setting within ``[min_value, max_value]``.

    Args:
        value: Raw value from the environment.
        name: Environment variable name, for the warning.
        default: Used when ``value`` is not a number or is out of range.
        min_value: Inclusive lower bound.
        max_value: Inclusive upper bound.
    """
    try:
        parsed = float(value)
    except ValueError:
        _invalid(name, value, "is not a valid number", default)
        return default

    if not min_value <= parsed <= max_value:
        _invalid(name, parsed, f"is not in range {min_value}-{max_value}", default)
        return default
    return parsed


def _parse_multiplier(value: str, name: str, default: float) -> float:
    """Parse a backoff multiplier; values below 1.0 would shrink the wait."""
    return _parse_bounded_float(value, name, default, 1.0)


def _validate_log_level(value: str, default: str = "INFO") -> str:
    """Return the upper-cased level name, or ``default`` if it is not a known level."""
    normalized = value.upper()
    if normalized in VALID_LOG_LEVELS:
        return normalized

    valid = ", ".join(sorted(VALID_LOG_LEVELS))
    _invalid("GHCLIENTS_LOG_LEVEL", value, f"is not one of {valid}", default)
    return default


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in ("true", "1", "yes")


def load_config(env_file: Path | None = None) -> Config:
    """Load configuration from environment variables.

    Args:
        env_file: Optional path to .env file. If not provided,
                  looks for .env in current directory.

    Returns:
        Config object with loaded values. Invalid values are reported with a
        warning and replaced by their defaults.
    """
    if env_file:
        load_dotenv(env_file)
    else:
        load_dotenv()

    github = GitHubConfig(
        token=os.getenv("GITHUB_TOKEN", ""),
        api_url=os.getenv("GITHUB_API_URL", ""),
    )

    rate_limit = RateLimitConfig(
        default_backoff_ms=_parse_positive_int(
            os.getenv("GHCLIENTS_RATE_LIMIT_BACKOFF_MS", str(DEFAULT_BACKOFF_MS)),
            "GHCLIENTS_RATE_LIMIT_BACKOFF_MS",
            DEFAULT_BACKOFF_MS,
        ),
        backoff_multiplier=_parse_multiplier(
            os.getenv("GHCLIENTS_RATE_LIMIT_BACKOFF_MULTIPLIER", str(DEFAULT_BACKOFF_MULTIPLIER)),
            "GHCLIENTS_RATE_LIMIT_BACKOFF_MULTIPLIER",
            DEFAULT_BACKOFF_MULTIPLIER,
        ),
        max_in_flight=_parse_positive_int(
            os.getenv("GHCLIENTS_RATE_LIMIT_MAX_IN_FLIGHT", str(DEFAULT_MAX_IN_FLIGHT)),
            "GHCLIENTS_RATE_LIMIT_MAX_IN_FLIGHT",
            DEFAULT_MAX_IN_FLIGHT,
        ),
        admission_poll_seconds=_parse_bounded_float(
            os.getenv("GHCLIENTS_RATE_LIMIT_POLL_SECONDS", str(MIN_ADMISSION_POLL_SECONDS)),
            "GHCLIENTS_RATE_LIMIT_POLL_SECONDS",
            MIN_ADMISSION_POLL_SECONDS,
            MIN_ADMISSION_POLL_SECONDS,
            MAX_ADMISSION_POLL_SECONDS,
        ),
        max_rate_limit_retries=_parse_positive_int(
            os.getenv("GHCLIENTS_RATE_LIMIT_MAX_RETRIES", str(DEFAULT_MAX_RATE_LIMIT_RETRIES)),
            "GHCLIENTS_RATE_LIMIT_MAX_RETRIES",
            DEFAULT_MAX_RATE_LIMIT_RETRIES,
        ),
    )

    pagination = PaginationConfig(
        default_qty_per_page=_parse_bounded_int(
            os.getenv("GHCLIENTS_DEFAULT_QTY_PER_PAGE", str(MAX_QTY_PER_PAGE)),
            "GHCLIENTS_DEFAULT_QTY_PER_PAGE",
            MAX_QTY_PER_PAGE,
            MIN_QTY_PER_PAGE,
            MAX_QTY_PER_PAGE,
        ),
    )

    logging_config = LoggingConfig(
        level=_validate_log_level(os.getenv("GHCLIENTS_LOG_LEVEL", "INFO")),
        json=_parse_bool(os.getenv("GHCLIENTS_LOG_JSON", "")),
        diagnostic_tags=os.getenv("GHCLIENTS_DIAGNOSTIC_TAGS", ""),
    )

    return Config(
        github=github,
        rate_limit=rate_limit,
        pagination=pagination,
        logging_config=logging_config,
    )
