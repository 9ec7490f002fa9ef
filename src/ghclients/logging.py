"""Logging for the GitHub clients.

Every module logs through ``get_logger(__name__)``. Records may carry the
repository coordinates of the request (``owner``, ``repo``, ``page``,
``resource``) and, for rate limit waits, ``wait_ms``; both formatters render
them. The library never installs handlers; scripts call :func:`setup_logging`.
"""

from __future__ import annotations

import json
import logging
import sys
from collections.abc import MutableMapping
from datetime import UTC, datetime
from typing import Any

# Record attributes rendered as context by the formatters, in display order
CONTEXT_FIELDS = ("owner", "repo", "page", "resource")

DIAGNOSTIC_TAG_ATTR = "diagnostic_tag"


class DiagnosticFilter(logging.Filter):
    """Suppresses tagged DEBUG records unless their tag is enabled.

    Page-by-page pagination traces and admission gate polling are noisy, so
    they are logged at DEBUG with ``extra={"diagnostic_tag": "<tag>"}`` and
    only emitted when the tag is listed in ``GHCLIENTS_DIAGNOSTIC_TAGS``
    (``"*"`` lists all of them). Untagged records and anything above DEBUG
    are never filtered.

    Attributes:
        enabled_tags: Tags whose DEBUG records pass.
        allow_all: True when ``"*"`` is among the enabled tags.
    """

    def __init__(self, enabled_tags: frozenset[str] | None = None) -> None:
        super().__init__()
        self.enabled_tags: frozenset[str] = enabled_tags or frozenset()
        self.allow_all: bool = "*" in self.enabled_tags

    def filter(self, record: logging.LogRecord) -> bool:
        tag = getattr(record, DIAGNOSTIC_TAG_ATTR, None)
        if record.levelno != logging.DEBUG or tag is None:
            return True
        return self.allow_all or tag in self.enabled_tags

    @classmethod
    def from_config_string(cls, tags_csv: str) -> DiagnosticFilter:
        """Build a filter from a comma-separated tag list such as ``"pagination, rate_limit"``.

        Blank entries are ignored, so an empty string enables no tags.
        """
        return cls(frozenset(tag.strip() for tag in tags_csv.split(",") if tag.strip()))


def _component(record: logging.LogRecord) -> str:
    # "ghclients.clients.issues" -> "issues"
    return record.name.rpartition(".")[2]


def _context(record: logging.LogRecord, *extra_fields: str) -> dict[str, Any]:
    return {
        key: getattr(record, key)
        for key in (*CONTEXT_FIELDS, *extra_fields)
        if hasattr(record, key)
    }


class StructuredFormatter(logging.Formatter):
    """Human readable single-line format.

    ``2024-05-01 12:00:00.123 [WARNING ] [rate_limit  ] [owner=octocat repo=hello-world] message``
    """

    def format(self, record: logging.LogRecord) -> str:
        created = datetime.fromtimestamp(record.created, tz=UTC)
        line = (
            f"{created:%Y-%m-%d %H:%M:%S}.{created.microsecond // 1000:03d} "
            f"[{record.levelname:8}] [{_component(record):12}]"
        )

        context = _context(record)
        if context:
            line += " [" + " ".join(f"{key}={value}" for key, value in context.items()) + "]"

        line += f" {record.getMessage()}"
        if record.exc_info:
            line += f" {self.formatException(record.exc_info)}"
        return line


class JSONFormatter(logging.Formatter):
    """One JSON object per record, for log shippers."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "component": _component(record),
            "message": record.getMessage(),
            **_context(record, "wait_ms"),
        }
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


class ContextAdapter(logging.LoggerAdapter[logging.Logger]):
    """Adds fixed repository context to every record it logs.

    Usage:
        logger = get_logger(__name__)
        repo_logger = logger.with_context(owner="octocat", repo="hello-world")
        repo_logger.info("Fetching labels")
    """

    def process(
        self, msg: str, kwargs: MutableMapping[str, Any]
    ) -> tuple[str, MutableMapping[str, Any]]:
        kwargs["extra"] = {**kwargs.get("extra", {}), **(self.extra or {})}
        return msg, kwargs


class GitHubClientsLogger(logging.Logger):
    """Logger class registered for the whole process by this module."""

    def with_context(self, **context: Any) -> ContextAdapter:
        """Return an adapter that attaches ``context`` to each record."""
        return ContextAdapter(self, context)


logging.setLoggerClass(GitHubClientsLogger)


def get_logger(name: str) -> GitHubClientsLogger:
    """Get the logger for a module; pass ``__name__``."""
    return logging.getLogger(name)  # type: ignore[return-value]


def setup_logging(
    level: str = "INFO",
    json_format: bool = False,
    replace_handlers: bool = True,
    diagnostic_tags: str = "",
) -> None:
    """Send log records to stderr.

    Meant for the entry point of a script using the clients; the library
    never calls it.

    Args:
        level: Level name for the root and ``ghclients`` loggers. Unknown
            names fall back to INFO.
        json_format: Use :class:`JSONFormatter` instead of :class:`StructuredFormatter`.
        replace_handlers: Drop the root logger's existing handlers first.
        diagnostic_tags: Comma-separated diagnostic tags to emit, see
            :class:`DiagnosticFilter`.
    """
    numeric_level = logging.getLevelNamesMapping().get(level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)
    if replace_handlers:
        for existing in list(root_logger.handlers):
            root_logger.removeHandler(existing)

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(numeric_level)
    handler.setFormatter(JSONFormatter() if json_format else StructuredFormatter())
    handler.addFilter(DiagnosticFilter.from_config_string(diagnostic_tags))
    root_logger.addHandler(handler)

    logging.getLogger("ghclients").setLevel(numeric_level)
