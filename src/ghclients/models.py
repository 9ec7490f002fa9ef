"""Typed views over GitHub REST API payloads.

Each model keeps the fields the clients work with and the full payload in
``raw`` for anything else.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import Any


class IssueState(StrEnum):
    """Issue state filter accepted by the issues endpoints."""

    OPEN = "open"
    CLOSED = "closed"
    ALL = "all"


def _parse_timestamp(value: str | None) -> datetime | None:
    """Parse a GitHub ISO 8601 timestamp (``2024-01-31T12:00:00Z``)."""
    if not value:
        return None
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


@dataclass(frozen=True)
class Label:
    """A repository label."""

    id: int
    name: str
    color: str = ""
    description: str = ""
    raw: dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> Label:
        return cls(
            id=data.get("id", 0),
            name=data.get("name", ""),
            color=data.get("color") or "",
            description=data.get("description") or "",
            raw=data,
        )


@dataclass(frozen=True)
class Issue:
    """An issue. The issues endpoints also return pull requests, see :attr:`is_pull_request`."""

    number: int
    title: str
    state: str
    labels: tuple[str, ...] = ()
    milestone_number: int | None = None
    html_url: str = ""
    is_pull_request: bool = False
    raw: dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> Issue:
        milestone = data.get("milestone") or {}
        return cls(
            number=data.get("number", 0),
            title=data.get("title", ""),
            state=data.get("state", ""),
            labels=tuple(label.get("name", "") for label in data.get("labels") or [] if label),
            milestone_number=milestone.get("number"),
            html_url=data.get("html_url", ""),
            # Pull requests listed through the issues API carry a "pull_request" key
            is_pull_request="pull_request" in data,
            raw=data,
        )


@dataclass(frozen=True)
class Tag:
    """A git tag."""

    name: str
    commit_sha: str = ""
    raw: dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> Tag:
        commit = data.get("commit") or {}
        return cls(name=data.get("name", ""), commit_sha=commit.get("sha", ""), raw=data)


@dataclass(frozen=True)
class Release:
    """A GitHub release."""

    id: int
    tag_name: str
    name: str
    draft: bool = False
    prerelease: bool = False
    html_url: str = ""
    raw: dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> Release:
        return cls(
            id=data.get("id", 0),
            tag_name=data.get("tag_name", ""),
            name=data.get("name") or "",
            draft=bool(data.get("draft", False)),
            prerelease=bool(data.get("prerelease", False)),
            html_url=data.get("html_url", ""),
            raw=data,
        )


@dataclass(frozen=True)
class WorkflowRun:
    """A GitHub Actions workflow run."""

    id: int
    name: str
    display_title: str
    status: str = ""
    conclusion: str | None = None
    event: str = ""
    head_branch: str = ""
    created_at: datetime | None = None
    pull_request_numbers: tuple[int, ...] = ()
    raw: dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> WorkflowRun:
        return cls(
            id=data.get("id", 0),
            name=data.get("name") or "",
            display_title=data.get("display_title") or "",
            status=data.get("status") or "",
            conclusion=data.get("conclusion"),
            event=data.get("event") or "",
            head_branch=data.get("head_branch") or "",
            created_at=_parse_timestamp(data.get("created_at")),
            pull_request_numbers=tuple(
                pr["number"] for pr in data.get("pull_requests") or [] if pr and "number" in pr
            ),
            raw=data,
        )
