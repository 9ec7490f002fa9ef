"""Client for repository issues."""

from __future__ import annotations

from typing import Any

import httpx

from ghclients.clients.labels import LabelClient
from ghclients.errors import IssueError, PaginationError
from ghclients.github_client import GitHubClient
from ghclients.http_client import AsyncGitHubHttpClient
from ghclients.logging import get_logger
from ghclients.models import Issue, IssueState
from ghclients.pagination import PaginationEngine, clamp_page, clamp_qty_per_page

logger = get_logger(__name__)


def _require_issue_number(issue_number: int) -> None:
    if issue_number < 1:
        raise ValueError(f"The issue number must be greater than 0, got {issue_number}.")


class IssueClient(GitHubClient):
    """Reads and updates the issues of one repository.

    The issues endpoints of the GitHub API also list pull requests; this
    client leaves them out.
    """

    def __init__(
        self,
        owner_name: str,
        repo_name: str,
        token: str | None = None,
        *,
        base_url: str | None = None,
        http: AsyncGitHubHttpClient | None = None,
        pagination: PaginationEngine | None = None,
        default_qty_per_page: int = 100,
        label_client: LabelClient | None = None,
    ) -> None:
        super().__init__(
            owner_name,
            repo_name,
            token,
            base_url=base_url,
            http=http,
            pagination=pagination,
            default_qty_per_page=default_qty_per_page,
        )
        # Same transport, so label lookups go through the same rate limit monitor
        self.label_client = label_client or LabelClient(
            owner_name,
            repo_name,
            base_url=base_url,
            http=self.http,
            pagination=self.pagination,
        )

    @GitHubClient.owner_name.setter
    def owner_name(self, value: str) -> None:
        GitHubClient.owner_name.fset(self, value)
        if hasattr(self, "label_client"):
            self.label_client.owner_name = value

    @GitHubClient.repo_name.setter
    def repo_name(self, value: str) -> None:
        GitHubClient.repo_name.fset(self, value)
        if hasattr(self, "label_client"):
            self.label_client.repo_name = value

    async def get_issues(
        self,
        page: int = 1,
        qty_per_page: int = 100,
        state: IssueState | str = IssueState.OPEN,
        labels: list[str] | None = None,
        milestone_number: int | None = None,
    ) -> tuple[list[Issue], httpx.Response]:
        """Get one page of the repository's issues.

        Args:
            page: Page number, clamped to at least 1.
            qty_per_page: Issues per page, clamped to 1-100.
            state: Only return issues in this state.
            labels: Only return issues with all of these labels.
            milestone_number: Only return issues in this milestone.

        Returns:
            The issues on the page, pull requests excluded, and the response.
            A page can hold fewer issues than ``qty_per_page`` even when more
            pages follow.

        Raises:
            IssueError: If the owner or repository does not exist or the
                request fails.
            AuthError: If the token is rejected.
        """
        label_list = ",".join(label.strip() for label in labels or [] if label and label.strip())

        data, response = await self.get_page(
            f"{self.repo_url}/issues",
            IssueError,
            f"An error occurred trying to get the issues for the repository '{self.repo_name}'.",
            params={
                "page": clamp_page(page),
                "per_page": clamp_qty_per_page(qty_per_page),
                "state": str(state),
                "labels": label_list or None,
                "milestone": milestone_number,
            },
            not_found_message=(
                f"The organization '{self.owner_name}' or repository "
                f"'{self.repo_name}' does not exist."
            ),
        )

        issues = [Issue.from_api(item) for item in data]
        return [issue for issue in issues if not issue.is_pull_request], response

    async def get_issue(self, issue_number: int) -> Issue:
        """Get a single issue.

        Raises:
            ValueError: If ``issue_number`` is less than 1.
            IssueError: If the issue does not exist, is a pull request, or the
                request fails.
        """
        _require_issue_number(issue_number)

        not_found = f"The repository '{self.repo_name}' or issue '{issue_number}' does not exist."
        response = await self.http.send_get(f"{self.repo_url}/issues/{issue_number}")
        self.check_response(
            response,
            IssueError,
            f"An error occurred trying to get issue '{issue_number}'.",
            not_found_message=not_found,
        )

        issue = Issue.from_api(self.http.get_response_data(response))
        if issue.is_pull_request:
            raise IssueError(not_found)
        return issue

    async def get_all_open_issues(self) -> list[Issue]:
        """Get every open issue of the repository."""
        return await self.get_all_data(
            lambda page, qty_per_page: self.get_issues(page, qty_per_page, IssueState.OPEN)
        )

    async def get_all_closed_issues(self) -> list[Issue]:
        """Get every closed issue of the repository."""
        return await self.get_all_data(
            lambda page, qty_per_page: self.get_issues(page, qty_per_page, IssueState.CLOSED)
        )

    async def issue_exists(
        self, issue_number: int, state: IssueState | str = IssueState.ALL
    ) -> bool:
        """Check whether an issue with the given number exists.

        Args:
            issue_number: The issue number.
            state: Only consider issues in this state.

        Returns:
            True if an issue (not a pull request) with that number exists in
            the given state.

        Raises:
            ValueError: If ``issue_number`` is less than 1.
            IssueError: If listing the issues fails.
        """
        _require_issue_number(issue_number)

        try:
            issues = await self.get_all_data_until(
                lambda page, qty_per_page: self.get_issues(page, qty_per_page, state),
                lambda page: any(issue.number == issue_number for issue in page),
            )
        except PaginationError as e:
            logger.warning("Could not determine if issue %d exists: %s", issue_number, e)
            return False

        return any(issue.number == issue_number for issue in issues)

    async def get_labels(self, issue_number: int) -> list[str]:
        """Get the names of the labels on an issue.

        Raises:
            ValueError: If ``issue_number`` is less than 1.
            IssueError: If the issue does not exist or the request fails.
        """
        _require_issue_number(issue_number)

        response = await self.http.send_get(f"{self.repo_url}/issues/{issue_number}/labels")
        self.check_response(
            response,
            IssueError,
            f"There was an issue getting the labels for issue '{issue_number}'.",
            not_found_message=f"An issue with the number '{issue_number}' does not exist.",
        )

        return [label["name"] for label in self.http.get_response_data(response)]

    async def add_label(self, issue_number: int, label: str) -> None:
        """Add an existing repository label to an issue.

        Raises:
            ValueError: If ``issue_number`` is less than 1 or ``label`` is empty.
            IssueError: If the label does not exist in the repository, the
                issue does not exist, or the update fails.
        """
        _require_issue_number(issue_number)

        if not await self.label_client.label_exists(label):
            raise IssueError(
                f"The label '{label}' attempting to be added to issue '{issue_number}' "
                f"does not exist in the repository '{self.repo_name}'."
            )

        labels = await self.get_labels(issue_number)
        labels.append(label.strip())

        response = await self.http.send_patch(
            f"{self.repo_url}/issues/{issue_number}", {"labels": labels}
        )
        self.check_response(
            response,
            IssueError,
            f"An error occurred trying to add the label '{label}' to issue '{issue_number}'.",
            not_found_message=f"An issue with the number '{issue_number}' does not exist.",
        )
        logger.info("Added label '%s' to issue #%d", label, issue_number)

    async def update_issue(self, issue_number: int, issue_data: dict[str, Any]) -> None:
        """Update an issue.

        Args:
            issue_number: The issue number.
            issue_data: Fields to change, as accepted by the GitHub
                "update an issue" endpoint (title, body, state, labels, ...).

        Raises:
            ValueError: If ``issue_number`` is less than 1.
            IssueError: If the issue does not exist or the update fails.
        """
        _require_issue_number(issue_number)

        response = await self.http.send_patch(f"{self.repo_url}/issues/{issue_number}", issue_data)
        self.check_response(
            response,
            IssueError,
            f"An error occurred trying to update issue '{issue_number}'.",
            not_found_message=f"An issue with the number '{issue_number}' does not exist.",
        )
