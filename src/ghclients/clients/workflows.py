"""Client for GitHub Actions workflow runs."""

from __future__ import annotations

from datetime import datetime

import httpx

from ghclients.errors import WorkflowError
from ghclients.github_client import GitHubClient
from ghclients.logging import get_logger
from ghclients.models import WorkflowRun
from ghclients.pagination import clamp_page, clamp_qty_per_page

logger = get_logger(__name__)


def _require_title(title: str) -> str:
    if not title or not title.strip():
        raise ValueError("The workflow run title must not be empty.")
    return title.strip()


class WorkflowClient(GitHubClient):
    """Reads the workflow runs of one repository."""

    async def get_workflow_runs(
        self,
        page: int = 1,
        qty_per_page: int = 100,
        branch: str | None = None,
        event: str | None = None,
        status: str | None = None,
    ) -> tuple[list[WorkflowRun], httpx.Response]:
        """Get one page of the repository's workflow runs.

        Args:
            page: Page number, clamped to at least 1.
            qty_per_page: Runs per page, clamped to 1-100.
            branch: Only runs for this branch. Any branch if None.
            event: Only runs triggered by this event (e.g. ``push``). Any event if None.
            status: Only runs with this status or conclusion (e.g. ``completed``,
                ``failure``). Any status if None.

        Returns:
            The workflow runs on the page and the response.

        Raises:
            NotFoundError: If the owner or repository does not exist.
            WorkflowError: If the request fails for any other reason.
        """
        branch = branch.strip() if branch else None

        data, response = await self.get_page(
            f"{self.repo_url}/actions/runs",
            WorkflowError,
            "An error occurred trying to get the workflow runs for the repository "
            f"'{self.repo_name}'.",
            params={
                "page": clamp_page(page),
                "per_page": clamp_qty_per_page(qty_per_page),
                "branch": branch or None,
                "event": event,
                "status": status,
            },
            items_key="workflow_runs",
        )
        return [WorkflowRun.from_api(item) for item in data], response

    async def get_workflow_runs_between_dates(
        self, start_date: datetime, end_date: datetime
    ) -> list[WorkflowRun]:
        """Get every workflow run created between two dates, inclusive.

        Args:
            start_date: Earliest creation time. Naive datetimes are compared as is,
                so pass timezone-aware values.
            end_date: Latest creation time.
        """
        if start_date > end_date:
            raise ValueError("The start date must not be after the end date.")

        return await self.get_all_filtered_data(
            self.get_workflow_runs,
            lambda runs: [
                run
                for run in runs
                if run.created_at is not None and start_date <= run.created_at <= end_date
            ],
        )

    async def get_all_workflow_runs_by_title(self, title: str) -> list[WorkflowRun]:
        """Get every workflow run with the given workflow name."""
        title = _require_title(title)

        return await self.get_all_filtered_data(
            self.get_workflow_runs,
            lambda runs: [run for run in runs if run.name.strip() == title],
        )

    async def get_workflow_run_by_title(self, title: str) -> WorkflowRun:
        """Find the first workflow run found with the given display title.

        Raises:
            ValueError: If ``title`` is empty.
            WorkflowError: If no run has that title.
        """
        title = _require_title(title)

        runs = await self.get_all_data_until(
            self.get_workflow_runs,
            lambda page: any(run.display_title.strip() == title for run in page),
        )

        for run in runs:
            if run.display_title.strip() == title:
                return run

        raise WorkflowError(f"A workflow run with the title '{title}' was not found.")

    async def get_workflow_runs_for_pr(self, pr_number: int) -> list[WorkflowRun]:
        """Get the workflow runs of a pull request found on the first matching page.

        Raises:
            ValueError: If ``pr_number`` is less than 1.
        """
        if pr_number < 1:
            raise ValueError(f"The pull request number must be greater than 0, got {pr_number}.")

        runs = await self.get_all_data_until(
            self.get_workflow_runs,
            lambda page: any(pr_number in run.pull_request_numbers for run in page),
        )

        result = [run for run in runs if pr_number in run.pull_request_numbers]
        logger.debug("Found %d workflow runs for pull request #%d", len(result), pr_number)
        return result

    async def get_pull_request_workflow_runs(self) -> list[WorkflowRun]:
        """Get every workflow run that is associated with a pull request."""
        return await self.get_all_filtered_data(
            self.get_workflow_runs,
            lambda runs: [run for run in runs if run.pull_request_numbers],
        )
