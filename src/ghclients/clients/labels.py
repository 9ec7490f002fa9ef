"""Client for repository labels."""

from __future__ import annotations

from urllib.parse import quote

import httpx

from ghclients.errors import LabelError
from ghclients.github_client import GitHubClient
from ghclients.models import Label
from ghclients.pagination import clamp_page, clamp_qty_per_page


class LabelClient(GitHubClient):
    """Reads the labels of one repository."""

    async def get_labels(
        self, page: int = 1, qty_per_page: int = 100
    ) -> tuple[list[Label], httpx.Response]:
        """Get one page of the repository's labels.

        Args:
            page: Page number, clamped to at least 1.
            qty_per_page: Labels per page, clamped to 1-100.

        Returns:
            The labels on the page and the response.

        Raises:
            NotFoundError: If the owner or repository does not exist.
            LabelError: If the request fails for any other reason.
        """
        data, response = await self.get_page(
            f"{self.repo_url}/labels",
            LabelError,
            f"An error occurred trying to get the labels for the repository '{self.repo_name}'.",
            params={"page": clamp_page(page), "per_page": clamp_qty_per_page(qty_per_page)},
        )
        return [Label.from_api(item) for item in data], response

    async def get_all_labels(self) -> list[Label]:
        """Get every label of the repository."""
        return await self.get_all_data(self.get_labels)

    async def label_exists(self, name: str) -> bool:
        """Check whether the repository has a label with the given name.

        Raises:
            ValueError: If ``name`` is empty.
            LabelError: If the check fails for a reason other than the label
                not existing.
        """
        if not name or not name.strip():
            raise ValueError("The label name must not be empty.")

        name = name.strip()
        url = f"{self.repo_url}/labels/{quote(name, safe='')}"
        response = await self.http.send_get(url)

        if response.status_code == 404:
            return False

        self.check_response(
            response,
            LabelError,
            f"There was an issue getting the repository label '{name}'.",
        )
        return True
