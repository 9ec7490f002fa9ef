"""Client for repository releases."""

from __future__ import annotations

from collections.abc import Callable

import httpx

from ghclients.errors import ReleaseError
from ghclients.github_client import GitHubClient
from ghclients.logging import get_logger
from ghclients.models import Release
from ghclients.pagination import clamp_page, clamp_qty_per_page

logger = get_logger(__name__)


class ReleaseClient(GitHubClient):
    """Reads the releases of one repository.

    Releases are looked up by scanning the release list, newest first.
    """

    async def get_releases(
        self, page: int = 1, qty_per_page: int = 100
    ) -> tuple[list[Release], httpx.Response]:
        """Get one page of the repository's releases.

        Raises:
            ReleaseError: If the releases could not be found or the request fails.
        """
        data, response = await self.get_page(
            f"{self.repo_url}/releases",
            ReleaseError,
            f"An error occurred trying to get the releases for the repository '{self.repo_name}'.",
            params={"page": clamp_page(page), "per_page": clamp_qty_per_page(qty_per_page)},
            not_found_message=(
                f"The releases for the repository owner '{self.owner_name}' "
                f"and for the repository '{self.repo_name}' could not be found."
            ),
        )
        return [Release.from_api(item) for item in data], response

    async def get_release_by_tag(self, tag_name: str) -> Release:
        """Find a release by its tag name.

        Raises:
            ValueError: If ``tag_name`` is empty.
            ReleaseError: If no release has that tag.
        """
        tag_name = _require_value(tag_name, "tag name")
        return await self._find_release(
            lambda release: release.tag_name == tag_name, "tag", tag_name
        )

    async def get_release_by_title(self, title: str) -> Release:
        """Find a release by its title.

        Raises:
            ValueError: If ``title`` is empty.
            ReleaseError: If no release has that title.
        """
        title = _require_value(title, "title")
        return await self._find_release(lambda release: release.name == title, "title", title)

    async def release_exists(self, tag_name: str) -> bool:
        """Check whether a release with the given tag exists."""
        tag_name = _require_value(tag_name, "tag name")

        releases = await self.get_all_data_until(
            self.get_releases,
            lambda page: any(release.tag_name == tag_name for release in page),
        )
        return any(release.tag_name == tag_name for release in releases)

    async def _find_release(
        self, predicate: Callable[[Release], bool], search_by: str, value: str
    ) -> Release:
        releases = await self.get_all_data_until(
            self.get_releases, lambda page: any(predicate(release) for release in page)
        )

        for release in releases:
            if predicate(release):
                return release

        logger.debug("No release with %s '%s' in %s", search_by, value, self.repo_name)
        raise ReleaseError(
            f"A release with the {search_by} '{value}' for the repository "
            f"'{self.repo_name}' could not be found."
        )


def _require_value(value: str, name: str) -> str:
    if not value or not value.strip():
        raise ValueError(f"The release {name} must not be empty.")
    return value.strip()
