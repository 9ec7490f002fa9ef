"""Client for repository tags."""

from __future__ import annotations

import httpx

from ghclients.errors import TagError
from ghclients.github_client import GitHubClient
from ghclients.models import Tag
from ghclients.pagination import clamp_page, clamp_qty_per_page


def _require_tag_name(tag_name: str) -> str:
    if not tag_name or not tag_name.strip():
        raise ValueError("The tag name must not be empty.")
    return tag_name.strip()


class TagClient(GitHubClient):
    """Reads the tags of one repository."""

    async def get_tags(
        self, page: int = 1, qty_per_page: int = 100
    ) -> tuple[list[Tag], httpx.Response]:
        """Get one page of the repository's tags.

        Raises:
            NotFoundError: If the owner or repository does not exist.
            TagError: If the request fails for any other reason.
        """
        data, response = await self.get_page(
            f"{self.repo_url}/tags",
            TagError,
            f"An error occurred trying to get the tags for the repository '{self.repo_name}'.",
            params={"page": clamp_page(page), "per_page": clamp_qty_per_page(qty_per_page)},
        )
        return [Tag.from_api(item) for item in data], response

    async def get_all_tags(self) -> list[Tag]:
        """Get every tag of the repository."""
        return await self.get_all_data(self.get_tags)

    async def get_tag_by_name(self, tag_name: str) -> Tag:
        """Find a tag by name.

        Raises:
            ValueError: If ``tag_name`` is empty.
            TagError: If no tag with that name exists.
        """
        tag_name = _require_tag_name(tag_name)

        tags = await self.get_all_data_until(
            self.get_tags, lambda page: any(tag.name.strip() == tag_name for tag in page)
        )

        for tag in tags:
            if tag.name.strip() == tag_name:
                return tag

        raise TagError(f"The tag '{tag_name}' could not be found.")

    async def tag_exists(self, tag_name: str) -> bool:
        """Check whether a tag with the given name exists."""
        tag_name = _require_tag_name(tag_name)

        tags = await self.get_all_data_until(
            self.get_tags, lambda page: any(tag.name.strip() == tag_name for tag in page)
        )
        return any(tag.name.strip() == tag_name for tag in tags)
