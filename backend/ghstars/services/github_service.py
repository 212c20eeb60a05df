"""GitHub service for fetching the tracked user's starred repositories."""

import logging
from datetime import datetime
from typing import Any

import httpx

from ghstars.config import get_settings
from ghstars.utils import parse_github_timestamp

logger = logging.getLogger(__name__)
settings = get_settings()


class GitHubService:
    """Read-only GitHub REST client for stars and READMEs."""

    STAR_MEDIA_TYPE = "application/vnd.github.star+json"
    RAW_MEDIA_TYPE = "application/vnd.github.raw+json"

    def __init__(
        self,
        token: str | None = None,
        username: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.token = token if token is not None else settings.github_token
        self.username = username if username is not None else settings.github_username
        self.api_base = settings.github_api_base.rstrip("/")
        self.per_page = settings.github_per_page
        self._transport = transport

    def _headers(self, accept: str) -> dict[str, str]:
        headers = {
            "Accept": accept,
            "X-GitHub-Api-Version": "2022-11-28",
        }
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=self._transport, timeout=30.0)

    def _starred_url(self) -> str:
        if self.username:
            return f"{self.api_base}/users/{self.username}/starred"
        if not self.token:
            raise ValueError("Either github_username or github_token must be configured")
        return f"{self.api_base}/user/starred"

    async def fetch_starred_repositories(self, since: datetime | None = None) -> list[dict[str, Any]]:
        """Fetch starred repositories, newest star first.

        Args:
            since: Only return stars made at or after this (naive UTC) time

        Returns:
            Items shaped like {"starred_at": ..., "repo": {...}}
        """
        items: list[dict[str, Any]] = []
        url: str | None = self._starred_url()
        params: dict[str, Any] | None = {
            "per_page": self.per_page,
            "sort": "created",
            "direction": "desc",
        }

        async with self._client() as client:
            while url:
                response = await client.get(
                    url, params=params, headers=self._headers(self.STAR_MEDIA_TYPE)
                )
                response.raise_for_status()

                for item in response.json():
                    starred_at = parse_github_timestamp(item.get("starred_at"))
                    if since is not None and starred_at is not None and starred_at < since:
                        # Sorted newest first, nothing older is wanted
                        logger.info(f"Fetched {len(items)} starred repositories since {since}")
                        return items
                    items.append(item)

                # "next" link already carries the query string
                url = response.links.get("next", {}).get("url")
                params = None

        logger.info(f"Fetched {len(items)} starred repositories")
        return items

    async def fetch_readme(self, full_name: str) -> str:
        """Fetch the raw README of a repository.

        Returns an empty string when GitHub reports no README, so that the
        chunks of a deleted README get removed on the next sync.
        """
        async with self._client() as client:
            response = await client.get(
                f"{self.api_base}/repos/{full_name}/readme",
                headers=self._headers(self.RAW_MEDIA_TYPE),
            )
            if response.status_code == 404:
                return ""
            response.raise_for_status()
            return response.text
