"""Tests for the GitHub stars client."""

from datetime import datetime

import httpx
import pytest

from ghstars.services.github_service import GitHubService


def star(repo_id: int, starred_at: str) -> dict:
    return {
        "starred_at": starred_at,
        "repo": {"id": repo_id, "full_name": f"owner/repo{repo_id}"},
    }


def make_service(handler, token="t0ken", username="octo") -> GitHubService:
    return GitHubService(token=token, username=username, transport=httpx.MockTransport(handler))


class TestFetchStarredRepositories:
    """Test star listing and pagination."""

    @pytest.mark.asyncio
    async def test_follows_link_pagination(self):
        """Pages are followed through the Link header."""
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            if request.url.params.get("page") == "2":
                return httpx.Response(200, json=[star(3, "2024-01-01T00:00:00Z")])
            return httpx.Response(
                200,
                json=[star(1, "2024-03-01T00:00:00Z"), star(2, "2024-02-01T00:00:00Z")],
                headers={
                    "Link": '<https://api.github.com/users/octo/starred?per_page=100&page=2>; rel="next"'
                },
            )

        items = await make_service(handler).fetch_starred_repositories()

        assert [i["repo"]["id"] for i in items] == [1, 2, 3]
        assert len(seen) == 2
        first = seen[0]
        assert first.url.path == "/users/octo/starred"
        assert first.url.params["sort"] == "created"
        assert first.url.params["direction"] == "desc"
        assert first.headers["Accept"] == "application/vnd.github.star+json"
        assert first.headers["Authorization"] == "Bearer t0ken"

    @pytest.mark.asyncio
    async def test_stops_at_since(self):
        """Stars older than since end the listing."""
        pages = []

        def handler(request: httpx.Request) -> httpx.Response:
            pages.append(request.url)
            return httpx.Response(
                200,
                json=[star(1, "2024-03-01T00:00:00Z"), star(2, "2023-12-01T00:00:00Z")],
                headers={"Link": '<https://api.github.com/users/octo/starred?page=2>; rel="next"'},
            )

        items = await make_service(handler).fetch_starred_repositories(since=datetime(2024, 1, 1))

        assert [i["repo"]["id"] for i in items] == [1]
        assert len(pages) == 1

    @pytest.mark.asyncio
    async def test_authenticated_user_without_username(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/user/starred"
            return httpx.Response(200, json=[])

        assert await make_service(handler, username="").fetch_starred_repositories() == []

    @pytest.mark.asyncio
    async def test_requires_username_or_token(self):
        service = make_service(lambda request: httpx.Response(200, json=[]), token="", username="")

        with pytest.raises(ValueError):
            await service.fetch_starred_repositories()

    @pytest.mark.asyncio
    async def test_http_errors_raise(self):
        service = make_service(lambda request: httpx.Response(502))

        with pytest.raises(httpx.HTTPStatusError):
            await service.fetch_starred_repositories()


class TestFetchReadme:
    """Test README download."""

    @pytest.mark.asyncio
    async def test_returns_raw_text(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/repos/octo/cat/readme"
            assert request.headers["Accept"] == "application/vnd.github.raw+json"
            return httpx.Response(200, text="# cat\n")

        assert await make_service(handler).fetch_readme("octo/cat") == "# cat\n"

    @pytest.mark.asyncio
    async def test_missing_readme_is_empty(self):
        service = make_service(lambda request: httpx.Response(404, json={"message": "Not Found"}))

        assert await service.fetch_readme("octo/cat") == ""
