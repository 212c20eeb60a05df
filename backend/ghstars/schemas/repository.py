"""Repository schemas."""

import json
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator


class RepositoryPayload(BaseModel):
    """One repository as delivered to the sync orchestrator.

    Mirrors the GitHub repository object, plus the optional README text,
    free-form "about" text and the star timestamp.
    """

    id: int = Field(gt=0)
    full_name: str = Field(min_length=3)
    owner_login: str | None = None
    name: str | None = None
    html_url: str | None = None
    description: str | None = None
    language: str | None = None

    stargazers_count: int = Field(default=0, ge=0)
    forks_count: int = Field(default=0, ge=0)
    watchers_count: int = Field(default=0, ge=0)
    open_issues_count: int = Field(default=0, ge=0)

    created_at: datetime | None = None
    updated_at: datetime | None = None
    pushed_at: datetime | None = None

    fork: bool = False
    private: bool = False
    archived: bool = False
    disabled: bool = False

    default_branch: str | None = None
    topics: list[str] = Field(default_factory=list)
    license_key: str | None = None
    license_name: str | None = None

    readme: str | None = None
    readme_sha: str | None = None
    about: str | None = None
    starred_at: datetime | None = None

    raw: dict[str, Any] | None = None

    @field_validator("full_name", mode="after")
    @classmethod
    def validate_full_name(cls, v: str) -> str:
        """Full names look like owner/name."""
        owner, sep, name = v.strip().partition("/")
        if not sep or not owner or not name or "/" in name:
            raise ValueError(f"full_name must be 'owner/name', got {v!r}")
        return f"{owner}/{name}"

    @field_validator("topics", mode="before")
    @classmethod
    def parse_topics(cls, v: Any) -> Any:
        """Accept a list or a JSON array string."""
        if v is None:
            return []
        if isinstance(v, str):
            try:
                v = json.loads(v)
            except json.JSONDecodeError as e:
                raise ValueError(f"topics must be valid JSON: {e.msg}") from e
            if not isinstance(v, list):
                raise ValueError("topics JSON must be an array")
        return v

    @field_validator("created_at", "updated_at", "pushed_at", "starred_at", mode="after")
    @classmethod
    def to_naive_utc(cls, v: datetime | None) -> datetime | None:
        if v is not None and v.tzinfo is not None:
            return v.astimezone(timezone.utc).replace(tzinfo=None)
        return v

    @model_validator(mode="after")
    def fill_derived_fields(self) -> "RepositoryPayload":
        owner, _, name = self.full_name.partition("/")
        if not self.owner_login:
            self.owner_login = owner
        if not self.name:
            self.name = name
        if not self.html_url:
            self.html_url = f"https://github.com/{self.full_name}"
        return self

    @property
    def topics_json(self) -> str:
        return json.dumps(self.topics)

    @classmethod
    def from_github(cls, item: dict[str, Any], readme: str | None = None) -> "RepositoryPayload":
        """Build and validate a payload from a starred-repository API item."""
        return cls.model_validate(github_item_to_payload(item, readme))


def github_item_to_payload(item: dict[str, Any], readme: str | None = None) -> dict[str, Any]:
    """Flatten a starred-repository API item into payload fields.

    Accepts both the star+json shape ({"starred_at", "repo"}) and a bare
    repository object. The result is not validated.
    """
    repo = item.get("repo", item)
    license_info = repo.get("license") or {}
    return {
        "id": repo.get("id"),
        "full_name": repo.get("full_name"),
        "owner_login": (repo.get("owner") or {}).get("login"),
        "name": repo.get("name"),
        "html_url": repo.get("html_url"),
        "description": repo.get("description"),
        "language": repo.get("language"),
        "stargazers_count": repo.get("stargazers_count") or 0,
        "forks_count": repo.get("forks_count") or 0,
        "watchers_count": repo.get("watchers_count") or 0,
        "open_issues_count": repo.get("open_issues_count") or 0,
        "created_at": repo.get("created_at"),
        "updated_at": repo.get("updated_at"),
        "pushed_at": repo.get("pushed_at"),
        "fork": bool(repo.get("fork")),
        "private": bool(repo.get("private")),
        "archived": bool(repo.get("archived")),
        "disabled": bool(repo.get("disabled")),
        "default_branch": repo.get("default_branch"),
        "topics": repo.get("topics") or [],
        "license_key": license_info.get("key"),
        "license_name": license_info.get("name"),
        "readme": readme,
        "about": repo.get("homepage"),
        "starred_at": item.get("starred_at"),
        "raw": repo,
    }


class RepositoryResponse(BaseModel):
    """Repository response schema."""

    id: int
    owner_login: str
    name: str
    full_name: str
    html_url: str
    description: str | None
    language: str | None
    stargazers_count: int
    forks_count: int
    topics: list[str]
    archived: bool
    readme_sha: str | None
    needs_reindex: bool
    last_synced_at: datetime

    class Config:
        from_attributes = True


class RepositoryDetailResponse(RepositoryResponse):
    """Repository with its star, annotation and tags."""

    starred_at: datetime | None = None
    ai_description: str | None = None
    tags: list[str] = Field(default_factory=list)


class RepositoryRemovedResponse(BaseModel):
    """Result of un-starring a repository."""

    repo_id: int
    chunks_removed: int
