"""Catalog store: repository and star upserts, explicit cascading delete."""

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ghstars.models.embedding import EmbeddingChunk
from ghstars.models.repo_ai import RepoAI
from ghstars.models.repository import Repository
from ghstars.models.star import Star
from ghstars.models.tag import RepoAITag
from ghstars.schemas.repository import RepositoryPayload
from ghstars.services.chunker import content_hash
from ghstars.services.exceptions import ConflictError, RepositoryNotFoundError
from ghstars.services.mirror_service import SearchMirrorSynchronizer
from ghstars.utils import utc_now

logger = logging.getLogger(__name__)


@dataclass
class UpsertResult:
    """Outcome of one repository upsert."""

    repository: Repository
    created: bool
    changed_fields: set[str] = field(default_factory=set)
    previous_readme_sha: str | None = None
    previous_needs_reindex: bool = False

    @property
    def readme_changed(self) -> bool:
        return self.created or self.repository.readme_sha != self.previous_readme_sha


def payload_to_columns(payload: RepositoryPayload) -> dict[str, Any]:
    """Map a payload onto Repository column values (mutable fields only)."""
    return {
        "owner_login": payload.owner_login,
        "name": payload.name,
        "full_name": payload.full_name,
        "html_url": payload.html_url,
        "description": payload.description,
        "language": payload.language,
        "stargazers_count": payload.stargazers_count,
        "forks_count": payload.forks_count,
        "watchers_count": payload.watchers_count,
        "open_issues_count": payload.open_issues_count,
        "created_at_gh": payload.created_at,
        "updated_at_gh": payload.updated_at,
        "pushed_at_gh": payload.pushed_at,
        "is_fork": payload.fork,
        "is_private": payload.private,
        "archived": payload.archived,
        "disabled": payload.disabled,
        "default_branch": payload.default_branch,
        "topics_json": payload.topics_json,
        "license_key": payload.license_key,
        "license_name": payload.license_name,
        "raw_data_json": json.dumps(payload.raw, sort_keys=True) if payload.raw else None,
    }


def readme_fingerprint(payload: RepositoryPayload) -> str | None:
    """README fingerprint from the payload, or None when no README was supplied.

    A readme_sha without README text is ignored: the stored fingerprint
    must describe the text that was actually indexed.
    """
    if payload.readme is None:
        return None
    return payload.readme_sha or content_hash(payload.readme)


class CatalogService:
    """Writes to repositories and stars.

    Every repository mutation goes through here so that the search mirror
    is synchronized in the same transaction.
    """

    def __init__(self, db: AsyncSession):
        self.db = db
        self.mirror = SearchMirrorSynchronizer(db)

    async def get_repository(self, repo_id: int) -> Repository | None:
        return await self.db.get(Repository, repo_id)

    async def find_by_full_name(self, full_name: str) -> Repository | None:
        """Case-insensitive lookup by owner/name."""
        result = await self.db.execute(
            select(Repository).where(func.lower(Repository.full_name) == full_name.lower())
        )
        return result.scalar_one_or_none()

    async def upsert_repository(
        self, payload: RepositoryPayload, now: datetime | None = None
    ) -> UpsertResult:
        """Insert or fully update a repository and its star record.

        Raises:
            ConflictError: Another id already owns this full name (ignoring case)
        """
        now = now or utc_now()

        owner = await self.find_by_full_name(payload.full_name)
        if owner is not None and owner.id != payload.id:
            raise ConflictError(payload.full_name, payload.id, owner.id)

        values = payload_to_columns(payload)
        fingerprint = readme_fingerprint(payload)
        if fingerprint is not None:
            values["readme_sha"] = fingerprint

        repo = await self.db.get(Repository, payload.id)
        if repo is None:
            repo = Repository(id=payload.id, last_synced_at=now, **values)
            self.db.add(repo)
            await self.db.flush()
            await self.mirror.on_repository_insert(repo)
            result = UpsertResult(repository=repo, created=True, changed_fields=set(values))
            logger.info(f"Inserted repository {repo.id} ({repo.full_name})")
        else:
            previous_readme_sha = repo.readme_sha
            previous_needs_reindex = repo.needs_reindex
            changed = {key for key, value in values.items() if getattr(repo, key) != value}
            for key, value in values.items():
                setattr(repo, key, value)
            # Refreshed on every sync, changed or not
            repo.last_synced_at = now
            await self.db.flush()
            await self.mirror.on_repository_update(repo, changed)
            result = UpsertResult(
                repository=repo,
                created=False,
                changed_fields=changed,
                previous_readme_sha=previous_readme_sha,
                previous_needs_reindex=previous_needs_reindex,
            )
            logger.debug(f"Updated repository {repo.id}, changed: {sorted(changed)}")

        await self.upsert_star(repo.id, payload.starred_at, now)
        return result

    async def upsert_star(
        self, repo_id: int, starred_at: datetime | None, now: datetime | None = None
    ) -> Star:
        """Overwrite the star timestamp (latest star only, no history).

        A missing timestamp keeps the stored one, or uses now for a new row.
        """
        star = await self.db.get(Star, repo_id)
        if star is None:
            star = Star(repo_id=repo_id, starred_at=starred_at or now or utc_now())
            self.db.add(star)
        elif starred_at is not None:
            star.starred_at = starred_at
        await self.db.flush()
        return star

    async def delete_repository(self, repo_id: int) -> list[str]:
        """Delete a repository and every dependent row.

        Dependents are deleted explicitly rather than relying on the
        database's ON DELETE CASCADE.

        Returns:
            Ids of the embedding chunks that were removed
        """
        repo = await self.db.get(Repository, repo_id)
        if repo is None:
            raise RepositoryNotFoundError(repo_id)

        chunk_ids = list(
            (
                await self.db.execute(
                    select(EmbeddingChunk.id).where(EmbeddingChunk.repo_id == repo_id)
                )
            ).scalars()
        )

        await self.db.execute(delete(RepoAITag).where(RepoAITag.repo_id == repo_id))
        await self.db.execute(delete(EmbeddingChunk).where(EmbeddingChunk.repo_id == repo_id))
        await self.db.execute(delete(RepoAI).where(RepoAI.repo_id == repo_id))
        await self.mirror.on_repository_delete(repo_id)
        await self.db.execute(delete(Star).where(Star.repo_id == repo_id))
        await self.db.delete(repo)
        await self.db.flush()

        logger.info(f"Deleted repository {repo_id} and {len(chunk_ids)} embedding chunks")
        return chunk_ids
