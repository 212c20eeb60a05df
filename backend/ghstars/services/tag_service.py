"""Tag catalog: controlled vocabulary and repository-tag links."""

import logging
from typing import Iterable

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ghstars.models.tag import AITag, RepoAITag
from ghstars.services.exceptions import PayloadValidationError

logger = logging.getLogger(__name__)


def normalize_tag_name(name: str) -> str:
    """Collapse whitespace; blank names are rejected."""
    normalized = " ".join(name.split())
    if not normalized:
        raise PayloadValidationError("Tag name must not be blank")
    return normalized


class TagService:
    """Case-insensitive tag vocabulary plus the repo_ai_tags join."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def find_tag(self, name: str) -> AITag | None:
        result = await self.db.execute(
            select(AITag).where(func.lower(AITag.tag_name) == normalize_tag_name(name).lower())
        )
        return result.scalar_one_or_none()

    async def ensure_tag(self, name: str) -> int:
        """Get-or-create a tag, ignoring case. Returns the tag id.

        The first spelling seen is the one stored. The insert runs in a
        savepoint; if another writer committed the same name first, its
        row is re-read and reused.
        """
        existing = await self.find_tag(name)
        if existing is not None:
            return existing.id

        tag = AITag(tag_name=normalize_tag_name(name))
        try:
            async with self.db.begin_nested():
                self.db.add(tag)
        except IntegrityError:
            existing = await self.find_tag(name)
            if existing is None:
                raise
            logger.info(f"Tag {existing.tag_name!r} was created concurrently, reusing {existing.id}")
            return existing.id

        logger.info(f"Created tag {tag.tag_name!r} ({tag.id})")
        return tag.id

    async def attach_tags(self, repo_id: int, tag_ids: Iterable[int]) -> int:
        """Link tags to a repository; already-linked tags are skipped.

        Returns:
            Number of new links
        """
        current = set(
            (
                await self.db.execute(
                    select(RepoAITag.tag_id).where(RepoAITag.repo_id == repo_id)
                )
            ).scalars()
        )
        added = 0
        for tag_id in dict.fromkeys(tag_ids):
            if tag_id in current:
                continue
            self.db.add(RepoAITag(repo_id=repo_id, tag_id=tag_id))
            current.add(tag_id)
            added += 1
        await self.db.flush()
        return added

    async def detach_tags(self, repo_id: int, tag_ids: Iterable[int] | None = None) -> None:
        """Unlink some (or, with tag_ids=None, all) tags from a repository."""
        stmt = delete(RepoAITag).where(RepoAITag.repo_id == repo_id)
        if tag_ids is not None:
            stmt = stmt.where(RepoAITag.tag_id.in_(list(tag_ids)))
        await self.db.execute(stmt)

    async def delete_tag(self, tag_id: int) -> None:
        """Remove a tag and every link to it."""
        await self.db.execute(delete(RepoAITag).where(RepoAITag.tag_id == tag_id))
        await self.db.execute(delete(AITag).where(AITag.id == tag_id))

    async def tags_for(self, repo_id: int) -> list[str]:
        result = await self.db.execute(
            select(AITag.tag_name)
            .join(RepoAITag, RepoAITag.tag_id == AITag.id)
            .where(RepoAITag.repo_id == repo_id)
            .order_by(func.lower(AITag.tag_name))
        )
        return list(result.scalars())
