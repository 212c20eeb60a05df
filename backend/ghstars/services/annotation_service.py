"""Annotation store: AI summaries per repository."""

import logging
from datetime import datetime
from typing import Protocol

from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession

from ghstars.config import get_settings
from ghstars.models.repo_ai import RepoAI
from ghstars.models.repository import Repository
from ghstars.services.mirror_service import SearchMirrorSynchronizer
from ghstars.services.retry import call_with_retry
from ghstars.utils import utc_now

logger = logging.getLogger(__name__)
settings = get_settings()


class SummaryGenerator(Protocol):
    async def generate_summary(self, repo: Repository) -> str: ...


class AnnotationService:
    """Reads and writes repo_ai, keeping the search mirror in step."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.mirror = SearchMirrorSynchronizer(db)

    async def get(self, repo_id: int) -> RepoAI | None:
        return await self.db.get(RepoAI, repo_id)

    async def upsert(
        self, repo_id: int, summary: str | None, now: datetime | None = None
    ) -> RepoAI:
        """Insert or overwrite the annotation for a repository."""
        annotation = await self.db.get(RepoAI, repo_id)
        if annotation is None:
            annotation = RepoAI(repo_id=repo_id)
            self.db.add(annotation)
        annotation.ai_description = summary
        annotation.last_indexed_at = now or utc_now()
        await self.db.flush()

        await self.mirror.on_annotation_upsert(repo_id, summary)
        return annotation

    async def delete(self, repo_id: int) -> bool:
        """Remove the annotation. Returns False if there was none."""
        annotation = await self.db.get(RepoAI, repo_id)
        if annotation is None:
            return False
        await self.db.execute(delete(RepoAI).where(RepoAI.repo_id == repo_id))
        await self.mirror.on_annotation_delete(repo_id)
        return True

    async def annotate(
        self,
        repo: Repository,
        generator: SummaryGenerator,
        max_attempts: int | None = None,
        retry_wait_seconds: float | None = None,
    ) -> RepoAI:
        """Generate and store a summary.

        Raises:
            DependencyError: The generator kept failing; nothing was stored
        """
        summary = await call_with_retry(
            generator.generate_summary,
            repo,
            what=f"summary for repo {repo.id}",
            max_attempts=max_attempts or settings.embed_max_attempts,
            wait_seconds=(
                settings.embed_retry_wait_seconds if retry_wait_seconds is None else retry_wait_seconds
            ),
        )
        summary = summary.strip() if summary else None
        logger.info(f"Annotated repository {repo.id}")
        return await self.upsert(repo.id, summary)
