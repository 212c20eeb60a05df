"""Starred repository sync Celery task."""

import asyncio
import logging
from datetime import datetime
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ghstars.celery_app import celery_app
from ghstars.config import get_settings
from ghstars.database import create_engine_from_url
from ghstars.models.star import Star
from ghstars.models.sync_job import SyncJobStatus
from ghstars.services.exceptions import FatalError
from ghstars.services.github_service import GitHubService
from ghstars.services.sync_service import build_orchestrator

logger = logging.getLogger(__name__)
settings = get_settings()


async def latest_star_time(session_factory: async_sessionmaker[AsyncSession]) -> datetime | None:
    """Newest starred_at already in the ledger."""
    async with session_factory() as db:
        result = await db.execute(select(func.max(Star.starred_at)))
        return result.scalar_one_or_none()


async def sync_starred_repositories_async(
    triggered_by: str = "schedule",
    full: bool = False,
) -> dict[str, Any]:
    """Async implementation of the starred repository sync."""
    # Fresh engine per run: asyncio.run gives every task its own event loop
    engine = create_engine_from_url(settings.database_url)
    session_factory = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )

    try:
        since = None if full else await latest_star_time(session_factory)
        logger.info(f"Starting star sync (since={since}, triggered_by={triggered_by})")

        orchestrator = build_orchestrator(session_factory)
        result = await orchestrator.sync_starred(
            GitHubService(),
            since=since,
            triggered_by=triggered_by,
        )

        if result.status == SyncJobStatus.ERROR.value:
            raise FatalError(result.error or f"Sync job {result.job_id} failed")

        logger.info(
            f"Star sync complete: job {result.job_id}, "
            f"{result.repos_processed} processed, {result.repos_skipped} skipped"
        )
        return result.model_dump(exclude={"outcomes"})
    finally:
        await engine.dispose()


@celery_app.task(bind=True, max_retries=3)
def sync_starred_repositories(self, triggered_by: str = "schedule", full: bool = False) -> dict[str, Any]:
    """Celery task to sync the tracked user's starred repositories.

    Args:
        triggered_by: Label stored on the sync job
        full: Re-fetch every star instead of only the new ones

    Returns:
        Dict with the sync job counters
    """
    try:
        return asyncio.run(sync_starred_repositories_async(triggered_by, full))
    except Exception as e:
        logger.error(f"Star sync task failed: {e}")
        # Retry with exponential backoff
        raise self.retry(exc=e, countdown=60 * (2 ** self.request.retries))
