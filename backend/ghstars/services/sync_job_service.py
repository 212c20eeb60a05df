"""Sync job tracker - the audit trail of ingestion runs."""

import logging
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ghstars.models.sync_job import SyncJob, SyncJobStatus
from ghstars.services.exceptions import SyncJobStateError
from ghstars.utils import utc_now

logger = logging.getLogger(__name__)

TERMINAL_STATUSES = (SyncJobStatus.COMPLETED, SyncJobStatus.ERROR)


@dataclass
class SyncCounters:
    """Running counters for one sync batch."""

    repos_processed: int = 0
    vectors_upserted: int = 0
    repos_skipped: int = 0
    repos_failed: int = 0


class SyncJobService:
    """Opens and closes sync_jobs rows.

    Each call commits on its own: the job record is not part of the
    per-repository transactions it describes.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def open(self, triggered_by: str | None) -> str:
        """Record a new run in the started state. Returns the job id."""
        job = SyncJob(
            triggered_by=triggered_by,
            status=SyncJobStatus.STARTED.value,
            started_at=utc_now(),
        )
        self.db.add(job)
        await self.db.commit()
        logger.info(f"Opened sync job {job.id} (triggered by {triggered_by})")
        return job.id

    async def close(
        self,
        job_id: str,
        status: SyncJobStatus | str,
        counters: SyncCounters | None = None,
        error: str | None = None,
    ) -> SyncJob:
        """Move a started job to a terminal state.

        Raises:
            SyncJobStateError: Unknown job, non-terminal target, or job already closed
        """
        status = SyncJobStatus(status)
        if status not in TERMINAL_STATUSES:
            raise SyncJobStateError(f"Cannot close sync job {job_id} as {status.value}")

        job = await self.db.get(SyncJob, job_id)
        if job is None:
            raise SyncJobStateError(f"Sync job not found: {job_id}")
        if job.is_terminal:
            raise SyncJobStateError(f"Sync job {job_id} is already {job.status}")

        counters = counters or SyncCounters()
        job.repos_processed = counters.repos_processed
        job.vectors_upserted = counters.vectors_upserted
        job.repos_skipped = counters.repos_skipped
        job.repos_failed = counters.repos_failed
        job.status = status.value
        if status == SyncJobStatus.ERROR:
            job.error = (error or "unspecified error")[:4000]
        # Assigning completed_at derives duration_seconds
        job.completed_at = max(utc_now(), job.started_at)
        await self.db.commit()

        logger.info(
            f"Closed sync job {job_id} as {job.status} after {job.duration_seconds:.3f}s: "
            f"{job.repos_processed} processed, {job.vectors_upserted} vectors"
        )
        return job

    async def get(self, job_id: str) -> SyncJob | None:
        return await self.db.get(SyncJob, job_id)

    async def list_recent(self, limit: int = 20) -> list[SyncJob]:
        """Most recent jobs first."""
        result = await self.db.execute(
            select(SyncJob).order_by(SyncJob.started_at.desc()).limit(limit)
        )
        return list(result.scalars().all())
