"""Sync routes."""

from fastapi import APIRouter, HTTPException, Query, status

from ghstars.api.deps import DbSession, Orchestrator
from ghstars.schemas.sync import (
    SyncBatchRequest,
    SyncJobListResponse,
    SyncJobResponse,
    SyncJobResult,
)
from ghstars.services.sync_job_service import SyncJobService
from ghstars.tasks.sync_stars import sync_starred_repositories

router = APIRouter()


@router.post("", response_model=SyncJobResult)
async def sync_batch(request: SyncBatchRequest, orchestrator: Orchestrator):
    """Sync a batch of repository payloads and return the job result.

    Invalid or conflicting items are skipped and reported per item; the
    request itself only fails on an empty batch.
    """
    if not request.repositories:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="No repositories to sync",
        )
    return await orchestrator.sync_batch(request.repositories, request.triggered_by)


@router.post("/github", status_code=status.HTTP_202_ACCEPTED)
async def queue_github_sync(full: bool = False):
    """Queue a sync of the tracked user's stars from GitHub."""
    task = sync_starred_repositories.delay("api", full)
    return {"task_id": task.id, "status": "queued"}


@router.get("/jobs", response_model=SyncJobListResponse)
async def list_sync_jobs(
    db: DbSession,
    limit: int = Query(default=20, ge=1, le=100),
):
    """List the most recent sync jobs."""
    jobs = await SyncJobService(db).list_recent(limit)
    return SyncJobListResponse(
        jobs=[SyncJobResponse.model_validate(j) for j in jobs],
        total=len(jobs),
    )


@router.get("/jobs/{job_id}", response_model=SyncJobResponse)
async def get_sync_job(job_id: str, db: DbSession):
    """Get one sync job."""
    job = await SyncJobService(db).get(job_id)
    if not job:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Sync job not found",
        )
    return SyncJobResponse.model_validate(job)
