"""Sync schemas."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field


class SyncBatchRequest(BaseModel):
    """Batch of raw repository payloads to sync.

    Items stay as plain dicts so a malformed item is skipped by the
    orchestrator instead of rejecting the whole request.
    """

    triggered_by: str = "api"
    repositories: list[dict[str, Any]] = Field(default_factory=list)


class RepoOutcome(BaseModel):
    """What happened to one batch item."""

    repo_id: int | None = None
    full_name: str | None = None
    outcome: str
    vectors_upserted: int = 0
    detail: str | None = None


class SyncJobResult(BaseModel):
    """Terminal result of a sync batch."""

    job_id: str
    status: str
    repos_processed: int = 0
    vectors_upserted: int = 0
    repos_skipped: int = 0
    repos_failed: int = 0
    error: str | None = None
    outcomes: list[RepoOutcome] = Field(default_factory=list)


class SyncJobResponse(BaseModel):
    """Sync job response schema."""

    id: str
    triggered_by: str | None
    status: str
    started_at: datetime
    completed_at: datetime | None
    duration_seconds: float | None
    repos_processed: int
    vectors_upserted: int
    repos_skipped: int
    repos_failed: int
    error: str | None

    class Config:
        from_attributes = True


class SyncJobListResponse(BaseModel):
    """List of sync jobs, most recent first."""

    jobs: list[SyncJobResponse]
    total: int
