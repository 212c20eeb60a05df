"""Sync job model - one audited ingestion run."""

import uuid
from datetime import datetime
from enum import Enum

from sqlalchemy import CheckConstraint, DateTime, Float, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, validates

from ghstars.database import Base
from ghstars.utils import utc_now


class SyncJobStatus(str, Enum):
    """Sync job states. STARTED is the only non-terminal one."""

    STARTED = "started"
    COMPLETED = "completed"
    ERROR = "error"


class SyncJob(Base):
    """Audit record for one sync run.

    Lifecycle:
    - started -> completed
    - started -> error

    duration_seconds is derived from completed_at and is recomputed only
    when completed_at itself is assigned.
    """

    __tablename__ = "sync_jobs"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    triggered_by: Mapped[str | None] = mapped_column(String(100))
    status: Mapped[str] = mapped_column(
        String(20), default=SyncJobStatus.STARTED.value, nullable=False
    )

    started_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now, nullable=False)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime)
    duration_seconds: Mapped[float | None] = mapped_column(Float)

    # Counters
    repos_processed: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    vectors_upserted: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    repos_skipped: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    repos_failed: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    error: Mapped[str | None] = mapped_column(Text)

    __table_args__ = (
        CheckConstraint(
            "status IN ('started', 'completed', 'error')", name="ck_sync_jobs_status"
        ),
        Index("idx_sync_jobs_started", "started_at"),
        Index("idx_sync_jobs_status", "status"),
    )

    @validates("completed_at")
    def _derive_duration(self, key: str, value: datetime | None) -> datetime | None:
        if value is None:
            self.duration_seconds = None
            return value
        if self.started_at is None:
            raise ValueError("started_at must be set before completed_at")
        self.duration_seconds = (value - self.started_at).total_seconds()
        return value

    @property
    def is_terminal(self) -> bool:
        return self.status != SyncJobStatus.STARTED.value
