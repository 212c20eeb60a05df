"""Star model - latest star timestamp per repository."""

from datetime import datetime

from sqlalchemy import BigInteger, DateTime, ForeignKey, Index
from sqlalchemy.orm import Mapped, mapped_column

from ghstars.database import Base


class Star(Base):
    """When the tracked user starred a repository.

    Snapshot of the latest star only: re-syncing overwrites starred_at, so an
    unstar/restar cycle loses the original timestamp.
    """

    __tablename__ = "stars"

    repo_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("repositories.id", ondelete="CASCADE"), primary_key=True
    )
    starred_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    __table_args__ = (Index("idx_stars_starred_at", "starred_at"),)
