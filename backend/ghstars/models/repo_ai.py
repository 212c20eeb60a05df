"""AI annotation model."""

from datetime import datetime

from sqlalchemy import BigInteger, DateTime, ForeignKey, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from ghstars.database import Base
from ghstars.utils import utc_now


class RepoAI(Base):
    """Generated summary for a repository, at most one per repository."""

    __tablename__ = "repo_ai"

    repo_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("repositories.id", ondelete="CASCADE"), primary_key=True
    )
    ai_description: Mapped[str | None] = mapped_column(Text)
    last_indexed_at: Mapped[datetime] = mapped_column(
        DateTime, default=utc_now, server_default=func.now(), nullable=False
    )
