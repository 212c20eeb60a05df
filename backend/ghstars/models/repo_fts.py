"""Search mirror model."""

from sqlalchemy import BigInteger, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from ghstars.database import Base


class RepoFts(Base):
    """Denormalized projection of a repository used for lexical search.

    Rows are derived: only SearchMirrorSynchronizer writes this table.
    """

    __tablename__ = "repo_fts"

    repo_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("repositories.id", ondelete="CASCADE"), primary_key=True
    )
    full_name: Mapped[str] = mapped_column(String(511), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    topics: Mapped[str | None] = mapped_column(Text)
    ai_description: Mapped[str | None] = mapped_column(Text)
