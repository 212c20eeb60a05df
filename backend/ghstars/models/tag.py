"""AI tag vocabulary and repository-tag join models."""

from sqlalchemy import BigInteger, ForeignKey, Index, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column

from ghstars.database import Base


class AITag(Base):
    """Controlled vocabulary of AI-assigned tags."""

    __tablename__ = "ai_tags"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    tag_name: Mapped[str] = mapped_column(String(100), nullable=False)


# Tag names are unique ignoring case
Index("ux_ai_tags_name_nocase", func.lower(AITag.tag_name), unique=True)


class RepoAITag(Base):
    """Many-to-many join between repositories and tags."""

    __tablename__ = "repo_ai_tags"

    repo_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("repositories.id", ondelete="CASCADE"), primary_key=True
    )
    tag_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("ai_tags.id", ondelete="CASCADE"), primary_key=True
    )

    __table_args__ = (
        Index("idx_repo_ai_tags_repo", "repo_id"),
        Index("idx_repo_ai_tags_tag", "tag_id"),
    )
