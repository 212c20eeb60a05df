"""Embedding chunk model - metadata for vectors stored in Qdrant."""

from datetime import datetime

from sqlalchemy import (
    BigInteger,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from ghstars.database import Base
from ghstars.utils import utc_now

EMBEDDING_SOURCES = ("readme", "description", "topics", "about")


def make_chunk_id(repo_id: int, source: str, chunk_idx: int) -> str:
    """Stable chunk id, e.g. "123:readme:0"."""
    return f"{repo_id}:{source}:{chunk_idx}"


class EmbeddingChunk(Base):
    """One embedded chunk of a repository text field.

    The vector itself lives in the vector store; this row records what was
    embedded so unchanged chunks can be skipped on the next sync.
    """

    __tablename__ = "embeddings"

    id: Mapped[str] = mapped_column(String(255), primary_key=True)
    repo_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("repositories.id", ondelete="CASCADE"), nullable=False
    )
    source: Mapped[str] = mapped_column(String(20), nullable=False)
    chunk_idx: Mapped[int] = mapped_column(Integer, nullable=False)

    text: Mapped[str] = mapped_column(Text, nullable=False)
    dim: Mapped[int] = mapped_column(Integer, nullable=False)
    text_hash: Mapped[str] = mapped_column(String(64), nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=utc_now, server_default=func.now(), nullable=False
    )

    __table_args__ = (
        UniqueConstraint("repo_id", "source", "chunk_idx", name="idx_embeddings_repo_src_chunk"),
        CheckConstraint(
            "source IN ('readme', 'description', 'topics', 'about')",
            name="ck_embeddings_source",
        ),
        Index("idx_embeddings_text_hash", "text_hash"),
        Index("idx_embeddings_repo", "repo_id"),
    )
