"""Embedding index reconciliation with content-hash dedup.

For each (repository, source) the current text is chunked and every chunk is
fingerprinted. A chunk row is written only when no row exists for its index
or the stored fingerprint differs; unchanged rows (and their created_at) are
left alone. Rows past the new chunk count are removed.

External calls (embedding, vector store) all happen before any row is
written, so a collaborator failure leaves the index exactly as it was.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Protocol

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from ghstars.config import get_settings
from ghstars.models.embedding import EMBEDDING_SOURCES, EmbeddingChunk, make_chunk_id
from ghstars.services.chunker import TextChunk, TextChunker
from ghstars.services.exceptions import DependencyError
from ghstars.services.retry import call_with_retry
from ghstars.utils import utc_now

logger = logging.getLogger(__name__)
settings = get_settings()


class Embedder(Protocol):
    async def embed(self, text: str) -> tuple[list[float], int]: ...


class VectorStore(Protocol):
    async def upsert_chunks(self, repo_id: int, points: list[dict[str, Any]]) -> None: ...

    async def delete_points(self, chunk_ids: list[str]) -> None: ...

    async def delete_repository(self, repo_id: int) -> None: ...


@dataclass
class SourcePlan:
    """What must change for one (repository, source)."""

    source: str
    chunks: list[TextChunk]
    to_write: list[TextChunk] = field(default_factory=list)
    existing: dict[int, EmbeddingChunk] = field(default_factory=dict)
    stale: list[EmbeddingChunk] = field(default_factory=list)

    @property
    def is_noop(self) -> bool:
        return not self.to_write and not self.stale


@dataclass
class ReconcileResult:
    """Counts from one reconciliation."""

    written: int = 0
    deleted: int = 0
    unchanged: int = 0


class EmbeddingIndexService:
    """Maintains the embeddings table for a repository's text fields."""

    def __init__(
        self,
        db: AsyncSession,
        embedder: Embedder,
        chunker: TextChunker | None = None,
        vector_store: VectorStore | None = None,
        max_attempts: int | None = None,
        retry_wait_seconds: float | None = None,
    ):
        self.db = db
        self.embedder = embedder
        self.chunker = chunker or TextChunker(settings.chunk_size)
        self.vector_store = vector_store
        self.max_attempts = max_attempts or settings.embed_max_attempts
        self.retry_wait_seconds = (
            settings.embed_retry_wait_seconds if retry_wait_seconds is None else retry_wait_seconds
        )

    def chunk_source(self, source: str, value: str | list[str] | None) -> list[TextChunk]:
        """Chunk a source field; topics may be given as a list."""
        if source not in EMBEDDING_SOURCES:
            raise ValueError(f"Unknown embedding source: {source}")
        if isinstance(value, list):
            return self.chunker.chunk_topics(value)
        return self.chunker.chunk(value)

    async def has_chunks(self, repo_id: int, source: str) -> bool:
        found = await self.db.scalar(
            select(EmbeddingChunk.id)
            .where(EmbeddingChunk.repo_id == repo_id)
            .where(EmbeddingChunk.source == source)
            .limit(1)
        )
        return found is not None

    async def plan_source(self, repo_id: int, source: str, chunks: list[TextChunk]) -> SourcePlan:
        """Compare new chunks with stored rows for one source."""
        result = await self.db.execute(
            select(EmbeddingChunk)
            .where(EmbeddingChunk.repo_id == repo_id)
            .where(EmbeddingChunk.source == source)
        )
        existing = {row.chunk_idx: row for row in result.scalars()}

        plan = SourcePlan(source=source, chunks=chunks, existing=existing)
        for chunk in chunks:
            row = existing.get(chunk.index)
            if row is None or row.text_hash != chunk.text_hash:
                plan.to_write.append(chunk)
        plan.stale = [row for idx, row in sorted(existing.items()) if idx >= len(chunks)]
        return plan

    async def reconcile_source(self, repo_id: int, source: str, text: str | list[str] | None) -> int:
        """Reconcile a single source field.

        Returns:
            Number of chunk rows written
        """
        result = await self.reconcile(repo_id, {source: text})
        return result.written

    async def reconcile(
        self, repo_id: int, sources: dict[str, str | list[str] | None]
    ) -> ReconcileResult:
        """Bring the embeddings of several sources up to date.

        Args:
            repo_id: Repository id
            sources: Source name -> current text (topics may be a list)

        Raises:
            DependencyError: Embedding or vector store kept failing; nothing was written
        """
        plans = []
        for source, value in sources.items():
            chunks = self.chunk_source(source, value)
            plans.append(await self.plan_source(repo_id, source, chunks))

        result = ReconcileResult(
            unchanged=sum(len(p.chunks) - len(p.to_write) for p in plans)
        )
        plans = [p for p in plans if not p.is_noop]
        if not plans:
            return result

        vectors = await self._embed_pending(plans)
        points = [
            {
                "id": make_chunk_id(repo_id, plan.source, chunk.index),
                "vector": vectors[chunk.text_hash][0],
                "payload": {
                    "source": plan.source,
                    "chunk_idx": chunk.index,
                    "text_hash": chunk.text_hash,
                },
            }
            for plan in plans
            for chunk in plan.to_write
        ]
        stale_ids = [row.id for plan in plans for row in plan.stale]

        if self.vector_store is not None:
            if points:
                await call_with_retry(
                    self.vector_store.upsert_chunks,
                    repo_id,
                    points,
                    what=f"vector upsert for repo {repo_id}",
                    max_attempts=self.max_attempts,
                    wait_seconds=self.retry_wait_seconds,
                )
            if stale_ids:
                await call_with_retry(
                    self.vector_store.delete_points,
                    stale_ids,
                    what=f"vector delete for repo {repo_id}",
                    max_attempts=self.max_attempts,
                    wait_seconds=self.retry_wait_seconds,
                )

        now = utc_now()
        for plan in plans:
            for chunk in plan.to_write:
                vector, dim = vectors[chunk.text_hash]
                row = plan.existing.get(chunk.index)
                if row is None:
                    self.db.add(
                        EmbeddingChunk(
                            id=make_chunk_id(repo_id, plan.source, chunk.index),
                            repo_id=repo_id,
                            source=plan.source,
                            chunk_idx=chunk.index,
                            text=chunk.text,
                            dim=dim,
                            text_hash=chunk.text_hash,
                            created_at=now,
                        )
                    )
                else:
                    row.text = chunk.text
                    row.dim = dim
                    row.text_hash = chunk.text_hash
                    row.created_at = now
                result.written += 1

            if plan.stale:
                await self.db.execute(
                    delete(EmbeddingChunk)
                    .where(EmbeddingChunk.repo_id == repo_id)
                    .where(EmbeddingChunk.source == plan.source)
                    .where(EmbeddingChunk.chunk_idx >= len(plan.chunks))
                )
                result.deleted += len(plan.stale)

        await self.db.flush()
        logger.info(
            f"Reconciled embeddings for repo {repo_id}: {result.written} written, "
            f"{result.deleted} deleted, {result.unchanged} unchanged"
        )
        return result

    async def _embed_pending(self, plans: list[SourcePlan]) -> dict[str, tuple[list[float], int]]:
        """Embed every pending chunk once per distinct fingerprint."""
        vectors: dict[str, tuple[list[float], int]] = {}
        for plan in plans:
            for chunk in plan.to_write:
                if chunk.text_hash in vectors:
                    continue
                vector, dim = await call_with_retry(
                    self.embedder.embed,
                    chunk.text,
                    what="embedding",
                    max_attempts=self.max_attempts,
                    wait_seconds=self.retry_wait_seconds,
                )
                if len(vector) != dim:
                    raise DependencyError(
                        f"Embedder returned {len(vector)} values but reported dimension {dim}"
                    )
                vectors[chunk.text_hash] = (list(vector), dim)
        return vectors
