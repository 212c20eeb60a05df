"""Sync orchestrator: applies repository payloads to the catalog.

Each batch item is applied in its own transaction (repository + star +
mirror + embeddings + annotation), so a failure part-way through a batch
keeps everything already committed. The sync job row is only an audit
trail around the batch.
"""

import asyncio
import logging
from typing import Any, Protocol

from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError, InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ghstars.config import get_settings
from ghstars.models.repository import Repository
from ghstars.models.sync_job import SyncJobStatus
from ghstars.schemas.repository import RepositoryPayload, github_item_to_payload
from ghstars.schemas.sync import RepoOutcome, SyncJobResult
from ghstars.services.annotation_service import AnnotationService, SummaryGenerator
from ghstars.services.catalog_service import CatalogService, UpsertResult
from ghstars.services.chunker import TextChunker
from ghstars.services.embedding_service import EmbeddingService
from ghstars.services.embedding_index_service import (
    Embedder,
    EmbeddingIndexService,
    VectorStore,
)
from ghstars.services.exceptions import (
    ConflictError,
    DependencyError,
    FatalError,
    RepositoryNotFoundError,
)
from ghstars.services.github_service import GitHubService
from ghstars.services.llm_service import LLMService
from ghstars.services.retry import call_with_retry
from ghstars.services.sync_job_service import SyncCounters, SyncJobService
from ghstars.services.tag_service import TagService
from ghstars.utils import utc_now

logger = logging.getLogger(__name__)
settings = get_settings()

OUTCOME_SYNCED = "synced"
OUTCOME_NEEDS_REINDEX = "needs_reindex"
OUTCOME_INVALID = "skipped_invalid"
OUTCOME_CONFLICT = "skipped_conflict"


class TagSuggester(Protocol):
    async def suggest_tags(self, repo: Repository) -> list[str]: ...


class SyncOrchestrator:
    """Coordinates catalog, star, embedding, annotation and tag writes."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        embedder: Embedder,
        vector_store: VectorStore | None = None,
        summarizer: SummaryGenerator | None = None,
        tagger: TagSuggester | None = None,
        chunker: TextChunker | None = None,
        max_attempts: int | None = None,
        retry_wait_seconds: float | None = None,
    ):
        self.session_factory = session_factory
        self.embedder = embedder
        self.vector_store = vector_store
        self.summarizer = summarizer
        self.tagger = tagger
        self.chunker = chunker or TextChunker(settings.chunk_size)
        self.max_attempts = max_attempts or settings.embed_max_attempts
        self.retry_wait_seconds = (
            settings.embed_retry_wait_seconds if retry_wait_seconds is None else retry_wait_seconds
        )

    # =========================================================================
    # Batch sync
    # =========================================================================

    async def sync_batch(
        self,
        payloads: list[dict[str, Any] | RepositoryPayload],
        triggered_by: str,
    ) -> SyncJobResult:
        """Sync a batch of repository payloads under one sync job.

        Args:
            payloads: Raw dicts or validated payloads
            triggered_by: Label stored on the job (e.g. "api", "schedule")

        Returns:
            Terminal job result with per-item outcomes
        """
        async with self.session_factory() as db:
            job_id = await SyncJobService(db).open(triggered_by)

        counters = SyncCounters()
        outcomes: list[RepoOutcome] = []

        try:
            for raw in payloads:
                outcome = await self.sync_one(raw)
                outcomes.append(outcome)
                self._count(counters, outcome)
        except FatalError as e:
            logger.error(f"Sync job {job_id} aborted: {e}")
            return await self._close(job_id, SyncJobStatus.ERROR, counters, outcomes, str(e))
        except asyncio.CancelledError:
            await self._close(job_id, SyncJobStatus.ERROR, counters, outcomes, "sync cancelled")
            raise
        except Exception as e:
            logger.error(f"Sync job {job_id} failed: {e}")
            await self._close(job_id, SyncJobStatus.ERROR, counters, outcomes, str(e))
            raise

        return await self._close(job_id, SyncJobStatus.COMPLETED, counters, outcomes)

    async def sync_one(self, raw: dict[str, Any] | RepositoryPayload) -> RepoOutcome:
        """Validate and apply one batch item in its own transaction.

        Raises:
            FatalError: Storage is unavailable
        """
        try:
            payload = (
                raw if isinstance(raw, RepositoryPayload) else RepositoryPayload.model_validate(raw)
            )
        except ValidationError as e:
            repo_id = raw.get("id") if isinstance(raw, dict) else None
            logger.warning(f"Skipping invalid payload {repo_id}: {e.error_count()} errors")
            return RepoOutcome(
                repo_id=repo_id if isinstance(repo_id, int) else None,
                full_name=raw.get("full_name") if isinstance(raw, dict) else None,
                outcome=OUTCOME_INVALID,
                detail=str(e),
            )

        try:
            async with self.session_factory() as db:
                async with db.begin():
                    return await self._apply(db, payload)
        except ConflictError as e:
            logger.warning(str(e))
            return RepoOutcome(
                repo_id=payload.id,
                full_name=payload.full_name,
                outcome=OUTCOME_CONFLICT,
                detail=str(e),
            )
        except IntegrityError as e:
            # Lost a race with a concurrent writer; the unit was rolled back
            detail = f"Integrity conflict while syncing repo {payload.id}: {e.orig}"
            logger.warning(detail)
            return RepoOutcome(
                repo_id=payload.id,
                full_name=payload.full_name,
                outcome=OUTCOME_CONFLICT,
                detail=detail,
            )
        except (OperationalError, InterfaceError) as e:
            raise FatalError(f"Storage unavailable while syncing repo {payload.id}: {e}") from e

    async def _apply(self, db: AsyncSession, payload: RepositoryPayload) -> RepoOutcome:
        """Upsert one repository and bring its derived rows up to date."""
        upsert = await CatalogService(db).upsert_repository(payload, now=utc_now())
        repo = upsert.repository
        outcome = RepoOutcome(repo_id=repo.id, full_name=repo.full_name, outcome=OUTCOME_SYNCED)

        index = EmbeddingIndexService(
            db,
            self.embedder,
            chunker=self.chunker,
            vector_store=self.vector_store,
            max_attempts=self.max_attempts,
            retry_wait_seconds=self.retry_wait_seconds,
        )
        sources = await self._sources_to_reconcile(index, payload, upsert)
        try:
            reconciled = await index.reconcile(repo.id, sources)
            outcome.vectors_upserted = reconciled.written
            repo.needs_reindex = False
        except DependencyError as e:
            logger.warning(f"Repo {repo.id} flagged for re-index: {e}")
            repo.needs_reindex = True
            outcome.outcome = OUTCOME_NEEDS_REINDEX
            outcome.detail = str(e)

        if self.summarizer is not None and (
            upsert.created or upsert.readme_changed or upsert.previous_needs_reindex
            or "description" in upsert.changed_fields
        ):
            try:
                await self._annotate(db, repo)
            except DependencyError as e:
                logger.warning(f"Repo {repo.id} annotation deferred: {e}")
                repo.needs_reindex = True
                outcome.outcome = OUTCOME_NEEDS_REINDEX
                outcome.detail = str(e)

        await db.flush()
        return outcome

    async def _sources_to_reconcile(
        self, index: EmbeddingIndexService, payload: RepositoryPayload, upsert: UpsertResult
    ) -> dict[str, str | list[str] | None]:
        """Pick the text fields whose chunks need checking.

        Description and topics are always checked (unchanged chunks cost no
        writes). README and about are only touched when the payload carries
        them; the README additionally only when its fingerprint moved, its
        chunks are missing, or the last run left the repository flagged.
        """
        sources: dict[str, str | list[str] | None] = {
            "description": payload.description,
            "topics": payload.topics,
        }
        if payload.about is not None:
            sources["about"] = payload.about
        if payload.readme is not None and (
            upsert.readme_changed
            or upsert.previous_needs_reindex
            or not await index.has_chunks(upsert.repository.id, "readme")
        ):
            sources["readme"] = payload.readme
        return sources

    async def _annotate(self, db: AsyncSession, repo: Repository) -> None:
        await AnnotationService(db).annotate(
            repo,
            self.summarizer,
            max_attempts=self.max_attempts,
            retry_wait_seconds=self.retry_wait_seconds,
        )
        if self.tagger is None:
            return

        names = await call_with_retry(
            self.tagger.suggest_tags,
            repo,
            what=f"tags for repo {repo.id}",
            max_attempts=self.max_attempts,
            wait_seconds=self.retry_wait_seconds,
        )
        tags = TagService(db)
        tag_ids = [await tags.ensure_tag(name) for name in names if name.strip()]
        await tags.attach_tags(repo.id, tag_ids)

    @staticmethod
    def _count(counters: SyncCounters, outcome: RepoOutcome) -> None:
        if outcome.outcome in (OUTCOME_INVALID, OUTCOME_CONFLICT):
            counters.repos_skipped += 1
            return
        counters.repos_processed += 1
        counters.vectors_upserted += outcome.vectors_upserted
        if outcome.outcome == OUTCOME_NEEDS_REINDEX:
            counters.repos_failed += 1

    async def _close(
        self,
        job_id: str,
        status: SyncJobStatus,
        counters: SyncCounters,
        outcomes: list[RepoOutcome],
        error: str | None = None,
    ) -> SyncJobResult:
        try:
            async with self.session_factory() as db:
                await SyncJobService(db).close(job_id, status, counters, error)
        except (OperationalError, InterfaceError) as e:
            logger.error(f"Could not close sync job {job_id}: {e}")

        return SyncJobResult(
            job_id=job_id,
            status=status.value,
            repos_processed=counters.repos_processed,
            vectors_upserted=counters.vectors_upserted,
            repos_skipped=counters.repos_skipped,
            repos_failed=counters.repos_failed,
            error=error,
            outcomes=outcomes,
        )

    # =========================================================================
    # Removal and full sync
    # =========================================================================

    async def remove_repository(self, repo_id: int) -> int:
        """Delete an un-starred repository and everything derived from it.

        Returns:
            Number of embedding chunks removed

        Raises:
            RepositoryNotFoundError: Unknown repository id
        """
        async with self.session_factory() as db:
            async with db.begin():
                chunk_ids = await CatalogService(db).delete_repository(repo_id)

        if self.vector_store is not None:
            try:
                await self.vector_store.delete_repository(repo_id)
            except Exception as e:
                # Rows are gone; leftover vectors are unreachable by chunk id
                logger.error(f"Vector cleanup failed for repo {repo_id}: {e}")
        return len(chunk_ids)

    async def sync_starred(
        self,
        github: GitHubService,
        since=None,
        triggered_by: str = "schedule",
        with_readme: bool = True,
    ) -> SyncJobResult:
        """Fetch the user's stars from GitHub and sync them as one batch."""
        items = await github.fetch_starred_repositories(since)

        payloads: list[dict[str, Any]] = []
        for item in items:
            readme = None
            full_name = (item.get("repo") or item).get("full_name")
            if with_readme and full_name:
                readme = await github.fetch_readme(full_name)
            payloads.append(github_item_to_payload(item, readme))

        return await self.sync_batch(payloads, triggered_by)


def build_orchestrator(
    session_factory: async_sessionmaker[AsyncSession],
    annotate: bool | None = None,
) -> SyncOrchestrator:
    """Wire the orchestrator to the Gemini and Qdrant collaborators."""
    llm = LLMService()
    annotate = settings.sync_annotate if annotate is None else annotate
    return SyncOrchestrator(
        session_factory,
        embedder=llm,
        vector_store=EmbeddingService(),
        summarizer=llm if annotate else None,
        tagger=llm if annotate else None,
    )


__all__ = [
    "SyncOrchestrator",
    "build_orchestrator",
    "RepositoryNotFoundError",
    "OUTCOME_SYNCED",
    "OUTCOME_NEEDS_REINDEX",
    "OUTCOME_INVALID",
    "OUTCOME_CONFLICT",
]
