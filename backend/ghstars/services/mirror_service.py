"""Search mirror synchronization and lexical search.

The repo_fts table is a derived projection of repositories + repo_ai. It is
written only through SearchMirrorSynchronizer, whose hooks are called by the
catalog and annotation services inside the same transaction as the mutation
that caused them. After any of those transactions commits, every repository
has exactly one mirror row carrying its current full name, description,
topics and annotation.
"""

import logging
import re

from sqlalchemy import case, delete, literal, select
from sqlalchemy.ext.asyncio import AsyncSession

from ghstars.models.repo_ai import RepoAI
from ghstars.models.repo_fts import RepoFts
from ghstars.models.repository import Repository
from ghstars.schemas.search import SearchHit

logger = logging.getLogger(__name__)

MIRRORED_FIELDS = ("full_name", "description", "topics_json")

# Relevance weight per mirror column
FIELD_WEIGHTS = {
    "full_name": 3,
    "topics": 2,
    "description": 1,
    "ai_description": 1,
}

MAX_QUERY_TERMS = 10
TERM_PATTERN = re.compile(r"[\w][\w.+#-]*")


class SearchMirrorSynchronizer:
    """Keeps repo_fts in step with repositories and repo_ai."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def on_repository_insert(self, repo: Repository) -> RepoFts:
        """Create the mirror row, picking up an annotation that already exists."""
        ai_description = await self.db.scalar(
            select(RepoAI.ai_description).where(RepoAI.repo_id == repo.id)
        )

        entry = await self.db.get(RepoFts, repo.id)
        if entry is None:
            entry = RepoFts(repo_id=repo.id)
            self.db.add(entry)

        entry.full_name = repo.full_name
        entry.description = repo.description
        entry.topics = repo.topics_json
        entry.ai_description = ai_description
        await self.db.flush()
        return entry

    async def on_repository_update(
        self, repo: Repository, changed_fields: set[str] | None = None
    ) -> RepoFts:
        """Overwrite mirrored fields when any of them changed.

        Passing changed_fields=None forces the overwrite.
        """
        entry = await self.db.get(RepoFts, repo.id)
        if entry is None:
            logger.warning(f"Mirror row missing for repo {repo.id}, rebuilding")
            return await self.on_repository_insert(repo)

        if changed_fields is not None and not changed_fields.intersection(MIRRORED_FIELDS):
            return entry

        entry.full_name = repo.full_name
        entry.description = repo.description
        entry.topics = repo.topics_json
        await self.db.flush()
        return entry

    async def on_repository_delete(self, repo_id: int) -> None:
        await self.db.execute(delete(RepoFts).where(RepoFts.repo_id == repo_id))

    async def on_annotation_upsert(self, repo_id: int, ai_description: str | None) -> RepoFts | None:
        """Overwrite the annotation field, creating the row if it is missing."""
        entry = await self.db.get(RepoFts, repo_id)
        if entry is not None:
            entry.ai_description = ai_description
            await self.db.flush()
            return entry

        repo = await self.db.get(Repository, repo_id)
        if repo is None:
            logger.warning(f"Annotation for unknown repo {repo_id}, mirror not updated")
            return None

        entry = RepoFts(
            repo_id=repo.id,
            full_name=repo.full_name,
            description=repo.description,
            topics=repo.topics_json,
            ai_description=ai_description,
        )
        self.db.add(entry)
        await self.db.flush()
        return entry

    async def on_annotation_delete(self, repo_id: int) -> None:
        """Clear the annotation field; the mirror row stays with its repository."""
        entry = await self.db.get(RepoFts, repo_id)
        if entry is not None:
            entry.ai_description = None
            await self.db.flush()


def tokenize_query(query: str) -> list[str]:
    """Lowercase search terms, de-duplicated in order."""
    terms: list[str] = []
    for term in TERM_PATTERN.findall(query.lower()):
        if term not in terms:
            terms.append(term)
    return terms[:MAX_QUERY_TERMS]


class MirrorSearch:
    """Read-only lexical search over repo_fts."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def search(self, query: str, limit: int = 20) -> list[SearchHit]:
        """Rank mirror rows by weighted, case-insensitive term hits.

        Args:
            query: Free-text query
            limit: Maximum results

        Returns:
            Hits ordered by score (desc), then repository id
        """
        terms = tokenize_query(query)
        if not terms:
            return []

        score = literal(0)
        for term in terms:
            for column_name, weight in FIELD_WEIGHTS.items():
                column = getattr(RepoFts, column_name)
                score = score + case(
                    (column.icontains(term, autoescape=True), weight),
                    else_=0,
                )

        result = await self.db.execute(
            select(RepoFts, score.label("score"))
            .where(score > 0)
            .order_by(score.desc(), RepoFts.repo_id)
            .limit(limit)
        )

        return [
            SearchHit(
                repo_id=entry.repo_id,
                full_name=entry.full_name,
                description=entry.description,
                topics=entry.topics,
                ai_description=entry.ai_description,
                score=float(row_score),
            )
            for entry, row_score in result.all()
        ]
