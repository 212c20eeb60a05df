"""SQLAlchemy models."""

from ghstars.models.repository import Repository
from ghstars.models.star import Star
from ghstars.models.embedding import EMBEDDING_SOURCES, EmbeddingChunk, make_chunk_id
from ghstars.models.repo_ai import RepoAI
from ghstars.models.repo_fts import RepoFts
from ghstars.models.sync_job import SyncJob, SyncJobStatus
from ghstars.models.tag import AITag, RepoAITag

__all__ = [
    "Repository",
    "Star",
    "EMBEDDING_SOURCES",
    "EmbeddingChunk",
    "make_chunk_id",
    "RepoAI",
    "RepoFts",
    "SyncJob",
    "SyncJobStatus",
    "AITag",
    "RepoAITag",
]
