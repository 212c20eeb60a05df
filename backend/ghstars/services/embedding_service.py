"""Embedding service for Qdrant vector storage."""

import logging
import uuid
from typing import Any

from qdrant_client import AsyncQdrantClient
from qdrant_client.models import (
    Distance,
    FieldCondition,
    Filter,
    FilterSelector,
    MatchValue,
    PointIdsList,
    PointStruct,
    VectorParams,
)

from ghstars.config import get_settings

logger = logging.getLogger(__name__)
settings = get_settings()


def point_id(chunk_id: str) -> str:
    """Qdrant point id for an embedding chunk id like "123:readme:0"."""
    return str(uuid.uuid5(uuid.NAMESPACE_URL, f"ghstars:{chunk_id}"))


class EmbeddingService:
    """Service for Qdrant vector operations."""

    def __init__(self, client: AsyncQdrantClient | None = None):
        self.client = client or AsyncQdrantClient(
            url=settings.qdrant_url,
            api_key=settings.qdrant_api_key,
        )
        self.collection_name = settings.qdrant_collection
        self._collection_ready = False

    async def ensure_collection(self, vector_size: int) -> None:
        """Ensure collection exists with correct configuration.

        Args:
            vector_size: Size of embedding vectors
        """
        if self._collection_ready:
            return

        collections = await self.client.get_collections()
        collection_names = [c.name for c in collections.collections]

        if self.collection_name not in collection_names:
            await self.client.create_collection(
                collection_name=self.collection_name,
                vectors_config=VectorParams(
                    size=vector_size,
                    distance=Distance.COSINE,
                ),
            )
            logger.info(f"Created Qdrant collection: {self.collection_name}")
        self._collection_ready = True

    async def upsert_chunks(
        self,
        repo_id: int,
        points: list[dict[str, Any]],
    ) -> None:
        """Upsert embedding points for a repository.

        Args:
            repo_id: Repository id
            points: List of point dicts with:
                - id: Embedding chunk id
                - vector: Embedding vector
                - payload: Metadata (source, chunk_idx, text_hash)
        """
        if not points:
            return
        await self.ensure_collection(len(points[0]["vector"]))

        qdrant_points = [
            PointStruct(
                id=point_id(point["id"]),
                vector=point["vector"],
                payload={
                    "repo_id": repo_id,
                    "chunk_id": point["id"],
                    **point["payload"],
                },
            )
            for point in points
        ]

        await self.client.upsert(
            collection_name=self.collection_name,
            points=qdrant_points,
        )

    async def delete_points(self, chunk_ids: list[str]) -> None:
        """Delete the vectors of specific embedding chunks."""
        if not chunk_ids:
            return
        await self.client.delete(
            collection_name=self.collection_name,
            points_selector=PointIdsList(points=[point_id(c) for c in chunk_ids]),
        )

    async def delete_repository(self, repo_id: int) -> None:
        """Delete all vectors for a repository.

        Args:
            repo_id: Repository id
        """
        await self.client.delete(
            collection_name=self.collection_name,
            points_selector=FilterSelector(
                filter=Filter(
                    must=[
                        FieldCondition(
                            key="repo_id",
                            match=MatchValue(value=repo_id),
                        )
                    ]
                )
            ),
        )
