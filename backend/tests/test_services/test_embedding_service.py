"""Tests for the Qdrant vector store."""

import uuid
from unittest.mock import AsyncMock, MagicMock

import pytest
from qdrant_client.models import FilterSelector, PointIdsList

from ghstars.services.embedding_service import EmbeddingService, point_id


@pytest.fixture
def client():
    client = MagicMock()
    client.get_collections = AsyncMock(return_value=MagicMock(collections=[]))
    client.create_collection = AsyncMock()
    client.upsert = AsyncMock()
    client.delete = AsyncMock()
    return client


class TestPointId:
    """Test chunk id to point id mapping."""

    def test_is_stable_uuid(self):
        first = point_id("1:readme:0")

        assert first == point_id("1:readme:0")
        assert str(uuid.UUID(first)) == first
        assert first != point_id("1:readme:1")


class TestEmbeddingService:
    """Test Qdrant calls."""

    @pytest.mark.asyncio
    async def test_upsert_creates_collection_once(self, client):
        service = EmbeddingService(client=client)
        points = [
            {"id": "1:readme:0", "vector": [0.1, 0.2], "payload": {"source": "readme"}},
        ]

        await service.upsert_chunks(1, points)
        await service.upsert_chunks(1, points)

        client.create_collection.assert_awaited_once()
        assert client.create_collection.call_args.kwargs["vectors_config"].size == 2
        upserted = client.upsert.call_args.kwargs["points"]
        assert upserted[0].id == point_id("1:readme:0")
        assert upserted[0].payload == {"repo_id": 1, "chunk_id": "1:readme:0", "source": "readme"}

    @pytest.mark.asyncio
    async def test_upsert_nothing_is_a_noop(self, client):
        await EmbeddingService(client=client).upsert_chunks(1, [])

        client.upsert.assert_not_awaited()
        client.get_collections.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_delete_points_by_chunk_id(self, client):
        await EmbeddingService(client=client).delete_points(["1:readme:1", "1:readme:2"])

        selector = client.delete.call_args.kwargs["points_selector"]
        assert isinstance(selector, PointIdsList)
        assert selector.points == [point_id("1:readme:1"), point_id("1:readme:2")]

    @pytest.mark.asyncio
    async def test_delete_repository_filters_on_repo_id(self, client):
        await EmbeddingService(client=client).delete_repository(7)

        selector = client.delete.call_args.kwargs["points_selector"]
        assert isinstance(selector, FilterSelector)
        assert selector.filter.must[0].key == "repo_id"
        assert selector.filter.must[0].match.value == 7
