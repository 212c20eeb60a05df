"""Tests for the catalog store: upserts, stars and cascading delete."""

from datetime import datetime

import pytest
from sqlalchemy import func, select

from ghstars.models.embedding import EmbeddingChunk
from ghstars.models.repo_ai import RepoAI
from ghstars.models.repo_fts import RepoFts
from ghstars.models.repository import Repository
from ghstars.models.star import Star
from ghstars.models.tag import AITag, RepoAITag
from ghstars.schemas.repository import RepositoryPayload
from ghstars.services.annotation_service import AnnotationService
from ghstars.services.catalog_service import CatalogService, readme_fingerprint
from ghstars.services.chunker import content_hash
from ghstars.services.embedding_index_service import EmbeddingIndexService
from ghstars.services.exceptions import ConflictError, RepositoryNotFoundError
from ghstars.services.tag_service import TagService

from tests.fakes import make_payload


def payload(**overrides) -> RepositoryPayload:
    return RepositoryPayload.model_validate(make_payload(**overrides))


class TestUpsertRepository:
    """Test repository inserts and updates."""

    @pytest.mark.asyncio
    async def test_insert_creates_repository_star_and_mirror(self, db):
        """First sync of an id creates the row, its star and its mirror entry."""
        starred = datetime(2024, 5, 1, 12, 0, 0)
        result = await CatalogService(db).upsert_repository(
            payload(description="x", topics=["rust"], starred_at=starred)
        )
        await db.commit()

        assert result.created is True
        repo = await db.get(Repository, 1)
        assert repo.owner_login == "a"
        assert repo.name == "b"
        assert repo.html_url == "https://github.com/a/b"
        assert repo.topics == ["rust"]

        star = await db.get(Star, 1)
        assert star.starred_at == starred

        mirror = await db.get(RepoFts, 1)
        assert mirror.full_name == "a/b"
        assert mirror.description == "x"
        assert mirror.topics == '["rust"]'
        assert mirror.ai_description is None

    @pytest.mark.asyncio
    async def test_update_overwrites_fields_and_refreshes_last_synced(self, db):
        """Re-sync is last-write-wins and always touches last_synced_at."""
        service = CatalogService(db)
        await service.upsert_repository(payload(description="x"), now=datetime(2024, 1, 1))
        result = await service.upsert_repository(
            payload(description="y", stargazers_count=10), now=datetime(2024, 1, 2)
        )
        await db.commit()

        assert result.created is False
        assert {"description", "stargazers_count"} <= result.changed_fields
        repo = await db.get(Repository, 1)
        assert repo.description == "y"
        assert repo.stargazers_count == 10
        assert repo.last_synced_at == datetime(2024, 1, 2)
        assert (await db.get(RepoFts, 1)).description == "y"

    @pytest.mark.asyncio
    async def test_unchanged_update_still_refreshes_last_synced(self, db):
        """Nothing changed, but the sync time still moves."""
        service = CatalogService(db)
        await service.upsert_repository(payload(), now=datetime(2024, 1, 1))
        result = await service.upsert_repository(payload(), now=datetime(2024, 1, 3))

        assert result.changed_fields == set()
        assert result.repository.last_synced_at == datetime(2024, 1, 3)

    @pytest.mark.asyncio
    async def test_rename_with_different_case_is_same_repository(self, db):
        """The same id may change the case of its own full name."""
        service = CatalogService(db)
        await service.upsert_repository(payload(full_name="Owner/Repo"))
        await service.upsert_repository(payload(full_name="owner/repo"))

        repo = await db.get(Repository, 1)
        assert repo.full_name == "owner/repo"
        assert (await db.get(RepoFts, 1)).full_name == "owner/repo"

    @pytest.mark.asyncio
    async def test_full_name_conflict_ignores_case(self, db):
        """Another id claiming the name in different case is rejected."""
        service = CatalogService(db)
        await service.upsert_repository(payload(repo_id=1, full_name="Owner/Repo"))

        with pytest.raises(ConflictError) as exc:
            await service.upsert_repository(payload(repo_id=2, full_name="owner/repo"))

        assert exc.value.existing_id == 1
        assert await db.get(Repository, 2) is None

    @pytest.mark.asyncio
    async def test_readme_sha_only_set_when_readme_supplied(self, db):
        """A payload without README keeps the stored fingerprint."""
        service = CatalogService(db)
        first = await service.upsert_repository(payload(readme="hello world"))
        assert first.repository.readme_sha == content_hash("hello world")

        second = await service.upsert_repository(payload())
        assert second.repository.readme_sha == content_hash("hello world")
        assert second.readme_changed is False

        third = await service.upsert_repository(payload(readme="hello again"))
        assert third.readme_changed is True


class TestReadmeFingerprint:
    """Test README fingerprint selection."""

    def test_prefers_supplied_sha(self):
        assert readme_fingerprint(payload(readme="x", readme_sha="abc")) == "abc"

    def test_hashes_readme_text(self):
        assert readme_fingerprint(payload(readme="x")) == content_hash("x")

    def test_none_without_readme(self):
        assert readme_fingerprint(payload()) is None

    def test_sha_without_readme_text_is_ignored(self):
        assert readme_fingerprint(payload(readme_sha="abc")) is None

    @pytest.mark.asyncio
    async def test_sha_only_payload_keeps_stored_fingerprint(self, db):
        service = CatalogService(db)
        await service.upsert_repository(payload(readme="A text", readme_sha="s1"))

        result = await service.upsert_repository(payload(readme_sha="s2"))

        assert result.repository.readme_sha == "s1"
        assert result.readme_changed is False


class TestUpsertStar:
    """Test the star ledger."""

    @pytest.mark.asyncio
    async def test_star_is_overwritten(self, db):
        """Only the latest star timestamp is kept."""
        service = CatalogService(db)
        await service.upsert_repository(payload(starred_at=datetime(2023, 1, 1)))
        await service.upsert_repository(payload(starred_at=datetime(2024, 1, 1)))

        stars = (await db.execute(select(Star))).scalars().all()
        assert len(stars) == 1
        assert stars[0].starred_at == datetime(2024, 1, 1)

    @pytest.mark.asyncio
    async def test_missing_timestamp_keeps_existing(self, db):
        """A payload without starred_at does not reset the star."""
        service = CatalogService(db)
        await service.upsert_repository(payload(starred_at=datetime(2023, 1, 1)))
        await service.upsert_repository(payload(), now=datetime(2025, 1, 1))

        assert (await db.get(Star, 1)).starred_at == datetime(2023, 1, 1)

    @pytest.mark.asyncio
    async def test_new_star_without_timestamp_uses_now(self, db):
        await CatalogService(db).upsert_repository(payload(), now=datetime(2025, 2, 2))

        assert (await db.get(Star, 1)).starred_at == datetime(2025, 2, 2)


class TestDeleteRepository:
    """Test cascading delete."""

    @pytest.mark.asyncio
    async def test_delete_removes_every_dependent_row(self, db, embedder):
        """Star, embeddings, annotation, mirror and tag links all go."""
        service = CatalogService(db)
        await service.upsert_repository(payload(description="x", readme="hello world"))
        await service.upsert_repository(payload(repo_id=2, full_name="c/d", description="keep"))
        await EmbeddingIndexService(db, embedder, retry_wait_seconds=0).reconcile(
            1, {"readme": "hello world", "description": "x"}
        )
        await AnnotationService(db).upsert(1, "a summary")
        tags = TagService(db)
        tag_id = await tags.ensure_tag("rust")
        await tags.attach_tags(1, [tag_id])
        await tags.attach_tags(2, [tag_id])
        await db.commit()

        chunk_ids = await service.delete_repository(1)
        await db.commit()

        assert sorted(chunk_ids) == ["1:description:0", "1:readme:0"]
        assert await db.get(Repository, 1) is None
        for model in (Star, RepoAI, RepoFts):
            count = await db.scalar(
                select(func.count()).select_from(model).where(model.repo_id == 1)
            )
            assert count == 0
        for model in (EmbeddingChunk, RepoAITag):
            count = await db.scalar(
                select(func.count()).select_from(model).where(model.repo_id == 1)
            )
            assert count == 0

        # Other repositories and the tag vocabulary are untouched
        assert await db.get(Repository, 2) is not None
        assert await db.get(RepoFts, 2) is not None
        assert await db.get(AITag, tag_id) is not None
        assert await TagService(db).tags_for(2) == ["rust"]

    @pytest.mark.asyncio
    async def test_delete_unknown_repository(self, db):
        with pytest.raises(RepositoryNotFoundError):
            await CatalogService(db).delete_repository(404)
