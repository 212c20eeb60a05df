"""Pytest configuration and fixtures."""

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

import ghstars.models  # noqa: F401
from ghstars.database import Base, create_engine_from_url
from ghstars.services.chunker import TextChunker
from ghstars.services.sync_service import SyncOrchestrator

from tests.fakes import FakeEmbedder, FakeSummarizer, FakeVectorStore


@pytest_asyncio.fixture
async def engine(tmp_path):
    """Fresh SQLite database per test, foreign keys enforced."""
    engine = create_engine_from_url(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def embedder() -> FakeEmbedder:
    return FakeEmbedder()


@pytest.fixture
def vector_store() -> FakeVectorStore:
    return FakeVectorStore()


@pytest.fixture
def summarizer() -> FakeSummarizer:
    return FakeSummarizer()


@pytest.fixture
def orchestrator(session_factory, embedder, vector_store) -> SyncOrchestrator:
    """Orchestrator without annotation, no retry waits."""
    return SyncOrchestrator(
        session_factory,
        embedder=embedder,
        vector_store=vector_store,
        chunker=TextChunker(1200),
        max_attempts=2,
        retry_wait_seconds=0,
    )


@pytest_asyncio.fixture
async def client(session_factory, orchestrator):
    """API client bound to the test database and fake collaborators."""
    from ghstars.api.deps import get_orchestrator
    from ghstars.database import get_db
    from ghstars.main import app

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_orchestrator] = lambda: orchestrator

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()
