"""Database configuration with async SQLAlchemy."""

import logging
from typing import AsyncGenerator

from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from ghstars.config import get_settings

logger = logging.getLogger(__name__)
settings = get_settings()


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""
    pass


def enable_sqlite_foreign_keys(engine: AsyncEngine) -> None:
    """Turn on FK enforcement for every new SQLite connection.

    SQLite ships with foreign keys disabled per connection, so ON DELETE
    CASCADE on the dependent tables is inert without this.
    """

    @event.listens_for(engine.sync_engine, "connect")
    def _set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def create_engine_from_url(database_url: str, echo: bool = False) -> AsyncEngine:
    """Create an async engine suited to the backing database."""
    if database_url.startswith("sqlite"):
        engine = create_async_engine(
            database_url,
            echo=echo,
            connect_args={"check_same_thread": False},
        )
        enable_sqlite_foreign_keys(engine)
        return engine

    return create_async_engine(
        database_url,
        echo=echo,
        pool_size=settings.database_pool_size,
        max_overflow=10,
        pool_timeout=30,
        pool_pre_ping=True,
    )


engine: AsyncEngine = create_engine_from_url(settings.database_url, echo=settings.database_echo)

AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


async def init_db() -> None:
    """Create tables when running against a fresh SQLite file.

    PostgreSQL deployments are migrated with Alembic instead.
    """
    # Register all models on Base.metadata
    import ghstars.models  # noqa: F401

    if settings.is_sqlite:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Initialized SQLite schema")


async def close_db() -> None:
    """Close the database engine and all connections."""
    await engine.dispose()


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency that yields an async session."""
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
