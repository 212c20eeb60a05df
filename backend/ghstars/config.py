"""Application configuration using Pydantic Settings."""

from functools import lru_cache
from typing import List

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Application
    app_env: str = "development"

    # Database
    database_url: str = "sqlite+aiosqlite:///./ghstars.db"
    database_pool_size: int = 10
    database_echo: bool = False

    # Qdrant
    qdrant_url: str = "http://localhost:6333"
    qdrant_api_key: str | None = None
    qdrant_collection: str = "gh_stars"

    # GitHub
    github_token: str = ""
    github_username: str = ""
    github_api_base: str = "https://api.github.com"
    github_per_page: int = 100

    # Gemini
    gemini_api_key: str = ""
    gemini_model: str = "gemini-2.0-flash"
    gemini_embedding_model: str = "text-embedding-004"

    # Celery
    celery_broker_url: str = "redis://localhost:6379/1"
    celery_result_backend: str = "redis://localhost:6379/2"

    # Sync
    chunk_size: int = 1200
    embed_max_attempts: int = 3
    embed_retry_wait_seconds: float = 1.0
    sync_annotate: bool = True
    search_default_limit: int = 20

    # CORS
    cors_origins: List[str] = ["http://localhost:3000"]

    @field_validator("database_url", mode="after")
    @classmethod
    def validate_database_url(cls, v: str) -> str:
        """Ensure database URL is set."""
        if not v:
            raise ValueError("database_url must be set via DATABASE_URL environment variable")
        return v

    @field_validator("chunk_size", "embed_max_attempts", mode="after")
    @classmethod
    def validate_positive(cls, v: int, info) -> int:
        """Chunking and retry bounds must be positive."""
        if v < 1:
            raise ValueError(f"{info.field_name} must be at least 1")
        return v

    @property
    def is_production(self) -> bool:
        return self.app_env == "production"

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
