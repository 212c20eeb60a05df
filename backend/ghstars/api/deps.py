"""API dependencies for dependency injection."""

from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ghstars.database import AsyncSessionLocal, get_db
from ghstars.services.sync_service import SyncOrchestrator, build_orchestrator

# Type aliases for cleaner signatures
DbSession = Annotated[AsyncSession, Depends(get_db)]


def get_orchestrator() -> SyncOrchestrator:
    """Sync orchestrator bound to the application session factory."""
    return build_orchestrator(AsyncSessionLocal)


Orchestrator = Annotated[SyncOrchestrator, Depends(get_orchestrator)]
