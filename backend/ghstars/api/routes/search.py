"""Lexical search routes."""

from fastapi import APIRouter, Query

from ghstars.api.deps import DbSession
from ghstars.config import get_settings
from ghstars.schemas.search import SearchResponse
from ghstars.services.mirror_service import MirrorSearch

router = APIRouter()
settings = get_settings()


@router.get("", response_model=SearchResponse)
async def search_repositories(
    db: DbSession,
    q: str = Query(min_length=1, max_length=200),
    limit: int | None = Query(default=None, ge=1, le=100),
):
    """Search starred repositories by name, topics, description and summary."""
    hits = await MirrorSearch(db).search(q, limit=limit or settings.search_default_limit)
    return SearchResponse(query=q, results=hits, total=len(hits))
