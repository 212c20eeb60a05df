"""Repository routes."""

from fastapi import APIRouter, HTTPException, status

from ghstars.api.deps import DbSession, Orchestrator
from ghstars.models.star import Star
from ghstars.schemas.repository import (
    RepositoryDetailResponse,
    RepositoryRemovedResponse,
    RepositoryResponse,
)
from ghstars.services.annotation_service import AnnotationService
from ghstars.services.catalog_service import CatalogService
from ghstars.services.exceptions import RepositoryNotFoundError
from ghstars.services.tag_service import TagService

router = APIRouter()


@router.get("/{repo_id}", response_model=RepositoryDetailResponse)
async def get_repository(repo_id: int, db: DbSession):
    """Get a catalog repository with its star, annotation and tags."""
    repo = await CatalogService(db).get_repository(repo_id)
    if not repo:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Repository not found",
        )

    star = await db.get(Star, repo_id)
    annotation = await AnnotationService(db).get(repo_id)
    tags = await TagService(db).tags_for(repo_id)

    return RepositoryDetailResponse(
        **RepositoryResponse.model_validate(repo).model_dump(),
        starred_at=star.starred_at if star else None,
        ai_description=annotation.ai_description if annotation else None,
        tags=tags,
    )


@router.delete("/{repo_id}", response_model=RepositoryRemovedResponse)
async def remove_repository(repo_id: int, orchestrator: Orchestrator):
    """Un-star a repository: delete it and everything derived from it."""
    try:
        chunks_removed = await orchestrator.remove_repository(repo_id)
    except RepositoryNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc

    return RepositoryRemovedResponse(repo_id=repo_id, chunks_removed=chunks_removed)
