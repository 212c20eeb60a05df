"""Search schemas."""

from pydantic import BaseModel


class SearchHit(BaseModel):
    """One ranked mirror row."""

    repo_id: int
    full_name: str
    description: str | None = None
    topics: str | None = None
    ai_description: str | None = None
    score: float


class SearchResponse(BaseModel):
    """Lexical search response."""

    query: str
    results: list[SearchHit]
    total: int
