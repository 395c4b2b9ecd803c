"""
docrag API Routes
=================

Endpoints used by the agent on every turn:

    POST /api/docs/search          - ranked chunks + formatted LLM context
    POST /api/docs/feedback        - record which chunks were cited and whether it helped
    GET  /api/docs/scores/{id}     - learned score of a chunk

Handlers are plain ``def`` so FastAPI runs the blocking embedding call
and file writes in its threadpool.
"""

import logging
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from ..learning import Interaction, LearningStoreError
from ..rag import QueryEmbeddingError, StoreError, format_context
from .services import DocsService, get_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/docs", tags=["Docs"])


# =============================================================================
# MODELS
# =============================================================================

class SearchRequest(BaseModel):
    """Docs search request."""
    query: str = Field(..., min_length=1, description="Natural-language question")
    k: Optional[int] = Field(None, ge=1, le=50, description="Number of results")


class SearchResult(BaseModel):
    """One ranked chunk."""
    chunk_id: str
    content: str
    source: str
    start_line: int
    end_line: int
    command: str
    topic: str
    type: str
    score: float
    similarity: float


class SearchResponse(BaseModel):
    """Docs search response."""
    query: str
    results: List[SearchResult]
    formatted_context: str


class FeedbackRequest(BaseModel):
    """Outcome of one answer."""
    query: str
    response: str = ""
    chunks_used: List[str] = Field(default_factory=list)
    successful: bool
    context: Dict[str, str] = Field(default_factory=dict)


class FeedbackResponse(BaseModel):
    """Scores after applying the feedback."""
    applied: Dict[str, float]
    interactions: int


class ScoreResponse(BaseModel):
    chunk_id: str
    score: float


def service_dependency() -> DocsService:
    """Resolve the service, reporting configuration problems as 503."""
    try:
        return get_service()
    except (ValueError, StoreError, LearningStoreError) as e:
        logger.error(f"Docs service unavailable: {e}")
        raise HTTPException(status_code=503, detail=f"Docs search not configured: {e}")


# =============================================================================
# ENDPOINTS
# =============================================================================

@router.post("/search", response_model=SearchResponse)
def search_docs(request: SearchRequest, service: DocsService = Depends(service_dependency)):
    """Rank documentation chunks for a question."""
    limit = request.k or service.default_limit

    try:
        scored = service.store.search_scored(request.query, limit)
    except QueryEmbeddingError as e:
        logger.error(f"Docs search failed: {e}")
        raise HTTPException(status_code=502, detail=str(e))

    return SearchResponse(
        query=request.query,
        results=[
            SearchResult(
                chunk_id=s.chunk.chunk_id,
                content=s.chunk.content,
                source=s.chunk.metadata.source,
                start_line=s.chunk.metadata.start_line,
                end_line=s.chunk.metadata.end_line,
                command=s.chunk.metadata.command,
                topic=s.chunk.metadata.topic,
                type=s.chunk.metadata.type.value,
                score=s.score,
                similarity=s.similarity,
            )
            for s in scored
        ],
        formatted_context=format_context([s.chunk for s in scored]),
    )


@router.post("/feedback", response_model=FeedbackResponse)
def record_feedback(request: FeedbackRequest, service: DocsService = Depends(service_dependency)):
    """Record an answer outcome and update learned chunk scores."""
    interaction = Interaction(
        query=request.query,
        response=request.response,
        chunks_used=request.chunks_used,
        successful=request.successful,
        context=request.context,
    )

    try:
        applied = service.learning.record_interaction(interaction)
    except OSError as e:
        logger.error(f"Failed to persist feedback: {e}")
        raise HTTPException(status_code=500, detail=f"Failed to persist feedback: {e}")

    return FeedbackResponse(applied=applied, interactions=len(service.learning.interactions))


@router.get("/scores/{chunk_id:path}", response_model=ScoreResponse)
def get_score(chunk_id: str, service: DocsService = Depends(service_dependency)):
    """Learned score for a chunk (1.0 when never scored)."""
    return ScoreResponse(chunk_id=chunk_id, score=service.learning.get_chunk_score(chunk_id))
