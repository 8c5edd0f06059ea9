"""
Search and Ask API Router

Endpoints:
    POST /search  Semantic search across the user's notes.
    POST /ask     Retrieve the closest notes and answer from them.
"""

from __future__ import annotations

import logging
import uuid

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from marginalia.api.deps import get_ask_service, get_current_user_id
from marginalia.core.database import get_db
from marginalia.core.errors import EmbeddingError
from marginalia.schemas.ask import AskRequest, AskResponse, SearchHit, SearchRequest
from marginalia.services.ask import AskService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/search", response_model=list[SearchHit])
async def search_notes(
    request: SearchRequest,
    user_id: uuid.UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    service: AskService = Depends(get_ask_service),
) -> list[SearchHit]:
    """
    Semantic search using vector similarity.

    Raises:
        HTTPException 502: If the AI embedding service is unavailable.
    """
    try:
        hits = await service.semantic_search(db, user_id, request.query)
    except EmbeddingError as e:
        # 502 Bad Gateway: upstream AI service failure
        raise HTTPException(status_code=502, detail=f"AI Service Error: {e}") from e

    return [
        SearchHit(
            id=hit.id,
            book_id=hit.book_id,
            content=hit.content,
            quote=hit.quote,
            page_ref=hit.page_ref,
            similarity=hit.similarity,
        )
        for hit in hits
    ]


@router.post("/ask", response_model=AskResponse)
async def ask_question(
    request: AskRequest,
    user_id: uuid.UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    service: AskService = Depends(get_ask_service),
) -> AskResponse:
    """
    Answer a question from the user's notes.

    If the LLM is unavailable the answer is simulated and ``is_mocked``
    is set, so the endpoint still returns 200.
    """
    try:
        return await service.ask(db, user_id, request.question, top_k=request.top_k)
    except EmbeddingError as e:
        logger.error("Embedding failed for question: %s", e)
        raise HTTPException(status_code=502, detail=f"AI Service Error: {e}") from e
