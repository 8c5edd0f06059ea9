"""
Search and Ask Schemas

Pydantic models for semantic search and retrieval-augmented question
answering over a user's notes.
"""

from __future__ import annotations

from uuid import UUID

from pydantic import BaseModel, Field


class SearchRequest(BaseModel):
    """Request body for semantic note search."""

    query: str = Field(
        ...,
        max_length=2000,
        description="Natural language search query",
    )


class SearchHit(BaseModel):
    """Single note returned by semantic search."""

    id: UUID
    book_id: UUID
    content: str
    quote: str | None = None
    page_ref: str | None = None
    similarity: float = Field(description="Cosine similarity (higher = closer)")


class AskRequest(BaseModel):
    """Request body for RAG question answering."""

    question: str = Field(
        ...,
        max_length=2000,
        description="Natural language question to answer",
    )
    top_k: int = Field(
        default=8,
        ge=1,
        le=20,
        description="Number of notes to use as context",
    )


class SourceReference(BaseModel):
    """Note cited as context for an answer (without its full content)."""

    note_id: UUID
    book_id: UUID
    book_title: str | None = None
    page_ref: str | None = None
    similarity: float


class AskResponse(BaseModel):
    """Response from the ask endpoint."""

    answer: str = Field(description="Generated answer text")
    sources: list[SourceReference] = Field(default_factory=list)
    is_mocked: bool = Field(
        default=False,
        description="True if the LLM was unavailable and the answer is simulated",
    )
