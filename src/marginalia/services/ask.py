"""
Search and Ask

Semantic search over a user's notes, and retrieval-augmented answers:

    question -> embedding -> match_notes -> numbered context -> LLM answer

Unlike linking, these are primary operations: embedding and storage
errors propagate to the API layer.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Sequence
from typing import Final

from sqlalchemy.ext.asyncio import AsyncSession

from marginalia.repositories.books import BookRepository, book_repository
from marginalia.repositories.notes import NoteRepository, SimilarNote, note_repository
from marginalia.schemas.ask import AskResponse, SourceReference
from marginalia.services import ai
from marginalia.services.linking import EmbedFn
from marginalia.services.llm import LLMService, llm_service

logger = logging.getLogger(__name__)

SEARCH_MATCH_COUNT: Final[int] = 10
SEARCH_THRESHOLD: Final[float] = 0.2
ASK_THRESHOLD: Final[float] = 0.0
CONTEXT_CONTENT_LIMIT: Final[int] = 1200


def build_context(hits: Sequence[SimilarNote], titles: dict[uuid.UUID, str]) -> str:
    """Numbered context block, one entry per retrieved note."""
    blocks = []
    for index, hit in enumerate(hits, 1):
        blocks.append(
            f"#{index}\n"
            f"book_title: {titles.get(hit.book_id, '-')}\n"
            f"note_id: {hit.id}\n"
            f"page_ref: {hit.page_ref or '-'}\n"
            f"quote: {hit.quote or '-'}\n"
            f"content: {hit.content[:CONTEXT_CONTENT_LIMIT]}\n"
            f"similarity: {hit.similarity}"
        )
    return "\n\n".join(blocks)


class AskService:
    """
    Semantic search and question answering over notes.

    Usage::

        service = AskService()
        hits = await service.semantic_search(session, user_id, "debt cycles")
        response = await service.ask(session, user_id, "Why do debt cycles repeat?")
    """

    def __init__(
        self,
        notes: NoteRepository | None = None,
        books: BookRepository | None = None,
        llm: LLMService | None = None,
        embed: EmbedFn | None = None,
    ) -> None:
        self._notes = notes or note_repository
        self._books = books or book_repository
        self._llm = llm or llm_service
        self._embed = embed

    async def semantic_search(
        self,
        session: AsyncSession,
        user_id: uuid.UUID,
        query: str,
    ) -> list[SimilarNote]:
        """Notes closest to ``query``; an empty query returns no results."""
        query = query.strip()
        if not query:
            return []

        embed = self._embed or ai.get_embedding
        vector = await embed(query)
        return await self._notes.match_notes(
            session, user_id, vector, SEARCH_MATCH_COUNT, SEARCH_THRESHOLD
        )

    async def ask(
        self,
        session: AsyncSession,
        user_id: uuid.UUID,
        question: str,
        top_k: int = 8,
    ) -> AskResponse:
        """
        Answer ``question`` from the user's ``top_k`` closest notes.

        Returned sources carry ids, book titles and similarity but not the
        note content.
        """
        question = question.strip()
        if not question:
            return AskResponse(answer="")

        embed = self._embed or ai.get_embedding
        vector = await embed(question)
        hits = await self._notes.match_notes(
            session, user_id, vector, top_k, ASK_THRESHOLD
        )
        titles = await self._books.get_titles(session, user_id, (h.book_id for h in hits))

        response = await self._llm.generate_answer(question, build_context(hits, titles))
        if response.is_mocked:
            logger.warning("Returning mocked answer for question '%s'", question[:50])

        return AskResponse(
            answer=response.content,
            is_mocked=response.is_mocked,
            sources=[
                SourceReference(
                    note_id=hit.id,
                    book_id=hit.book_id,
                    book_title=titles.get(hit.book_id),
                    page_ref=hit.page_ref,
                    similarity=hit.similarity,
                )
                for hit in hits
            ],
        )


# Module-level singleton for convenience
ask_service = AskService()
