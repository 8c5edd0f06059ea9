"""
Candidate Retrieval

Nearest-neighbour lookup of notes that may be related to a given note.
The same-book restriction is best-effort: when the note's book cannot be
resolved, or the similarity search does not support the filter, the
query silently falls back to the user's whole library.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import Final

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from marginalia.core.errors import RetrievalError, UnsupportedFilterError
from marginalia.repositories.notes import NoteRepository, SimilarNote, note_repository

logger = logging.getLogger(__name__)

# Extra rows requested on top of match_count: the source note itself and
# duplicate representations of a pair are filtered out afterwards.
CANDIDATE_MARGIN: Final[int] = 8


def build_embedding_text(
    content: str | None,
    quote: str | None = None,
    page_ref: str | None = None,
) -> str:
    """Text that represents a note for embedding (body, quote line, page line)."""
    parts = [
        content or "",
        f"Quote: {quote}" if quote else "",
        f"Page: {page_ref}" if page_ref else "",
    ]
    return "\n".join(part for part in parts if part).strip()


@dataclass(frozen=True)
class Candidate:
    """A possibly related note and its similarity to the source note."""

    note_id: uuid.UUID
    score: float


class CandidateRetriever:
    """
    Retrieves similarity candidates for a note's embedding.

    Usage::

        retriever = CandidateRetriever()
        candidates = await retriever.retrieve(
            session, user_id,
            note_id=note.id, embedding=vector,
            match_count=5, threshold=0.35, same_book_only=True,
        )
    """

    def __init__(self, notes: NoteRepository | None = None) -> None:
        self._notes = notes or note_repository

    async def retrieve(
        self,
        session: AsyncSession,
        user_id: uuid.UUID,
        *,
        note_id: uuid.UUID,
        embedding: list[float],
        match_count: int,
        threshold: float,
        same_book_only: bool = False,
    ) -> list[Candidate]:
        """
        Candidates for ``note_id``, excluding the note itself.

        Always requests ``match_count + CANDIDATE_MARGIN`` rows.

        Raises:
            RetrievalError: The similarity search failed (connectivity,
                database error). Unsupported-filter errors never escape.
        """
        limit = match_count + CANDIDATE_MARGIN

        book_id = None
        if same_book_only:
            book_id = await self._resolve_book(session, user_id, note_id)

        rows = await self._search(session, user_id, embedding, limit, threshold, book_id)
        return [
            Candidate(note_id=row.id, score=row.similarity)
            for row in rows
            if str(row.id) != str(note_id)
        ]

    async def _resolve_book(
        self,
        session: AsyncSession,
        user_id: uuid.UUID,
        note_id: uuid.UUID,
    ) -> uuid.UUID | None:
        try:
            book_id = await self._notes.get_book_id(session, user_id, note_id)
        except SQLAlchemyError as e:
            logger.warning(
                "Could not resolve book of note %s, searching all notes: %s",
                note_id,
                e,
            )
            await session.rollback()
            return None

        if book_id is None:
            logger.info("Note %s has no book, searching all notes", note_id)
        return book_id

    async def _search(
        self,
        session: AsyncSession,
        user_id: uuid.UUID,
        embedding: list[float],
        limit: int,
        threshold: float,
        book_id: uuid.UUID | None,
    ) -> list[SimilarNote]:
        if book_id is not None:
            try:
                return list(
                    await self._notes.match_notes(
                        session, user_id, embedding, limit, threshold, book_id=book_id
                    )
                )
            except UnsupportedFilterError:
                logger.info("Same-book filter unsupported, retrying without it")
            except (SQLAlchemyError, OSError) as e:
                raise RetrievalError(f"match_notes failed: {e}") from e

        try:
            return list(
                await self._notes.match_notes(session, user_id, embedding, limit, threshold)
            )
        except (SQLAlchemyError, OSError) as e:
            raise RetrievalError(f"match_notes failed: {e}") from e
