"""
Note Repository

Data access layer for Note entities with semantic search capabilities.
Extends BaseRepository with pgvector-specific query methods.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from pgvector.sqlalchemy import Vector
from sqlalchemy import bindparam, select, text, update
from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import AsyncSession

from marginalia.core.errors import UnsupportedFilterError
from marginalia.models import EMBEDDING_DIMENSION, Note
from marginalia.repositories.base import BaseRepository

logger = logging.getLogger(__name__)

# PostgreSQL SQLSTATE for "function does not exist" (no matching signature)
UNDEFINED_FUNCTION = "42883"

_MATCH_NOTES = text(
    """
    SELECT id, book_id, content, quote, page_ref, similarity
    FROM match_notes(:user_id, :query_embedding, :match_count, :match_threshold)
    """
).bindparams(bindparam("query_embedding", type_=Vector(EMBEDDING_DIMENSION)))

_MATCH_NOTES_IN_BOOK = text(
    """
    SELECT id, book_id, content, quote, page_ref, similarity
    FROM match_notes(
        :user_id, :query_embedding, :match_count, :match_threshold,
        :book_id, true
    )
    """
).bindparams(bindparam("query_embedding", type_=Vector(EMBEDDING_DIMENSION)))


@dataclass(frozen=True)
class SimilarNote:
    """Row returned by the ``match_notes`` similarity search."""

    id: uuid.UUID
    book_id: uuid.UUID
    content: str
    quote: str | None
    page_ref: str | None
    similarity: float


def _is_undefined_function(exc: DBAPIError) -> bool:
    code = getattr(exc.orig, "sqlstate", None) or getattr(exc.orig, "pgcode", None)
    return code == UNDEFINED_FUNCTION


class NoteRepository(BaseRepository[Note]):
    """
    Repository for Note entities with vector search support.

    Inherits standard CRUD from BaseRepository and adds:
        - match_notes: similarity search through the ``match_notes`` SQL function
        - update_embedding: targeted embedding updates after (re)embedding
        - get_many / list_by_book / get_book_id: read helpers for linking
    """

    def __init__(self) -> None:
        super().__init__(Note)

    async def get_many(
        self,
        session: AsyncSession,
        user_id: uuid.UUID,
        note_ids: Iterable[uuid.UUID],
    ) -> Sequence[Note]:
        """Batch-load notes by id. Ids that do not resolve are silently skipped."""
        ids = list(note_ids)
        if not ids:
            return []
        result = await session.execute(
            select(Note).where(Note.user_id == user_id, Note.id.in_(ids))
        )
        return result.scalars().all()

    async def list_by_book(
        self,
        session: AsyncSession,
        user_id: uuid.UUID,
        book_id: uuid.UUID,
    ) -> Sequence[Note]:
        """List a book's notes, newest first."""
        result = await session.execute(
            select(Note)
            .where(Note.user_id == user_id, Note.book_id == book_id)
            .order_by(Note.created_at.desc())
        )
        return result.scalars().all()

    async def get_book_id(
        self,
        session: AsyncSession,
        user_id: uuid.UUID,
        note_id: uuid.UUID,
    ) -> uuid.UUID | None:
        """Parent book of a note, or None if the note does not resolve."""
        result = await session.execute(
            select(Note.book_id).where(Note.id == note_id, Note.user_id == user_id)
        )
        return result.scalar_one_or_none()

    async def update_embedding(
        self,
        session: AsyncSession,
        user_id: uuid.UUID,
        note_id: uuid.UUID,
        embedding: list[float],
    ) -> None:
        """
        Update only the embedding field of a note.

        Uses bulk UPDATE (no SELECT required).
        """
        stmt = (
            update(Note)
            .where(Note.id == note_id, Note.user_id == user_id)
            .values(embedding=embedding)
        )
        await session.execute(stmt)
        await session.commit()

    async def match_notes(
        self,
        session: AsyncSession,
        user_id: uuid.UUID,
        query_embedding: list[float],
        match_count: int,
        match_threshold: float,
        book_id: uuid.UUID | None = None,
    ) -> list[SimilarNote]:
        """
        Nearest notes of ``user_id`` to a query vector (cosine similarity).

        Delegates to the ``match_notes`` SQL function, which filters by owner
        and threshold server-side and orders by similarity (highest first).

        Args:
            session: Database session.
            user_id: Owner whose notes are searched.
            query_embedding: Query vector (1536 dimensions).
            match_count: Maximum rows returned.
            match_threshold: Minimum similarity.
            book_id: Restrict to one book when given.

        Raises:
            UnsupportedFilterError: The deployed function has no book filter
                parameters. The session is rolled back before raising.
        """
        params = {
            "user_id": user_id,
            "query_embedding": query_embedding,
            "match_count": match_count,
            "match_threshold": match_threshold,
        }
        stmt = _MATCH_NOTES
        if book_id is not None:
            params["book_id"] = book_id
            stmt = _MATCH_NOTES_IN_BOOK

        try:
            result = await session.execute(stmt, params)
        except DBAPIError as e:
            if book_id is not None and _is_undefined_function(e):
                await session.rollback()
                raise UnsupportedFilterError(
                    "match_notes does not accept a book filter"
                ) from e
            raise

        return [
            SimilarNote(
                id=row.id,
                book_id=row.book_id,
                content=row.content,
                quote=row.quote,
                page_ref=row.page_ref,
                similarity=round(float(row.similarity), 4),
            )
            for row in result.all()
        ]


# Module-level instance for convenience imports
note_repository = NoteRepository()
