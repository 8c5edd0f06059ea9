"""
Book Repository

Data access layer for Book entities.
"""

import uuid
from collections.abc import Iterable

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from marginalia.models import Book
from marginalia.repositories.base import BaseRepository


class BookRepository(BaseRepository[Book]):
    """Repository for Book entities."""

    def __init__(self) -> None:
        super().__init__(Book)

    async def get_titles(
        self,
        session: AsyncSession,
        user_id: uuid.UUID,
        book_ids: Iterable[uuid.UUID],
    ) -> dict[uuid.UUID, str]:
        """Map book id to title for the given ids (missing ids are omitted)."""
        ids = list(set(book_ids))
        if not ids:
            return {}
        result = await session.execute(
            select(Book.id, Book.title).where(
                Book.user_id == user_id,
                Book.id.in_(ids),
            )
        )
        return {row.id: row.title for row in result.all()}


# Module-level instance for convenience imports
book_repository = BookRepository()
