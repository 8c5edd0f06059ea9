"""
Note Model

Core entity for storing reading notes with vector embeddings for semantic
linking. Uses pgvector extension for similarity queries.
"""

import uuid

from pgvector.sqlalchemy import Vector
from sqlalchemy import ForeignKey, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from marginalia.models.base import Base, OwnedMixin, TimestampMixin

EMBEDDING_DIMENSION = 1536  # text-embedding-3-small output size


class Note(Base, OwnedMixin, TimestampMixin):
    """
    Note entity with vector embedding support.

    Attributes:
        id: UUID primary key.
        user_id: Owning user.
        book_id: Parent book (CASCADE delete).
        content: Note body.
        quote: Optional quoted passage.
        page_ref: Optional page reference.
        embedding: 1536-dim vector (nullable until processed).
        same_book_only: Restrict semantic linking to notes of the same book.
    """

    __tablename__ = "notes"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    book_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("books.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    content: Mapped[str] = mapped_column(Text, nullable=False)
    quote: Mapped[str | None] = mapped_column(Text, nullable=True)
    page_ref: Mapped[str | None] = mapped_column(String(40), nullable=True)
    # Nullable: embedding is best-effort and may fail after the note is saved
    embedding: Mapped[list[float] | None] = mapped_column(
        Vector(EMBEDDING_DIMENSION), nullable=True
    )
    same_book_only: Mapped[bool] = mapped_column(default=False)

    def __repr__(self) -> str:
        return f"<Note(id={self.id!s:.8}, content='{self.content[:20]}...')>"
