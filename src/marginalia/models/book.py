"""
Book Model

Parent collection for notes. Deleting a book deletes its notes.
"""

import uuid

from sqlalchemy import String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from marginalia.models.base import Base, OwnedMixin, TimestampMixin


class Book(Base, OwnedMixin, TimestampMixin):
    """
    Book or project that groups notes.

    Attributes:
        id: UUID primary key.
        user_id: Owning user.
        title: Display title.
        author: Optional author name.
        source: Optional free-form source (URL, edition, ...).
    """

    __tablename__ = "books"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    title: Mapped[str] = mapped_column(String(300), nullable=False)
    author: Mapped[str | None] = mapped_column(String(300), nullable=True)
    source: Mapped[str | None] = mapped_column(String(500), nullable=True)

    def __repr__(self) -> str:
        return f"<Book(id={self.id!s:.8}, title='{self.title[:20]}')>"
