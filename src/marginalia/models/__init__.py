"""Models package - re-exports all models for convenient imports."""

from marginalia.models.base import Base, OwnedMixin, TimestampMixin
from marginalia.models.book import Book
from marginalia.models.note import EMBEDDING_DIMENSION, Note
from marginalia.models.note_link import LINK_TYPE_SEMANTIC, NoteLink

__all__ = [
    "Base",
    "OwnedMixin",
    "TimestampMixin",
    "Book",
    "Note",
    "NoteLink",
    "EMBEDDING_DIMENSION",
    "LINK_TYPE_SEMANTIC",
]
