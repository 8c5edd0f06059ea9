"""Repositories package."""

from marginalia.repositories.base import BaseRepository
from marginalia.repositories.books import BookRepository, book_repository
from marginalia.repositories.note_links import (
    LinkRow,
    NoteLinkRepository,
    note_link_repository,
)
from marginalia.repositories.notes import NoteRepository, SimilarNote, note_repository

__all__ = [
    "BaseRepository",
    "BookRepository",
    "book_repository",
    "LinkRow",
    "NoteLinkRepository",
    "note_link_repository",
    "NoteRepository",
    "SimilarNote",
    "note_repository",
]
