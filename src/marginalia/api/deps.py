"""
API Dependencies

Request-scoped collaborators shared by the v1 routers. Overridable in tests
through ``app.dependency_overrides``.
"""

import uuid

from fastapi import Header, HTTPException, status

from marginalia.repositories.books import BookRepository, book_repository
from marginalia.services.ask import AskService, ask_service
from marginalia.services.notes import NoteService, note_service
from marginalia.services.related import RelatedNotesReader, related_notes_reader


async def get_current_user_id(
    x_user_id: str | None = Header(default=None),
) -> uuid.UUID:
    """
    Resolve the requesting user from the ``X-User-Id`` header.

    Authentication happens upstream; this only parses the forwarded id.
    """
    if not x_user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing X-User-Id header"
        )
    try:
        return uuid.UUID(x_user_id)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid X-User-Id header"
        ) from e


def get_note_service() -> NoteService:
    """FastAPI dependency: returns the shared NoteService."""
    return note_service


def get_related_reader() -> RelatedNotesReader:
    """FastAPI dependency: returns the shared RelatedNotesReader."""
    return related_notes_reader


def get_ask_service() -> AskService:
    """FastAPI dependency: returns the shared AskService."""
    return ask_service


def get_book_repository() -> BookRepository:
    """FastAPI dependency: returns the shared BookRepository."""
    return book_repository
