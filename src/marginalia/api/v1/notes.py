"""
Notes API Router

Note CRUD plus the semantic-link endpoints: the related-notes view and a
manual relink. Embedding and linking run inline on create/update but never
fail the request; a note saved without links is still a 201/200.
"""

import uuid

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from marginalia.api.deps import get_current_user_id, get_note_service, get_related_reader
from marginalia.core.database import get_db
from marginalia.core.errors import BookNotFoundError, NoteNotFoundError
from marginalia.schemas.notes import (
    LinkResponse,
    NoteCreate,
    NoteRead,
    NoteUpdate,
    RelatedNote,
    RelinkRequest,
)
from marginalia.services.notes import NoteService
from marginalia.services.related import RelatedNotesReader

router = APIRouter()


def _not_found(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


@router.post("/", response_model=NoteRead, status_code=status.HTTP_201_CREATED)
async def create_note(
    note: NoteCreate,
    user_id: uuid.UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    service: NoteService = Depends(get_note_service),
):
    """Create a note in one of the user's books and link it to related notes."""
    try:
        return await service.create_note(db, user_id, note)
    except BookNotFoundError as e:
        raise _not_found("Book not found") from e


@router.get("/{note_id}", response_model=NoteRead)
async def read_note(
    note_id: uuid.UUID,
    user_id: uuid.UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    service: NoteService = Depends(get_note_service),
):
    """Retrieve a single note by ID."""
    try:
        return await service.get_note(db, user_id, note_id)
    except NoteNotFoundError as e:
        raise _not_found("Note not found") from e


@router.patch("/{note_id}", response_model=NoteRead)
async def update_note(
    note_id: uuid.UUID,
    note: NoteUpdate,
    user_id: uuid.UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    service: NoteService = Depends(get_note_service),
):
    """
    Partially update a note.

    Changing the text or the linking scope replaces the note's outgoing links.
    """
    try:
        return await service.update_note(db, user_id, note_id, note)
    except NoteNotFoundError as e:
        raise _not_found("Note not found") from e


@router.delete("/{note_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_note(
    note_id: uuid.UUID,
    user_id: uuid.UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    service: NoteService = Depends(get_note_service),
) -> None:
    """Delete a note and its links."""
    try:
        await service.delete_note(db, user_id, note_id)
    except NoteNotFoundError as e:
        raise _not_found("Note not found") from e


@router.get("/{note_id}/related", response_model=list[RelatedNote])
async def read_related_notes(
    note_id: uuid.UUID,
    user_id: uuid.UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    reader: RelatedNotesReader = Depends(get_related_reader),
    service: NoteService = Depends(get_note_service),
):
    """
    Related notes, best first, each with the concepts it shares with this note.

    Raises:
        HTTPException 404: The note does not exist.
        HTTPException 503: Links could not be loaded.
    """
    # 404 before touching links
    try:
        await service.get_note(db, user_id, note_id)
    except NoteNotFoundError as e:
        raise _not_found("Note not found") from e

    result = await reader.get_related_notes(db, user_id, note_id)
    if result.ok:
        return result.results
    raise HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail=f"Related notes unavailable: {result.message}",
    )


@router.post("/{note_id}/links", response_model=LinkResponse)
async def relink_note(
    note_id: uuid.UUID,
    request: RelinkRequest | None = None,
    user_id: uuid.UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    service: NoteService = Depends(get_note_service),
):
    """
    Rebuild the outgoing links of an existing note.

    The outcome is reported in the body; a failed pass is still a 200.
    """
    request = request or RelinkRequest()
    try:
        result = await service.relink_note(
            db,
            user_id,
            note_id,
            match_count=request.match_count,
            threshold=request.threshold,
            same_book_only=request.same_book_only,
        )
    except NoteNotFoundError as e:
        raise _not_found("Note not found") from e
    return LinkResponse(ok=result.ok, inserted=result.inserted, message=result.message)
