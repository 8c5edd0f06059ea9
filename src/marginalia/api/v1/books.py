"""
Books API Router

Book CRUD and the per-book note listing.
"""

import uuid

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from marginalia.api.deps import get_book_repository, get_current_user_id, get_note_service
from marginalia.core.database import get_db
from marginalia.repositories.books import BookRepository
from marginalia.schemas.books import BookCreate, BookRead
from marginalia.schemas.notes import NoteRead
from marginalia.services.notes import NoteService

router = APIRouter()


async def _get_book_or_404(
    db: AsyncSession,
    repo: BookRepository,
    user_id: uuid.UUID,
    book_id: uuid.UUID,
):
    book = await repo.get_by_id(db, user_id, book_id)
    if book is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Book not found"
        )
    return book


@router.post("/", response_model=BookRead, status_code=status.HTTP_201_CREATED)
async def create_book(
    book: BookCreate,
    user_id: uuid.UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    repo: BookRepository = Depends(get_book_repository),
):
    """Create a new book."""
    return await repo.create(db, user_id, book)


@router.get("/", response_model=list[BookRead])
async def read_books(
    skip: int = 0,
    limit: int = 100,
    user_id: uuid.UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    repo: BookRepository = Depends(get_book_repository),
):
    """List the user's books with pagination, newest first."""
    return await repo.get_all(db, user_id, skip, limit)


@router.get("/{book_id}", response_model=BookRead)
async def read_book(
    book_id: uuid.UUID,
    user_id: uuid.UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    repo: BookRepository = Depends(get_book_repository),
):
    """Retrieve a single book by ID."""
    return await _get_book_or_404(db, repo, user_id, book_id)


@router.delete("/{book_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_book(
    book_id: uuid.UUID,
    user_id: uuid.UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    repo: BookRepository = Depends(get_book_repository),
) -> None:
    """
    Delete a book.

    Its notes and their links are removed by foreign-key cascades.
    """
    book = await _get_book_or_404(db, repo, user_id, book_id)
    await repo.delete(db, book)


@router.get("/{book_id}/notes", response_model=list[NoteRead])
async def read_book_notes(
    book_id: uuid.UUID,
    user_id: uuid.UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    repo: BookRepository = Depends(get_book_repository),
    service: NoteService = Depends(get_note_service),
):
    """List a book's notes, newest first."""
    await _get_book_or_404(db, repo, user_id, book_id)
    return await service.list_notes_by_book(db, user_id, book_id)
