"""
Note Workflows

Create, edit and delete notes. Embedding and semantic linking run inline
after the note is saved and are best-effort: their failures are logged and
never fail the note operation itself.

Editing a note deletes the semantic edges where it is the canonical left
endpoint before relinking. There is no transaction around delete + relink;
a crash in between leaves the note without those edges until its next edit.
A note whose embedding fails is kept without new links.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Sequence
from typing import Final

from sqlalchemy.ext.asyncio import AsyncSession

from marginalia.core.errors import BookNotFoundError, NoteNotFoundError
from marginalia.models import Note
from marginalia.repositories.books import BookRepository, book_repository
from marginalia.repositories.note_links import NoteLinkRepository, note_link_repository
from marginalia.repositories.notes import NoteRepository, note_repository
from marginalia.schemas.notes import NoteCreate, NoteRead, NoteUpdate
from marginalia.services import ai
from marginalia.services.linking import EmbedFn, LinkResult, NoteLinker
from marginalia.services.retrieval import CandidateRetriever, build_embedding_text

logger = logging.getLogger(__name__)

# Fields that feed the embedding text
EMBEDDED_FIELDS: Final[frozenset[str]] = frozenset({"content", "quote", "page_ref"})
# Fields whose change invalidates the note's outgoing edges
LINK_FIELDS: Final[frozenset[str]] = EMBEDDED_FIELDS | {"same_book_only"}


class NoteService:
    """
    Orchestrates note persistence with embedding and linking side effects.

    Writes return a ``NoteRead`` snapshot taken right after the note is
    saved: a failed side effect rolls the session back, which expires the
    ORM instance, and the snapshot keeps the result readable without I/O.

    Usage::

        service = NoteService()
        note = await service.create_note(session, user_id, NoteCreate(...))
    """

    def __init__(
        self,
        notes: NoteRepository | None = None,
        links: NoteLinkRepository | None = None,
        books: BookRepository | None = None,
        linker: NoteLinker | None = None,
        embed: EmbedFn | None = None,
    ) -> None:
        self._notes = notes or note_repository
        self._links = links or note_link_repository
        self._books = books or book_repository
        self._linker = linker or NoteLinker(
            retriever=CandidateRetriever(self._notes),
            links=self._links,
            embed=embed,
        )
        self._embed = embed

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_note(
        self,
        session: AsyncSession,
        user_id: uuid.UUID,
        note_id: uuid.UUID,
    ) -> Note:
        note = await self._notes.get_by_id(session, user_id, note_id)
        if note is None:
            raise NoteNotFoundError(f"Note {note_id} not found")
        return note

    async def list_notes_by_book(
        self,
        session: AsyncSession,
        user_id: uuid.UUID,
        book_id: uuid.UUID,
    ) -> Sequence[Note]:
        return await self._notes.list_by_book(session, user_id, book_id)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def create_note(
        self,
        session: AsyncSession,
        user_id: uuid.UUID,
        note_in: NoteCreate,
    ) -> NoteRead:
        """
        Save a note, then embed and link it (both best-effort).

        Raises:
            BookNotFoundError: The target book does not belong to the user.
        """
        book = await self._books.get_by_id(session, user_id, note_in.book_id)
        if book is None:
            raise BookNotFoundError(f"Book {note_in.book_id} not found")

        note = await self._notes.create(session, user_id, note_in)
        snapshot = NoteRead.model_validate(note)
        logger.info("Created note %s in book %s", snapshot.id, snapshot.book_id)

        embedding = await self._refresh_embedding(session, user_id, snapshot)
        if embedding is not None:
            await self._link(session, user_id, snapshot, embedding)
        return snapshot

    async def update_note(
        self,
        session: AsyncSession,
        user_id: uuid.UUID,
        note_id: uuid.UUID,
        note_in: NoteUpdate,
    ) -> NoteRead:
        """
        Apply a partial update; relink when text or linking scope changed.

        Outgoing semantic edges (this note as canonical left) are deleted
        first so the new pass replaces them instead of adding to them.

        Raises:
            NoteNotFoundError: The note does not belong to the user.
        """
        note = await self.get_note(session, user_id, note_id)

        changes = note_in.model_dump(exclude_unset=True)
        changed = {
            name for name, value in changes.items() if getattr(note, name) != value
        }
        note = await self._notes.update(session, note, changes)
        snapshot = NoteRead.model_validate(note)

        if not changed & LINK_FIELDS:
            return snapshot

        stored_embedding = _stored_embedding(note)
        if not await self._clear_outgoing(session, user_id, snapshot.id):
            return snapshot

        if changed & EMBEDDED_FIELDS:
            embedding = await self._refresh_embedding(session, user_id, snapshot)
        else:
            embedding = stored_embedding
        if embedding is not None:
            await self._link(session, user_id, snapshot, embedding)
        return snapshot

    async def delete_note(
        self,
        session: AsyncSession,
        user_id: uuid.UUID,
        note_id: uuid.UUID,
    ) -> None:
        """
        Delete a note and every edge touching it.

        Raises:
            NoteNotFoundError: The note does not belong to the user.
        """
        note = await self.get_note(session, user_id, note_id)
        removed = await self._links.delete_for_note(session, user_id, note_id)
        await self._notes.delete(session, note)
        logger.info("Deleted note %s (%d links)", note_id, removed)

    async def relink_note(
        self,
        session: AsyncSession,
        user_id: uuid.UUID,
        note_id: uuid.UUID,
        *,
        match_count: int | None = None,
        threshold: float | None = None,
        same_book_only: bool | None = None,
    ) -> LinkResult:
        """
        Rebuild a note's outgoing edges on demand.

        Like an edit, the pass replaces the edges where the note is the
        canonical left endpoint, so narrowing the scope drops old edges.
        """
        note = await self.get_note(session, user_id, note_id)
        snapshot = NoteRead.model_validate(note)
        stored_embedding = _stored_embedding(note)

        if not await self._clear_outgoing(session, user_id, snapshot.id):
            return LinkResult(ok=False, message="Could not clear existing links.")

        return await self._link(
            session,
            user_id,
            snapshot,
            stored_embedding,
            match_count=match_count,
            threshold=threshold,
            same_book_only=same_book_only,
        )

    # ------------------------------------------------------------------
    # Best-effort side effects
    # ------------------------------------------------------------------

    async def _clear_outgoing(
        self,
        session: AsyncSession,
        user_id: uuid.UUID,
        note_id: uuid.UUID,
    ) -> bool:
        try:
            removed = await self._links.delete_outgoing(session, user_id, note_id)
        except Exception:  # noqa: BLE001
            logger.exception("Could not clear old links of note %s, not relinking", note_id)
            await session.rollback()
            return False
        logger.info("Removed %d outdated links of note %s", removed, note_id)
        return True

    async def _refresh_embedding(
        self,
        session: AsyncSession,
        user_id: uuid.UUID,
        note: NoteRead,
    ) -> list[float] | None:
        text = build_embedding_text(note.content, note.quote, note.page_ref)
        if not text:
            return None

        embed = self._embed or ai.get_embedding
        try:
            vector = await embed(text)
            await self._notes.update_embedding(session, user_id, note.id, vector)
        except Exception:  # noqa: BLE001
            logger.exception(
                "Embedding generation failed for note %s, not linking", note.id
            )
            await session.rollback()
            return None
        return vector

    async def _link(
        self,
        session: AsyncSession,
        user_id: uuid.UUID,
        note: NoteRead,
        embedding: list[float] | None,
        *,
        match_count: int | None = None,
        threshold: float | None = None,
        same_book_only: bool | None = None,
    ) -> LinkResult:
        scope = note.same_book_only if same_book_only is None else same_book_only
        result = await self._linker.auto_link_note(
            session,
            user_id,
            note_id=note.id,
            content=note.content,
            quote=note.quote,
            page_ref=note.page_ref,
            match_count=match_count,
            threshold=threshold,
            same_book_only=scope,
            embedding=embedding,
        )
        if not result.ok:
            logger.warning("Auto link failed for note %s: %s", note.id, result.message)
        return result


def _stored_embedding(note: Note) -> list[float] | None:
    # pgvector hands vectors back as numpy arrays
    if note.embedding is None:
        return None
    return [float(value) for value in note.embedding]


# Module-level singleton for convenience
note_service = NoteService()
