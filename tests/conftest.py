"""
Pytest Configuration and Fixtures

Shared fixtures for the offline test suite. Storage collaborators are
replaced by small in-memory fakes with the same async signatures as the
repositories, so services run end to end without PostgreSQL or Redis.
"""

import os

from dotenv import load_dotenv

# ---------------------------------------------------------------------------
# Test environment defaults: MUST be before any marginalia imports.
#
# setdefault fills in anything missing (CI runners, fresh clones without a
# .env file) so that pydantic Settings validation doesn't crash. The OpenAI
# key is forced to mock mode so no test can reach the network.
# ---------------------------------------------------------------------------
load_dotenv()  # .env → os.environ (no-op if file is missing)

_test_env = {
    "POSTGRES_USER": "marginalia",
    "POSTGRES_PASSWORD": "marginalia_password",
    "POSTGRES_HOST": "localhost",
    "POSTGRES_PORT": "5432",
    "POSTGRES_DB": "marginalia_db",
}
for _key, _value in _test_env.items():
    os.environ.setdefault(_key, _value)
os.environ["OPENAI_API_KEY"] = "mock"

# ---------------------------------------------------------------------------
# Imports (safe now that env vars are set)
# ---------------------------------------------------------------------------
import uuid  # noqa: E402
from datetime import UTC, datetime  # noqa: E402
from types import SimpleNamespace  # noqa: E402
from unittest.mock import AsyncMock  # noqa: E402

import pytest  # noqa: E402

from marginalia.core.errors import UnsupportedFilterError  # noqa: E402
from marginalia.models import LINK_TYPE_SEMANTIC  # noqa: E402
from marginalia.repositories.notes import SimilarNote  # noqa: E402


class FakeNoteStore:
    """In-memory stand-in for NoteRepository."""

    def __init__(self) -> None:
        self.notes: dict[uuid.UUID, SimpleNamespace] = {}
        self.hits: list[SimilarNote] = []
        self.match_calls: list[dict] = []
        self.reject_book_filter = False

    def add(
        self,
        content: str,
        *,
        user_id: uuid.UUID,
        book_id: uuid.UUID | None = None,
        quote: str | None = None,
        page_ref: str | None = None,
        embedding: list[float] | None = None,
        same_book_only: bool = False,
    ) -> SimpleNamespace:
        note = SimpleNamespace(
            id=uuid.uuid4(),
            user_id=user_id,
            book_id=book_id or uuid.uuid4(),
            content=content,
            quote=quote,
            page_ref=page_ref,
            embedding=embedding,
            same_book_only=same_book_only,
            created_at=datetime.now(UTC),
            updated_at=None,
        )
        self.notes[note.id] = note
        return note

    def _owned(self, user_id, note_id):
        note = self.notes.get(note_id)
        if note is None or note.user_id != user_id:
            return None
        return note

    async def create(self, session, user_id, obj_in):
        return self.add(user_id=user_id, **obj_in.model_dump())

    async def get_by_id(self, session, user_id, id):
        return self._owned(user_id, id)

    async def get_many(self, session, user_id, note_ids):
        return [n for n in (self._owned(user_id, i) for i in note_ids) if n]

    async def list_by_book(self, session, user_id, book_id):
        return [
            n
            for n in self.notes.values()
            if n.user_id == user_id and n.book_id == book_id
        ]

    async def get_book_id(self, session, user_id, note_id):
        note = self._owned(user_id, note_id)
        return note.book_id if note else None

    async def update(self, session, db_obj, obj_in):
        for name, value in obj_in.items():
            setattr(db_obj, name, value)
        db_obj.updated_at = datetime.now(UTC)
        return db_obj

    async def update_embedding(self, session, user_id, note_id, embedding):
        self.notes[note_id].embedding = embedding

    async def delete(self, session, db_obj):
        del self.notes[db_obj.id]

    async def match_notes(
        self,
        session,
        user_id,
        query_embedding,
        match_count,
        match_threshold,
        book_id=None,
    ):
        self.match_calls.append(
            {"match_count": match_count, "threshold": match_threshold, "book_id": book_id}
        )
        if book_id is not None and self.reject_book_filter:
            raise UnsupportedFilterError("match_notes does not accept a book filter")
        return list(self.hits[:match_count])


class FakeLinkStore:
    """In-memory stand-in for NoteLinkRepository with upsert semantics."""

    def __init__(self) -> None:
        self.rows: dict[tuple[str, str, str], SimpleNamespace] = {}
        self.events: list[str] = []

    def add(self, user_id, left, right, score, link_type=LINK_TYPE_SEMANTIC):
        key = (str(user_id), str(left), str(right))
        self.rows[key] = SimpleNamespace(
            left_note_id=left, right_note_id=right, score=score, link_type=link_type
        )

    async def upsert_links(self, session, user_id, rows):
        self.events.append("upsert")
        for row in rows:
            self.add(user_id, row.left_note_id, row.right_note_id, row.score, row.link_type)
        return len(rows)

    async def list_for_note(self, session, user_id, note_id, limit=30):
        touching = [
            row
            for (owner, left, right), row in self.rows.items()
            if owner == str(user_id) and str(note_id) in (left, right)
        ]
        return sorted(touching, key=lambda row: row.score, reverse=True)[:limit]

    async def delete_outgoing(self, session, user_id, note_id, link_type=LINK_TYPE_SEMANTIC):
        self.events.append("delete_outgoing")
        doomed = [
            key
            for key, row in self.rows.items()
            if key[0] == str(user_id) and key[1] == str(note_id) and row.link_type == link_type
        ]
        for key in doomed:
            del self.rows[key]
        return len(doomed)

    async def delete_for_note(self, session, user_id, note_id):
        doomed = [
            key
            for key in self.rows
            if key[0] == str(user_id) and str(note_id) in (key[1], key[2])
        ]
        for key in doomed:
            del self.rows[key]
        return len(doomed)


def similar(note, similarity: float) -> SimilarNote:
    """SimilarNote row for a fake note."""
    return SimilarNote(
        id=note.id,
        book_id=note.book_id,
        content=note.content,
        quote=note.quote,
        page_ref=note.page_ref,
        similarity=similarity,
    )


@pytest.fixture
def user_id() -> uuid.UUID:
    return uuid.uuid4()


@pytest.fixture
def session() -> AsyncMock:
    """Async session stub; only commit/rollback are ever awaited directly."""
    return AsyncMock()


@pytest.fixture
def note_store() -> FakeNoteStore:
    return FakeNoteStore()


@pytest.fixture
def link_store() -> FakeLinkStore:
    return FakeLinkStore()


@pytest.fixture
def make_similar():
    return similar
