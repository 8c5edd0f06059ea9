"""
Note Workflow Unit Tests

Create/edit/delete flows with in-memory stores. The linker is a stub so
these tests only check what the workflow hands to it and in which order.
"""

import uuid
from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest

from marginalia.core.errors import BookNotFoundError, EmbeddingError, NoteNotFoundError
from marginalia.schemas.notes import NoteCreate, NoteRead, NoteUpdate
from marginalia.services.linking import LinkResult, NoteLinker
from marginalia.services.notes import NoteService
from marginalia.services.retrieval import Candidate

VECTOR = [0.25] * 8


@pytest.fixture
def book():
    return SimpleNamespace(id=uuid.uuid4(), title="Debt")


@pytest.fixture
def books(book):
    repo = AsyncMock()
    repo.get_by_id.return_value = book
    return repo


@pytest.fixture
def linker(link_store):
    stub = AsyncMock()

    async def _link(*args, **kwargs):
        link_store.events.append("link")
        return LinkResult(ok=True, inserted=1)

    stub.auto_link_note.side_effect = _link
    return stub


@pytest.fixture
def embed():
    return AsyncMock(return_value=VECTOR)


@pytest.fixture
def service(note_store, link_store, books, linker, embed):
    return NoteService(
        notes=note_store, links=link_store, books=books, linker=linker, embed=embed
    )


class TestCreate:
    @pytest.mark.asyncio
    async def test_embeds_and_links(self, service, session, user_id, book, note_store, linker, embed):
        note = await service.create_note(
            session,
            user_id,
            NoteCreate(book_id=book.id, content=" body ", quote="q", page_ref="7"),
        )

        assert isinstance(note, NoteRead)
        assert note.content == "body"
        embed.assert_awaited_once_with("body\nQuote: q\nPage: 7")
        assert note_store.notes[note.id].embedding == VECTOR

        kwargs = linker.auto_link_note.await_args.kwargs
        assert kwargs["note_id"] == note.id
        assert kwargs["embedding"] == VECTOR
        assert kwargs["same_book_only"] is False

    @pytest.mark.asyncio
    async def test_unknown_book(self, service, session, user_id, books):
        books.get_by_id.return_value = None

        with pytest.raises(BookNotFoundError):
            await service.create_note(
                session, user_id, NoteCreate(book_id=uuid.uuid4(), content="body")
            )

    @pytest.mark.asyncio
    async def test_embedding_failure_keeps_note(
        self, service, session, user_id, book, note_store, linker, embed
    ):
        embed.side_effect = EmbeddingError("timeout")

        note = await service.create_note(
            session, user_id, NoteCreate(book_id=book.id, content="body")
        )

        assert note.id in note_store.notes
        assert note_store.notes[note.id].embedding is None
        session.rollback.assert_awaited()
        linker.auto_link_note.assert_not_awaited()
        embed.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_link_failure_keeps_note(self, service, session, user_id, book, note_store, linker):
        linker.auto_link_note.side_effect = None
        linker.auto_link_note.return_value = LinkResult(ok=False, message="boom")

        note = await service.create_note(
            session, user_id, NoteCreate(book_id=book.id, content="body")
        )

        assert note.id in note_store.notes


class TestUpdate:
    @pytest.mark.asyncio
    async def test_text_change_clears_then_relinks(
        self, service, session, user_id, note_store, link_store, embed
    ):
        note = note_store.add("old", user_id=user_id, embedding=[0.9] * 8)
        other = note_store.add("other", user_id=user_id)
        link_store.add(user_id, *sorted([note.id, other.id], key=str), 0.5)

        updated = await service.update_note(
            session, user_id, note.id, NoteUpdate(content="new text")
        )

        assert updated.content == "new text"
        assert link_store.events == ["delete_outgoing", "link"]
        embed.assert_awaited_once_with("new text")

    @pytest.mark.asyncio
    async def test_scope_change_reuses_stored_embedding(
        self, service, session, user_id, note_store, linker, embed
    ):
        note = note_store.add("text", user_id=user_id, embedding=[0.9] * 8)

        await service.update_note(
            session, user_id, note.id, NoteUpdate(same_book_only=True)
        )

        embed.assert_not_awaited()
        kwargs = linker.auto_link_note.await_args.kwargs
        assert kwargs["embedding"] == [0.9] * 8
        assert kwargs["same_book_only"] is True

    @pytest.mark.asyncio
    async def test_unchanged_values_do_not_relink(
        self, service, session, user_id, note_store, link_store, linker
    ):
        note = note_store.add("text", user_id=user_id)

        await service.update_note(session, user_id, note.id, NoteUpdate(content="text"))

        assert link_store.events == []
        linker.auto_link_note.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_failed_clear_skips_relink(
        self, service, session, user_id, note_store, link_store, linker
    ):
        note = note_store.add("old", user_id=user_id)
        link_store.delete_outgoing = AsyncMock(side_effect=ConnectionError("db down"))

        updated = await service.update_note(
            session, user_id, note.id, NoteUpdate(content="new")
        )

        assert updated.content == "new"
        session.rollback.assert_awaited_once()
        linker.auto_link_note.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_embedding_failure_skips_relink(
        self, service, session, user_id, note_store, link_store, linker, embed
    ):
        note = note_store.add("old", user_id=user_id, embedding=[0.9] * 8)
        embed.side_effect = EmbeddingError("timeout")

        updated = await service.update_note(
            session, user_id, note.id, NoteUpdate(content="new")
        )

        assert updated.content == "new"
        embed.assert_awaited_once()
        linker.auto_link_note.assert_not_awaited()
        assert link_store.events == ["delete_outgoing"]

    @pytest.mark.asyncio
    async def test_unknown_note(self, service, session, user_id):
        with pytest.raises(NoteNotFoundError):
            await service.update_note(
                session, user_id, uuid.uuid4(), NoteUpdate(content="x")
            )


@pytest.mark.asyncio
async def test_delete_removes_note_and_links(service, session, user_id, note_store, link_store):
    note = note_store.add("a", user_id=user_id)
    other = note_store.add("b", user_id=user_id)
    link_store.add(user_id, *sorted([note.id, other.id], key=str), 0.5)

    await service.delete_note(session, user_id, note.id)

    assert note.id not in note_store.notes
    assert link_store.rows == {}


@pytest.mark.asyncio
async def test_relink_uses_stored_scope_unless_overridden(
    service, session, user_id, note_store, linker
):
    note = note_store.add("a", user_id=user_id, same_book_only=True)

    await service.relink_note(session, user_id, note.id, match_count=3)
    assert linker.auto_link_note.await_args.kwargs["same_book_only"] is True
    assert linker.auto_link_note.await_args.kwargs["match_count"] == 3

    await service.relink_note(session, user_id, note.id, same_book_only=False)
    assert linker.auto_link_note.await_args.kwargs["same_book_only"] is False


@pytest.mark.asyncio
async def test_get_note_scoped_to_user(service, session, user_id, note_store):
    note = note_store.add("a", user_id=uuid.uuid4())

    with pytest.raises(NoteNotFoundError):
        await service.get_note(session, user_id, note.id)


@pytest.mark.asyncio
async def test_relink_clears_outgoing_before_linking(
    service, session, user_id, note_store, link_store
):
    note = note_store.add("a", user_id=user_id)

    result = await service.relink_note(session, user_id, note.id)

    assert result.ok is True
    assert link_store.events == ["delete_outgoing", "link"]


@pytest.mark.asyncio
async def test_scoped_relink_replaces_unrestricted_edges(
    session, user_id, note_store, link_store, books, embed
):
    note = note_store.add("The debt cycle repeats", user_id=user_id, embedding=VECTOR)
    # Highest possible ids keep the note as the canonical left endpoint
    other_book = uuid.UUID(int=(1 << 128) - 1)
    same_book = uuid.UUID(int=(1 << 128) - 2)
    link_store.add(user_id, note.id, other_book, 0.8)
    link_store.add(user_id, note.id, same_book, 0.7)

    retriever = AsyncMock()
    retriever.retrieve.return_value = [Candidate(same_book, 0.7)]
    service = NoteService(
        notes=note_store,
        links=link_store,
        books=books,
        linker=NoteLinker(retriever=retriever, links=link_store, embed=embed),
        embed=embed,
    )

    result = await service.relink_note(
        session, user_id, note.id, threshold=0.35, same_book_only=True
    )

    assert result.ok is True
    assert [row.right_note_id for row in link_store.rows.values()] == [same_book]
    assert retriever.retrieve.await_args.kwargs["same_book_only"] is True
    embed.assert_not_awaited()


@pytest.mark.asyncio
async def test_relink_reports_failed_clear(service, session, user_id, note_store, link_store, linker):
    note = note_store.add("a", user_id=user_id)
    link_store.delete_outgoing = AsyncMock(side_effect=ConnectionError("db down"))

    result = await service.relink_note(session, user_id, note.id)

    assert result.ok is False
    linker.auto_link_note.assert_not_awaited()
