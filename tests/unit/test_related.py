"""
Related-Notes Reader Unit Tests
"""

import uuid
from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest

from marginalia.services.concept_cache import ConceptCache
from marginalia.services.pairs import normalize_pair
from marginalia.services.related import RelatedNotesReader, rank_endpoints


def _edge(a, b, score):
    pair = normalize_pair(a, b)
    return SimpleNamespace(left_note_id=pair.left, right_note_id=pair.right, score=score)


class TestRankEndpoints:
    def test_best_score_per_endpoint(self):
        note, x, y = uuid.uuid4(), uuid.uuid4(), uuid.uuid4()
        edges = [_edge(note, x, 0.4), _edge(note, y, 0.5), _edge(x, note, 0.7)]

        assert rank_endpoints(note, edges) == [(x, 0.7), (y, 0.5)]

    def test_self_loop_ignored(self):
        note = uuid.uuid4()
        assert rank_endpoints(note, [SimpleNamespace(
            left_note_id=note, right_note_id=note, score=0.9
        )]) == []

    def test_no_edges(self):
        assert rank_endpoints(uuid.uuid4(), []) == []


@pytest.fixture
def reader(note_store, link_store):
    return RelatedNotesReader(note_store, link_store, ConceptCache())


@pytest.mark.asyncio
async def test_related_notes_with_shared_concepts(
    session, user_id, note_store, link_store, reader
):
    source = note_store.add("The debt cycle repeats", user_id=user_id)
    close = note_store.add("Every debt cycle ends in deleveraging", user_id=user_id)
    far = note_store.add("Compound interest rewards patience", user_id=user_id)
    link_store.add(user_id, *normalize_pair(source.id, close.id), 0.8)
    link_store.add(user_id, *normalize_pair(source.id, far.id), 0.4)

    result = await reader.get_related_notes(session, user_id, source.id)

    assert result.ok is True
    assert [r.id for r in result.results] == [close.id, far.id]
    assert [r.score for r in result.results] == [0.8, 0.4]
    assert result.results[0].shared_concepts == ["debt", "cycle"]
    assert result.results[1].shared_concepts == []
    assert result.results[0].content == close.content


@pytest.mark.asyncio
async def test_note_seen_from_right_endpoint(
    session, user_id, note_store, link_store, reader
):
    source = note_store.add("alpha", user_id=user_id)
    other = note_store.add("beta", user_id=user_id)
    link_store.add(user_id, *normalize_pair(source.id, other.id), 0.6)

    for viewer, expected in ((source, other), (other, source)):
        result = await reader.get_related_notes(session, user_id, viewer.id)
        assert [r.id for r in result.results] == [expected.id]


@pytest.mark.asyncio
async def test_missing_related_notes_are_dropped(
    session, user_id, note_store, link_store, reader
):
    source = note_store.add("source", user_id=user_id)
    kept = note_store.add("kept", user_id=user_id)
    gone = note_store.add("gone", user_id=user_id)
    link_store.add(user_id, *normalize_pair(source.id, kept.id), 0.5)
    link_store.add(user_id, *normalize_pair(source.id, gone.id), 0.9)
    del note_store.notes[gone.id]

    result = await reader.get_related_notes(session, user_id, source.id)

    assert result.ok is True
    assert [r.id for r in result.results] == [kept.id]


@pytest.mark.asyncio
async def test_capped_at_ten(session, user_id, note_store, link_store, reader):
    source = note_store.add("source", user_id=user_id)
    for i in range(15):
        other = note_store.add(f"note {i}", user_id=user_id)
        link_store.add(user_id, *normalize_pair(source.id, other.id), 0.5 + i / 100)

    result = await reader.get_related_notes(session, user_id, source.id)

    assert len(result.results) == 10
    scores = [r.score for r in result.results]
    assert scores == sorted(scores, reverse=True)


@pytest.mark.asyncio
async def test_no_edges_is_ok(session, user_id, note_store, reader):
    source = note_store.add("lonely", user_id=user_id)

    result = await reader.get_related_notes(session, user_id, source.id)

    assert result.ok is True
    assert result.results == []


@pytest.mark.asyncio
async def test_unknown_note(session, user_id, reader):
    result = await reader.get_related_notes(session, user_id, uuid.uuid4())

    assert result.ok is False
    assert "not found" in result.message


@pytest.mark.asyncio
async def test_other_users_note_is_not_found(session, user_id, note_store, reader):
    note = note_store.add("private", user_id=uuid.uuid4())

    result = await reader.get_related_notes(session, user_id, note.id)

    assert result.ok is False


@pytest.mark.asyncio
async def test_storage_failure_is_reported(session, user_id, note_store):
    source = note_store.add("source", user_id=user_id)
    links = AsyncMock()
    links.list_for_note.side_effect = ConnectionError("db down")

    reader = RelatedNotesReader(note_store, links, ConceptCache())
    result = await reader.get_related_notes(session, user_id, source.id)

    assert result.ok is False
    assert result.message == "db down"
