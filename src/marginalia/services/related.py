"""
Related Notes

Read path for semantic edges: given a note, resolve the other endpoint of
each stored edge, keep the best score per related note, load the related
notes and explain each link with the concepts both notes share.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Final

from sqlalchemy.ext.asyncio import AsyncSession

from marginalia.models import NoteLink
from marginalia.repositories.note_links import NoteLinkRepository, note_link_repository
from marginalia.repositories.notes import NoteRepository, note_repository
from marginalia.schemas.notes import RelatedNote
from marginalia.services.concept_cache import ConceptCache, get_concept_cache
from marginalia.services.concepts import note_text, shared_concepts
from marginalia.services.pairs import other_endpoint

logger = logging.getLogger(__name__)

MAX_RAW_EDGES: Final[int] = 30
MAX_RELATED: Final[int] = 10


@dataclass
class RelatedNotesResult:
    """Related notes in relevance order, or a failure message."""

    ok: bool
    results: list[RelatedNote] = field(default_factory=list)
    message: str | None = None


def rank_endpoints(
    note_id: uuid.UUID,
    edges: Iterable[NoteLink],
) -> list[tuple[uuid.UUID, float]]:
    """
    Best score per other endpoint, highest first.

    A related note reachable through several stored rows (malformed data)
    appears once with its maximum score. Self-loops are ignored.
    """
    best: dict[str, tuple[uuid.UUID, float]] = {}
    for edge in edges:
        other = other_endpoint(edge.left_note_id, edge.right_note_id, note_id)
        if str(other) == str(note_id):
            continue
        score = float(edge.score)
        key = str(other)
        if key not in best or score > best[key][1]:
            best[key] = (other, score)
    return sorted(best.values(), key=lambda item: item[1], reverse=True)


class RelatedNotesReader:
    """
    Loads the related-notes view of a note.

    Usage::

        reader = RelatedNotesReader()
        result = await reader.get_related_notes(session, user_id, note_id)
        for related in result.results:
            print(related.score, related.shared_concepts)
    """

    def __init__(
        self,
        notes: NoteRepository | None = None,
        links: NoteLinkRepository | None = None,
        concepts: ConceptCache | None = None,
    ) -> None:
        self._notes = notes or note_repository
        self._links = links or note_link_repository
        self._concepts = concepts

    async def get_related_notes(
        self,
        session: AsyncSession,
        user_id: uuid.UUID,
        note_id: uuid.UUID,
    ) -> RelatedNotesResult:
        """
        Related notes of ``note_id``, at most ``MAX_RELATED``, best first.

        Related ids that no longer resolve (deleted notes) are dropped.
        Never raises; storage failures return ``ok=False``.
        """
        cache = self._concepts or get_concept_cache()

        try:
            source = await self._notes.get_by_id(session, user_id, note_id)
            if source is None:
                return RelatedNotesResult(ok=False, message=f"Note {note_id} not found")

            edges = await self._links.list_for_note(
                session, user_id, note_id, limit=MAX_RAW_EDGES
            )
            ranked = rank_endpoints(note_id, edges)[:MAX_RELATED]
            if not ranked:
                return RelatedNotesResult(ok=True)

            related = await self._notes.get_many(
                session, user_id, [related_id for related_id, _ in ranked]
            )
            by_id = {str(note.id): note for note in related}

            source_concepts = await cache.get_concepts(
                source.id, note_text(source.content, source.quote)
            )

            results: list[RelatedNote] = []
            for related_id, score in ranked:
                note = by_id.get(str(related_id))
                if note is None:
                    continue
                concepts = await cache.get_concepts(
                    note.id, note_text(note.content, note.quote)
                )
                results.append(
                    RelatedNote(
                        id=note.id,
                        book_id=note.book_id,
                        content=note.content,
                        quote=note.quote,
                        page_ref=note.page_ref,
                        created_at=note.created_at,
                        score=score,
                        shared_concepts=shared_concepts(source_concepts, concepts),
                    )
                )
        except Exception as e:  # noqa: BLE001
            logger.exception("Loading related notes failed for note %s", note_id)
            return RelatedNotesResult(ok=False, message=str(e) or type(e).__name__)

        return RelatedNotesResult(ok=True, results=results)


# Module-level singleton for convenience
related_notes_reader = RelatedNotesReader()
