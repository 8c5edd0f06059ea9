"""
Semantic Linking

Builds the "related notes" edges of a note:

    note text -> embedding -> candidates -> undirected dedup -> top-K -> upsert

Link building is best-effort. ``auto_link_note`` never raises; failures
come back as ``LinkResult(ok=False, message=...)`` so note creation and
editing can carry on without related notes.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from marginalia.core.config import settings
from marginalia.repositories.note_links import (
    LinkRow,
    NoteLinkRepository,
    note_link_repository,
)
from marginalia.services import ai
from marginalia.services.pairs import normalize_pair, pair_key
from marginalia.services.retrieval import (
    Candidate,
    CandidateRetriever,
    build_embedding_text,
)

logger = logging.getLogger(__name__)

EmbedFn = Callable[[str], Awaitable[list[float]]]


@dataclass
class LinkResult:
    """
    Outcome of a linking pass.

    Attributes:
        ok: False when the pass could not run or failed midway.
        inserted: Number of edges written (0 is a normal outcome).
        message: Failure description when ``ok`` is False.
    """

    ok: bool
    inserted: int = 0
    message: str | None = None


def select_links(
    note_id: uuid.UUID,
    candidates: Iterable[Candidate],
    match_count: int,
    threshold: float,
) -> list[LinkRow]:
    """
    Turn raw candidates into at most ``match_count`` canonical edges.

    Drops the source note and anything scoring below ``threshold``, keeps
    the best score per unordered pair, and returns the highest-scoring
    pairs first.
    """
    best: dict[str, LinkRow] = {}
    for candidate in candidates:
        if str(candidate.note_id) == str(note_id):
            continue
        if candidate.score < threshold:
            continue

        pair = normalize_pair(note_id, candidate.note_id)
        key = pair_key(pair)
        previous = best.get(key)
        if previous is None or candidate.score > previous.score:
            best[key] = LinkRow(
                left_note_id=pair.left,
                right_note_id=pair.right,
                score=candidate.score,
            )

    ranked = sorted(best.values(), key=lambda row: row.score, reverse=True)
    return ranked[: max(match_count, 0)]


class NoteLinker:
    """
    Computes and stores semantic edges for one note at a time.

    Usage::

        linker = NoteLinker()
        result = await linker.auto_link_note(
            session, user_id, note_id=note.id, content=note.content,
        )
        if not result.ok:
            logger.warning("Linking failed: %s", result.message)
    """

    def __init__(
        self,
        retriever: CandidateRetriever | None = None,
        links: NoteLinkRepository | None = None,
        embed: EmbedFn | None = None,
    ) -> None:
        self._retriever = retriever or CandidateRetriever()
        self._links = links or note_link_repository
        self._embed = embed

    async def auto_link_note(
        self,
        session: AsyncSession,
        user_id: uuid.UUID,
        *,
        note_id: uuid.UUID,
        content: str,
        quote: str | None = None,
        page_ref: str | None = None,
        match_count: int | None = None,
        threshold: float | None = None,
        same_book_only: bool = False,
        embedding: list[float] | None = None,
    ) -> LinkResult:
        """
        Link ``note_id`` to its most similar notes.

        Args:
            session: Active async database session.
            user_id: Owner of the note; links never cross users.
            note_id: Source note.
            content: Note body.
            quote: Optional quote, embedded as a ``Quote:`` line.
            page_ref: Optional page reference, embedded as a ``Page:`` line.
            match_count: Maximum edges to keep (default ``LINK_MATCH_COUNT``).
            threshold: Minimum similarity (default ``LINK_THRESHOLD``).
            same_book_only: Prefer candidates from the note's own book.
            embedding: Precomputed vector for the same text; skips the
                embedding call when given.

        Returns:
            LinkResult with the number of edges upserted.
        """
        match_count = settings.LINK_MATCH_COUNT if match_count is None else match_count
        threshold = settings.LINK_THRESHOLD if threshold is None else threshold

        text = build_embedding_text(content, quote, page_ref)
        if not text:
            return LinkResult(ok=False, message="Empty text for embedding.")

        try:
            if embedding is None:
                embed = self._embed or ai.get_embedding
                embedding = await embed(text)

            candidates = await self._retriever.retrieve(
                session,
                user_id,
                note_id=note_id,
                embedding=embedding,
                match_count=match_count,
                threshold=threshold,
                same_book_only=same_book_only,
            )

            rows = select_links(note_id, candidates, match_count, threshold)
            if not rows:
                logger.info("No related notes above %.2f for note %s", threshold, note_id)
                return LinkResult(ok=True, inserted=0)

            inserted = await self._links.upsert_links(session, user_id, rows)
        except Exception as e:  # noqa: BLE001
            logger.exception("Auto-link failed for note %s", note_id)
            await session.rollback()
            return LinkResult(ok=False, message=str(e) or type(e).__name__)

        logger.info(
            "Linked note %s to %d notes (candidates=%d)",
            note_id,
            inserted,
            len(candidates),
        )
        return LinkResult(ok=True, inserted=inserted)


# Module-level singleton for convenience
note_linker = NoteLinker()
