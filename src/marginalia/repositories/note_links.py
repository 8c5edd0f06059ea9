"""
NoteLink Repository

Persistence for undirected note edges. Pairs arrive already in canonical
order; the unique constraint on (user, left, right) makes writes idempotent.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Sequence
from dataclasses import dataclass

from sqlalchemy import delete, or_, select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from marginalia.models import LINK_TYPE_SEMANTIC, NoteLink

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LinkRow:
    """One edge to write: canonical endpoints plus score."""

    left_note_id: uuid.UUID
    right_note_id: uuid.UUID
    score: float
    link_type: str = LINK_TYPE_SEMANTIC


class NoteLinkRepository:
    """
    Repository for NoteLink edges.

    Key guarantees:
        - ``upsert_links``: at most one row per (user, left, right); a rerun
          overwrites score and link type instead of inserting duplicates.
        - ``list_for_note``: edges touching a note in either position.
    """

    async def upsert_links(
        self,
        session: AsyncSession,
        user_id: uuid.UUID,
        rows: Sequence[LinkRow],
    ) -> int:
        """
        Insert or overwrite edges keyed on (user_id, left_note_id, right_note_id).

        Returns:
            Number of rows written.
        """
        if not rows:
            return 0

        stmt = insert(NoteLink).values(
            [
                {
                    "id": uuid.uuid4(),
                    "user_id": user_id,
                    "left_note_id": row.left_note_id,
                    "right_note_id": row.right_note_id,
                    "score": row.score,
                    "link_type": row.link_type,
                }
                for row in rows
            ]
        )
        stmt = stmt.on_conflict_do_update(
            constraint="uq_note_links_user_pair",
            set_={"score": stmt.excluded.score, "link_type": stmt.excluded.link_type},
        )
        await session.execute(stmt)
        await session.commit()

        logger.debug("Upserted %d note links for user %s", len(rows), user_id)
        return len(rows)

    async def list_for_note(
        self,
        session: AsyncSession,
        user_id: uuid.UUID,
        note_id: uuid.UUID,
        limit: int = 30,
    ) -> Sequence[NoteLink]:
        """Edges where the note is either endpoint, highest score first."""
        result = await session.execute(
            select(NoteLink)
            .where(
                NoteLink.user_id == user_id,
                or_(
                    NoteLink.left_note_id == note_id,
                    NoteLink.right_note_id == note_id,
                ),
            )
            .order_by(NoteLink.score.desc())
            .limit(limit)
        )
        return result.scalars().all()

    async def delete_outgoing(
        self,
        session: AsyncSession,
        user_id: uuid.UUID,
        note_id: uuid.UUID,
        link_type: str = LINK_TYPE_SEMANTIC,
    ) -> int:
        """
        Delete edges of ``link_type`` where the note is the canonical left.

        Used before relinking an edited note. Edges where it is the right
        endpoint belong to the other note's linking pass and are kept.
        """
        result = await session.execute(
            delete(NoteLink).where(
                NoteLink.user_id == user_id,
                NoteLink.left_note_id == note_id,
                NoteLink.link_type == link_type,
            )
        )
        await session.commit()
        return result.rowcount or 0

    async def delete_for_note(
        self,
        session: AsyncSession,
        user_id: uuid.UUID,
        note_id: uuid.UUID,
    ) -> int:
        """Delete every edge touching the note (used when the note is deleted)."""
        result = await session.execute(
            delete(NoteLink).where(
                NoteLink.user_id == user_id,
                or_(
                    NoteLink.left_note_id == note_id,
                    NoteLink.right_note_id == note_id,
                ),
            )
        )
        await session.commit()
        return result.rowcount or 0


# Module-level singleton for convenience imports
note_link_repository = NoteLinkRepository()
