"""
NoteLink Model

Undirected "related notes" edge. The pair is stored once, in canonical
order (``left_note_id < right_note_id`` as strings), and the unique
constraint on ``(user_id, left_note_id, right_note_id)`` is the upsert
conflict target.
"""

import uuid
from datetime import datetime

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    Float,
    ForeignKey,
    String,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from marginalia.models.base import Base, OwnedMixin

LINK_TYPE_SEMANTIC = "semantic"


class NoteLink(Base, OwnedMixin):
    """
    Stored edge between two notes of the same user.

    Attributes:
        id: UUID primary key.
        user_id: Owning user.
        left_note_id: Lower endpoint of the canonical pair.
        right_note_id: Upper endpoint of the canonical pair.
        score: Relevance in [0, 1].
        link_type: Producer tag; semantic linking writes ``"semantic"``.
    """

    __tablename__ = "note_links"
    __table_args__ = (
        UniqueConstraint(
            "user_id",
            "left_note_id",
            "right_note_id",
            name="uq_note_links_user_pair",
        ),
        CheckConstraint(
            "left_note_id::text < right_note_id::text",
            name="ck_note_links_canonical_order",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    left_note_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("notes.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    right_note_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("notes.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    score: Mapped[float] = mapped_column(Float, nullable=False)
    link_type: Mapped[str] = mapped_column(
        String(32), nullable=False, default=LINK_TYPE_SEMANTIC
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    def __repr__(self) -> str:
        return (
            f"<NoteLink(left={self.left_note_id!s:.8}, "
            f"right={self.right_note_id!s:.8}, score={self.score:.3f})>"
        )
