"""create books, notes and note links

Revision ID: 4c1e2b7d9a30
Revises:
Create Date: 2026-10-17 10:12:44.301127

"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from pgvector.sqlalchemy import Vector

# revision identifiers, used by Alembic.
revision: str = "4c1e2b7d9a30"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    ]


def upgrade() -> None:
    """Create the notes schema and the match_notes similarity function."""
    op.execute("CREATE EXTENSION IF NOT EXISTS vector")

    # -- books table --
    op.create_table(
        "books",
        sa.Column(
            "id", sa.Uuid(), nullable=False, server_default=sa.text("gen_random_uuid()")
        ),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("title", sa.String(300), nullable=False),
        sa.Column("author", sa.String(300), nullable=True),
        sa.Column("source", sa.String(500), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_books_user_id", "books", ["user_id"])

    # -- notes table --
    op.create_table(
        "notes",
        sa.Column(
            "id", sa.Uuid(), nullable=False, server_default=sa.text("gen_random_uuid()")
        ),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("book_id", sa.Uuid(), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("quote", sa.Text(), nullable=True),
        sa.Column("page_ref", sa.String(40), nullable=True),
        sa.Column("embedding", Vector(1536), nullable=True),
        sa.Column(
            "same_book_only",
            sa.Boolean(),
            nullable=False,
            server_default=sa.text("false"),
        ),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["book_id"], ["books.id"], ondelete="CASCADE"),
    )
    op.create_index("ix_notes_user_id", "notes", ["user_id"])
    op.create_index("ix_notes_book_id", "notes", ["book_id"])

    # -- note_links table --
    op.create_table(
        "note_links",
        sa.Column(
            "id", sa.Uuid(), nullable=False, server_default=sa.text("gen_random_uuid()")
        ),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("left_note_id", sa.Uuid(), nullable=False),
        sa.Column("right_note_id", sa.Uuid(), nullable=False),
        sa.Column("score", sa.Float(), nullable=False),
        sa.Column(
            "link_type",
            sa.String(32),
            nullable=False,
            server_default=sa.text("'semantic'"),
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["left_note_id"], ["notes.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["right_note_id"], ["notes.id"], ondelete="CASCADE"),
        sa.UniqueConstraint(
            "user_id", "left_note_id", "right_note_id", name="uq_note_links_user_pair"
        ),
        sa.CheckConstraint(
            "left_note_id::text < right_note_id::text",
            name="ck_note_links_canonical_order",
        ),
    )
    op.create_index("ix_note_links_user_id", "note_links", ["user_id"])
    op.create_index("ix_note_links_left_note_id", "note_links", ["left_note_id"])
    op.create_index("ix_note_links_right_note_id", "note_links", ["right_note_id"])

    # HNSW index for fast cosine similarity search
    op.execute(
        """
        CREATE INDEX ix_notes_embedding_hnsw
        ON notes
        USING hnsw (embedding vector_cosine_ops)
        WITH (m = 16, ef_construction = 64)
        """
    )

    # Similarity search used by linking, search and ask. The book filter
    # is only applied when p_same_book_only is true and p_book_id is set.
    op.execute(
        """
        CREATE OR REPLACE FUNCTION match_notes(
            p_user_id uuid,
            query_embedding vector(1536),
            match_count integer,
            match_threshold double precision,
            p_book_id uuid DEFAULT NULL,
            p_same_book_only boolean DEFAULT false
        )
        RETURNS TABLE (
            id uuid,
            book_id uuid,
            content text,
            quote text,
            page_ref varchar,
            similarity double precision
        )
        LANGUAGE sql STABLE
        AS $$
            SELECT n.id, n.book_id, n.content, n.quote, n.page_ref,
                   1 - (n.embedding <=> query_embedding) AS similarity
            FROM notes n
            WHERE n.user_id = p_user_id
              AND n.embedding IS NOT NULL
              AND (NOT p_same_book_only OR p_book_id IS NULL OR n.book_id = p_book_id)
              AND 1 - (n.embedding <=> query_embedding) >= match_threshold
            ORDER BY n.embedding <=> query_embedding
            LIMIT match_count
        $$
        """
    )


def downgrade() -> None:
    """Drop the notes schema."""
    op.execute(
        "DROP FUNCTION IF EXISTS match_notes"
        "(uuid, vector, integer, double precision, uuid, boolean)"
    )
    op.execute("DROP INDEX IF EXISTS ix_notes_embedding_hnsw")
    op.drop_table("note_links")
    op.drop_table("notes")
    op.drop_table("books")
