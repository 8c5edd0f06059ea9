#!/usr/bin/env python3
"""
Seed Notes Script

Creates a demo book with a handful of notes through the regular note
workflow (embedding + semantic linking), then prints the related notes of
each one. Without OPENAI_API_KEY the mock embeddings are used.

Usage:
    Requires the database and migrations (alembic upgrade head):
    $ python scripts/seed_notes.py [--user-id UUID]
"""

import argparse
import asyncio
import uuid

from marginalia.core.database import dispose_engine, get_session_factory
from marginalia.core.logging import setup_logging
from marginalia.repositories.books import book_repository
from marginalia.schemas.books import BookCreate
from marginalia.schemas.notes import NoteCreate
from marginalia.services.notes import note_service
from marginalia.services.related import related_notes_reader

DEMO_NOTES = [
    ("Compound interest rewards patience more than intelligence.", None, "p. 12"),
    (
        "Debt cycles repeat because credit growth outpaces income growth.",
        "Credit is the most volatile part of the economy.",
        "p. 48",
    ),
    ("Patience and compound interest shape long-term wealth.", None, "p. 13"),
    ("复利是世界第八大奇迹", None, None),
    ("长期投资需要耐心，复利才会显现", None, None),
]


async def main(user_id: uuid.UUID) -> None:
    setup_logging()
    factory = get_session_factory()

    async with factory() as session:
        book = await book_repository.create(
            session, user_id, BookCreate(title="Money Notes", author="Demo")
        )
        print(f"Created book {book.id}")

        note_ids = []
        for content, quote, page_ref in DEMO_NOTES:
            note = await note_service.create_note(
                session,
                user_id,
                NoteCreate(book_id=book.id, content=content, quote=quote, page_ref=page_ref),
            )
            note_ids.append(note.id)
        print(f"Inserted {len(note_ids)} notes")

        for note_id in note_ids:
            result = await related_notes_reader.get_related_notes(
                session, user_id, note_id
            )
            print(f"\n{note_id}")
            for related in result.results:
                concepts = ", ".join(related.shared_concepts) or "-"
                print(f"  {related.score:.3f}  {related.content[:50]}  [{concepts}]")

    await dispose_engine()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument("--user-id", type=uuid.UUID, default=uuid.uuid4())
    args = parser.parse_args()
    asyncio.run(main(args.user_id))
