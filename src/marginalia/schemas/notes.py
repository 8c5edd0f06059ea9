"""
Note Schemas

Pydantic models for Note API request/response validation.
Separates concerns: NoteCreate (input), NoteUpdate (partial), NoteRead (output),
RelatedNote (linking read path).
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

CONTENT_MAX_LENGTH = 1200
QUOTE_MAX_LENGTH = 600
PAGE_REF_MAX_LENGTH = 40

# Columns a partial update may omit but never clear
NON_NULLABLE_FIELDS = ("content", "same_book_only")


def _strip_optional(value: str | None) -> str | None:
    """Blank optional fields are stored as NULL."""
    if value is None:
        return None
    value = value.strip()
    return value or None


class NoteBase(BaseModel):
    """Base schema with shared validation rules for Note fields."""

    content: str = Field(
        ...,
        min_length=1,
        max_length=CONTENT_MAX_LENGTH,
        description=f"Note body (1-{CONTENT_MAX_LENGTH} chars)",
    )
    quote: str | None = Field(default=None, max_length=QUOTE_MAX_LENGTH)
    page_ref: str | None = Field(default=None, max_length=PAGE_REF_MAX_LENGTH)

    @field_validator("content", mode="before")
    @classmethod
    def _strip_content(cls, value: str) -> str:
        return value.strip() if isinstance(value, str) else value

    @field_validator("quote", "page_ref", mode="before")
    @classmethod
    def _strip_optionals(cls, value: str | None) -> str | None:
        return _strip_optional(value) if isinstance(value, str) else value


class NoteCreate(NoteBase):
    """Request schema for POST /notes."""

    book_id: UUID
    same_book_only: bool = Field(
        default=False,
        description="Only link to notes from the same book",
    )


class NoteUpdate(BaseModel):
    """
    Request schema for PATCH /notes/{id}.

    All fields optional to support partial updates.
    """

    content: str | None = Field(None, min_length=1, max_length=CONTENT_MAX_LENGTH)
    quote: str | None = Field(None, max_length=QUOTE_MAX_LENGTH)
    page_ref: str | None = Field(None, max_length=PAGE_REF_MAX_LENGTH)
    same_book_only: bool | None = None

    @field_validator("content", mode="before")
    @classmethod
    def _strip_content(cls, value: str | None) -> str | None:
        return value.strip() if isinstance(value, str) else value

    @field_validator("quote", "page_ref", mode="before")
    @classmethod
    def _strip_optionals(cls, value: str | None) -> str | None:
        return _strip_optional(value) if isinstance(value, str) else value

    @model_validator(mode="after")
    def _reject_null_required(self) -> "NoteUpdate":
        # Omit a field to keep it; null is only meaningful for quote/page_ref
        for name in NON_NULLABLE_FIELDS:
            if name in self.model_fields_set and getattr(self, name) is None:
                raise ValueError(f"{name} cannot be null")
        return self


class NoteRead(NoteBase):
    """Full Note representation including timestamps."""

    id: UUID
    book_id: UUID
    same_book_only: bool
    created_at: datetime
    updated_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)  # Enables ORM model conversion


class RelatedNote(BaseModel):
    """A note related to the one being viewed, with the reason it is related."""

    id: UUID
    book_id: UUID
    content: str
    quote: str | None = None
    page_ref: str | None = None
    created_at: datetime
    score: float = Field(description="Link relevance in [0, 1]")
    shared_concepts: list[str] = Field(
        default_factory=list,
        description="Concepts both notes mention, in the related note's order",
    )


class RelinkRequest(BaseModel):
    """Request schema for POST /notes/{id}/links (manual relink)."""

    match_count: int = Field(default=5, ge=1, le=20)
    threshold: float = Field(default=0.35, ge=0.0, le=1.0)
    same_book_only: bool | None = Field(
        default=None,
        description="Override the note's stored linking scope",
    )


class LinkResponse(BaseModel):
    """Outcome of a linking pass."""

    ok: bool
    inserted: int = 0
    message: str | None = None
