"""
Book Schemas

Pydantic models for Book API request/response validation.
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class BookCreate(BaseModel):
    """Request schema for POST /books."""

    title: str = Field(..., min_length=1, max_length=300)
    author: str | None = Field(default=None, max_length=300)
    source: str | None = Field(default=None, max_length=500)


class BookRead(BookCreate):
    """Book representation returned by the API."""

    id: UUID
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
