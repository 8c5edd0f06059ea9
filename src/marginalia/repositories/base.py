"""
Base Repository

Generic repository pattern implementation for async SQLAlchemy CRUD operations.
Every query is scoped to the owning user; rows of other users are invisible.
"""

import uuid
from collections.abc import Sequence
from typing import Any, Generic, TypeVar

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from marginalia.models.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseRepository(Generic[ModelType]):
    """
    Generic repository providing user-scoped CRUD operations.

    All methods expect an externally managed session (injected via FastAPI
    dependency or opened by a service).

    Usage:
        class BookRepository(BaseRepository[Book]):
            def __init__(self):
                super().__init__(Book)
    """

    def __init__(self, model: type[ModelType]):
        self.model = model

    async def create(
        self,
        session: AsyncSession,
        user_id: uuid.UUID,
        obj_in: Any,
    ) -> ModelType:
        """
        Create a new record owned by ``user_id``.

        Args:
            session: Active database session.
            user_id: Owner of the new row.
            obj_in: Pydantic schema or dict with entity data.

        Returns:
            The created entity with database-generated fields populated.
        """
        data = obj_in.model_dump() if hasattr(obj_in, "model_dump") else dict(obj_in)
        db_obj = self.model(user_id=user_id, **data)
        session.add(db_obj)
        await session.commit()
        await session.refresh(db_obj)  # Load DB-generated fields (created_at)
        return db_obj

    async def get_by_id(
        self,
        session: AsyncSession,
        user_id: uuid.UUID,
        id: uuid.UUID,
    ) -> ModelType | None:
        """Get a record by primary key. Returns None if not found or not owned."""
        result = await session.execute(
            select(self.model).where(
                self.model.id == id,  # type: ignore[attr-defined]
                self.model.user_id == user_id,  # type: ignore[attr-defined]
            )
        )
        return result.scalars().first()

    async def get_all(
        self,
        session: AsyncSession,
        user_id: uuid.UUID,
        skip: int = 0,
        limit: int = 100,
    ) -> Sequence[ModelType]:
        """Get the user's records, newest first, with offset-based pagination."""
        result = await session.execute(
            select(self.model)
            .where(self.model.user_id == user_id)  # type: ignore[attr-defined]
            .order_by(self.model.created_at.desc())  # type: ignore[attr-defined]
            .offset(skip)
            .limit(limit)
        )
        return result.scalars().all()

    async def update(
        self,
        session: AsyncSession,
        db_obj: ModelType,
        obj_in: Any,
    ) -> ModelType:
        """
        Update a record with partial data.

        Args:
            session: Active database session.
            db_obj: Existing entity to update.
            obj_in: Pydantic schema or dict (only provided fields are updated).
        """
        update_data = (
            obj_in.model_dump(exclude_unset=True)
            if hasattr(obj_in, "model_dump")
            else obj_in
        )
        for field, value in update_data.items():
            setattr(db_obj, field, value)
        await session.commit()
        await session.refresh(db_obj)
        return db_obj

    async def delete(self, session: AsyncSession, db_obj: ModelType) -> None:
        """Delete a record (hard delete)."""
        await session.delete(db_obj)
        await session.commit()
