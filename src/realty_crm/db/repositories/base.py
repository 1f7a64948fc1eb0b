"""Base Repository Pattern for the CRM.

Provides generic CRUD operations with async SQLAlchemy support.
All specialized repositories inherit from BaseRepository.
"""
from __future__ import annotations

from datetime import datetime
from typing import Any, Generic, Sequence, TypeVar
from uuid import UUID

from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from realty_crm.core.exceptions import RecordNotFoundError
from realty_crm.db.base import Base

# Type variable for model classes
ModelT = TypeVar("ModelT", bound=Base)


def coerce_id(id: UUID | str) -> UUID | None:
    """Parse a primary key, returning None for malformed strings."""
    if isinstance(id, UUID):
        return id
    try:
        return UUID(str(id))
    except ValueError:
        return None


class BaseRepository(Generic[ModelT]):
    """Generic base repository with async CRUD operations.

    Records carrying a ``user_id`` column are scoped to one CRM user when
    a ``user_id`` is passed; ``None`` means unscoped.

    Usage:
        class LeadRepository(BaseRepository[LeadModel]):
            def __init__(self, session: AsyncSession):
                super().__init__(LeadModel, session)
    """

    def __init__(self, model: type[ModelT], session: AsyncSession):
        """Initialize repository with model class and session.

        Args:
            model: SQLAlchemy model class
            session: Async database session
        """
        self._model = model
        self._session = session

    @property
    def session(self) -> AsyncSession:
        """Get the current database session."""
        return self._session

    def _scoped(self, stmt: Select, user_id: str | None) -> Select:
        if user_id is not None and hasattr(self._model, "user_id"):
            stmt = stmt.where(self._model.user_id == user_id)
        return stmt

    # ========================================================================
    # Basic CRUD Operations
    # ========================================================================

    async def get(self, id: UUID | str, *, user_id: str | None = None) -> ModelT | None:
        """Get a single record by ID.

        Args:
            id: UUID or string primary key
            user_id: Owner to scope the lookup to

        Returns:
            Model instance or None if not found (or the id is malformed)
        """
        pk = coerce_id(id)
        if pk is None:
            return None

        stmt = self._scoped(select(self._model).where(self._model.id == pk), user_id)
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_or_raise(self, id: UUID | str, *, user_id: str | None = None) -> ModelT:
        """Get a single record by ID, raising if not found.

        Raises:
            RecordNotFoundError: If record not found
        """
        obj = await self.get(id, user_id=user_id)
        if obj is None:
            raise RecordNotFoundError(
                f"{self._model.__name__} with id {id} not found",
                details={"id": str(id)},
            )
        return obj

    async def get_multi(
        self,
        *,
        user_id: str | None = None,
        skip: int = 0,
        limit: int | None = 100,
        descending: bool = True,
    ) -> Sequence[ModelT]:
        """Get multiple records ordered by creation time.

        Args:
            user_id: Owner to scope the listing to
            skip: Number of records to skip
            limit: Maximum records to return (None for all)
            descending: Newest first

        Returns:
            List of model instances
        """
        stmt = self._scoped(select(self._model), user_id)
        column = self._model.created_at
        stmt = stmt.order_by(column.desc() if descending else column.asc())
        stmt = stmt.offset(skip)
        if limit is not None:
            stmt = stmt.limit(limit)

        result = await self._session.execute(stmt)
        return result.scalars().all()

    async def create(self, obj_in: ModelT) -> ModelT:
        """Create a new record.

        Args:
            obj_in: Model instance to create

        Returns:
            Created model instance with generated ID
        """
        self._session.add(obj_in)
        await self._session.flush()
        await self._session.refresh(obj_in)
        return obj_in

    async def update(
        self,
        id: UUID | str,
        obj_in: dict[str, Any],
        *,
        user_id: str | None = None,
    ) -> ModelT | None:
        """Update a record by ID.

        Args:
            id: UUID or string primary key
            obj_in: Dictionary of fields to update
            user_id: Owner to scope the lookup to

        Returns:
            Updated model instance or None if not found
        """
        db_obj = await self.get(id, user_id=user_id)
        if db_obj is None:
            return None

        for field, value in obj_in.items():
            if hasattr(db_obj, field):
                setattr(db_obj, field, value)

        await self._session.flush()
        await self._session.refresh(db_obj)
        return db_obj

    async def delete(self, id: UUID | str, *, user_id: str | None = None) -> bool:
        """Delete a record by ID.

        Returns:
            True if deleted, False if not found
        """
        db_obj = await self.get(id, user_id=user_id)
        if db_obj is None:
            return False

        await self._session.delete(db_obj)
        await self._session.flush()
        return True

    # ========================================================================
    # Query Helpers
    # ========================================================================

    async def count(self, *, user_id: str | None = None) -> int:
        """Get total count of records."""
        stmt = self._scoped(select(func.count()).select_from(self._model), user_id)
        result = await self._session.execute(stmt)
        return result.scalar() or 0

    async def find_many(
        self,
        *,
        user_id: str | None = None,
        limit: int | None = None,
        **filters: Any,
    ) -> Sequence[ModelT]:
        """Find records matching equality filters, newest first.

        Args:
            user_id: Owner to scope the query to
            limit: Maximum records to return
            **filters: Column name to value mappings (None values ignored)

        Returns:
            List of matching model instances
        """
        stmt = self._scoped(select(self._model), user_id)
        for field, value in filters.items():
            if value is not None and hasattr(self._model, field):
                stmt = stmt.where(getattr(self._model, field) == value)

        stmt = stmt.order_by(self._model.created_at.desc())
        if limit is not None:
            stmt = stmt.limit(limit)

        result = await self._session.execute(stmt)
        return result.scalars().all()

    async def created_since(
        self,
        since: datetime | None,
        *,
        user_id: str | None = None,
    ) -> Sequence[ModelT]:
        """All records created at or after ``since`` (all records if None)."""
        stmt = self._scoped(select(self._model), user_id)
        if since is not None:
            stmt = stmt.where(self._model.created_at >= since)
        stmt = stmt.order_by(self._model.created_at.asc())

        result = await self._session.execute(stmt)
        return result.scalars().all()
