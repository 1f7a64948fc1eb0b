"""CRM Repositories.

Data access for leads, properties, tasks and communications. These are
the raw rows the analytics aggregator reduces.
"""
from __future__ import annotations

from datetime import datetime
from typing import Sequence

from sqlalchemy import and_, select
from sqlalchemy.ext.asyncio import AsyncSession

from realty_crm.db.base import utcnow
from realty_crm.db.models.crm import (
    CommunicationModel,
    LeadModel,
    PropertyModel,
    TaskModel,
)
from realty_crm.db.repositories.base import BaseRepository


class LeadRepository(BaseRepository[LeadModel]):
    """Repository for leads."""

    def __init__(self, session: AsyncSession):
        super().__init__(LeadModel, session)

    async def get_by_status(
        self,
        status: str,
        *,
        user_id: str | None = None,
    ) -> Sequence[LeadModel]:
        """Leads with a given temperature (cold, warm, hot)."""
        return await self.find_many(user_id=user_id, status=status)


class PropertyRepository(BaseRepository[PropertyModel]):
    """Repository for property listings."""

    def __init__(self, session: AsyncSession):
        super().__init__(PropertyModel, session)

    async def search(
        self,
        *,
        user_id: str | None = None,
        status: str | None = None,
        property_type: str | None = None,
        min_price: float | None = None,
        max_price: float | None = None,
        limit: int = 100,
    ) -> Sequence[PropertyModel]:
        """Filter listings by status, type and price bounds, newest first."""
        conditions = []
        if status:
            conditions.append(PropertyModel.status == status)
        if property_type:
            conditions.append(PropertyModel.property_type == property_type)
        if min_price is not None:
            conditions.append(PropertyModel.price >= min_price)
        if max_price is not None:
            conditions.append(PropertyModel.price <= max_price)

        stmt = select(PropertyModel)
        if conditions:
            stmt = stmt.where(and_(*conditions))
        stmt = self._scoped(stmt, user_id).order_by(PropertyModel.created_at.desc()).limit(limit)

        result = await self._session.execute(stmt)
        return result.scalars().all()


class TaskRepository(BaseRepository[TaskModel]):
    """Repository for tasks."""

    def __init__(self, session: AsyncSession):
        super().__init__(TaskModel, session)

    async def get_overdue(
        self,
        *,
        user_id: str | None = None,
        now: datetime | None = None,
    ) -> Sequence[TaskModel]:
        """Open tasks whose due date has passed."""
        now = now or utcnow()
        stmt = self._scoped(
            select(TaskModel).where(
                and_(
                    TaskModel.due_date.is_not(None),
                    TaskModel.due_date < now,
                    TaskModel.status != "completed",
                )
            ),
            user_id,
        ).order_by(TaskModel.due_date.asc())

        result = await self._session.execute(stmt)
        return result.scalars().all()

    async def complete(self, task: TaskModel) -> TaskModel:
        """Mark a task completed and stamp completed_at."""
        task.status = "completed"
        task.completed_at = utcnow()
        await self._session.flush()
        await self._session.refresh(task)
        return task


class CommunicationRepository(BaseRepository[CommunicationModel]):
    """Repository for email and WhatsApp messages."""

    def __init__(self, session: AsyncSession):
        super().__init__(CommunicationModel, session)

    async def get_by_channel(
        self,
        channel: str,
        *,
        user_id: str | None = None,
        since: datetime | None = None,
    ) -> Sequence[CommunicationModel]:
        """Messages on one channel (email, whatsapp), oldest first."""
        stmt = self._scoped(
            select(CommunicationModel).where(CommunicationModel.type == channel),
            user_id,
        )
        if since is not None:
            stmt = stmt.where(CommunicationModel.created_at >= since)
        stmt = stmt.order_by(CommunicationModel.created_at.asc())

        result = await self._session.execute(stmt)
        return result.scalars().all()
