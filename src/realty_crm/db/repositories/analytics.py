"""Analytics Service.

Each dashboard widget is one fetch-then-reduce cycle: pull the raw rows
for the window, then reduce them with the pure helpers in
``realty_crm.services.aggregation``. A failed fetch aborts the whole
widget with AnalyticsError; partial results are never returned.
"""
from __future__ import annotations

from datetime import date, datetime
from typing import Any, Awaitable, Sequence, TypeVar

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from realty_crm.core.exceptions import AnalyticsError, wrap_exception
from realty_crm.core.logging_setup import get_logger
from realty_crm.db.base import as_naive_utc, utcnow
from realty_crm.db.models.crm import (
    CommunicationModel,
    LeadModel,
    PropertyModel,
    TaskModel,
)
from realty_crm.db.repositories.crm import (
    CommunicationRepository,
    LeadRepository,
    PropertyRepository,
    TaskRepository,
)
from realty_crm.services.aggregation import (
    as_named_counts,
    average,
    bucket_by_month,
    daily_counts,
    day_range,
    group_counts,
    month_anchors,
    month_labels,
    percentage,
    window_start,
)

log = get_logger(__name__)

T = TypeVar("T")

OVERVIEW_MONTHS = 6
MONTHLY_STATS_MONTHS = 12
TREND_DAYS = 7


# ============================================================================
# Reducers
# ============================================================================


def summarize_dashboard(
    properties: Sequence[PropertyModel],
    leads: Sequence[LeadModel],
    communications: Sequence[CommunicationModel],
    tasks: Sequence[TaskModel],
) -> dict[str, Any]:
    """Headline totals for the analytics page."""
    lead_status = group_counts(leads, "status")
    whatsapp = [c for c in communications if c.type == "whatsapp"]
    completed = sum(1 for t in tasks if t.status == "completed")

    return {
        "total_properties": len(properties),
        "total_value": float(sum(p.price or 0 for p in properties)),
        "total_leads": len(leads),
        "hot_leads": lead_status.get("hot", 0),
        "warm_leads": lead_status.get("warm", 0),
        "cold_leads": lead_status.get("cold", 0),
        "total_emails": sum(1 for c in communications if c.type == "email"),
        "whatsapp_sent": sum(1 for c in whatsapp if c.direction == "sent"),
        "whatsapp_received": sum(1 for c in whatsapp if c.direction == "received"),
        "pending_tasks": sum(1 for t in tasks if t.status != "completed"),
        "completed_tasks": completed,
        "completion_rate": percentage(completed, len(tasks)),
    }


def summarize_overview(
    leads: Sequence[LeadModel],
    properties: Sequence[PropertyModel],
    tasks: Sequence[TaskModel],
    today: date,
    months: int = OVERVIEW_MONTHS,
) -> dict[str, list[Any]]:
    """Parallel month arrays: labels, leads, properties, revenue, tasks.

    Revenue is the price of listings sold in the month.
    """
    sold = [p for p in properties if p.status == "sold"]
    return {
        "labels": month_labels(month_anchors(months, today)),
        "leads": bucket_by_month(leads, months, today),
        "properties": bucket_by_month(properties, months, today),
        "revenue": bucket_by_month(
            sold,
            months,
            today,
            created=lambda p: p.sold_at or p.created_at,
            value="price",
        ),
        "tasks": bucket_by_month(tasks, months, today),
    }


def summarize_monthly(
    properties: Sequence[PropertyModel],
    leads: Sequence[LeadModel],
    today: date,
    months: int = MONTHLY_STATS_MONTHS,
) -> list[dict[str, Any]]:
    """One entry per month: new listings, new leads, listed value."""
    labels = month_labels(month_anchors(months, today), fmt="%b")
    property_counts = bucket_by_month(properties, months, today)
    lead_counts = bucket_by_month(leads, months, today)
    values = bucket_by_month(properties, months, today, value="price")

    return [
        {
            "month": labels[i],
            "properties": int(property_counts[i]),
            "leads": int(lead_counts[i]),
            "value": float(values[i]),
        }
        for i in range(months)
    ]


def summarize_leads(leads: Sequence[LeadModel]) -> dict[str, Any]:
    """Lead sources, temperature split and conversion."""
    hot = sum(1 for lead in leads if lead.status == "hot")
    return {
        "sources": as_named_counts(group_counts(leads, "source")),
        "status": as_named_counts(group_counts(leads, "status")),
        "conversion": {
            "rate": percentage(hot, len(leads)),
            "avg_response_time": average(lead.response_time_minutes for lead in leads),
        },
    }


def summarize_properties(
    properties: Sequence[PropertyModel],
    today: date,
    days: int = TREND_DAYS,
) -> dict[str, Any]:
    """Listing types, status split, price and recent additions."""
    return {
        "types": as_named_counts(group_counts(properties, "property_type")),
        "status": as_named_counts(group_counts(properties, "status")),
        "price_ranges": {"average": average((p.price for p in properties), digits=2)},
        "total_views": sum(p.views or 0 for p in properties),
        "new_listings": daily_counts(properties, days, today),
    }


def summarize_tasks(
    tasks: Sequence[TaskModel],
    now: datetime,
    days: int = TREND_DAYS,
) -> dict[str, Any]:
    """Task status/priority split, completion trend and overdue count.

    The daily completion rate is completed / due for tasks due that day.
    """
    completed = sum(1 for t in tasks if t.status == "completed")

    completion = []
    for day in day_range(days, now.date()):
        due = [t for t in tasks if t.due_date is not None and t.due_date.date() == day]
        done = sum(1 for t in due if t.status == "completed")
        completion.append({"date": day.isoformat(), "rate": percentage(done, len(due))})

    overdue = sum(
        1
        for t in tasks
        if t.due_date is not None and t.due_date < now and t.status != "completed"
    )

    return {
        "status": as_named_counts(group_counts(tasks, "status")),
        "priority": as_named_counts(group_counts(tasks, "priority")),
        "completion_rate": percentage(completed, len(tasks)),
        "completion": completion,
        "overdue": overdue,
    }


def summarize_communications(
    communications: Sequence[CommunicationModel],
    today: date,
    months: int = OVERVIEW_MONTHS,
) -> dict[str, Any]:
    """Channel mix, response time, engagement and monthly volume."""
    sent = sum(1 for c in communications if c.direction == "sent")
    received = sum(1 for c in communications if c.direction == "received")

    return {
        "channels": as_named_counts(group_counts(communications, "type")),
        "response_time": average(c.response_time_minutes for c in communications),
        "engagement": percentage(received, sent),
        "volume": {
            "labels": month_labels(month_anchors(months, today)),
            "counts": bucket_by_month(communications, months, today),
        },
    }


def summarize_whatsapp(messages: Sequence[CommunicationModel]) -> dict[str, Any]:
    """Delivery funnel for WhatsApp; every rate is zero-guarded."""
    outgoing = [m for m in messages if m.direction == "sent"]
    received = sum(1 for m in messages if m.direction == "received")

    # "read" implies delivered
    delivered = sum(1 for m in outgoing if m.delivery_status in ("delivered", "read"))
    read = sum(1 for m in outgoing if m.delivery_status == "read")
    failed = sum(1 for m in outgoing if m.delivery_status == "failed")
    sent = len(outgoing)

    return {
        "sent": sent,
        "delivered": delivered,
        "read": read,
        "failed": failed,
        "received": received,
        "read_rate": percentage(read, delivered),
        "failure_rate": percentage(failed, sent),
        "response_rate": percentage(received, sent),
    }


# ============================================================================
# Service
# ============================================================================


class AnalyticsService:
    """High-level analytics combining the CRM repositories.

    Constructed per request around a session; holds no state between
    calls.
    """

    def __init__(self, session: AsyncSession):
        """Initialize with session.

        Args:
            session: Async database session
        """
        self._session = session
        self.leads = LeadRepository(session)
        self.properties = PropertyRepository(session)
        self.tasks = TaskRepository(session)
        self.communications = CommunicationRepository(session)

    async def _fetch(self, widget: str, query: Awaitable[T]) -> T:
        try:
            return await query
        except SQLAlchemyError as e:
            log.error("Analytics fetch failed", widget=widget, error=str(e))
            raise wrap_exception(e, AnalyticsError, f"Failed to load {widget} analytics", widget=widget)

    async def get_dashboard_summary(self, *, user_id: str | None = None) -> dict[str, Any]:
        """Totals across all of a user's records."""
        properties = await self._fetch("dashboard", self.properties.get_multi(user_id=user_id, limit=None))
        leads = await self._fetch("dashboard", self.leads.get_multi(user_id=user_id, limit=None))
        communications = await self._fetch(
            "dashboard", self.communications.get_multi(user_id=user_id, limit=None)
        )
        tasks = await self._fetch("dashboard", self.tasks.get_multi(user_id=user_id, limit=None))
        return summarize_dashboard(properties, leads, communications, tasks)

    async def get_overview(
        self,
        *,
        user_id: str | None = None,
        today: date | None = None,
    ) -> dict[str, list[Any]]:
        """Six-month overview arrays."""
        today = today or utcnow().date()
        since = window_start(OVERVIEW_MONTHS, today)

        leads = await self._fetch("overview", self.leads.created_since(since, user_id=user_id))
        tasks = await self._fetch("overview", self.tasks.created_since(since, user_id=user_id))
        # Sold listings may predate the window, so fetch all
        properties = await self._fetch(
            "overview", self.properties.get_multi(user_id=user_id, limit=None)
        )
        return summarize_overview(leads, properties, tasks, today)

    async def get_monthly_stats(
        self,
        *,
        user_id: str | None = None,
        today: date | None = None,
    ) -> list[dict[str, Any]]:
        """Twelve-month listing and lead volume."""
        today = today or utcnow().date()
        since = window_start(MONTHLY_STATS_MONTHS, today)

        properties = await self._fetch("monthly", self.properties.created_since(since, user_id=user_id))
        leads = await self._fetch("monthly", self.leads.created_since(since, user_id=user_id))
        return summarize_monthly(properties, leads, today)

    async def get_lead_metrics(self, *, user_id: str | None = None) -> dict[str, Any]:
        leads = await self._fetch("leads", self.leads.get_multi(user_id=user_id, limit=None))
        return summarize_leads(leads)

    async def get_property_metrics(
        self,
        *,
        user_id: str | None = None,
        today: date | None = None,
    ) -> dict[str, Any]:
        today = today or utcnow().date()
        properties = await self._fetch(
            "properties", self.properties.get_multi(user_id=user_id, limit=None)
        )
        return summarize_properties(properties, today)

    async def get_task_metrics(
        self,
        *,
        user_id: str | None = None,
        now: datetime | None = None,
    ) -> dict[str, Any]:
        now = now or utcnow()
        tasks = await self._fetch("tasks", self.tasks.get_multi(user_id=user_id, limit=None))
        return summarize_tasks(tasks, now)

    async def get_communication_metrics(
        self,
        *,
        user_id: str | None = None,
        today: date | None = None,
    ) -> dict[str, Any]:
        today = today or utcnow().date()
        communications = await self._fetch(
            "communications", self.communications.get_multi(user_id=user_id, limit=None)
        )
        return summarize_communications(communications, today)

    async def get_whatsapp_metrics(
        self,
        *,
        user_id: str | None = None,
        since: datetime | None = None,
    ) -> dict[str, Any]:
        since = as_naive_utc(since)
        messages = await self._fetch(
            "whatsapp",
            self.communications.get_by_channel("whatsapp", user_id=user_id, since=since),
        )
        return summarize_whatsapp(messages)
