"""Analytics Dashboard Endpoints.

One endpoint per dashboard widget. Each request builds its own
AnalyticsService around the request session; a failed fetch surfaces as
a 503 AnalyticsError and no partial widget data is returned.
"""
from datetime import datetime
from typing import Annotated, Any

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from realty_crm.api.auth import CurrentUser
from realty_crm.api.rate_limits import RateLimits, limiter
from realty_crm.db import get_db
from realty_crm.db.repositories.analytics import AnalyticsService


router = APIRouter()


async def get_analytics_service(
    session: Annotated[AsyncSession, Depends(get_db)]
) -> AnalyticsService:
    """Get a per-request analytics service."""
    return AnalyticsService(session)


Analytics = Annotated[AnalyticsService, Depends(get_analytics_service)]


@router.get("/analytics/dashboard")
@limiter.limit(RateLimits.ANALYTICS)
async def get_dashboard_summary(
    request: Request,
    service: Analytics,
    user: CurrentUser,
) -> dict[str, Any]:
    """Headline totals: listings, value, leads by temperature, messages, tasks."""
    return await service.get_dashboard_summary(user_id=user.id)


@router.get("/analytics/overview")
@limiter.limit(RateLimits.ANALYTICS)
async def get_overview(
    request: Request,
    service: Analytics,
    user: CurrentUser,
) -> dict[str, list[Any]]:
    """Six-month arrays: labels, leads, properties, revenue, tasks."""
    return await service.get_overview(user_id=user.id)


@router.get("/analytics/monthly")
@limiter.limit(RateLimits.ANALYTICS)
async def get_monthly_stats(
    request: Request,
    service: Analytics,
    user: CurrentUser,
) -> list[dict[str, Any]]:
    """Twelve months of new listings, new leads and listed value."""
    return await service.get_monthly_stats(user_id=user.id)


@router.get("/analytics/leads")
@limiter.limit(RateLimits.ANALYTICS)
async def get_lead_metrics(
    request: Request,
    service: Analytics,
    user: CurrentUser,
) -> dict[str, Any]:
    """Lead sources, status split and conversion."""
    return await service.get_lead_metrics(user_id=user.id)


@router.get("/analytics/properties")
@limiter.limit(RateLimits.ANALYTICS)
async def get_property_metrics(
    request: Request,
    service: Analytics,
    user: CurrentUser,
) -> dict[str, Any]:
    """Listing types, status split, average price, views and new listings."""
    return await service.get_property_metrics(user_id=user.id)


@router.get("/analytics/tasks")
@limiter.limit(RateLimits.ANALYTICS)
async def get_task_metrics(
    request: Request,
    service: Analytics,
    user: CurrentUser,
) -> dict[str, Any]:
    """Task status and priority split, completion trend and overdue count."""
    return await service.get_task_metrics(user_id=user.id)


@router.get("/analytics/communications")
@limiter.limit(RateLimits.ANALYTICS)
async def get_communication_metrics(
    request: Request,
    service: Analytics,
    user: CurrentUser,
) -> dict[str, Any]:
    """Channel mix, response time, engagement and monthly volume."""
    return await service.get_communication_metrics(user_id=user.id)


@router.get("/analytics/whatsapp")
@limiter.limit(RateLimits.ANALYTICS)
async def get_whatsapp_metrics(
    request: Request,
    service: Analytics,
    user: CurrentUser,
    since: datetime | None = Query(None, description="Only messages created at or after"),
) -> dict[str, Any]:
    """WhatsApp delivery funnel with zero-guarded rates."""
    return await service.get_whatsapp_metrics(user_id=user.id, since=since)
