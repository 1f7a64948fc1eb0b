"""Deadline Alert Endpoints."""
from datetime import date, datetime
from typing import Annotated, Literal
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, status
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from realty_crm.api.auth import CurrentUser
from realty_crm.api.rate_limits import RateLimits, limiter
from realty_crm.db import as_naive_utc, get_db, utcnow
from realty_crm.db.models.automation import DeadlineAlertModel
from realty_crm.db.repositories.automation import DeadlineAlertRepository


router = APIRouter()


class AlertCreate(BaseModel):
    """Schema for creating a deadline alert."""

    title: str = Field(min_length=1)
    description: str | None = None
    due_date: datetime
    category: Literal["payment", "contract", "follow-up", "other"] = "other"
    priority: Literal["low", "medium", "high"] = "medium"


class Alert(BaseModel):
    """Deadline alert schema for API responses."""

    model_config = {"from_attributes": True}

    id: UUID
    title: str
    description: str | None = None
    due_date: datetime
    category: str
    priority: str
    status: str


async def get_alert_repository(
    session: Annotated[AsyncSession, Depends(get_db)]
) -> DeadlineAlertRepository:
    """Get deadline alert repository instance."""
    return DeadlineAlertRepository(session)


AlertRepo = Annotated[DeadlineAlertRepository, Depends(get_alert_repository)]


@router.get("/automation/alerts", response_model=list[Alert])
@limiter.limit(RateLimits.READ)
async def list_alerts(
    request: Request,
    repo: AlertRepo,
    user: CurrentUser,
    day: date | None = Query(None, alias="date", description="Defaults to today (UTC)"),
) -> list[Alert]:
    """Alerts due on a day: pending first, then high, medium, low priority."""
    alerts = await repo.get_for_date(day or utcnow().date(), user_id=user.id)
    return [Alert.model_validate(a) for a in alerts]


@router.post("/automation/alerts", response_model=Alert, status_code=status.HTTP_201_CREATED)
@limiter.limit(RateLimits.WRITE)
async def create_alert(
    request: Request,
    alert_in: AlertCreate,
    repo: AlertRepo,
    user: CurrentUser,
) -> Alert:
    """Create a deadline alert."""
    values = alert_in.model_dump()
    values["due_date"] = as_naive_utc(values["due_date"])
    alert = await repo.create(DeadlineAlertModel(user_id=user.id, status="pending", **values))
    return Alert.model_validate(alert)


@router.post("/automation/alerts/{alert_id}/acknowledge", response_model=Alert)
@limiter.limit(RateLimits.WRITE)
async def acknowledge_alert(
    request: Request,
    alert_id: str,
    repo: AlertRepo,
    user: CurrentUser,
) -> Alert:
    """Mark an alert as seen."""
    alert = await repo.set_status(alert_id, "acknowledged", user_id=user.id)
    return Alert.model_validate(alert)


@router.post("/automation/alerts/{alert_id}/resolve", response_model=Alert)
@limiter.limit(RateLimits.WRITE)
async def resolve_alert(
    request: Request,
    alert_id: str,
    repo: AlertRepo,
    user: CurrentUser,
) -> Alert:
    """Mark an alert as dealt with."""
    alert = await repo.set_status(alert_id, "resolved", user_id=user.id)
    return Alert.model_validate(alert)
