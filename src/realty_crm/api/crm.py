"""CRM Record Endpoints.

Leads, property listings, tasks and communications: the records the
analytics widgets aggregate over.
"""
from datetime import datetime
from typing import Annotated, Literal
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, status
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from realty_crm.api.auth import CurrentUser
from realty_crm.api.rate_limits import RateLimits, limiter
from realty_crm.db import as_naive_utc, get_db
from realty_crm.db.models.crm import CommunicationModel, LeadModel, PropertyModel, TaskModel
from realty_crm.db.repositories.crm import (
    CommunicationRepository,
    LeadRepository,
    PropertyRepository,
    TaskRepository,
)


router = APIRouter()

LeadStatus = Literal["cold", "warm", "hot"]
PropertyStatus = Literal["active", "inactive", "sold"]
TaskStatus = Literal["pending", "in_progress", "completed"]
Priority = Literal["low", "medium", "high"]


# ============================================================================
# Pydantic Schemas
# ============================================================================

class LeadCreate(BaseModel):
    """Schema for creating a lead."""

    name: str = Field(min_length=1)
    email: str | None = None
    phone: str | None = None
    status: LeadStatus = "cold"
    source: str | None = None
    notes: str | None = None
    response_time_minutes: float | None = Field(default=None, ge=0)


class Lead(BaseModel):
    """Lead schema for API responses."""

    model_config = {"from_attributes": True}

    id: UUID
    name: str
    email: str | None = None
    phone: str | None = None
    status: str
    source: str | None = None
    notes: str | None = None
    response_time_minutes: float | None = None
    created_at: datetime | None = None


class PropertyCreate(BaseModel):
    """Schema for creating a listing."""

    title: str = Field(min_length=1)
    description: str | None = None
    price: float = Field(default=0.0, ge=0)
    location: str | None = None
    property_type: str | None = None
    status: PropertyStatus = "active"
    views: int = Field(default=0, ge=0)
    sold_at: datetime | None = None


class Property(BaseModel):
    """Listing schema for API responses."""

    model_config = {"from_attributes": True}

    id: UUID
    title: str
    description: str | None = None
    price: float
    location: str | None = None
    property_type: str | None = None
    status: str
    views: int
    sold_at: datetime | None = None
    created_at: datetime | None = None


class TaskCreate(BaseModel):
    """Schema for creating a task."""

    title: str = Field(min_length=1)
    description: str | None = None
    status: TaskStatus = "pending"
    priority: Priority = "medium"
    due_date: datetime | None = None


class Task(BaseModel):
    """Task schema for API responses."""

    model_config = {"from_attributes": True}

    id: UUID
    title: str
    description: str | None = None
    status: str
    priority: str
    due_date: datetime | None = None
    completed_at: datetime | None = None
    created_at: datetime | None = None


class CommunicationCreate(BaseModel):
    """Schema for recording an email or WhatsApp message."""

    type: Literal["email", "whatsapp"]
    direction: Literal["sent", "received"]
    recipient: str | None = None
    subject: str | None = None
    content: str | None = None
    delivery_status: Literal["sent", "delivered", "read", "failed"] | None = None
    response_time_minutes: float | None = Field(default=None, ge=0)


class Communication(BaseModel):
    """Communication schema for API responses."""

    model_config = {"from_attributes": True}

    id: UUID
    type: str
    direction: str
    recipient: str | None = None
    subject: str | None = None
    content: str | None = None
    delivery_status: str | None = None
    response_time_minutes: float | None = None
    created_at: datetime | None = None


# ============================================================================
# Dependencies
# ============================================================================

async def get_lead_repository(
    session: Annotated[AsyncSession, Depends(get_db)]
) -> LeadRepository:
    """Get lead repository instance."""
    return LeadRepository(session)


async def get_property_repository(
    session: Annotated[AsyncSession, Depends(get_db)]
) -> PropertyRepository:
    """Get property repository instance."""
    return PropertyRepository(session)


async def get_task_repository(
    session: Annotated[AsyncSession, Depends(get_db)]
) -> TaskRepository:
    """Get task repository instance."""
    return TaskRepository(session)


async def get_communication_repository(
    session: Annotated[AsyncSession, Depends(get_db)]
) -> CommunicationRepository:
    """Get communication repository instance."""
    return CommunicationRepository(session)


# ============================================================================
# Leads
# ============================================================================

@router.get("/crm/leads", response_model=list[Lead])
@limiter.limit(RateLimits.READ)
async def list_leads(
    request: Request,
    repo: Annotated[LeadRepository, Depends(get_lead_repository)],
    user: CurrentUser,
    lead_status: LeadStatus | None = Query(None, alias="status"),
    limit: int = Query(100, ge=1, le=500),
) -> list[Lead]:
    """List leads, newest first, optionally by temperature."""
    leads = await repo.find_many(user_id=user.id, status=lead_status, limit=limit)
    return [Lead.model_validate(lead) for lead in leads]


@router.post("/crm/leads", response_model=Lead, status_code=status.HTTP_201_CREATED)
@limiter.limit(RateLimits.WRITE)
async def create_lead(
    request: Request,
    lead_in: LeadCreate,
    repo: Annotated[LeadRepository, Depends(get_lead_repository)],
    user: CurrentUser,
) -> Lead:
    """Create a lead."""
    lead = await repo.create(LeadModel(user_id=user.id, **lead_in.model_dump()))
    return Lead.model_validate(lead)


# ============================================================================
# Properties
# ============================================================================

@router.get("/crm/properties", response_model=list[Property])
@limiter.limit(RateLimits.READ)
async def list_properties(
    request: Request,
    repo: Annotated[PropertyRepository, Depends(get_property_repository)],
    user: CurrentUser,
    property_status: PropertyStatus | None = Query(None, alias="status"),
    property_type: str | None = None,
    min_price: float | None = Query(None, ge=0),
    max_price: float | None = Query(None, ge=0),
    limit: int = Query(100, ge=1, le=500),
) -> list[Property]:
    """Search listings by status, type and price range."""
    properties = await repo.search(
        user_id=user.id,
        status=property_status,
        property_type=property_type,
        min_price=min_price,
        max_price=max_price,
        limit=limit,
    )
    return [Property.model_validate(p) for p in properties]


@router.post("/crm/properties", response_model=Property, status_code=status.HTTP_201_CREATED)
@limiter.limit(RateLimits.WRITE)
async def create_property(
    request: Request,
    property_in: PropertyCreate,
    repo: Annotated[PropertyRepository, Depends(get_property_repository)],
    user: CurrentUser,
) -> Property:
    """Create a listing."""
    values = property_in.model_dump()
    values["sold_at"] = as_naive_utc(values["sold_at"])
    listing = await repo.create(PropertyModel(user_id=user.id, **values))
    return Property.model_validate(listing)


# ============================================================================
# Tasks
# ============================================================================

@router.get("/crm/tasks", response_model=list[Task])
@limiter.limit(RateLimits.READ)
async def list_tasks(
    request: Request,
    repo: Annotated[TaskRepository, Depends(get_task_repository)],
    user: CurrentUser,
    task_status: TaskStatus | None = Query(None, alias="status"),
    overdue: bool = False,
    limit: int = Query(100, ge=1, le=500),
) -> list[Task]:
    """List tasks; ``overdue=true`` returns open tasks past their due date."""
    if overdue:
        tasks = await repo.get_overdue(user_id=user.id)
    else:
        tasks = await repo.find_many(user_id=user.id, status=task_status, limit=limit)
    return [Task.model_validate(t) for t in tasks]


@router.post("/crm/tasks", response_model=Task, status_code=status.HTTP_201_CREATED)
@limiter.limit(RateLimits.WRITE)
async def create_task(
    request: Request,
    task_in: TaskCreate,
    repo: Annotated[TaskRepository, Depends(get_task_repository)],
    user: CurrentUser,
) -> Task:
    """Create a task."""
    values = task_in.model_dump()
    values["due_date"] = as_naive_utc(values["due_date"])
    task = await repo.create(TaskModel(user_id=user.id, **values))
    return Task.model_validate(task)


@router.post("/crm/tasks/{task_id}/complete", response_model=Task)
@limiter.limit(RateLimits.WRITE)
async def complete_task(
    request: Request,
    task_id: str,
    repo: Annotated[TaskRepository, Depends(get_task_repository)],
    user: CurrentUser,
) -> Task:
    """Mark a task completed."""
    task = await repo.get_or_raise(task_id, user_id=user.id)
    task = await repo.complete(task)
    return Task.model_validate(task)


# ============================================================================
# Communications
# ============================================================================

@router.get("/crm/communications", response_model=list[Communication])
@limiter.limit(RateLimits.READ)
async def list_communications(
    request: Request,
    repo: Annotated[CommunicationRepository, Depends(get_communication_repository)],
    user: CurrentUser,
    channel: Literal["email", "whatsapp"] | None = None,
    limit: int = Query(100, ge=1, le=500),
) -> list[Communication]:
    """List messages, newest first, optionally on one channel."""
    messages = await repo.find_many(user_id=user.id, type=channel, limit=limit)
    return [Communication.model_validate(m) for m in messages]


@router.post(
    "/crm/communications",
    response_model=Communication,
    status_code=status.HTTP_201_CREATED,
)
@limiter.limit(RateLimits.WRITE)
async def create_communication(
    request: Request,
    message_in: CommunicationCreate,
    repo: Annotated[CommunicationRepository, Depends(get_communication_repository)],
    user: CurrentUser,
) -> Communication:
    """Record a sent or received message."""
    message = await repo.create(CommunicationModel(user_id=user.id, **message_in.model_dump()))
    return Communication.model_validate(message)
