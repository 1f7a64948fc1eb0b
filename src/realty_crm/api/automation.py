"""Automation Rule Endpoints.

CRUD for automation rules plus the active-flag toggle. Field
validation happens in the repository, so every path into storage
enforces the same constraints.
"""
from datetime import datetime
from typing import Annotated, Any
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, status
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from realty_crm.api.auth import CurrentUser
from realty_crm.api.rate_limits import RateLimits, limiter
from realty_crm.core.exceptions import ConfirmationRequiredError
from realty_crm.db import get_db
from realty_crm.db.models.automation import AutomationRuleModel
from realty_crm.db.repositories.automation import AutomationRuleRepository
from realty_crm.services.rules import summarize_action, trigger_label


router = APIRouter()


# ============================================================================
# Pydantic Schemas
# ============================================================================

class RuleCreate(BaseModel):
    """Schema for creating a rule.

    Deliberately loose: constraint messages come from the repository.
    """

    name: str = ""
    description: str | None = None
    trigger_type: str = ""
    trigger_condition: str = ""
    actions: list[dict[str, Any]] = Field(default_factory=list)
    is_active: bool = True


class RuleUpdate(BaseModel):
    """Schema for a partial rule update."""

    name: str | None = None
    description: str | None = None
    trigger_type: str | None = None
    trigger_condition: str | None = None
    actions: list[dict[str, Any]] | None = None


class RuleToggle(BaseModel):
    """Schema for setting a rule's active flag."""

    is_active: bool


class RuleActionOut(BaseModel):
    """Action as listed with its one-line summary."""

    id: str
    type: str
    details: dict[str, Any] = Field(default_factory=dict)
    summary: str


class Rule(BaseModel):
    """Rule schema for API responses."""

    id: UUID
    name: str
    description: str | None = None
    trigger_type: str
    trigger_label: str
    trigger_condition: str
    actions: list[RuleActionOut]
    is_active: bool
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_model(cls, model: AutomationRuleModel) -> "Rule":
        """Create schema from ORM model."""
        return cls(
            id=model.id,
            name=model.name,
            description=model.description,
            trigger_type=model.trigger_type,
            trigger_label=trigger_label(model.trigger_type),
            trigger_condition=model.trigger_condition,
            actions=[
                RuleActionOut(
                    id=action.get("id", ""),
                    type=action.get("type", ""),
                    details=action.get("details") or {},
                    summary=summarize_action(action),
                )
                for action in model.actions or []
            ],
            is_active=model.is_active,
            created_at=model.created_at,
            updated_at=model.updated_at,
        )


class RuleDeleteResponse(BaseModel):
    """Outcome of a delete; ``deleted`` is False for unknown ids."""

    deleted: bool


# ============================================================================
# Dependencies
# ============================================================================

async def get_rule_repository(
    session: Annotated[AsyncSession, Depends(get_db)]
) -> AutomationRuleRepository:
    """Get automation rule repository instance."""
    return AutomationRuleRepository(session)


RuleRepo = Annotated[AutomationRuleRepository, Depends(get_rule_repository)]


# ============================================================================
# Endpoints
# ============================================================================

@router.get("/automation/rules", response_model=list[Rule])
@limiter.limit(RateLimits.READ)
async def list_rules(
    request: Request,
    repo: RuleRepo,
    user: CurrentUser,
    active_only: bool = False,
    trigger_type: str | None = None,
) -> list[Rule]:
    """List the current user's rules, newest first.

    Args:
        request: FastAPI request object (for rate limiting)
        active_only: Only return active rules
        trigger_type: Filter by trigger category
    """
    rules = await repo.list_rules(
        user_id=user.id,
        active_only=active_only,
        trigger_type=trigger_type,
    )
    return [Rule.from_model(r) for r in rules]


@router.post("/automation/rules", response_model=Rule, status_code=status.HTTP_201_CREATED)
@limiter.limit(RateLimits.WRITE)
async def create_rule(
    request: Request,
    rule_in: RuleCreate,
    repo: RuleRepo,
    user: CurrentUser,
) -> Rule:
    """Create a rule.

    Raises:
        RuleValidationError: 422 with the failing field's message
    """
    rule = await repo.create_rule(rule_in.model_dump(), user_id=user.id)
    return Rule.from_model(rule)


@router.get("/automation/rules/{rule_id}", response_model=Rule)
@limiter.limit(RateLimits.READ)
async def get_rule(
    request: Request,
    rule_id: str,
    repo: RuleRepo,
    user: CurrentUser,
) -> Rule:
    """Get a single rule."""
    rule = await repo.get_or_raise(rule_id, user_id=user.id)
    return Rule.from_model(rule)


@router.patch("/automation/rules/{rule_id}", response_model=Rule)
@limiter.limit(RateLimits.WRITE)
async def update_rule(
    request: Request,
    rule_id: str,
    changes: RuleUpdate,
    repo: RuleRepo,
    user: CurrentUser,
) -> Rule:
    """Update name, description, trigger or actions of a rule."""
    rule = await repo.update_rule(
        rule_id,
        changes.model_dump(exclude_unset=True),
        user_id=user.id,
    )
    return Rule.from_model(rule)


@router.put("/automation/rules/{rule_id}/status", response_model=Rule)
@limiter.limit(RateLimits.WRITE)
async def toggle_rule_status(
    request: Request,
    rule_id: str,
    toggle: RuleToggle,
    repo: RuleRepo,
    user: CurrentUser,
) -> Rule:
    """Activate or deactivate a rule without touching anything else."""
    rule = await repo.toggle_rule_status(rule_id, toggle.is_active, user_id=user.id)
    return Rule.from_model(rule)


@router.delete("/automation/rules/{rule_id}", response_model=RuleDeleteResponse)
@limiter.limit(RateLimits.WRITE)
async def delete_rule(
    request: Request,
    rule_id: str,
    repo: RuleRepo,
    user: CurrentUser,
    confirm: bool = Query(False, description="Must be true to delete"),
) -> RuleDeleteResponse:
    """Delete a rule.

    Unknown ids are not an error; the response reports ``deleted: false``.

    Raises:
        ConfirmationRequiredError: 409 unless ``confirm=true``
    """
    if not confirm:
        raise ConfirmationRequiredError(
            "Deleting a rule requires confirm=true",
            details={"rule_id": rule_id},
        )
    deleted = await repo.delete_rule(rule_id, user_id=user.id)
    return RuleDeleteResponse(deleted=deleted)
