"""Automation rule schema, validation and presentation helpers.

Rules are validated here before anything reaches the database, whichever
caller (API, CLI, import) produced them.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from realty_crm.core.exceptions import RuleValidationError
from realty_crm.db.base import generate_uuid

NAME_MIN_LENGTH = 3
CONDITION_MIN_LENGTH = 5
SUMMARY_MESSAGE_LENGTH = 40


class TriggerType(str, Enum):
    """Coarse category of when a rule is meant to apply."""

    EMAIL = "email"
    LEAD = "lead"
    PROPERTY = "property"
    DEADLINE = "deadline"


class ActionType(str, Enum):
    """What should happen when a rule fires."""

    NOTIFICATION = "notification"
    EMAIL = "email"
    TASK = "task"
    TAG = "tag"


TRIGGER_LABELS: dict[str, str] = {
    TriggerType.EMAIL.value: "Email Interaction",
    TriggerType.LEAD.value: "Lead Activity",
    TriggerType.PROPERTY.value: "Property Update",
    TriggerType.DEADLINE.value: "Deadline",
}


class ActionDetails(BaseModel):
    """Type-specific action fields. Unknown keys are preserved."""

    model_config = ConfigDict(extra="allow")

    subject: str | None = None
    message: str | None = None
    recipients: list[str] | None = None
    task_title: str | None = None
    tag_name: str | None = None


class RuleAction(BaseModel):
    """One entry of a rule's ordered action list."""

    id: str = Field(default_factory=generate_uuid)
    type: ActionType
    details: ActionDetails = Field(default_factory=ActionDetails)


class RuleChanges(BaseModel):
    """Validated partial update of an automation rule.

    Field constraints live here and are inherited by RuleInput, which
    makes the core fields mandatory.
    """

    name: str | None = None
    description: str | None = None
    trigger_type: TriggerType | None = None
    trigger_condition: str | None = None
    actions: list[RuleAction] | None = None
    is_active: bool | None = None

    @field_validator("name")
    @classmethod
    def check_name(cls, value: str | None) -> str | None:
        if value is not None and len(value.strip()) < NAME_MIN_LENGTH:
            raise ValueError("Name must be at least 3 characters")
        return value

    @field_validator("trigger_condition")
    @classmethod
    def check_condition(cls, value: str | None) -> str | None:
        if value is not None and len(value.strip()) < CONDITION_MIN_LENGTH:
            raise ValueError("Please provide a detailed trigger condition")
        return value

    @field_validator("trigger_type", mode="before")
    @classmethod
    def check_trigger_type(cls, value: Any) -> Any:
        if value is None or isinstance(value, TriggerType):
            return value
        if not isinstance(value, str) or value not in TRIGGER_LABELS:
            raise ValueError("Trigger type must be one of: email, lead, property, deadline")
        return value

    @field_validator("actions")
    @classmethod
    def check_actions(cls, value: list[RuleAction] | None) -> list[RuleAction] | None:
        if value is not None and len(value) == 0:
            raise ValueError("Please add at least one action")
        return value


class RuleInput(RuleChanges):
    """Validated input for creating an automation rule."""

    name: str
    trigger_type: TriggerType
    trigger_condition: str
    actions: list[RuleAction]
    is_active: bool = True


def _raise_rule_errors(exc: ValidationError) -> None:
    errors: dict[str, str] = {}
    for error in exc.errors():
        field = ".".join(str(loc) for loc in error["loc"]) or "rule"
        message = error["msg"]
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        errors.setdefault(field, message)

    first = next(iter(errors.values()), "Invalid automation rule")
    raise RuleValidationError(first, details={"errors": errors}) from exc


def validate_rule(data: RuleInput | dict[str, Any]) -> RuleInput:
    """Validate rule creation input.

    Raises:
        RuleValidationError: If any field constraint fails
    """
    if isinstance(data, RuleInput):
        data = data.model_dump()
    try:
        return RuleInput.model_validate(data)
    except ValidationError as e:
        _raise_rule_errors(e)
        raise


def validate_rule_changes(data: RuleChanges | dict[str, Any]) -> RuleChanges:
    """Validate a partial rule update.

    Raises:
        RuleValidationError: If any provided field fails its constraint
    """
    if isinstance(data, RuleChanges):
        data = data.model_dump(exclude_unset=True)
    try:
        return RuleChanges.model_validate(data)
    except ValidationError as e:
        _raise_rule_errors(e)
        raise


def serialize_actions(actions: list[RuleAction]) -> list[dict[str, Any]]:
    """JSON-ready action list as stored on the rule."""
    return [
        {
            "id": action.id,
            "type": action.type.value,
            "details": action.details.model_dump(exclude_none=True),
        }
        for action in actions
    ]


# ============================================================================
# Presentation
# ============================================================================


def trigger_label(trigger_type: str) -> str:
    """Human-readable trigger category."""
    return TRIGGER_LABELS.get(trigger_type, trigger_type)


def summarize_action(action: dict[str, Any]) -> str:
    """One-line description of an action for rule listings."""
    details = action.get("details") or {}
    action_type = action.get("type")

    if action_type == ActionType.NOTIFICATION.value:
        message = details.get("message") or ""
        if len(message) > SUMMARY_MESSAGE_LENGTH:
            message = message[:SUMMARY_MESSAGE_LENGTH] + "..."
        return f"Send notification: {message}"
    if action_type == ActionType.EMAIL.value:
        return f"Send email: {details.get('subject') or ''}"
    if action_type == ActionType.TASK.value:
        return f"Create task: {details.get('task_title') or ''}"
    if action_type == ActionType.TAG.value:
        return f"Add tag: {details.get('tag_name') or ''}"
    return str(action_type)
