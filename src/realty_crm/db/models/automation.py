"""Automation ORM Models.

Contains:
- AutomationRuleModel: trigger type, free-text condition, ordered actions
- DeadlineAlertModel: dated reminders surfaced by deadline rules
"""
from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, Boolean, DateTime, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from realty_crm.db.base import Base, OwnedMixin, TimestampMixin, UUIDMixin


class AutomationRuleModel(Base, UUIDMixin, TimestampMixin, OwnedMixin):
    """Automation rule ORM model.

    A rule is descriptive data only: the trigger condition is free text
    and nothing evaluates it. Actions are owned by the rule and stored
    inline as an ordered JSON list of ``{id, type, details}`` objects.
    """

    __tablename__ = "automation_rules"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    trigger_type: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        index=True,
        comment="email, lead, property, deadline",
    )
    trigger_condition: Mapped[str] = mapped_column(Text, nullable=False)

    actions: Mapped[list[dict[str, Any]]] = mapped_column(
        JSON,
        nullable=False,
        default=list,
    )

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    __table_args__ = (
        Index("ix_automation_rules_user_created", "user_id", "created_at"),
    )

    @property
    def action_types(self) -> list[str]:
        """Types of the rule's actions, in order."""
        return [action.get("type", "") for action in self.actions or []]

    def to_dict(self) -> dict[str, Any]:
        """Convert model to dictionary."""
        return {
            "id": str(self.id),
            "user_id": self.user_id,
            "name": self.name,
            "description": self.description,
            "trigger_type": self.trigger_type,
            "trigger_condition": self.trigger_condition,
            "actions": list(self.actions or []),
            "is_active": self.is_active,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


class DeadlineAlertModel(Base, UUIDMixin, TimestampMixin, OwnedMixin):
    """Deadline alert ORM model (payments, contracts, follow-ups)."""

    __tablename__ = "deadline_alerts"

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    due_date: Mapped[datetime] = mapped_column(DateTime, nullable=False, index=True)

    category: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default="other",
        comment="payment, contract, follow-up, other",
    )
    priority: Mapped[str] = mapped_column(
        String(10),
        nullable=False,
        default="medium",
        comment="low, medium, high",
    )
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default="pending",
        index=True,
        comment="pending, acknowledged, resolved",
    )
