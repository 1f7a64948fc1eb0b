"""Automation Repositories.

Data access for automation rules and deadline alerts. Rule input is
validated here, at the storage boundary, so invalid rules cannot be
written by any caller.
"""
from __future__ import annotations

from datetime import date, datetime, time, timedelta
from typing import Any, Sequence
from uuid import UUID

from sqlalchemy import and_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from realty_crm.core.logging_setup import get_logger
from realty_crm.db.models.automation import AutomationRuleModel, DeadlineAlertModel
from realty_crm.db.repositories.base import BaseRepository
from realty_crm.services.rules import (
    RuleChanges,
    RuleInput,
    serialize_actions,
    validate_rule,
    validate_rule_changes,
)

log = get_logger(__name__)

# Columns an update may not null out
_REQUIRED_RULE_FIELDS = ("name", "trigger_type", "trigger_condition", "actions", "is_active")

PRIORITY_ORDER: dict[str, int] = {"high": 0, "medium": 1, "low": 2}


class AutomationRuleRepository(BaseRepository[AutomationRuleModel]):
    """Repository for automation rules."""

    def __init__(self, session: AsyncSession):
        super().__init__(AutomationRuleModel, session)

    async def create_rule(
        self,
        data: RuleInput | dict[str, Any],
        *,
        user_id: str | None = None,
    ) -> AutomationRuleModel:
        """Validate and persist a new rule.

        Args:
            data: Rule fields (name, trigger_type, trigger_condition, actions, ...)
            user_id: Owner of the rule

        Returns:
            Persisted rule with generated id

        Raises:
            RuleValidationError: If any constraint fails; nothing is written
        """
        rule_in = validate_rule(data)

        rule = AutomationRuleModel(
            user_id=user_id,
            name=rule_in.name,
            description=rule_in.description,
            trigger_type=rule_in.trigger_type.value,
            trigger_condition=rule_in.trigger_condition,
            actions=serialize_actions(rule_in.actions),
            is_active=rule_in.is_active,
        )
        rule = await self.create(rule)

        log.info(
            "Automation rule created",
            rule_id=str(rule.id),
            trigger_type=rule.trigger_type,
            actions=len(rule.actions),
        )
        return rule

    async def update_rule(
        self,
        id: UUID | str,
        changes: RuleChanges | dict[str, Any],
        *,
        user_id: str | None = None,
    ) -> AutomationRuleModel:
        """Apply a validated partial update; refreshes updated_at.

        Raises:
            RuleValidationError: If a provided field fails its constraint
            RecordNotFoundError: If the rule does not exist
        """
        validated = validate_rule_changes(changes)
        values = validated.model_dump(exclude_unset=True)

        for field in _REQUIRED_RULE_FIELDS:
            if field in values and values[field] is None:
                del values[field]
        if "trigger_type" in values:
            values["trigger_type"] = validated.trigger_type.value
        if "actions" in values:
            values["actions"] = serialize_actions(validated.actions)

        rule = await self.get_or_raise(id, user_id=user_id)
        for field, value in values.items():
            setattr(rule, field, value)

        await self._session.flush()
        await self._session.refresh(rule)

        log.info("Automation rule updated", rule_id=str(rule.id), fields=sorted(values))
        return rule

    async def toggle_rule_status(
        self,
        id: UUID | str,
        active: bool,
        *,
        user_id: str | None = None,
    ) -> AutomationRuleModel:
        """Set a rule's active flag; no other field changes.

        updated_at is carried over explicitly so the flag write does not
        trigger the column's onupdate.

        Raises:
            RecordNotFoundError: If the rule does not exist
        """
        rule = await self.get_or_raise(id, user_id=user_id)

        stmt = (
            update(AutomationRuleModel)
            .where(AutomationRuleModel.id == rule.id)
            .values(is_active=active, updated_at=AutomationRuleModel.updated_at)
            .execution_options(synchronize_session=False)
        )
        await self._session.execute(stmt)
        await self._session.refresh(rule)

        log.info("Automation rule toggled", rule_id=str(rule.id), is_active=active)
        return rule

    async def delete_rule(self, id: UUID | str, *, user_id: str | None = None) -> bool:
        """Delete a rule. Unknown ids are a no-op.

        Returns:
            True if a rule was removed, False if none matched
        """
        deleted = await self.delete(id, user_id=user_id)
        if deleted:
            log.info("Automation rule deleted", rule_id=str(id))
        else:
            log.debug("Automation rule not found for delete", rule_id=str(id))
        return deleted

    async def list_rules(
        self,
        *,
        user_id: str | None = None,
        active_only: bool = False,
        trigger_type: str | None = None,
    ) -> Sequence[AutomationRuleModel]:
        """All rules for a user, newest first.

        Args:
            user_id: Owner to list rules for
            active_only: Only rules with is_active set
            trigger_type: Optional trigger category filter
        """
        return await self.find_many(
            user_id=user_id,
            is_active=True if active_only else None,
            trigger_type=trigger_type,
        )


class DeadlineAlertRepository(BaseRepository[DeadlineAlertModel]):
    """Repository for deadline alerts."""

    def __init__(self, session: AsyncSession):
        super().__init__(DeadlineAlertModel, session)

    async def get_for_date(
        self,
        day: date,
        *,
        user_id: str | None = None,
    ) -> list[DeadlineAlertModel]:
        """Alerts due on a calendar day.

        Sorted pending first, then by priority (high, medium, low),
        then by due time.
        """
        start = datetime.combine(day, time.min)
        end = start + timedelta(days=1)

        stmt = self._scoped(
            select(DeadlineAlertModel).where(
                and_(
                    DeadlineAlertModel.due_date >= start,
                    DeadlineAlertModel.due_date < end,
                )
            ),
            user_id,
        )
        result = await self._session.execute(stmt)
        return sort_alerts(result.scalars().all())

    async def set_status(
        self,
        id: UUID | str,
        status: str,
        *,
        user_id: str | None = None,
    ) -> DeadlineAlertModel:
        """Move an alert to acknowledged or resolved.

        Raises:
            RecordNotFoundError: If the alert does not exist
        """
        alert = await self.get_or_raise(id, user_id=user_id)
        alert.status = status
        await self._session.flush()
        await self._session.refresh(alert)

        log.info("Deadline alert updated", alert_id=str(alert.id), status=status)
        return alert


def sort_alerts(alerts: Sequence[DeadlineAlertModel]) -> list[DeadlineAlertModel]:
    """Pending alerts first, then high before medium before low priority."""
    return sorted(
        alerts,
        key=lambda a: (
            0 if a.status == "pending" else 1,
            PRIORITY_ORDER.get(a.priority, len(PRIORITY_ORDER)),
            a.due_date,
        ),
    )
