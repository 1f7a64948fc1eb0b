"""Tests for automation rule validation and presentation helpers."""

from __future__ import annotations

import pytest

from realty_crm.core.exceptions import RuleValidationError
from realty_crm.services.rules import (
    RuleInput,
    TriggerType,
    summarize_action,
    trigger_label,
    validate_rule,
    validate_rule_changes,
)


def rule_data(**overrides):
    data = {
        "name": "New listing alert",
        "trigger_type": "property",
        "trigger_condition": "price drops below asking",
        "actions": [{"type": "email", "details": {"subject": "Price drop"}}],
    }
    data.update(overrides)
    return data


class TestValidateRule:
    """Tests for rule creation validation."""

    def test_valid_rule(self):
        rule = validate_rule(rule_data())

        assert isinstance(rule, RuleInput)
        assert rule.trigger_type is TriggerType.PROPERTY
        assert rule.is_active is True
        assert rule.actions[0].id

    def test_accepts_validated_input(self):
        rule = validate_rule(validate_rule(rule_data()))

        assert rule.name == "New listing alert"

    def test_name_with_only_whitespace_padding_rejected(self):
        with pytest.raises(RuleValidationError) as exc_info:
            validate_rule(rule_data(name="  ab  "))

        assert exc_info.value.errors == {"name": "Name must be at least 3 characters"}
        assert exc_info.value.status_code == 422

    def test_missing_fields_reported_per_field(self):
        with pytest.raises(RuleValidationError) as exc_info:
            validate_rule({"name": "Lonely"})

        assert {"trigger_type", "trigger_condition", "actions"} <= set(exc_info.value.errors)

    def test_unknown_action_type_rejected(self):
        with pytest.raises(RuleValidationError) as exc_info:
            validate_rule(rule_data(actions=[{"type": "sms"}]))

        assert "actions.0.type" in exc_info.value.errors

    def test_extra_action_details_preserved(self):
        rule = validate_rule(
            rule_data(actions=[{"type": "tag", "details": {"tag_name": "vip", "color": "gold"}}])
        )

        assert rule.actions[0].details.model_dump(exclude_none=True) == {
            "tag_name": "vip",
            "color": "gold",
        }


class TestValidateRuleChanges:
    """Tests for partial update validation."""

    def test_only_provided_fields_checked(self):
        changes = validate_rule_changes({"description": "Updated"})

        assert changes.model_dump(exclude_unset=True) == {"description": "Updated"}

    def test_invalid_trigger_type(self):
        with pytest.raises(RuleValidationError) as exc_info:
            validate_rule_changes({"trigger_type": "calendar"})

        assert exc_info.value.message == (
            "Trigger type must be one of: email, lead, property, deadline"
        )


class TestPresentation:
    """Tests for labels and action summaries."""

    @pytest.mark.parametrize(
        "trigger_type,label",
        [
            ("email", "Email Interaction"),
            ("lead", "Lead Activity"),
            ("property", "Property Update"),
            ("deadline", "Deadline"),
            ("custom", "custom"),
        ],
    )
    def test_trigger_label(self, trigger_type, label):
        assert trigger_label(trigger_type) == label

    def test_notification_summary_truncated(self):
        action = {"type": "notification", "details": {"message": "x" * 45}}

        assert summarize_action(action) == "Send notification: " + "x" * 40 + "..."

    def test_short_notification_not_truncated(self):
        action = {"type": "notification", "details": {"message": "Call now"}}

        assert summarize_action(action) == "Send notification: Call now"

    @pytest.mark.parametrize(
        "action,summary",
        [
            ({"type": "email", "details": {"subject": "Hello"}}, "Send email: Hello"),
            ({"type": "task", "details": {"task_title": "Visit"}}, "Create task: Visit"),
            ({"type": "tag", "details": {"tag_name": "vip"}}, "Add tag: vip"),
            ({"type": "task"}, "Create task: "),
        ],
    )
    def test_other_summaries(self, action, summary):
        assert summarize_action(action) == summary
