"""Tests for dashboard analytics."""

from __future__ import annotations

from datetime import date, datetime
from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest
from sqlalchemy.exc import OperationalError

from realty_crm.core.exceptions import AnalyticsError
from realty_crm.db.repositories.analytics import (
    AnalyticsService,
    summarize_dashboard,
    summarize_leads,
    summarize_overview,
    summarize_tasks,
    summarize_whatsapp,
)

USER = "user-1"
TODAY = date(2024, 6, 15)


def message(direction, delivery_status=None):
    return SimpleNamespace(
        type="whatsapp",
        direction=direction,
        delivery_status=delivery_status,
        created_at=datetime(2024, 6, 1),
    )


# ============================================================================
# Reducer Tests
# ============================================================================


class TestReducers:
    """Pure reducers over fetched rows."""

    def test_dashboard_on_empty_data(self):
        summary = summarize_dashboard([], [], [], [])

        assert summary["total_properties"] == 0
        assert summary["total_value"] == 0.0
        assert summary["completion_rate"] == 0

    def test_whatsapp_rates_zero_guarded(self):
        metrics = summarize_whatsapp([])

        assert metrics["read_rate"] == 0
        assert metrics["failure_rate"] == 0
        assert metrics["response_rate"] == 0

    def test_whatsapp_funnel(self):
        messages = [
            message("sent", "read"),
            message("sent", "delivered"),
            message("sent", "delivered"),
            message("sent", "failed"),
            message("received"),
        ]

        metrics = summarize_whatsapp(messages)

        assert metrics["sent"] == 4
        assert metrics["delivered"] == 3
        assert metrics["read"] == 1
        assert metrics["read_rate"] == 33
        assert metrics["failure_rate"] == 25
        assert metrics["response_rate"] == 25

    def test_leads_conversion(self):
        leads = [
            SimpleNamespace(status="hot", source="web", response_time_minutes=10.0),
            SimpleNamespace(status="cold", source="web", response_time_minutes=None),
            SimpleNamespace(status="warm", source="referral", response_time_minutes=20.0),
        ]

        metrics = summarize_leads(leads)

        assert metrics["conversion"] == {"rate": 33, "avg_response_time": 15.0}
        assert metrics["sources"] == [
            {"name": "web", "count": 2},
            {"name": "referral", "count": 1},
        ]

    def test_overview_revenue_uses_sold_month(self):
        properties = [
            SimpleNamespace(
                status="sold",
                price=250000.0,
                created_at=datetime(2023, 1, 5),
                sold_at=datetime(2024, 5, 20),
            ),
            SimpleNamespace(
                status="active",
                price=99000.0,
                created_at=datetime(2024, 6, 2),
                sold_at=None,
            ),
        ]

        overview = summarize_overview([], properties, [], TODAY)

        assert overview["labels"][-1] == "Jun 2024"
        assert overview["revenue"] == [0, 0, 0, 0, 250000.0, 0]
        assert overview["properties"] == [0, 0, 0, 0, 0, 1]

    def test_tasks_completion_and_overdue(self):
        now = datetime(2024, 6, 15, 12)
        tasks = [
            SimpleNamespace(status="completed", priority="high", due_date=datetime(2024, 6, 15, 9)),
            SimpleNamespace(status="pending", priority="low", due_date=datetime(2024, 6, 15, 10)),
            SimpleNamespace(status="pending", priority="low", due_date=None),
        ]

        metrics = summarize_tasks(tasks, now)

        assert metrics["completion_rate"] == 33
        assert metrics["completion"][-1] == {"date": "2024-06-15", "rate": 50}
        assert metrics["completion"][0]["rate"] == 0
        assert metrics["overdue"] == 1


# ============================================================================
# Service Tests (Using Real Database Fixtures)
# ============================================================================


class TestAnalyticsService:
    """AnalyticsService against the in-memory database."""

    @pytest.mark.asyncio
    async def test_dashboard_summary(self, db_session):
        from realty_crm.db.models.crm import CommunicationModel, LeadModel, PropertyModel, TaskModel

        db_session.add_all(
            [
                PropertyModel(user_id=USER, title="Loft", price=300000.0),
                PropertyModel(user_id=USER, title="Villa", price=700000.0),
                PropertyModel(user_id="other", title="Shed", price=1.0),
                LeadModel(user_id=USER, name="Ann", status="hot"),
                LeadModel(user_id=USER, name="Ben", status="warm"),
                CommunicationModel(user_id=USER, type="email", direction="sent"),
                CommunicationModel(user_id=USER, type="whatsapp", direction="received"),
                TaskModel(user_id=USER, title="Call", status="completed"),
                TaskModel(user_id=USER, title="Visit"),
            ]
        )
        await db_session.commit()

        summary = await AnalyticsService(db_session).get_dashboard_summary(user_id=USER)

        assert summary["total_properties"] == 2
        assert summary["total_value"] == 1000000.0
        assert summary["hot_leads"] == 1
        assert summary["warm_leads"] == 1
        assert summary["cold_leads"] == 0
        assert summary["total_emails"] == 1
        assert summary["whatsapp_received"] == 1
        assert summary["pending_tasks"] == 1
        assert summary["completion_rate"] == 50

    @pytest.mark.asyncio
    async def test_monthly_stats_has_twelve_entries(self, db_session):
        from realty_crm.db.models.crm import LeadModel, PropertyModel

        db_session.add_all(
            [
                PropertyModel(user_id=USER, title="Loft", price=100.0, created_at=datetime(2024, 6, 1)),
                PropertyModel(user_id=USER, title="Flat", price=50.0, created_at=datetime(2023, 7, 1)),
                PropertyModel(user_id=USER, title="Old", price=10.0, created_at=datetime(2023, 6, 1)),
                LeadModel(user_id=USER, name="Ann", created_at=datetime(2024, 6, 3)),
            ]
        )
        await db_session.commit()

        stats = await AnalyticsService(db_session).get_monthly_stats(user_id=USER, today=TODAY)

        assert len(stats) == 12
        assert stats[0] == {"month": "Jul", "properties": 1, "leads": 0, "value": 50.0}
        assert stats[-1] == {"month": "Jun", "properties": 1, "leads": 1, "value": 100.0}

    @pytest.mark.asyncio
    async def test_whatsapp_since_accepts_aware_datetime(self, db_session):
        from datetime import timezone

        from realty_crm.db.models.crm import CommunicationModel

        db_session.add_all(
            [
                CommunicationModel(
                    user_id=USER,
                    type="whatsapp",
                    direction="sent",
                    delivery_status="read",
                    created_at=datetime(2024, 6, 10),
                ),
                CommunicationModel(
                    user_id=USER,
                    type="whatsapp",
                    direction="sent",
                    created_at=datetime(2024, 5, 1),
                ),
            ]
        )
        await db_session.commit()

        metrics = await AnalyticsService(db_session).get_whatsapp_metrics(
            user_id=USER,
            since=datetime(2024, 6, 1, tzinfo=timezone.utc),
        )

        assert metrics["sent"] == 1
        assert metrics["read_rate"] == 100

    @pytest.mark.asyncio
    async def test_failed_fetch_raises_analytics_error(self, db_session):
        service = AnalyticsService(db_session)
        service.leads.get_multi = AsyncMock(
            side_effect=OperationalError("SELECT", {}, Exception("database is locked"))
        )

        with pytest.raises(AnalyticsError) as exc_info:
            await service.get_lead_metrics(user_id=USER)

        assert exc_info.value.details == {"widget": "leads"}
        assert isinstance(exc_info.value.cause, OperationalError)
