"""Health check endpoints."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter
from pydantic import BaseModel
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from realty_crm import __version__
from realty_crm.config import get_settings
from realty_crm.db.session import get_db_context


router = APIRouter()


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    timestamp: str
    version: str
    environment: str
    checks: dict[str, Any]


class ReadinessResponse(BaseModel):
    """Readiness check response."""

    status: str
    checks: dict[str, str]


@router.get("/health")
async def health_check() -> HealthResponse:
    """Perform health check.

    Components checked:
    - API: Always ok if reachable
    - Database: Connectivity test via SELECT 1
    - Email: Whether the configured provider has credentials
    """
    settings = get_settings()

    checks: dict[str, Any] = {
        "api": "ok",
        "database": await _check_database(),
        "email": _check_email(),
    }

    return HealthResponse(
        status=_determine_overall_status(checks),
        timestamp=datetime.now(timezone.utc).isoformat(),
        version=__version__,
        environment=settings.environment,
        checks=checks,
    )


@router.get("/ready")
async def readiness_check() -> ReadinessResponse:
    """Ready means the database answers."""
    db_status = await _check_database()
    checks = {"database": db_status if isinstance(db_status, str) else db_status["status"]}
    return ReadinessResponse(
        status="ready" if checks["database"] == "ok" else "not_ready",
        checks=checks,
    )


@router.get("/live")
async def liveness_check() -> dict[str, str]:
    """Check if the service is alive."""
    return {"status": "alive"}


async def _check_database() -> str | dict[str, Any]:
    """Check database connectivity.

    Returns:
        "ok" if connected, error details otherwise
    """
    try:
        async with get_db_context() as db:
            result = await db.execute(text("SELECT 1"))
            result.fetchone()
        return "ok"
    except (SQLAlchemyError, OSError) as e:
        return {
            "status": "error",
            "message": str(e),
        }


def _check_email() -> str:
    email = get_settings().integrations.email
    if email.provider == "mock":
        return "mock"
    if email.provider == "resend" and not email.resend.api_key:
        return "not_configured"
    return "ok"


def _determine_overall_status(checks: dict[str, Any]) -> str:
    """Determine overall health status from component checks.

    Returns:
        "healthy" - All components ok
        "degraded" - Some components have issues
        "unhealthy" - The database failed
    """
    statuses = [v if isinstance(v, str) else v.get("status", "error") for v in checks.values()]

    if statuses and checks.get("database") != "ok":
        return "unhealthy"

    if all(s == "ok" for s in statuses):
        return "healthy"

    return "degraded"
