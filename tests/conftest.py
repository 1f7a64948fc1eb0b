"""Pytest configuration and fixtures for Realty CRM tests."""

from __future__ import annotations

import asyncio
import os
import sys
from pathlib import Path
from typing import AsyncGenerator

import pytest
import pytest_asyncio

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

# Set test environment
os.environ["CRM_ENV"] = "test"
os.environ["CRM_DEBUG"] = "true"
os.environ["CRM_DATABASE__URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["CRM_SECURITY__JWT_SECRET_KEY"] = "test-secret-key-for-realty-crm-tests"
os.environ["CRM_INTEGRATIONS__EMAIL__PROVIDER"] = "mock"

TEST_USER_ID = "user-1"


@pytest.fixture
def cipher():
    """Credential cipher with a throwaway key."""
    from cryptography.fernet import Fernet

    from realty_crm.core.crypto import CredentialCipher

    return CredentialCipher(Fernet.generate_key())


# ============================================================================
# Async Database Fixtures
# ============================================================================


@pytest_asyncio.fixture(scope="function")
async def db_engine():
    """Create test database engine with in-memory SQLite.

    Creates a fresh database for each test function.
    """
    from realty_crm.db import create_test_engine

    engine = await create_test_engine()

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def db_session(db_engine) -> AsyncGenerator:
    """Create test database session.

    Provides a session that rolls back after each test.
    """
    from realty_crm.db import get_test_session_factory

    async with get_test_session_factory(db_engine)() as session:
        yield session
        await session.rollback()


@pytest_asyncio.fixture
async def rule_repository(db_session):
    """Create AutomationRuleRepository instance for testing."""
    from realty_crm.db.repositories.automation import AutomationRuleRepository

    return AutomationRuleRepository(db_session)


@pytest_asyncio.fixture
async def alert_repository(db_session):
    """Create DeadlineAlertRepository instance for testing."""
    from realty_crm.db.repositories.automation import DeadlineAlertRepository

    return DeadlineAlertRepository(db_session)


@pytest_asyncio.fixture
async def lead_repository(db_session):
    """Create LeadRepository instance for testing."""
    from realty_crm.db.repositories.crm import LeadRepository

    return LeadRepository(db_session)


@pytest_asyncio.fixture
async def task_repository(db_session):
    """Create TaskRepository instance for testing."""
    from realty_crm.db.repositories.crm import TaskRepository

    return TaskRepository(db_session)


@pytest_asyncio.fixture
async def account_service(db_session, cipher):
    """Create EmailAccountService instance for testing."""
    from realty_crm.services.accounts import EmailAccountService

    return EmailAccountService(db_session, cipher)


@pytest_asyncio.fixture
async def sample_account(db_session, account_service):
    """Stored SMTP account owned by the test user."""
    from realty_crm.services.accounts import EmailAccountInput

    account = await account_service.create_account(
        EmailAccountInput(
            email="agent@example.com",
            display_name="Jane Agent",
            smtp_host="smtp.example.com",
            smtp_port=587,
            password="s3cret",
        ),
        user_id=TEST_USER_ID,
    )
    await db_session.commit()
    return account


@pytest.fixture
def vip_rule_data():
    """Rule input for the lead follow-up scenario."""
    return {
        "name": "VIP Follow-up",
        "description": "Ping the agent when a hot lead goes quiet",
        "trigger_type": "lead",
        "trigger_condition": "lead opens 3 emails without reply",
        "actions": [
            {"type": "notification", "details": {"message": "VIP lead needs attention"}},
        ],
    }


# ============================================================================
# API Fixtures
# ============================================================================


async def _create_schema(url: str) -> None:
    from realty_crm.db import create_test_engine

    engine = await create_test_engine(url)
    await engine.dispose()


@pytest.fixture
def api_db_url(tmp_path):
    """File-backed SQLite database with all tables created.

    TestClient runs each request on its own event loop, so API tests use a
    file database and a NullPool engine instead of the shared in-memory one.
    """
    url = f"sqlite+aiosqlite:///{tmp_path / 'api.db'}"
    asyncio.run(_create_schema(url))
    return url


@pytest.fixture
def api_session_factory(api_db_url):
    """Session factory for the API test database."""
    from sqlalchemy.ext.asyncio import create_async_engine
    from sqlalchemy.pool import NullPool

    from realty_crm.db import get_test_session_factory

    engine = create_async_engine(api_db_url, poolclass=NullPool)
    return get_test_session_factory(engine)


@pytest.fixture
def app(api_session_factory, cipher):
    """Application with database, auth and cipher overridden."""
    from realty_crm.api.auth import AuthenticatedUser, get_current_user
    from realty_crm.api.mail import get_credential_cipher
    from realty_crm.api.rate_limits import limiter
    from realty_crm.db import get_db
    from realty_crm.main import create_app

    async def override_get_db():
        async with api_session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    application = create_app()
    application.dependency_overrides[get_db] = override_get_db
    application.dependency_overrides[get_current_user] = lambda: AuthenticatedUser(id=TEST_USER_ID)
    application.dependency_overrides[get_credential_cipher] = lambda: cipher

    limiter.enabled = False
    yield application
    limiter.enabled = True


@pytest.fixture
def client(app):
    """Create test client without entering the lifespan."""
    from fastapi.testclient import TestClient

    return TestClient(app, raise_server_exceptions=False)


@pytest.fixture
def run_db(api_session_factory):
    """Run a coroutine function against a fresh API-database session."""

    def run(fn):
        async def go():
            async with api_session_factory() as session:
                result = await fn(session)
                await session.commit()
                return result

        return asyncio.run(go())

    return run
