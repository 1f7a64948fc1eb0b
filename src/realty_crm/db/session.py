"""Database Session Management for the CRM.

Provides:
- Async SQLAlchemy engine creation
- AsyncSession factory with dependency injection
- Database initialization and table creation
- Transaction context manager
"""
from __future__ import annotations

from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from realty_crm.config import get_settings
from realty_crm.core.logging_setup import get_logger
from realty_crm.db.base import Base

log = get_logger(__name__)

# Global engine and session factory (initialized lazily)
_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def get_engine() -> AsyncEngine:
    """Get or create the async database engine.

    Returns:
        AsyncEngine instance configured from settings.

    Connection pooling:
        - SQLite (dev): driver defaults, shared across threads
        - PostgreSQL (prod): pool_size=5, max_overflow=10, pool_timeout=30
    """
    global _engine

    if _engine is None:
        settings = get_settings()
        db_url = settings.database.url

        # Ensure data directory exists
        if "sqlite" in db_url and "///" in db_url:
            db_path = db_url.split("///")[1]
            if db_path != ":memory:":
                Path(db_path).parent.mkdir(parents=True, exist_ok=True)

        if "sqlite" in db_url:
            _engine = create_async_engine(
                db_url,
                echo=settings.database.echo,
                connect_args={"check_same_thread": False},
                pool_pre_ping=True,
            )
        else:
            _engine = create_async_engine(
                db_url,
                echo=settings.database.echo,
                pool_size=5,
                max_overflow=10,
                pool_timeout=30,
                pool_recycle=1800,
                pool_pre_ping=True,
            )

        log.info("Database engine created", dialect=_engine.dialect.name)

    return _engine


def _make_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Get or create the async session factory.

    Returns:
        Session factory configured for the application engine.
    """
    global _session_factory

    if _session_factory is None:
        _session_factory = _make_session_factory(get_engine())

    return _session_factory


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency for database sessions.

    Yields:
        AsyncSession that is committed on success and rolled back on error.
    """
    session_factory = get_session_factory()

    async with session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


@asynccontextmanager
async def get_db_context() -> AsyncGenerator[AsyncSession, None]:
    """Context manager for database sessions outside of FastAPI.

    Usage:
        async with get_db_context() as db:
            rules = await AutomationRuleRepository(db).list_rules()
    """
    session_factory = get_session_factory()

    async with session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def init_db() -> None:
    """Create all tables. Safe to call multiple times."""
    # Import models to register them with Base.metadata
    from realty_crm.db import models  # noqa: F401

    engine = get_engine()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    """Dispose of the engine during application shutdown."""
    global _engine, _session_factory

    if _engine is not None:
        await _engine.dispose()
        _engine = None
        _session_factory = None


# Testing utilities
async def create_test_engine(url: str = "sqlite+aiosqlite:///:memory:") -> AsyncEngine:
    """Create a test database engine with all tables created.

    Args:
        url: Database URL (default: in-memory SQLite)

    Returns:
        Configured AsyncEngine for testing.
    """
    from realty_crm.db import models  # noqa: F401

    engine = create_async_engine(url, echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    return engine


def get_test_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create a session factory bound to a test engine."""
    return _make_session_factory(engine)
