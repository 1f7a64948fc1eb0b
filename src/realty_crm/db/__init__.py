"""Database module for the CRM.

Provides:
- SQLAlchemy ORM models for all data entities
- Async session management with dependency injection
- Repository pattern for data access
"""
from realty_crm.db.base import (
    Base,
    UUIDMixin,
    TimestampMixin,
    OwnedMixin,
    generate_uuid,
    utcnow,
    as_naive_utc,
)
from realty_crm.db.session import (
    get_engine,
    get_session_factory,
    get_db,
    get_db_context,
    init_db,
    close_db,
    create_test_engine,
    get_test_session_factory,
)

__all__ = [
    # Base and mixins
    "Base",
    "UUIDMixin",
    "TimestampMixin",
    "OwnedMixin",
    "generate_uuid",
    "utcnow",
    "as_naive_utc",
    # Session management
    "get_engine",
    "get_session_factory",
    "get_db",
    "get_db_context",
    "init_db",
    "close_db",
    # Testing
    "create_test_engine",
    "get_test_session_factory",
]
