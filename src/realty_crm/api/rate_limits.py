"""Rate limiting configuration for API endpoints.

Provides rate limiting using slowapi to prevent abuse and ensure fair usage.
"""

from __future__ import annotations

from slowapi import Limiter
from slowapi.util import get_remote_address


# Rate limiter instance - shared across the application
limiter = Limiter(key_func=get_remote_address)


class RateLimits:
    """Rate limit constants for different endpoint types."""

    # Standard read operations
    READ = "60/minute"

    # Write operations (create, update, toggle, delete)
    WRITE = "30/minute"

    # Outbound mail (each request may hit an SMTP server or paid API)
    MAIL = "10/minute"

    # OAuth linking and credential tests
    SENSITIVE = "10/minute"

    # Analytics widgets (full-table reductions)
    ANALYTICS = "20/minute"
