"""Realty CRM Exception Hierarchy.

Provides structured error handling with context preservation
and proper HTTP status code mapping.
"""

from __future__ import annotations

from typing import Any


class CRMError(Exception):
    """Base exception for all Realty CRM errors.

    All custom exceptions should inherit from this class.
    Provides:
    - Structured error context
    - HTTP status code mapping
    - Logging-friendly representation
    """

    status_code: int = 500
    error_code: str = "CRM_ERROR"

    def __init__(
        self,
        message: str,
        *,
        details: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        """Initialize the exception.

        Args:
            message: Human-readable error message
            details: Additional context for debugging
            cause: Original exception if wrapping
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.cause = cause

    def to_dict(self) -> dict[str, Any]:
        """Convert to API-friendly dictionary."""
        result: dict[str, Any] = {
            "error": self.error_code,
            "message": self.message,
        }
        if self.details:
            result["details"] = self.details
        if self.cause:
            result["cause"] = str(self.cause)
        return result

    def __str__(self) -> str:
        """String representation for logging."""
        parts = [f"{self.error_code}: {self.message}"]
        if self.details:
            parts.append(f"details={self.details}")
        if self.cause:
            parts.append(f"cause={self.cause}")
        return " | ".join(parts)


# =============================================================================
# Database Errors
# =============================================================================


class DatabaseError(CRMError):
    """Base class for database-related errors."""

    status_code = 503
    error_code = "DATABASE_ERROR"


class RecordNotFoundError(DatabaseError):
    """Requested record not found."""

    status_code = 404
    error_code = "RECORD_NOT_FOUND"


# =============================================================================
# Business Logic Errors
# =============================================================================


class BusinessError(CRMError):
    """Base class for business logic errors."""

    status_code = 400
    error_code = "BUSINESS_ERROR"


class ValidationError(BusinessError):
    """Input validation failed."""

    status_code = 422
    error_code = "VALIDATION_ERROR"


class RuleValidationError(ValidationError):
    """Automation rule input violates a field constraint.

    ``details["errors"]`` maps field names to the first failing message.
    """

    error_code = "RULE_VALIDATION_ERROR"

    @property
    def errors(self) -> dict[str, str]:
        return self.details.get("errors", {})


class ConfirmationRequiredError(BusinessError):
    """Destructive operation invoked without explicit confirmation."""

    status_code = 409
    error_code = "CONFIRMATION_REQUIRED"


# =============================================================================
# Integration Errors
# =============================================================================


class IntegrationError(CRMError):
    """Base class for external integration errors."""

    status_code = 502
    error_code = "INTEGRATION_ERROR"


class EmailDeliveryError(IntegrationError):
    """Mail could not be handed to the SMTP server or mail API."""

    status_code = 400
    error_code = "EMAIL_DELIVERY_ERROR"


class EmailAccountError(IntegrationError):
    """Stored email account is missing, inactive or unusable."""

    status_code = 400
    error_code = "EMAIL_ACCOUNT_ERROR"


class OAuthExchangeError(IntegrationError):
    """Authorization code could not be exchanged for tokens."""

    error_code = "OAUTH_EXCHANGE_ERROR"


class CredentialError(CRMError):
    """Stored credential could not be encrypted or decrypted."""

    status_code = 500
    error_code = "CREDENTIAL_ERROR"


# =============================================================================
# Analytics Errors
# =============================================================================


class AnalyticsError(CRMError):
    """Aggregation aborted because an underlying fetch failed."""

    status_code = 503
    error_code = "ANALYTICS_ERROR"


# =============================================================================
# Utility Functions
# =============================================================================


def wrap_exception(
    exc: Exception,
    wrapper_class: type[CRMError] = CRMError,
    message: str | None = None,
    **details: Any,
) -> CRMError:
    """Wrap a generic exception in a CRMError.

    Args:
        exc: Original exception to wrap
        wrapper_class: CRMError subclass to use
        message: Override message (defaults to str(exc))
        **details: Additional context details

    Returns:
        Wrapped CRMError instance
    """
    return wrapper_class(
        message=message or str(exc),
        details=details or None,
        cause=exc,
    )
