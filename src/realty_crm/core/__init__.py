"""Core utilities: logging, exceptions and credential encryption."""

from realty_crm.core.exceptions import (
    CRMError,
    DatabaseError,
    RecordNotFoundError,
    BusinessError,
    ValidationError,
    RuleValidationError,
    ConfirmationRequiredError,
    IntegrationError,
    EmailDeliveryError,
    EmailAccountError,
    OAuthExchangeError,
    CredentialError,
    AnalyticsError,
    wrap_exception,
)
from realty_crm.core.logging_setup import (
    setup_logging,
    get_logger,
    bind_request_context,
    clear_request_context,
)

__all__ = [
    # Exceptions
    "CRMError",
    "DatabaseError",
    "RecordNotFoundError",
    "BusinessError",
    "ValidationError",
    "RuleValidationError",
    "ConfirmationRequiredError",
    "IntegrationError",
    "EmailDeliveryError",
    "EmailAccountError",
    "OAuthExchangeError",
    "CredentialError",
    "AnalyticsError",
    "wrap_exception",
    # Logging
    "setup_logging",
    "get_logger",
    "bind_request_context",
    "clear_request_context",
]
