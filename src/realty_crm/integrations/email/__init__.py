"""Email Gateway Integration Module.

Supported providers:
- smtp: Per-account SMTP (works with Gmail, Office 365, etc.)
- resend: Resend HTTP API
- mock: For development and testing
"""

from realty_crm.integrations.email.base import (
    ConnectionCheck,
    EmailAttachment,
    EmailGateway,
    EmailMessage,
    EmailResult,
    EmailStatus,
    MockEmailGateway,
)
from realty_crm.integrations.email.factory import (
    build_account_gateway,
    get_resend_gateway,
)
from realty_crm.integrations.email.resend import ResendEmailGateway
from realty_crm.integrations.email.smtp import SMTPEmailGateway

__all__ = [
    # Base classes
    "ConnectionCheck",
    "EmailAttachment",
    "EmailGateway",
    "EmailMessage",
    "EmailResult",
    "EmailStatus",
    "MockEmailGateway",
    # Provider gateways
    "ResendEmailGateway",
    "SMTPEmailGateway",
    # Factory
    "build_account_gateway",
    "get_resend_gateway",
]
