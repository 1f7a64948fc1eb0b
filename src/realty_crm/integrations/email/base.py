"""Base Email Gateway Interface.

Defines the abstract interface for email gateways.
All email implementations must implement this interface.
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any
from uuid import uuid4

from realty_crm.core.logging_setup import get_logger

log = get_logger(__name__)

EMAIL_PATTERN = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")


class EmailStatus(str, Enum):
    """Status of an email message."""

    PENDING = "pending"
    QUEUED = "queued"
    SENT = "sent"
    FAILED = "failed"
    UNKNOWN = "unknown"


@dataclass
class EmailAttachment:
    """Email attachment."""

    filename: str
    content: bytes
    content_type: str = "application/octet-stream"


@dataclass
class EmailMessage:
    """Email message to send."""

    to: str | list[str]
    subject: str
    body_text: str | None = None
    body_html: str | None = None
    from_email: str | None = None
    from_name: str | None = None
    reply_to: str | None = None
    attachments: list[EmailAttachment] = field(default_factory=list)

    def __post_init__(self):
        """Normalize recipient list."""
        if isinstance(self.to, str):
            self.to = [self.to]

    @property
    def recipients(self) -> list[str]:
        return list(self.to)


@dataclass
class EmailResult:
    """Result of an email send operation."""

    success: bool
    message_id: str | None = None
    status: EmailStatus = EmailStatus.UNKNOWN
    provider: str = ""
    error_message: str | None = None
    error_code: str | None = None
    sent_at: datetime | None = None
    recipients_accepted: int = 0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "success": self.success,
            "message_id": self.message_id,
            "status": self.status.value,
            "provider": self.provider,
            "error_message": self.error_message,
            "error_code": self.error_code,
            "sent_at": self.sent_at.isoformat() if self.sent_at else None,
            "recipients_accepted": self.recipients_accepted,
        }


@dataclass
class ConnectionCheck:
    """Outcome of a dry-run connection/credential check."""

    success: bool
    message: str
    error_code: str | None = None


class EmailGateway(ABC):
    """Abstract base class for email gateways.

    Implementations provide:
    - send: Send a single email
    - test_connection: Verify connectivity and credentials without sending
    """

    provider: str = "base"

    @abstractmethod
    async def send(self, message: EmailMessage) -> EmailResult:
        """Send a single email message.

        Args:
            message: Email message to send

        Returns:
            Result with success status and message ID
        """

    @abstractmethod
    async def test_connection(self) -> ConnectionCheck:
        """Check connectivity/credentials without sending anything."""

    async def close(self) -> None:
        """Release network resources held by the gateway."""

    def validate_email(self, email: str) -> bool:
        """Basic email address format check."""
        return bool(EMAIL_PATTERN.match(email))

    def validate_message(self, message: EmailMessage) -> list[str]:
        """Validate email message.

        Returns:
            List of validation errors (empty if valid)
        """
        errors = []

        if not message.to:
            errors.append("At least one recipient is required")
        else:
            for email in message.to:
                if not self.validate_email(email):
                    errors.append(f"Invalid recipient email: {email}")

        if not message.subject:
            errors.append("Subject is required")

        return errors

    def _failed(self, error_message: str, error_code: str | None = None) -> EmailResult:
        return EmailResult(
            success=False,
            status=EmailStatus.FAILED,
            provider=self.provider,
            error_message=error_message,
            error_code=error_code,
        )


class MockEmailGateway(EmailGateway):
    """Mock email gateway for development and testing."""

    provider = "mock"

    def __init__(self):
        self._sent_messages: list[dict[str, Any]] = []

    async def send(self, message: EmailMessage) -> EmailResult:
        """Mock send - logs message and returns success."""
        errors = self.validate_message(message)
        if errors:
            return self._failed("; ".join(errors))

        message_id = str(uuid4())
        log.info("Mock email sent", message_id=message_id, to=message.to, subject=message.subject)

        self._sent_messages.append(
            {
                "message_id": message_id,
                "to": message.to,
                "subject": message.subject,
                "body_text": message.body_text,
                "body_html": message.body_html,
                "sent_at": datetime.now(),
            }
        )

        return EmailResult(
            success=True,
            message_id=message_id,
            status=EmailStatus.SENT,
            provider=self.provider,
            sent_at=datetime.now(),
            recipients_accepted=len(message.recipients),
        )

    async def test_connection(self) -> ConnectionCheck:
        return ConnectionCheck(success=True, message="Connection test successful")

    def get_sent_messages(self) -> list[dict[str, Any]]:
        """Get list of all sent messages (for testing)."""
        return self._sent_messages.copy()

    def clear_sent_messages(self) -> None:
        """Clear sent messages list (for testing)."""
        self._sent_messages.clear()
