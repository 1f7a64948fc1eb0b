"""Resend Email Gateway Implementation.

Transactional sending through the Resend HTTP API.

API Documentation: https://resend.com/docs/api-reference/emails/send-email
"""

from __future__ import annotations

import base64
from datetime import datetime
from email.utils import formataddr
from typing import Any

import httpx

from realty_crm.core.logging_setup import get_logger
from realty_crm.integrations.email.base import (
    ConnectionCheck,
    EmailGateway,
    EmailMessage,
    EmailResult,
    EmailStatus,
)

log = get_logger(__name__)


class ResendEmailGateway(EmailGateway):
    """Resend email gateway implementation.

    Attributes:
        api_key: Resend API key
        default_from: Sender used when a message names none
            (``"Name <address>"``)
    """

    provider = "resend"
    API_BASE = "https://api.resend.com"

    def __init__(
        self,
        api_key: str,
        default_from: str | None = None,
        api_base: str | None = None,
        timeout: float = 30.0,
    ):
        """Initialize Resend email gateway.

        Args:
            api_key: Resend API key
            default_from: Default sender
            api_base: Override for the API base URL
            timeout: HTTP request timeout
        """
        self.api_key = api_key
        self.default_from = default_from
        self.timeout = timeout

        self._client = httpx.AsyncClient(
            base_url=api_base or self.API_BASE,
            timeout=timeout,
            headers={
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
            },
        )

    def _sender(self, message: EmailMessage) -> str | None:
        if message.from_email:
            return formataddr((message.from_name or "", message.from_email))
        return self.default_from

    async def send(self, message: EmailMessage) -> EmailResult:
        """Send email via the Resend API.

        Args:
            message: Email message to send

        Returns:
            Result with success status and the Resend email id
        """
        errors = self.validate_message(message)
        if errors:
            return self._failed("; ".join(errors))

        sender = self._sender(message)
        if not sender:
            return self._failed("No sender email configured")

        try:
            payload = self._build_payload(message, sender)
            response = await self._client.post("/emails", json=payload)

            if response.status_code in (200, 201, 202):
                try:
                    message_id = response.json().get("id")
                except ValueError:
                    log.error(
                        "Resend returned a non-JSON response",
                        status_code=response.status_code,
                        to=message.to,
                    )
                    return self._failed("Invalid response from Resend API", "INVALID_RESPONSE")

                log.info(
                    "Email sent via Resend",
                    message_id=message_id,
                    to=message.to,
                    subject=message.subject,
                )

                return EmailResult(
                    success=True,
                    message_id=message_id,
                    status=EmailStatus.QUEUED,
                    provider=self.provider,
                    sent_at=datetime.now(),
                    recipients_accepted=len(message.recipients),
                )

            try:
                error_data = response.json() if response.content else {}
            except ValueError:
                error_data = {}
            error_message = error_data.get("message") or f"HTTP {response.status_code}"

            log.error(
                "Resend email failed",
                status_code=response.status_code,
                error=error_message,
                to=message.to,
            )
            return self._failed(error_message, str(response.status_code))

        except httpx.TimeoutException:
            log.error("Resend timeout", to=message.to)
            return self._failed("Request timeout", "TIMEOUT")

        except httpx.HTTPError as e:
            log.error("Resend HTTP error", error=str(e), to=message.to)
            return self._failed(str(e))

    def _build_payload(self, message: EmailMessage, sender: str) -> dict[str, Any]:
        """Build the Resend ``POST /emails`` body."""
        payload: dict[str, Any] = {
            "from": sender,
            "to": message.recipients,
            "subject": message.subject,
        }

        if message.body_text:
            payload["text"] = message.body_text
        if message.body_html:
            payload["html"] = message.body_html
        if message.reply_to:
            payload["reply_to"] = message.reply_to

        if message.attachments:
            payload["attachments"] = [
                {
                    "filename": att.filename,
                    "content": base64.b64encode(att.content).decode("ascii"),
                }
                for att in message.attachments
            ]

        return payload

    async def test_connection(self) -> ConnectionCheck:
        """Check that the gateway is usable without calling the API.

        Resend sending-only keys cannot read any other endpoint, so the
        check is limited to configuration.
        """
        if not self.api_key:
            return ConnectionCheck(False, "Resend API key is not configured", "NOT_CONFIGURED")
        if not self.default_from:
            return ConnectionCheck(False, "No sender email configured", "NOT_CONFIGURED")
        return ConnectionCheck(True, "Connection test successful")

    async def close(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()

    async def __aenter__(self) -> "ResendEmailGateway":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
