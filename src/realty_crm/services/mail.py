"""Mail dispatch.

Takes a message payload and forwards it to a stored account's SMTP
server or to the Resend API, recording each outcome in the email log.
A service is built per request around the request's session; there is
no queue and no retry.
"""

from __future__ import annotations

import base64
import binascii
from collections.abc import Callable
from email.utils import parseaddr
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from sqlalchemy.ext.asyncio import AsyncSession

from realty_crm.core.crypto import CredentialCipher
from realty_crm.core.exceptions import EmailAccountError, EmailDeliveryError
from realty_crm.core.logging_setup import get_logger
from realty_crm.db.models.email import EmailAccountModel
from realty_crm.db.repositories.email import EmailAccountRepository, EmailLogRepository
from realty_crm.integrations.email import (
    EmailAttachment,
    EmailGateway,
    EmailMessage,
    EmailResult,
    build_account_gateway,
    get_resend_gateway,
)

log = get_logger(__name__)


class AttachmentPayload(BaseModel):
    """Attachment as sent by the client; ``content`` is base64."""

    filename: str
    content: str
    content_type: str = "application/octet-stream"


class MailRequest(BaseModel):
    """Body of a mail dispatch request.

    Required fields are checked by the dispatcher so the failure message
    names the missing field.
    """

    model_config = ConfigDict(populate_by_name=True)

    to: str | list[str] | None = None
    subject: str | None = None
    text: str | None = None
    html: str | None = None
    sender: str | None = Field(default=None, alias="from")
    account_id: str | None = Field(
        default=None,
        validation_alias=AliasChoices("account_id", "accountId"),
    )
    dry_run: bool = Field(
        default=False,
        validation_alias=AliasChoices("dry_run", "dryRun"),
    )
    attachments: list[AttachmentPayload] = Field(default_factory=list)

    @property
    def recipients(self) -> list[str]:
        if not self.to:
            return []
        return [self.to] if isinstance(self.to, str) else list(self.to)


def _require_fields(request: MailRequest, *, account: bool = False) -> None:
    if not request.recipients:
        raise EmailDeliveryError("Missing required field: 'to' recipient email address")
    if not request.subject:
        raise EmailDeliveryError("Missing required field: 'subject'")
    if account and not request.account_id:
        raise EmailDeliveryError(
            "Missing required field: 'account_id' to identify which email account to use"
        )


def _decode_attachments(payloads: list[AttachmentPayload]) -> list[EmailAttachment]:
    attachments = []
    for item in payloads:
        try:
            content = base64.b64decode(item.content, validate=True)
        except (binascii.Error, ValueError) as e:
            raise EmailDeliveryError(
                f"Attachment '{item.filename}' is not valid base64",
                cause=e,
            )
        attachments.append(EmailAttachment(item.filename, content, item.content_type))
    return attachments


def build_message(request: MailRequest) -> EmailMessage:
    """Gateway message for a dispatch request; the sender is left to the gateway
    unless the request names one."""
    from_name, from_email = parseaddr(request.sender) if request.sender else ("", "")
    return EmailMessage(
        to=request.recipients,
        subject=request.subject or "",
        body_text=request.text,
        body_html=request.html,
        from_email=from_email or None,
        from_name=from_name or None,
        attachments=_decode_attachments(request.attachments),
    )


def sent_message(recipients: list[str]) -> str:
    return f"Email sent successfully to {', '.join(recipients)}"


class MailDispatchService:
    """SMTP and Resend dispatch for one request."""

    def __init__(
        self,
        session: AsyncSession,
        cipher: CredentialCipher,
        *,
        resend_gateway: Callable[[], EmailGateway] = get_resend_gateway,
        account_gateway: Callable[[EmailAccountModel, CredentialCipher], EmailGateway] = (
            build_account_gateway
        ),
    ):
        """Initialize with session and cipher.

        Args:
            session: Async database session
            cipher: Decrypts stored account passwords
            resend_gateway: Builds the Resend gateway
            account_gateway: Builds an SMTP gateway for a stored account
        """
        self.accounts = EmailAccountRepository(session)
        self.logs = EmailLogRepository(session)
        self._cipher = cipher
        self._resend_gateway = resend_gateway
        self._account_gateway = account_gateway

    async def _account(self, account_id: str, user_id: str | None) -> EmailAccountModel:
        account = await self.accounts.get(account_id, user_id=user_id)
        if account is None:
            raise EmailAccountError(
                f"Email account with ID {account_id} not found or inaccessible",
                details={"account_id": account_id},
            )
        if not account.is_active:
            raise EmailAccountError(
                f"Email account {account.email} is disabled",
                details={"account_id": account_id},
            )
        return account

    async def _dispatch(
        self,
        gateway: EmailGateway,
        request: MailRequest,
        *,
        user_id: str | None,
        account: EmailAccountModel | None = None,
    ) -> dict[str, Any]:
        try:
            message = build_message(request)
            result: EmailResult = await gateway.send(message)
        finally:
            await gateway.close()

        await self.logs.record(
            recipients=message.recipients,
            subject=message.subject,
            provider=gateway.provider,
            status="sent" if result.success else "failed",
            user_id=user_id,
            account_id=account.id if account else None,
            message_id=result.message_id,
            error=result.error_message,
        )

        if not result.success:
            raise EmailDeliveryError(
                result.error_message or "Failed to send email",
                details={"provider": gateway.provider, "error_code": result.error_code},
            )

        response: dict[str, Any] = {
            "success": True,
            "message": sent_message(message.recipients),
        }
        if result.message_id:
            response["id"] = result.message_id
        return response

    async def _dry_run(self, gateway: EmailGateway) -> dict[str, Any]:
        try:
            check = await gateway.test_connection()
        finally:
            await gateway.close()

        if not check.success:
            raise EmailDeliveryError(
                check.message,
                details={"dry_run": True, "error_code": check.error_code},
            )
        return {"success": True, "message": check.message, "dry_run": True}

    async def send_via_smtp(
        self,
        request: MailRequest,
        *,
        user_id: str | None = None,
    ) -> dict[str, Any]:
        """Send through a stored account's SMTP server.

        The sender defaults to ``"<display name> <email>"`` of the account.

        Raises:
            EmailDeliveryError: Missing fields or a failed send
            EmailAccountError: Unknown or disabled account
        """
        _require_fields(request, account=True)
        account = await self._account(request.account_id, user_id)
        log.info(
            "Dispatching via SMTP",
            account=account.email,
            host=account.smtp_host,
            port=account.smtp_port,
            dry_run=request.dry_run,
        )

        gateway = self._account_gateway(account, self._cipher)
        if request.dry_run:
            return await self._dry_run(gateway)
        return await self._dispatch(gateway, request, user_id=user_id, account=account)

    async def send_via_resend(
        self,
        request: MailRequest,
        *,
        user_id: str | None = None,
    ) -> dict[str, Any]:
        """Send through the Resend API with the configured default sender.

        Raises:
            EmailDeliveryError: Missing fields or a failed send
        """
        _require_fields(request)
        log.info(
            "Dispatching via Resend",
            recipients=len(request.recipients),
            dry_run=request.dry_run,
        )

        gateway = self._resend_gateway()
        if request.dry_run:
            return await self._dry_run(gateway)
        return await self._dispatch(gateway, request, user_id=user_id)
