"""Email account management.

Stored mailboxes carry their SMTP password and OAuth tokens encrypted at
rest; plaintext only exists while a gateway is open.
"""

from __future__ import annotations

import re
from typing import Any, Sequence

from pydantic import BaseModel, Field, field_validator
from sqlalchemy.ext.asyncio import AsyncSession

from realty_crm.core.crypto import CredentialCipher
from realty_crm.core.exceptions import EmailAccountError, RecordNotFoundError
from realty_crm.core.logging_setup import get_logger
from realty_crm.db.models.email import EmailAccountModel
from realty_crm.db.repositories.email import EmailAccountRepository
from realty_crm.integrations.email import (
    EmailMessage,
    SMTPEmailGateway,
    build_account_gateway,
)
from realty_crm.integrations.oauth import GMAIL_IMAP, GMAIL_SMTP, GmailTokens

log = get_logger(__name__)

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

TEST_EMAIL_SUBJECT = "Test Email from PropAI Connect"
TEST_EMAIL_TEXT = "This is a test email to verify your email account configuration."


class EmailAccountInput(BaseModel):
    """SMTP mailbox registration."""

    email: str
    display_name: str | None = None
    smtp_host: str = Field(min_length=1)
    smtp_port: int = Field(default=587, gt=0, lt=65536)
    smtp_secure: bool = False
    username: str | None = None
    password: str = Field(min_length=1)
    imap_host: str | None = None
    imap_port: int | None = None
    is_active: bool = True

    @field_validator("email")
    @classmethod
    def check_email(cls, value: str) -> str:
        value = value.strip().lower()
        if not EMAIL_PATTERN.match(value):
            raise ValueError("Invalid email address")
        return value


class ConnectionTestInput(BaseModel):
    """Unsaved SMTP settings to test before an account is created."""

    smtp_host: str = Field(min_length=1)
    smtp_port: int = 587
    smtp_secure: bool = False
    username: str
    password: str


class EmailAccountService:
    """Create, list, delete and test linked mailboxes."""

    def __init__(self, session: AsyncSession, cipher: CredentialCipher):
        self.accounts = EmailAccountRepository(session)
        self._cipher = cipher

    async def create_account(
        self,
        data: EmailAccountInput,
        *,
        user_id: str | None = None,
    ) -> EmailAccountModel:
        """Store an SMTP account with its password encrypted.

        Raises:
            EmailAccountError: If this user already linked the address
        """
        if await self.accounts.find_by_email(data.email, user_id=user_id):
            raise EmailAccountError(
                f"Email account {data.email} already exists",
                details={"email": data.email},
            )

        account = EmailAccountModel(
            user_id=user_id,
            email=data.email,
            display_name=data.display_name,
            provider="smtp",
            imap_host=data.imap_host,
            imap_port=data.imap_port,
            smtp_host=data.smtp_host,
            smtp_port=data.smtp_port,
            smtp_secure=data.smtp_secure,
            username=data.username or data.email,
            password_encrypted=self._cipher.encrypt(data.password),
            is_active=data.is_active,
        )
        account = await self.accounts.create(account)
        log.info("Email account created", account_id=str(account.id), email=account.email)
        return account

    async def link_gmail(
        self,
        tokens: GmailTokens,
        *,
        user_id: str | None = None,
    ) -> EmailAccountModel:
        """Persist (or refresh) a Gmail account from an OAuth exchange.

        Google omits the refresh token on re-consent for an already linked
        account, so an existing one is kept in that case.
        """
        email = tokens.email.lower()
        values: dict[str, Any] = {
            "display_name": email.split("@")[0],
            "provider": "gmail",
            "imap_host": GMAIL_IMAP[0],
            "imap_port": GMAIL_IMAP[1],
            "smtp_host": GMAIL_SMTP[0],
            "smtp_port": GMAIL_SMTP[1],
            "smtp_secure": False,
            "username": email,
            "oauth_access_token_encrypted": self._cipher.encrypt(tokens.access_token),
            "oauth_expires_at": tokens.expires_at,
            "is_active": True,
        }
        if tokens.refresh_token:
            values["oauth_refresh_token_encrypted"] = self._cipher.encrypt(tokens.refresh_token)

        existing = await self.accounts.find_by_email(email, user_id=user_id)
        if existing is not None:
            account = await self.accounts.update(existing.id, values, user_id=user_id)
            log.info("Gmail account re-linked", account_id=str(existing.id), email=email)
            return account

        account = await self.accounts.create(EmailAccountModel(user_id=user_id, email=email, **values))
        log.info("Gmail account linked", account_id=str(account.id), email=email)
        return account

    async def list_accounts(self, *, user_id: str | None = None) -> Sequence[EmailAccountModel]:
        return await self.accounts.get_multi(user_id=user_id, limit=None)

    async def delete_account(self, account_id: str, *, user_id: str | None = None) -> bool:
        deleted = await self.accounts.delete(account_id, user_id=user_id)
        if deleted:
            log.info("Email account deleted", account_id=account_id)
        return deleted

    async def _get(self, account_id: str, user_id: str | None) -> EmailAccountModel:
        try:
            return await self.accounts.get_or_raise(account_id, user_id=user_id)
        except RecordNotFoundError as e:
            raise EmailAccountError("Account not found", details={"account_id": account_id}, cause=e)

    async def test_account(
        self,
        account_id: str,
        *,
        user_id: str | None = None,
    ) -> dict[str, Any]:
        """Connect and authenticate with a stored account's SMTP server."""
        account = await self._get(account_id, user_id)
        gateway = build_account_gateway(account, self._cipher)
        check = await gateway.test_connection()
        return {"success": check.success, "message": check.message}

    async def test_settings(self, data: ConnectionTestInput) -> dict[str, Any]:
        """Connect with unsaved settings before an account is created."""
        gateway = SMTPEmailGateway(
            host=data.smtp_host,
            port=data.smtp_port,
            username=data.username,
            password=data.password,
            use_ssl=data.smtp_secure,
        )
        check = await gateway.test_connection()
        return {"success": check.success, "message": check.message}

    async def send_test_email(
        self,
        account_id: str,
        recipient: str,
        *,
        user_id: str | None = None,
    ) -> dict[str, Any]:
        """Send a fixed verification message through a stored account."""
        account = await self._get(account_id, user_id)
        gateway = build_account_gateway(account, self._cipher)
        result = await gateway.send(
            EmailMessage(
                to=recipient,
                subject=TEST_EMAIL_SUBJECT,
                body_text=TEST_EMAIL_TEXT,
                body_html=f"<p>{TEST_EMAIL_TEXT}</p>",
            )
        )
        if not result.success:
            return {"success": False, "message": result.error_message or "Failed to send test email"}
        return {"success": True, "message": "Test email sent successfully"}
