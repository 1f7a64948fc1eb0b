"""Tests for email account management."""

from __future__ import annotations

from datetime import datetime
from unittest.mock import AsyncMock, patch

import pytest
from pydantic import ValidationError

from realty_crm.core.exceptions import EmailAccountError
from realty_crm.integrations.email import build_account_gateway
from realty_crm.integrations.email.base import ConnectionCheck
from realty_crm.integrations.oauth import GmailTokens
from realty_crm.services.accounts import EmailAccountInput

USER = "user-1"


def gmail_tokens(refresh_token="refresh-1", access_token="access-1"):
    return GmailTokens(
        email="Jane.Agent@gmail.com",
        access_token=access_token,
        refresh_token=refresh_token,
        expires_at=datetime(2030, 1, 1),
    )


class TestEmailAccountInput:
    """Tests for account input validation."""

    def test_email_normalized(self):
        data = EmailAccountInput(email=" Agent@Example.COM ", smtp_host="smtp.example.com", password="x")

        assert data.email == "agent@example.com"

    def test_invalid_email(self):
        with pytest.raises(ValidationError):
            EmailAccountInput(email="agent", smtp_host="smtp.example.com", password="x")


class TestCreateAccount:
    """Tests for EmailAccountService.create_account."""

    @pytest.mark.asyncio
    async def test_password_encrypted_at_rest(self, cipher, sample_account):
        assert sample_account.password_encrypted != "s3cret"
        assert cipher.decrypt(sample_account.password_encrypted) == "s3cret"
        assert "password_encrypted" not in sample_account.to_dict()
        assert sample_account.username == "agent@example.com"

    @pytest.mark.asyncio
    async def test_duplicate_rejected(self, account_service, sample_account):
        with pytest.raises(EmailAccountError, match="already exists"):
            await account_service.create_account(
                EmailAccountInput(email="agent@example.com", smtp_host="smtp.example.com", password="x"),
                user_id=USER,
            )

    @pytest.mark.asyncio
    async def test_account_gateway_uses_decrypted_password(self, cipher, sample_account):
        gateway = build_account_gateway(sample_account, cipher)

        assert gateway.password == "s3cret"
        assert gateway.from_email == "agent@example.com"
        assert gateway.from_name == "Jane Agent"
        assert gateway.use_tls is True
        assert gateway.use_ssl is False


class TestLinkGmail:
    """Tests for EmailAccountService.link_gmail."""

    @pytest.mark.asyncio
    async def test_creates_gmail_account(self, db_session, cipher, account_service):
        account = await account_service.link_gmail(gmail_tokens(), user_id=USER)
        await db_session.commit()

        assert account.email == "jane.agent@gmail.com"
        assert account.display_name == "jane.agent"
        assert account.provider == "gmail"
        assert (account.imap_host, account.imap_port) == ("imap.gmail.com", 993)
        assert (account.smtp_host, account.smtp_port) == ("smtp.gmail.com", 587)
        assert cipher.decrypt(account.oauth_refresh_token_encrypted) == "refresh-1"

    @pytest.mark.asyncio
    async def test_relink_keeps_refresh_token(self, db_session, cipher, account_service):
        first = await account_service.link_gmail(gmail_tokens(), user_id=USER)
        await db_session.commit()

        again = await account_service.link_gmail(
            gmail_tokens(refresh_token=None, access_token="access-2"),
            user_id=USER,
        )
        await db_session.commit()

        assert again.id == first.id
        assert cipher.decrypt(again.oauth_access_token_encrypted) == "access-2"
        assert cipher.decrypt(again.oauth_refresh_token_encrypted) == "refresh-1"
        assert len(await account_service.list_accounts(user_id=USER)) == 1


class TestAccountLifecycle:
    """Tests for listing, deleting and testing accounts."""

    @pytest.mark.asyncio
    async def test_list_scoped_to_user(self, account_service, sample_account):
        assert [a.id for a in await account_service.list_accounts(user_id=USER)] == [sample_account.id]
        assert await account_service.list_accounts(user_id="someone-else") == []

    @pytest.mark.asyncio
    async def test_delete(self, account_service, sample_account):
        assert await account_service.delete_account(str(sample_account.id), user_id=USER) is True
        assert await account_service.delete_account(str(sample_account.id), user_id=USER) is False

    @pytest.mark.asyncio
    async def test_test_unknown_account(self, account_service):
        with pytest.raises(EmailAccountError, match="Account not found"):
            await account_service.test_account("missing", user_id=USER)

    @pytest.mark.asyncio
    async def test_test_account_reports_check(self, account_service, sample_account):
        check = ConnectionCheck(True, "SMTP connection test successful to smtp.example.com:587")
        with patch(
            "realty_crm.integrations.email.smtp.SMTPEmailGateway.test_connection",
            new=AsyncMock(return_value=check),
        ):
            result = await account_service.test_account(str(sample_account.id), user_id=USER)

        assert result == {
            "success": True,
            "message": "SMTP connection test successful to smtp.example.com:587",
        }
