"""Tests for mail dispatch."""

from __future__ import annotations

import base64
from unittest.mock import AsyncMock, MagicMock

import pytest

from realty_crm.core.exceptions import EmailAccountError, EmailDeliveryError
from realty_crm.integrations.email.base import (
    ConnectionCheck,
    EmailResult,
    EmailStatus,
    MockEmailGateway,
)
from realty_crm.services.mail import MailDispatchService, MailRequest, build_message

USER = "user-1"


def failing_gateway(provider="smtp", error="Mailbox unavailable"):
    gateway = MagicMock()
    gateway.provider = provider
    gateway.send = AsyncMock(
        return_value=EmailResult(
            success=False,
            status=EmailStatus.FAILED,
            provider=provider,
            error_message=error,
        )
    )
    gateway.test_connection = AsyncMock(
        return_value=ConnectionCheck(False, "Authentication failed", "AUTH_FAILED")
    )
    gateway.close = AsyncMock()
    return gateway


class TestMailRequest:
    """Tests for request parsing helpers."""

    def test_aliases(self):
        request = MailRequest.model_validate(
            {"to": "a@example.com", "from": "Jane <jane@example.com>", "accountId": "x", "dryRun": True}
        )

        assert request.sender == "Jane <jane@example.com>"
        assert request.account_id == "x"
        assert request.dry_run is True
        assert request.recipients == ["a@example.com"]

    def test_build_message_parses_sender_and_attachments(self):
        request = MailRequest.model_validate(
            {
                "to": ["a@example.com", "b@example.com"],
                "subject": "Brochure",
                "html": "<b>Hi</b>",
                "from": "Jane Agent <jane@example.com>",
                "attachments": [
                    {"filename": "b.txt", "content": base64.b64encode(b"hello").decode()}
                ],
            }
        )

        message = build_message(request)

        assert message.from_name == "Jane Agent"
        assert message.from_email == "jane@example.com"
        assert message.recipients == ["a@example.com", "b@example.com"]
        assert message.attachments[0].content == b"hello"

    def test_invalid_attachment_rejected(self):
        request = MailRequest.model_validate(
            {
                "to": "a@example.com",
                "subject": "Brochure",
                "attachments": [{"filename": "b.txt", "content": "***"}],
            }
        )

        with pytest.raises(EmailDeliveryError, match="not valid base64"):
            build_message(request)


class TestSendViaSMTP:
    """Tests for MailDispatchService.send_via_smtp."""

    @pytest.mark.asyncio
    async def test_missing_recipient(self, db_session, cipher):
        service = MailDispatchService(db_session, cipher)

        with pytest.raises(EmailDeliveryError) as exc_info:
            await service.send_via_smtp(MailRequest(subject="Hi", account_id="x"), user_id=USER)

        assert exc_info.value.message == "Missing required field: 'to' recipient email address"

    @pytest.mark.asyncio
    async def test_missing_subject(self, db_session, cipher):
        service = MailDispatchService(db_session, cipher)

        with pytest.raises(EmailDeliveryError) as exc_info:
            await service.send_via_smtp(MailRequest(to="a@example.com"), user_id=USER)

        assert exc_info.value.message == "Missing required field: 'subject'"

    @pytest.mark.asyncio
    async def test_missing_account(self, db_session, cipher):
        service = MailDispatchService(db_session, cipher)

        with pytest.raises(EmailDeliveryError) as exc_info:
            await service.send_via_smtp(MailRequest(to="a@example.com", subject="Hi"), user_id=USER)

        assert "'account_id'" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_unknown_account(self, db_session, cipher):
        service = MailDispatchService(db_session, cipher)
        request = MailRequest(
            to="a@example.com",
            subject="Hi",
            account_id="00000000-0000-0000-0000-000000000000",
        )

        with pytest.raises(EmailAccountError, match="not found or inaccessible"):
            await service.send_via_smtp(request, user_id=USER)

    @pytest.mark.asyncio
    async def test_other_users_account_inaccessible(self, db_session, cipher, sample_account):
        service = MailDispatchService(db_session, cipher)
        request = MailRequest(to="a@example.com", subject="Hi", account_id=str(sample_account.id))

        with pytest.raises(EmailAccountError):
            await service.send_via_smtp(request, user_id="intruder")

    @pytest.mark.asyncio
    async def test_send_logs_and_uses_account_gateway(self, db_session, cipher, sample_account):
        gateway = MockEmailGateway()
        built_for = []

        def account_gateway(account, account_cipher):
            built_for.append(account.id)
            return gateway

        service = MailDispatchService(db_session, cipher, account_gateway=account_gateway)
        request = MailRequest(
            to=["a@example.com", "b@example.com"],
            subject="New listing",
            text="Take a look",
            account_id=str(sample_account.id),
        )

        response = await service.send_via_smtp(request, user_id="user-1")

        assert response["success"] is True
        assert response["message"] == "Email sent successfully to a@example.com, b@example.com"
        assert response["id"]
        assert built_for == [sample_account.id]

        logs = await service.logs.get_multi(user_id="user-1")
        assert len(logs) == 1
        assert logs[0].status == "sent"
        assert logs[0].account_id == sample_account.id
        assert logs[0].recipients == ["a@example.com", "b@example.com"]

    @pytest.mark.asyncio
    async def test_failed_send_logged_and_raised(self, db_session, cipher, sample_account):
        gateway = failing_gateway()
        service = MailDispatchService(
            db_session, cipher, account_gateway=lambda account, account_cipher: gateway
        )
        request = MailRequest(to="a@example.com", subject="Hi", account_id=str(sample_account.id))

        with pytest.raises(EmailDeliveryError) as exc_info:
            await service.send_via_smtp(request, user_id="user-1")

        assert exc_info.value.message == "Mailbox unavailable"
        gateway.close.assert_awaited_once()

        logs = await service.logs.get_multi(user_id="user-1")
        assert [entry.status for entry in logs] == ["failed"]
        assert logs[0].error == "Mailbox unavailable"

    @pytest.mark.asyncio
    async def test_dry_run_does_not_send(self, db_session, cipher, sample_account):
        gateway = MockEmailGateway()
        service = MailDispatchService(
            db_session, cipher, account_gateway=lambda account, account_cipher: gateway
        )
        request = MailRequest(
            to="a@example.com",
            subject="Hi",
            account_id=str(sample_account.id),
            dry_run=True,
        )

        response = await service.send_via_smtp(request, user_id="user-1")

        assert response == {"success": True, "message": "Connection test successful", "dry_run": True}
        assert gateway.get_sent_messages() == []
        assert await service.logs.count() == 0

    @pytest.mark.asyncio
    async def test_dry_run_failure_flagged(self, db_session, cipher, sample_account):
        service = MailDispatchService(
            db_session, cipher, account_gateway=lambda account, account_cipher: failing_gateway()
        )
        request = MailRequest(
            to="a@example.com",
            subject="Hi",
            account_id=str(sample_account.id),
            dry_run=True,
        )

        with pytest.raises(EmailDeliveryError) as exc_info:
            await service.send_via_smtp(request, user_id="user-1")

        assert exc_info.value.details["dry_run"] is True

    @pytest.mark.asyncio
    async def test_disabled_account_rejected(self, db_session, cipher, sample_account):
        sample_account.is_active = False
        await db_session.commit()
        service = MailDispatchService(db_session, cipher)
        request = MailRequest(to="a@example.com", subject="Hi", account_id=str(sample_account.id))

        with pytest.raises(EmailAccountError, match="disabled"):
            await service.send_via_smtp(request, user_id="user-1")


class TestSendViaResend:
    """Tests for MailDispatchService.send_via_resend."""

    @pytest.mark.asyncio
    async def test_send(self, db_session, cipher):
        gateway = MockEmailGateway()
        service = MailDispatchService(db_session, cipher, resend_gateway=lambda: gateway)

        response = await service.send_via_resend(
            MailRequest(to="a@example.com", subject="Hi", html="<p>Hi</p>"),
            user_id=USER,
        )

        assert response["success"] is True
        assert len(gateway.get_sent_messages()) == 1
        logs = await service.logs.get_multi(user_id=USER)
        assert logs[0].provider == "mock"
        assert logs[0].account_id is None

    @pytest.mark.asyncio
    async def test_account_not_required(self, db_session, cipher):
        service = MailDispatchService(db_session, cipher, resend_gateway=MockEmailGateway)

        response = await service.send_via_resend(
            MailRequest(to="a@example.com", subject="Hi", text="Hi"),
            user_id=USER,
        )

        assert response["success"] is True

    @pytest.mark.asyncio
    async def test_dry_run_still_requires_subject(self, db_session, cipher):
        service = MailDispatchService(db_session, cipher, resend_gateway=MockEmailGateway)

        with pytest.raises(EmailDeliveryError, match="'subject'"):
            await service.send_via_resend(
                MailRequest(to="a@example.com", dry_run=True),
                user_id=USER,
            )

    @pytest.mark.asyncio
    async def test_invalid_attachment_closes_gateway(self, db_session, cipher):
        gateway = failing_gateway(provider="resend")
        service = MailDispatchService(db_session, cipher, resend_gateway=lambda: gateway)

        with pytest.raises(EmailDeliveryError, match="not valid base64"):
            await service.send_via_resend(
                MailRequest(
                    to="a@example.com",
                    subject="Contract",
                    text="Attached",
                    attachments=[{"filename": "contract.pdf", "content": "!!notbase64"}],
                ),
                user_id=USER,
            )

        gateway.send.assert_not_awaited()
        gateway.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_unreadable_provider_response_logged_and_raised(self, db_session, cipher):
        gateway = failing_gateway(provider="resend", error="Invalid response from Resend API")
        service = MailDispatchService(db_session, cipher, resend_gateway=lambda: gateway)

        with pytest.raises(EmailDeliveryError, match="Invalid response"):
            await service.send_via_resend(
                MailRequest(to="a@example.com", subject="Hi", text="Hi"),
                user_id=USER,
            )

        logs = await service.logs.get_multi(user_id=USER)
        assert [entry.status for entry in logs] == ["failed"]
        gateway.close.assert_awaited_once()
