"""Test fixtures for email gateway tests."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import pytest


@pytest.fixture
def mock_smtp_class():
    """Patched aiosmtplib.SMTP; ``.return_value`` is the connected client."""
    with patch("aiosmtplib.SMTP") as mock:
        smtp = MagicMock()
        smtp.__aenter__ = AsyncMock(return_value=smtp)
        smtp.__aexit__ = AsyncMock(return_value=None)
        smtp.starttls = AsyncMock()
        smtp.login = AsyncMock()
        smtp.send_message = AsyncMock(return_value=({}, "OK"))

        mock.return_value = smtp
        yield mock


@pytest.fixture
def mock_smtp_client(mock_smtp_class):
    """Mock aiosmtplib SMTP client."""
    return mock_smtp_class.return_value


@pytest.fixture
def smtp_gateway(mock_smtp_client):
    """Create SMTPEmailGateway with mocked client."""
    from realty_crm.integrations.email.smtp import SMTPEmailGateway

    return SMTPEmailGateway(
        host="smtp.example.com",
        port=587,
        username="agent@example.com",
        password="testpassword",
        use_tls=True,
        from_email="agent@example.com",
        from_name="Jane Agent",
    )


@pytest.fixture
def mock_resend_client():
    """Mock Resend HTTP client."""
    with patch("httpx.AsyncClient") as mock:
        client = MagicMock()
        client.post = AsyncMock()
        client.aclose = AsyncMock()

        # Mock successful send response
        mock_response = MagicMock()
        mock_response.status_code = 200
        mock_response.content = b'{"id": "re_msg_123"}'
        mock_response.json.return_value = {"id": "re_msg_123"}
        client.post.return_value = mock_response

        mock.return_value = client
        yield client


@pytest.fixture
def resend_gateway(mock_resend_client):
    """Create ResendEmailGateway with mocked client."""
    from realty_crm.integrations.email.resend import ResendEmailGateway

    return ResendEmailGateway(
        api_key="re_test_key",
        default_from="PropAI <no-reply@propai.test>",
    )


@pytest.fixture
def sample_email_message():
    """Create a sample email message."""
    from realty_crm.integrations.email.base import EmailMessage

    return EmailMessage(
        to="buyer@example.com",
        subject="Viewing confirmed",
        body_text="See you Saturday at 10.",
        body_html="<p>See you Saturday at 10.</p>",
    )
