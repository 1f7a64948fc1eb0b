"""Email Gateway Factory.

Creates the appropriate email gateway based on configuration.

Supported providers for the HTTP API endpoint:
- resend: Resend HTTP API
- mock: For development and testing

Stored mailbox accounts get their own SMTP gateway through
``build_account_gateway``.
"""

from __future__ import annotations

from realty_crm.config import get_settings
from realty_crm.core.crypto import CredentialCipher
from realty_crm.core.logging_setup import get_logger
from realty_crm.db.models.email import EmailAccountModel
from realty_crm.integrations.email.base import EmailGateway, MockEmailGateway
from realty_crm.integrations.email.resend import ResendEmailGateway
from realty_crm.integrations.email.smtp import SMTPEmailGateway

log = get_logger(__name__)


def get_resend_gateway() -> EmailGateway:
    """Get the gateway behind the Resend endpoint.

    A new instance is built per call; callers close it when done.

    Returns:
        ResendEmailGateway, or MockEmailGateway when the provider is "mock".
    """
    email_config = get_settings().integrations.email
    provider = email_config.provider.lower()

    if provider == "mock":
        return MockEmailGateway()

    if provider != "resend":
        log.warning("Unknown email provider, using Resend", provider=provider)

    resend_config = email_config.resend
    if not resend_config.api_key:
        log.warning("Resend API key not configured")
    return ResendEmailGateway(
        api_key=resend_config.api_key,
        default_from=resend_config.default_from or None,
        api_base=resend_config.api_url,
    )


def build_account_gateway(
    account: EmailAccountModel,
    cipher: CredentialCipher,
) -> SMTPEmailGateway:
    """SMTP gateway for a stored mailbox account.

    The password is decrypted only for the lifetime of the gateway.
    """
    password = cipher.decrypt(account.password_encrypted) if account.password_encrypted else None
    return SMTPEmailGateway(
        host=account.smtp_host,
        port=account.smtp_port,
        username=account.username or account.email,
        password=password,
        use_ssl=account.smtp_secure,
        from_email=account.email,
        from_name=account.display_name,
        timeout=get_settings().integrations.email.smtp_timeout,
    )
