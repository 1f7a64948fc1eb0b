"""SMTP Email Gateway Implementation.

Sends through a mailbox's own SMTP server using aiosmtplib. One gateway
is built per stored email account; nothing is pooled between requests.
"""

from __future__ import annotations

import asyncio
from datetime import datetime
from email.encoders import encode_base64
from email.mime.base import MIMEBase
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formataddr, formatdate, make_msgid

import aiosmtplib

from realty_crm.core.logging_setup import get_logger
from realty_crm.integrations.email.base import (
    ConnectionCheck,
    EmailGateway,
    EmailMessage,
    EmailResult,
    EmailStatus,
)

log = get_logger(__name__)

IMPLICIT_TLS_PORT = 465


class SMTPEmailGateway(EmailGateway):
    """SMTP email gateway implementation.

    Attributes:
        host: SMTP server hostname
        port: SMTP server port (25, 465, 587)
        username: SMTP authentication username
        password: SMTP authentication password
        use_tls: Upgrade a plain connection with STARTTLS
        use_ssl: Connect with implicit TLS
        from_email: Default sender email
        from_name: Default sender display name
    """

    provider = "smtp"

    def __init__(
        self,
        host: str,
        port: int = 587,
        username: str | None = None,
        password: str | None = None,
        use_tls: bool = True,
        use_ssl: bool | None = None,
        from_email: str | None = None,
        from_name: str | None = None,
        timeout: float = 30.0,
    ):
        """Initialize SMTP email gateway.

        Args:
            host: SMTP server hostname
            port: SMTP server port
            username: Authentication username (usually email)
            password: Authentication password
            use_tls: Use STARTTLS (port 587)
            use_ssl: Use implicit TLS; defaults to ``port == 465``
            from_email: Default sender email
            from_name: Default sender display name
            timeout: Connection timeout in seconds
        """
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.use_ssl = port == IMPLICIT_TLS_PORT if use_ssl is None else use_ssl
        self.use_tls = use_tls and not self.use_ssl
        self.from_email = from_email
        self.from_name = from_name
        self.timeout = timeout

    @property
    def address(self) -> str:
        return f"{self.host}:{self.port}"

    def _client(self) -> aiosmtplib.SMTP:
        return aiosmtplib.SMTP(
            hostname=self.host,
            port=self.port,
            use_tls=self.use_ssl,
            start_tls=False,
            timeout=self.timeout,
        )

    async def _open(self, smtp: aiosmtplib.SMTP) -> None:
        if self.use_tls:
            await smtp.starttls()
        if self.username and self.password:
            await smtp.login(self.username, self.password)

    async def send(self, message: EmailMessage) -> EmailResult:
        """Send email via SMTP.

        Args:
            message: Email message to send

        Returns:
            Result with success status
        """
        errors = self.validate_message(message)
        if errors:
            return self._failed("; ".join(errors))

        from_email = message.from_email or self.from_email
        from_name = message.from_name or self.from_name

        if not from_email:
            return self._failed("No sender email configured")

        try:
            mime_message = self._build_mime_message(message, from_email, from_name)

            async with self._client() as smtp:
                await self._open(smtp)
                await smtp.send_message(mime_message)

            message_id = mime_message["Message-ID"]
            log.info(
                "Email sent via SMTP",
                message_id=message_id,
                to=message.to,
                subject=message.subject,
                host=self.host,
            )

            return EmailResult(
                success=True,
                message_id=message_id,
                status=EmailStatus.SENT,
                provider=self.provider,
                sent_at=datetime.now(),
                recipients_accepted=len(message.recipients),
            )

        except aiosmtplib.SMTPAuthenticationError as e:
            log.error("SMTP authentication failed", host=self.host, error=str(e))
            return self._failed("Authentication failed", "AUTH_FAILED")

        except aiosmtplib.SMTPRecipientsRefused as e:
            log.error("SMTP recipients refused", error=str(e))
            refused = ", ".join(r.recipient for r in e.recipients)
            return self._failed(f"Recipients refused: {refused}", "RECIPIENTS_REFUSED")

        except aiosmtplib.SMTPException as e:
            log.error("SMTP error", host=self.host, error=str(e))
            return self._failed(str(e))

        except asyncio.TimeoutError:
            log.error("SMTP timeout", host=self.host)
            return self._failed("Connection timeout", "TIMEOUT")

        except OSError as e:
            log.error("SMTP connection failed", host=self.host, error=str(e))
            return self._failed(str(e), "CONNECTION_FAILED")

    def _build_mime_message(
        self,
        message: EmailMessage,
        from_email: str,
        from_name: str | None,
    ) -> MIMEMultipart:
        """Build MIME message from EmailMessage.

        Args:
            message: Email message
            from_email: Sender email
            from_name: Sender display name

        Returns:
            MIMEMultipart message ready to send
        """
        if message.attachments:
            mime_msg = MIMEMultipart("mixed")
            body_part = MIMEMultipart("alternative")
        else:
            mime_msg = MIMEMultipart("alternative")
            body_part = mime_msg

        mime_msg["Subject"] = message.subject
        mime_msg["From"] = formataddr((from_name or "", from_email))
        mime_msg["To"] = ", ".join(message.to)
        mime_msg["Date"] = formatdate(localtime=True)
        mime_msg["Message-ID"] = make_msgid(domain=from_email.split("@")[-1])

        if message.reply_to:
            mime_msg["Reply-To"] = message.reply_to

        if message.body_text:
            body_part.attach(MIMEText(message.body_text, "plain", "utf-8"))

        if message.body_html:
            body_part.attach(MIMEText(message.body_html, "html", "utf-8"))

        if message.attachments:
            mime_msg.attach(body_part)

            for attachment in message.attachments:
                att_part = MIMEBase(*attachment.content_type.split("/", 1))
                att_part.set_payload(attachment.content)
                encode_base64(att_part)
                att_part.add_header(
                    "Content-Disposition",
                    "attachment",
                    filename=attachment.filename,
                )
                mime_msg.attach(att_part)

        return mime_msg

    async def test_connection(self) -> ConnectionCheck:
        """Connect, negotiate TLS and authenticate without sending."""
        try:
            async with self._client() as smtp:
                await self._open(smtp)

        except aiosmtplib.SMTPAuthenticationError as e:
            log.error("SMTP connection test failed", host=self.host, error=str(e))
            return ConnectionCheck(False, "Authentication failed", "AUTH_FAILED")

        except (aiosmtplib.SMTPException, asyncio.TimeoutError, OSError) as e:
            log.error("SMTP connection test failed", host=self.host, error=str(e))
            return ConnectionCheck(
                False,
                f"SMTP connection test failed: {e or 'timeout'}",
                "CONNECTION_FAILED",
            )

        log.info("SMTP connection test successful", host=self.host)
        return ConnectionCheck(True, f"SMTP connection test successful to {self.address}")
