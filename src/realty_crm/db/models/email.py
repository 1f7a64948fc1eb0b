"""Email ORM Models.

- EmailAccountModel: linked mailboxes (SMTP credentials or Gmail OAuth)
- EmailLogModel: one row per dispatched message
"""
from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import JSON, Boolean, DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from realty_crm.db.base import Base, OwnedMixin, TimestampMixin, UUIDMixin, UUIDType


class EmailAccountModel(Base, UUIDMixin, TimestampMixin, OwnedMixin):
    """Linked mailbox.

    Passwords and OAuth tokens are stored Fernet-encrypted; callers
    decrypt through CredentialCipher only when opening a connection.
    """

    __tablename__ = "email_accounts"

    email: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    display_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    provider: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default="smtp",
        comment="smtp, gmail",
    )

    imap_host: Mapped[str | None] = mapped_column(String(255), nullable=True)
    imap_port: Mapped[int | None] = mapped_column(Integer, nullable=True)

    smtp_host: Mapped[str] = mapped_column(String(255), nullable=False)
    smtp_port: Mapped[int] = mapped_column(Integer, nullable=False, default=587)
    smtp_secure: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        comment="implicit TLS (port 465) instead of STARTTLS",
    )
    username: Mapped[str | None] = mapped_column(String(255), nullable=True)
    password_encrypted: Mapped[str | None] = mapped_column(Text, nullable=True)

    oauth_access_token_encrypted: Mapped[str | None] = mapped_column(Text, nullable=True)
    oauth_refresh_token_encrypted: Mapped[str | None] = mapped_column(Text, nullable=True)
    oauth_expires_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    def to_dict(self) -> dict[str, Any]:
        """Public representation; secrets are never included."""
        return {
            "id": str(self.id),
            "email": self.email,
            "display_name": self.display_name,
            "provider": self.provider,
            "imap_host": self.imap_host,
            "imap_port": self.imap_port,
            "smtp_host": self.smtp_host,
            "smtp_port": self.smtp_port,
            "smtp_secure": self.smtp_secure,
            "username": self.username,
            "is_active": self.is_active,
            "oauth_expires_at": self.oauth_expires_at.isoformat() if self.oauth_expires_at else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


class EmailLogModel(Base, UUIDMixin, TimestampMixin, OwnedMixin):
    """Outcome of a single dispatched email."""

    __tablename__ = "email_logs"

    account_id: Mapped[UUID | None] = mapped_column(UUIDType(), nullable=True, index=True)
    recipients: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    subject: Mapped[str] = mapped_column(String(500), nullable=False)
    provider: Mapped[str] = mapped_column(String(20), nullable=False, comment="smtp, resend")
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        index=True,
        comment="sent, failed",
    )
    message_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    error: Mapped[str | None] = mapped_column(Text, nullable=True)
