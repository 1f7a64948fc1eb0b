"""CRM ORM Models.

Records the analytics dashboards aggregate over:
- LeadModel: prospective buyers/sellers
- PropertyModel: listings
- TaskModel: agent to-dos
- CommunicationModel: email and WhatsApp messages
"""
from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Float, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from realty_crm.db.base import Base, OwnedMixin, TimestampMixin, UUIDMixin


class LeadModel(Base, UUIDMixin, TimestampMixin, OwnedMixin):
    """Lead ORM model."""

    __tablename__ = "leads"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True, index=True)
    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    status: Mapped[str] = mapped_column(
        String(10),
        nullable=False,
        default="cold",
        index=True,
        comment="cold, warm, hot",
    )
    source: Mapped[str | None] = mapped_column(
        String(50),
        nullable=True,
        comment="website, referral, social, portal, ...",
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Minutes between lead creation and first agent reply
    response_time_minutes: Mapped[float | None] = mapped_column(Float, nullable=True)


class PropertyModel(Base, UUIDMixin, TimestampMixin, OwnedMixin):
    """Property listing ORM model."""

    __tablename__ = "properties"

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    price: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    location: Mapped[str | None] = mapped_column(String(255), nullable=True)
    property_type: Mapped[str | None] = mapped_column(
        String(50),
        nullable=True,
        comment="house, apartment, condo, land, commercial",
    )
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default="active",
        index=True,
        comment="active, inactive, sold",
    )
    views: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    sold_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)


class TaskModel(Base, UUIDMixin, TimestampMixin, OwnedMixin):
    """Task ORM model."""

    __tablename__ = "tasks"

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default="pending",
        index=True,
        comment="pending, in_progress, completed",
    )
    priority: Mapped[str] = mapped_column(
        String(10),
        nullable=False,
        default="medium",
        comment="low, medium, high",
    )
    due_date: Mapped[datetime | None] = mapped_column(DateTime, nullable=True, index=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    __table_args__ = (
        Index("ix_tasks_user_status", "user_id", "status"),
    )

    @property
    def is_completed(self) -> bool:
        return self.status == "completed"


class CommunicationModel(Base, UUIDMixin, TimestampMixin, OwnedMixin):
    """Email or WhatsApp message exchanged with a contact."""

    __tablename__ = "communications"

    type: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        index=True,
        comment="email, whatsapp",
    )
    direction: Mapped[str] = mapped_column(
        String(10),
        nullable=False,
        comment="sent, received",
    )
    recipient: Mapped[str | None] = mapped_column(String(255), nullable=True)
    subject: Mapped[str | None] = mapped_column(String(500), nullable=True)
    content: Mapped[str | None] = mapped_column(Text, nullable=True)
    delivery_status: Mapped[str | None] = mapped_column(
        String(20),
        nullable=True,
        comment="sent, delivered, read, failed",
    )
    response_time_minutes: Mapped[float | None] = mapped_column(Float, nullable=True)
