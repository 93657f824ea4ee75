"""SQLAlchemy models for the studio booking database tables."""

from datetime import datetime, time
from datetime import date as date_type
from typing import List, Optional
from uuid import UUID, uuid4

from sqlalchemy import (
    String,
    Integer,
    DateTime,
    Date,
    Time,
    Text,
    JSON,
    Numeric,
    Index,
    ForeignKey,
    CheckConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from .base import Base, TimestampMixin
from domain.enums import BookingStatus, ReminderStatus


class Booking(Base, TimestampMixin):
    """Booking table model."""

    __tablename__ = "bookings"

    id: Mapped[UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid4,
        nullable=False,
    )

    studio: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
    )

    date: Mapped[date_type] = mapped_column(
        Date,
        nullable=False,
        index=True,
    )

    start_time: Mapped[time] = mapped_column(
        Time,
        nullable=False,
    )

    end_time: Mapped[time] = mapped_column(
        Time,
        nullable=False,
    )

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=BookingStatus.PENDING.value,
    )

    contact_identifier: Mapped[str] = mapped_column(
        String(10),
        nullable=False,
        index=True,
    )

    name: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True,
    )

    session_type: Mapped[Optional[str]] = mapped_column(
        String(100),
        nullable=True,
    )

    session_details: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
    )

    total_amount: Mapped[Optional[float]] = mapped_column(
        Numeric(10, 2, asdecimal=False),
        nullable=True,
    )

    cancelled_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    cancellation_reason: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
    )

    external_calendar_ref: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True,
    )

    reminders: Mapped[List["Reminder"]] = relationship(
        back_populates="booking",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        CheckConstraint("end_time > start_time", name="valid_time_range"),
        CheckConstraint(
            "status IN ('pending', 'confirmed', 'cancelled', 'completed', 'no_show')",
            name="valid_status",
        ),
        CheckConstraint("total_amount IS NULL OR total_amount >= 0", name="non_negative_amount"),
        Index("ix_bookings_studio_date_status", "studio", "date", "status"),
    )

    def __repr__(self) -> str:
        """String representation of Booking."""
        return (
            f"<Booking(id={self.id}, studio='{self.studio}', "
            f"date={self.date}, start={self.start_time}, end={self.end_time}, "
            f"status='{self.status}')>"
        )


class Reminder(Base):
    """Scheduled follow-up for a booking."""

    __tablename__ = "reminders"

    id: Mapped[UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid4,
        nullable=False,
    )

    booking_id: Mapped[UUID] = mapped_column(
        ForeignKey("bookings.id", ondelete="CASCADE"),
        nullable=False,
    )

    scheduled_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        index=True,
    )

    kind: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
    )

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=ReminderStatus.PENDING.value,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    booking: Mapped[Booking] = relationship(back_populates="reminders")

    __table_args__ = (
        CheckConstraint(
            "kind IN ('confirmation', 'reminder_24h', 'reminder_1h')",
            name="valid_kind",
        ),
        CheckConstraint(
            "status IN ('pending', 'sent', 'cancelled')",
            name="valid_status",
        ),
        Index("ix_reminders_booking_status", "booking_id", "status"),
    )

    def __repr__(self) -> str:
        """String representation of Reminder."""
        return (
            f"<Reminder(booking_id={self.booking_id}, kind='{self.kind}', "
            f"scheduled_at={self.scheduled_at}, status='{self.status}')>"
        )


class BookingSetting(Base, TimestampMixin):
    """Key/value row of the global booking policy."""

    __tablename__ = "booking_settings"

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
    )

    key: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        unique=True,
    )

    value: Mapped[object] = mapped_column(
        JSON,
        nullable=False,
    )

    description: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
    )

    def __repr__(self) -> str:
        """String representation of BookingSetting."""
        return f"<BookingSetting(key='{self.key}', value={self.value!r})>"


class AuditLog(Base):
    """Audit log table for tracking booking lifecycle actions."""

    __tablename__ = "audit_log"

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
    )

    action: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        index=True,
    )

    entity_type: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
    )

    entity_id: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
    )

    actor: Mapped[Optional[str]] = mapped_column(
        String(100),
        nullable=True,
    )

    details: Mapped[dict] = mapped_column(
        JSON,
        nullable=False,
        default=dict,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        index=True,
    )

    __table_args__ = (
        Index("ix_audit_log_entity", "entity_type", "entity_id"),
    )

    def __repr__(self) -> str:
        """String representation of AuditLog."""
        return (
            f"<AuditLog(id={self.id}, action='{self.action}', "
            f"entity_type='{self.entity_type}', entity_id='{self.entity_id}')>"
        )
