"""
Reminder Scheduler for booking follow-ups.

Every admitted booking gets three reminders: a confirmation sent at
admission, and reminders 24 hours and 1 hour before the session starts.
Delivery of pending reminders belongs to an external process.
"""
import logging
from datetime import datetime, timedelta
from typing import List
from uuid import UUID

from core.utils_datetime import localize_wall_clock
from db.models_sqlalchemy import Reminder
from db.repository import BookingRepository
from domain.enums import ReminderKind, ReminderStatus
from domain.models import ReminderRecord


logger = logging.getLogger(__name__)

# Lead time before the session start, per pending reminder kind
REMINDER_OFFSETS = {
    ReminderKind.REMINDER_24H: timedelta(hours=24),
    ReminderKind.REMINDER_1H: timedelta(hours=1),
}


def derive_reminders(booking, now: datetime) -> List[ReminderRecord]:
    """
    Build the reminders for a booking.

    Reminders whose time has already passed are still created pending.

    Args:
        booking: Booking row or record with id, date and start_time
        now: Admission instant

    Returns:
        Confirmation (sent) followed by the 24h and 1h reminders (pending)
    """
    start_instant = localize_wall_clock(booking.date, booking.start_time)

    reminders = [
        ReminderRecord(
            booking_id=booking.id,
            scheduled_at=now,
            kind=ReminderKind.CONFIRMATION,
            status=ReminderStatus.SENT,
        )
    ]
    for kind, lead_time in REMINDER_OFFSETS.items():
        reminders.append(ReminderRecord(
            booking_id=booking.id,
            scheduled_at=start_instant - lead_time,
            kind=kind,
            status=ReminderStatus.PENDING,
        ))
    return reminders


class ReminderScheduler:
    """Persists and cancels the reminders of a booking."""

    def __init__(self, repository: BookingRepository):
        self.repository = repository

    def schedule(self, booking, now: datetime) -> List[ReminderRecord]:
        """Derive and store the reminders for a newly admitted booking."""
        records = derive_reminders(booking, now)
        rows = self.repository.insert_reminders(
            Reminder(
                booking_id=record.booking_id,
                scheduled_at=record.scheduled_at,
                kind=record.kind.value,
                status=record.status.value,
            )
            for record in records
        )
        logger.info(f"Scheduled {len(rows)} reminders for booking {booking.id}")
        return [ReminderRecord.model_validate(row) for row in rows]

    def cancel_pending_reminders(self, booking_id: UUID) -> int:
        """
        Cancel every pending reminder of a booking.

        Returns:
            Number of reminders cancelled; 0 when nothing was pending
        """
        count = self.repository.update_reminders_status(
            booking_id, ReminderStatus.PENDING, ReminderStatus.CANCELLED
        )
        if count:
            logger.info(f"Cancelled {count} pending reminders for booking {booking_id}")
        return count
