"""
Cancellation Engine: reverses an admitted booking under the cancellation rules.
"""
import logging
from datetime import datetime, timedelta
from typing import Callable, Optional, Tuple
from uuid import UUID

from sqlalchemy.orm import Session, sessionmaker

from core.config import settings
from core.utils_datetime import get_current_datetime, localize_wall_clock
from db.repository import BookingRepository
from db.session import SessionLocal, run_serializable
from domain.enums import BookingStatus, RejectionReason, REJECTION_MESSAGES
from domain.models import BookingRecord, CancellationResponse
from .booking_validation import normalize_contact_identifier
from .events import BookingCancelled, BookingEvent
from .reminder_scheduler import ReminderScheduler


logger = logging.getLogger(__name__)

DEFAULT_CANCELLATION_REASON = "Cancelled by user"


class CancellationEngine:
    """Cancels bookings on behalf of their owners."""

    def __init__(
        self,
        session_factory: Optional[sessionmaker] = None,
        clock: Callable[[], datetime] = get_current_datetime,
        publish: Optional[Callable[[BookingEvent], None]] = None,
        window_hours: Optional[float] = None,
        max_attempts: Optional[int] = None,
    ):
        """
        Initialize CancellationEngine.

        Args:
            session_factory: Factory for the per-attempt sessions
            clock: Returns the current aware datetime
            publish: Receives a BookingCancelled event after commit
            window_hours: Minimum notice before the session start; 0 disables the check
            max_attempts: Attempts allowed when the transaction loses a serialization race
        """
        self.session_factory = session_factory or SessionLocal
        self.clock = clock
        self.publish = publish
        self.window_hours = (
            settings.cancellation_window_hours if window_hours is None else window_hours
        )
        self.max_attempts = max_attempts

    def cancel(
        self,
        booking_id: UUID,
        contact_identifier: str,
        reason: Optional[str] = None
    ) -> CancellationResponse:
        """
        Cancel a booking owned by the given contact.

        Args:
            booking_id: Booking to cancel
            contact_identifier: Phone number of the requester
            reason: Optional cancellation reason

        Returns:
            CancellationResponse with the cancelled booking, or the rejection reason

        Raises:
            StorageUnavailable: If the store failed; nothing was changed
        """
        reason = reason or DEFAULT_CANCELLATION_REASON
        now = self.clock()

        booking, rejection = run_serializable(
            lambda session: self._cancel(session, booking_id, contact_identifier, reason, now),
            factory=self.session_factory,
            max_attempts=self.max_attempts,
            operation="cancellation",
        )

        if rejection is not None:
            logger.info(f"Cancellation of booking {booking_id} rejected: {rejection.value}")
            return CancellationResponse(
                status="rejected",
                reason=rejection,
                message=REJECTION_MESSAGES[rejection],
            )

        logger.info(f"Cancelled booking {booking_id}: {reason}")
        if self.publish is not None:
            self.publish(BookingCancelled(booking=booking, reason=reason))

        return CancellationResponse(status="cancelled", booking=booking)

    def _cancel(
        self,
        session: Session,
        booking_id: UUID,
        contact_identifier: str,
        reason: str,
        now: datetime
    ) -> Tuple[Optional[BookingRecord], Optional[RejectionReason]]:
        repository = BookingRepository(session)

        # Unknown id and foreign owner get the same answer
        contact = normalize_contact_identifier(contact_identifier)
        row = repository.get_booking(booking_id)
        if row is None or contact is None or row.contact_identifier != contact:
            return None, RejectionReason.NOT_FOUND

        if row.status == BookingStatus.CANCELLED.value:
            return None, RejectionReason.ALREADY_CANCELLED

        if row.status == BookingStatus.COMPLETED.value:
            return None, RejectionReason.CANNOT_CANCEL_COMPLETED

        start_instant = localize_wall_clock(row.date, row.start_time)
        if now >= start_instant:
            return None, RejectionReason.CANNOT_CANCEL_PAST

        if self.window_hours > 0 and start_instant - now < timedelta(hours=self.window_hours):
            return None, RejectionReason.WITHIN_CANCELLATION_WINDOW

        repository.update_booking_status(
            row,
            BookingStatus.CANCELLED,
            cancelled_at=now,
            cancellation_reason=reason,
            updated_at=now,
        )
        ReminderScheduler(repository).cancel_pending_reminders(row.id)

        return BookingRecord.model_validate(row), None
