"""
Booking Admitter: decides whether a proposed booking may be created and
creates it atomically.

Gates run in a fixed order and the first failure wins:

1. input fields are present and well-formed
2. duration is within the policy bounds
3. the date is inside the advance-booking horizon
4. the buffered range collides with no active booking
5. the booking is inserted, confirmed
6. the amount is computed from the hourly rate
7. reminders are derived and stored

Gates 4 and 5 share one serializable transaction, so two concurrent
admissions for overlapping ranges cannot both succeed.
"""
import logging
from datetime import datetime, time, timedelta
from typing import Callable, Optional

from sqlalchemy.orm import Session, sessionmaker

from core.exceptions import OverlapViolation, StorageUnavailable
from core.utils_datetime import business_today, get_current_datetime
from db.repository import BookingRepository
from db.session import SessionLocal, run_serializable
from domain.enums import BookingStatus, RejectionReason, REJECTION_MESSAGES
from domain.models import AdmissionResponse, BookingPolicy, BookingRecord, BookingRequest
from .booking_validation import ValidatedBooking, validate_booking_request
from .conflict_checker import ConflictChecker
from .events import BookingAdmitted, BookingEvent
from .reminder_scheduler import ReminderScheduler
from .settings_provider import SettingsProvider


logger = logging.getLogger(__name__)


def reject(reason: RejectionReason, message: Optional[str] = None) -> AdmissionResponse:
    """Build a rejected admission result."""
    return AdmissionResponse(
        status="rejected",
        reason=reason,
        message=message or REJECTION_MESSAGES[reason],
    )


def compute_total_amount(rate_per_hour: Optional[float], hours: float) -> Optional[float]:
    """Rate times duration, rounded to a whole amount; None without a rate."""
    if rate_per_hour is None:
        return None
    return float(round(rate_per_hour * hours))


class BookingAdmitter:
    """Admits bookings under the current booking policy."""

    def __init__(
        self,
        session_factory: Optional[sessionmaker] = None,
        settings_provider: Optional[SettingsProvider] = None,
        clock: Callable[[], datetime] = get_current_datetime,
        publish: Optional[Callable[[BookingEvent], None]] = None,
        max_attempts: Optional[int] = None,
    ):
        """
        Initialize BookingAdmitter.

        Args:
            session_factory: Factory for the per-attempt sessions
            settings_provider: Source of the policy when none is passed to admit()
            clock: Returns the current aware datetime
            publish: Receives a BookingAdmitted event after commit
            max_attempts: Attempts allowed when the transaction loses a serialization race
        """
        self.session_factory = session_factory or SessionLocal
        self.settings_provider = settings_provider or SettingsProvider(self.session_factory)
        self.clock = clock
        self.publish = publish
        self.max_attempts = max_attempts

    def admit(
        self,
        request: BookingRequest,
        policy: Optional[BookingPolicy] = None
    ) -> AdmissionResponse:
        """
        Run the admission gates and create the booking if all pass.

        Args:
            request: Proposed booking
            policy: Policy to apply; read fresh from settings when omitted

        Returns:
            AdmissionResponse with the booking, or the rejection reason

        Raises:
            StorageUnavailable: If the store failed; nothing was admitted
        """
        if policy is None:
            policy = self.settings_provider.get_policy()

        validated, error = validate_booking_request(request)
        if validated is None:
            logger.info(f"Booking rejected: invalid input ({error})")
            return reject(RejectionReason.INVALID_INPUT, error)

        if not policy.min_duration_hours <= validated.duration_hours <= policy.max_duration_hours:
            logger.info(
                f"Booking rejected: duration {validated.duration_hours}h outside "
                f"[{policy.min_duration_hours}, {policy.max_duration_hours}]"
            )
            return reject(
                RejectionReason.DURATION_OUT_OF_BOUNDS,
                f"Booking duration must be between {policy.min_duration_hours:g} "
                f"and {policy.max_duration_hours:g} hours",
            )

        now = self.clock()
        horizon = business_today(now) + timedelta(days=policy.advance_booking_days)
        if validated.date > horizon:
            logger.info(f"Booking rejected: {validated.date} is past the horizon {horizon}")
            return reject(
                RejectionReason.TOO_FAR_IN_ADVANCE,
                f"Bookings can only be made up to {policy.advance_booking_days} days in advance",
            )

        try:
            booking = run_serializable(
                lambda session: self._create(session, validated, policy, now),
                factory=self.session_factory,
                max_attempts=self.max_attempts,
                operation="admission",
            )
        except OverlapViolation:
            booking = None

        if booking is None:
            logger.info(
                f"Booking rejected: {validated.studio.value} {validated.date} "
                f"{validated.start_time}-{validated.end_time} is taken"
            )
            return reject(RejectionReason.SLOT_UNAVAILABLE)

        logger.info(
            f"Admitted booking {booking.id}: {booking.studio} {booking.date} "
            f"{booking.start_time}-{booking.end_time}"
        )
        if self.publish is not None:
            self.publish(BookingAdmitted(booking=booking))

        return AdmissionResponse(status="admitted", booking=booking)

    def _create(
        self,
        session: Session,
        validated: ValidatedBooking,
        policy: BookingPolicy,
        now: datetime
    ) -> Optional[BookingRecord]:
        """Conflict check, insert and reminders inside one transaction."""
        repository = BookingRepository(session)

        if ConflictChecker(repository).has_conflict(
            validated.studio.value,
            validated.date,
            validated.start_minutes,
            validated.end_minutes,
            policy.buffer_minutes,
        ):
            return None

        row = repository.insert_booking(
            studio=validated.studio.value,
            date=validated.date,
            start_time=time(*divmod(validated.start_minutes, 60)),
            end_time=time(*divmod(validated.end_minutes, 60)),
            status=BookingStatus.CONFIRMED.value,
            contact_identifier=validated.contact_identifier,
            name=validated.name,
            session_type=validated.session_type,
            session_details=validated.session_details,
            total_amount=compute_total_amount(validated.rate_per_hour, validated.duration_hours),
            created_at=now,
            updated_at=now,
        )

        try:
            with repository.begin_nested():
                ReminderScheduler(repository).schedule(row, now)
        except StorageUnavailable as e:
            logger.error(f"Could not schedule reminders for booking {row.id}: {e}")

        return BookingRecord.model_validate(row)
