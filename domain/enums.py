"""Domain enums for the studio booking core."""

from enum import Enum


class Studio(str, Enum):
    """Bookable rooms."""

    STUDIO_A = "Studio A"
    STUDIO_B = "Studio B"
    STUDIO_C = "Studio C"


class BookingStatus(str, Enum):
    """Booking status enumeration."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"
    NO_SHOW = "no_show"


# Statuses that hold a slot
ACTIVE_BOOKING_STATUSES = (BookingStatus.CONFIRMED, BookingStatus.PENDING)


class ReminderKind(str, Enum):
    """Follow-up events derived from a booking."""

    CONFIRMATION = "confirmation"
    REMINDER_24H = "reminder_24h"
    REMINDER_1H = "reminder_1h"


class ReminderStatus(str, Enum):
    """Reminder delivery status."""

    PENDING = "pending"
    SENT = "sent"
    CANCELLED = "cancelled"


class RejectionReason(str, Enum):
    """Why an admission or cancellation was refused."""

    INVALID_INPUT = "invalid_input"
    DURATION_OUT_OF_BOUNDS = "duration_out_of_bounds"
    TOO_FAR_IN_ADVANCE = "too_far_in_advance"
    SLOT_UNAVAILABLE = "slot_unavailable"
    NOT_FOUND = "not_found"
    ALREADY_CANCELLED = "already_cancelled"
    CANNOT_CANCEL_COMPLETED = "cannot_cancel_completed"
    CANNOT_CANCEL_PAST = "cannot_cancel_past"
    WITHIN_CANCELLATION_WINDOW = "within_cancellation_window"


class AuditAction(str, Enum):
    """Audit log action types."""

    BOOKING_ADMITTED = "booking_admitted"
    BOOKING_CANCELLED = "booking_cancelled"
    SETTINGS_UPDATED = "settings_updated"


REJECTION_MESSAGES = {
    RejectionReason.INVALID_INPUT: "Missing or invalid booking details",
    RejectionReason.DURATION_OUT_OF_BOUNDS: "Booking duration is outside the allowed range",
    RejectionReason.TOO_FAR_IN_ADVANCE: "Bookings cannot be made that far in advance",
    RejectionReason.SLOT_UNAVAILABLE: "Time slot is no longer available",
    RejectionReason.NOT_FOUND: "Booking not found or does not belong to this phone number",
    RejectionReason.ALREADY_CANCELLED: "This booking is already cancelled",
    RejectionReason.CANNOT_CANCEL_COMPLETED: "Cannot cancel a completed booking",
    RejectionReason.CANNOT_CANCEL_PAST: "Cannot cancel a past booking",
    RejectionReason.WITHIN_CANCELLATION_WINDOW: "Booking starts too soon to be cancelled",
}
