"""Domain layer for the studio booking core."""

from .enums import (
    Studio,
    BookingStatus,
    ACTIVE_BOOKING_STATUSES,
    ReminderKind,
    ReminderStatus,
    RejectionReason,
    AuditAction,
    REJECTION_MESSAGES,
)
from .models import (
    BookingPolicy,
    BookingPolicyUpdate,
    BookingRequest,
    CancelRequest,
    BookingRecord,
    ReminderRecord,
    AvailabilitySlot,
    AvailabilityResponse,
    AdmissionResponse,
    CancellationResponse,
)

__all__ = [
    # Enums
    "Studio",
    "BookingStatus",
    "ACTIVE_BOOKING_STATUSES",
    "ReminderKind",
    "ReminderStatus",
    "RejectionReason",
    "AuditAction",
    "REJECTION_MESSAGES",
    # Models
    "BookingPolicy",
    "BookingPolicyUpdate",
    "BookingRequest",
    "CancelRequest",
    "BookingRecord",
    "ReminderRecord",
    "AvailabilitySlot",
    "AvailabilityResponse",
    "AdmissionResponse",
    "CancellationResponse",
]
