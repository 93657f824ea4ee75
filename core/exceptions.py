"""Exceptions raised by the booking core.

Business-rule violations are never raised; they come back as rejection
results. These exceptions cover malformed time values and infrastructure
faults.
"""


class BookingCoreError(Exception):
    """Base class for booking core errors."""
    pass


class InvalidTimeFormat(BookingCoreError, ValueError):
    """Raised when a wall-clock value is not a valid HH:MM string."""
    pass


class InvalidRange(BookingCoreError, ValueError):
    """Raised when a time range does not end after it starts."""
    pass


class InvalidPolicy(BookingCoreError, ValueError):
    """Raised when a booking policy update breaks a settings rule."""

    def __init__(self, field: str, message: str):
        super().__init__(message)
        self.field = field
        self.message = message


class StorageUnavailable(BookingCoreError):
    """Raised when the database cannot serve a request.

    Safe to retry the whole operation from scratch.
    """
    pass


class SerializationConflict(StorageUnavailable):
    """Raised when a serializable transaction lost a race and must be re-run."""
    pass


class OverlapViolation(BookingCoreError):
    """Raised when the database exclusion constraint refuses an overlapping booking."""
    pass
