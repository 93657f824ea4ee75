"""
Input validation and normalization for booking requests.

Checks here only look at the request itself; policy and storage checks
happen in the admitter.
"""
import re
from dataclasses import dataclass
from datetime import date
from typing import Optional, Tuple

from core.exceptions import InvalidRange, InvalidTimeFormat
from core.time_range import duration_hours, to_minutes
from domain.enums import Studio
from domain.models import BookingRequest


CONTACT_DIGITS = 10

NON_DIGITS = re.compile(r"\D")


def normalize_contact_identifier(raw: Optional[str]) -> Optional[str]:
    """
    Reduce a phone number to its digits.

    Returns:
        The 10-digit identifier, or None if the input does not have exactly 10 digits
    """
    if not raw:
        return None
    digits = NON_DIGITS.sub("", raw)
    if len(digits) != CONTACT_DIGITS:
        return None
    return digits


@dataclass
class ValidatedBooking:
    """Booking request that passed input validation."""
    studio: Studio
    date: date
    start_time: str
    end_time: str
    start_minutes: int
    end_minutes: int
    duration_hours: float
    contact_identifier: str
    name: Optional[str] = None
    session_type: Optional[str] = None
    session_details: Optional[str] = None
    rate_per_hour: Optional[float] = None


def validate_booking_request(request: BookingRequest) -> Tuple[Optional[ValidatedBooking], Optional[str]]:
    """
    Validate and normalize the fields of a booking request.

    Args:
        request: Raw booking request

    Returns:
        Tuple of (ValidatedBooking or None, error_message)
    """
    if not (request.studio and request.date and request.start_time
            and request.end_time and request.contact_identifier):
        return None, "Missing required fields: studio, date, start_time, end_time, contact_identifier"

    contact = normalize_contact_identifier(request.contact_identifier)
    if contact is None:
        return None, "Phone number must be exactly 10 digits"

    try:
        studio = Studio(request.studio)
    except ValueError:
        return None, f"Unknown studio: {request.studio}"

    try:
        start_minutes = to_minutes(request.start_time)
        end_minutes = to_minutes(request.end_time)
        hours = duration_hours(request.start_time, request.end_time)
    except InvalidTimeFormat as e:
        return None, str(e)
    except InvalidRange:
        return None, "End time must be after start time"

    return ValidatedBooking(
        studio=studio,
        date=request.date,
        start_time=request.start_time,
        end_time=request.end_time,
        start_minutes=start_minutes,
        end_minutes=end_minutes,
        duration_hours=hours,
        contact_identifier=contact,
        name=request.name or None,
        session_type=request.session_type or None,
        session_details=request.session_details or None,
        rate_per_hour=request.rate_per_hour,
    ), None
