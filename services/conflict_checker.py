"""
Conflict checking against the bookings that hold a studio's time.
"""
import logging
from datetime import date, datetime
from typing import List, Optional, Tuple

from core.time_range import expand, minutes_to_time, overlaps, to_minutes
from core.utils_datetime import business_today, to_business_tz
from db.repository import BookingRepository
from domain.models import BookingPolicy


logger = logging.getLogger(__name__)


def _stored_minutes(value) -> int:
    """Minute offset of a TIME column or datetime."""
    return value.hour * 60 + value.minute


class ConflictChecker:
    """Buffered overlap test for one studio day. Never writes."""

    def __init__(self, repository: BookingRepository):
        self.repository = repository

    def has_conflict(
        self,
        studio: str,
        day: date,
        candidate_start: int,
        candidate_end: int,
        buffer_minutes: int
    ) -> bool:
        """
        Check whether a candidate range collides with an active booking.

        The buffer is applied to the candidate only; stored ranges are
        compared as booked.

        Args:
            studio: Studio name
            day: Booking date
            candidate_start: Start as minutes after midnight
            candidate_end: End as minutes after midnight
            buffer_minutes: Idle time required around the candidate

        Returns:
            True if the candidate overlaps an existing booking

        Raises:
            StorageUnavailable: If existing bookings cannot be read
        """
        start, end = expand(candidate_start, candidate_end, buffer_minutes)

        for booking in self.repository.list_active_bookings(studio, day):
            if overlaps(start, end, _stored_minutes(booking.start_time), _stored_minutes(booking.end_time)):
                logger.debug(
                    f"Candidate {studio} {day} {minutes_to_time(candidate_start)}-"
                    f"{minutes_to_time(candidate_end)} collides with booking {booking.id}"
                )
                return True

        return False

    def find_available_slots(
        self,
        studio: str,
        day: date,
        policy: BookingPolicy,
        now: Optional[datetime] = None
    ) -> List[Tuple[str, str]]:
        """
        Find free one-hour chunks between opening and closing time.

        Args:
            studio: Studio name
            day: Date to inspect
            policy: Policy supplying opening hours and buffer
            now: Current instant; on the current business day, chunks that
                have already ended are left out

        Returns:
            List of (start, end) "HH:MM" pairs
        """
        open_minutes = to_minutes(policy.open_time)
        close_minutes = to_minutes(policy.close_time)

        booked = [
            (_stored_minutes(b.start_time), _stored_minutes(b.end_time))
            for b in self.repository.list_active_bookings(studio, day)
        ]

        elapsed = -1
        if now is not None and day == business_today(now):
            elapsed = _stored_minutes(to_business_tz(now))

        slots = []
        slot_start = open_minutes
        while slot_start + 60 <= close_minutes:
            slot_end = slot_start + 60
            start, end = expand(slot_start, slot_end, policy.buffer_minutes)
            if slot_end > elapsed and not any(
                overlaps(start, end, b_start, b_end) for b_start, b_end in booked
            ):
                slots.append((minutes_to_time(slot_start), minutes_to_time(slot_end)))
            slot_start = slot_end

        return slots
