"""
DateTime utilities for the studio's business timezone.

Booking dates carry no timezone component; they are always read as days in
the business timezone configured in settings.
"""
from datetime import datetime, date, time
from typing import Union
import pytz

from core.config import settings


# Timezone configuration
TIMEZONE = pytz.timezone(settings.business_timezone)


def get_current_datetime() -> datetime:
    """Get current datetime in the business timezone."""
    return datetime.now(TIMEZONE)


def business_today(now: datetime = None) -> date:
    """
    Get today's date in the business calendar.

    Args:
        now: Reference instant (defaults to the current time)

    Returns:
        Calendar date of ``now`` in the business timezone
    """
    if now is None:
        now = get_current_datetime()
    return to_business_tz(now).date()


def to_business_tz(dt: datetime) -> datetime:
    """Localize a naive datetime, or convert an aware one, to the business timezone."""
    if dt.tzinfo is None:
        return TIMEZONE.localize(dt)
    return dt.astimezone(TIMEZONE)


def localize_wall_clock(day: date, wall_clock: Union[str, time]) -> datetime:
    """
    Build the instant at which a wall-clock time occurs on a business day.

    Args:
        day: Calendar date in the business timezone
        wall_clock: "HH:MM" string or ``time`` value

    Returns:
        Timezone-aware datetime
    """
    if isinstance(wall_clock, str):
        hours, minutes = wall_clock.split(":")
        wall_clock = time(int(hours), int(minutes))
    return TIMEZONE.localize(datetime.combine(day, wall_clock))
