"""
Wall-clock range arithmetic shared by every booking check.

Times are "HH:MM" strings on a single day, handled as minute offsets from
midnight in [0, 1439]. Ranges are half-open: [start, end).
"""
import re
from typing import Tuple

from core.exceptions import InvalidTimeFormat, InvalidRange


WALL_CLOCK_PATTERN = re.compile(r"(\d{1,2}):(\d{2})", re.ASCII)

FIRST_MINUTE = 0
LAST_MINUTE = 24 * 60 - 1


def to_minutes(value: str) -> int:
    """
    Convert an "HH:MM" wall-clock string to minutes after midnight.

    Args:
        value: Time string; hours may drop the leading zero, minutes may not

    Returns:
        Minute offset in [0, 1439]

    Raises:
        InvalidTimeFormat: If the string is malformed or out of range
    """
    if not isinstance(value, str):
        raise InvalidTimeFormat(f"Expected HH:MM string, got {value!r}")

    match = WALL_CLOCK_PATTERN.fullmatch(value)
    if match is None:
        raise InvalidTimeFormat(f"Expected HH:MM, got {value!r}")

    hours, minutes = int(match.group(1)), int(match.group(2))
    if hours > 23 or minutes > 59:
        raise InvalidTimeFormat(f"Time out of range: {value!r}")

    return hours * 60 + minutes


def minutes_to_time(total_minutes: int) -> str:
    """Format a minute offset as "HH:MM"."""
    if not FIRST_MINUTE <= total_minutes <= LAST_MINUTE:
        raise InvalidTimeFormat(f"Minute offset out of range: {total_minutes}")
    return f"{total_minutes // 60:02d}:{total_minutes % 60:02d}"


def duration_hours(start: str, end: str) -> float:
    """
    Length of a range in hours.

    Raises:
        InvalidRange: If end is not after start
    """
    start_minutes = to_minutes(start)
    end_minutes = to_minutes(end)
    if end_minutes <= start_minutes:
        raise InvalidRange(f"End time {end} must be after start time {start}")
    return (end_minutes - start_minutes) / 60


def expand(start: int, end: int, buffer_minutes: int) -> Tuple[int, int]:
    """
    Widen a minute range by a buffer on both sides.

    The result is clamped to the day; a buffer never wraps past midnight.
    """
    return (
        max(FIRST_MINUTE, start - buffer_minutes),
        min(LAST_MINUTE, end + buffer_minutes),
    )


def overlaps(a_start: int, a_end: int, b_start: int, b_end: int) -> bool:
    """Half-open overlap test; ranges that only touch do not overlap."""
    return a_start < b_end and b_start < a_end
