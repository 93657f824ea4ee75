"""Tests for the buffered conflict check and availability listing."""
import pytest
from datetime import date, time, timedelta

import pytz

from core.time_range import to_minutes
from domain.enums import BookingStatus
from domain.models import BookingPolicy
from services.conflict_checker import ConflictChecker


DAY = date(2024, 3, 1)


@pytest.fixture
def has_conflict(read_repository):
    def _check(start, end, buffer_minutes=0, studio="Studio A", day=DAY):
        return read_repository(
            lambda repo: ConflictChecker(repo).has_conflict(
                studio, day, to_minutes(start), to_minutes(end), buffer_minutes
            )
        )
    return _check


@pytest.mark.integration
class TestHasConflict:
    """Test overlap detection against stored bookings."""

    def test_empty_day_has_no_conflict(self, has_conflict):
        assert has_conflict("10:00", "12:00") is False

    def test_overlap_is_conflict(self, seed_booking, has_conflict):
        seed_booking()
        assert has_conflict("11:00", "13:00") is True

    def test_touching_is_not_conflict(self, seed_booking, has_conflict):
        seed_booking()
        assert has_conflict("12:00", "13:00") is False
        assert has_conflict("09:00", "10:00") is False

    def test_buffer_widens_candidate(self, seed_booking, has_conflict):
        seed_booking()
        assert has_conflict("12:10", "13:10", buffer_minutes=15) is True
        assert has_conflict("12:20", "13:20", buffer_minutes=15) is False

    def test_other_studio_is_independent(self, seed_booking, has_conflict):
        seed_booking()
        assert has_conflict("10:00", "12:00", studio="Studio B") is False

    def test_other_day_is_independent(self, seed_booking, has_conflict):
        seed_booking()
        assert has_conflict("10:00", "12:00", day=date(2024, 3, 2)) is False

    @pytest.mark.parametrize("status", [
        BookingStatus.CANCELLED,
        BookingStatus.COMPLETED,
        BookingStatus.NO_SHOW,
    ])
    def test_inactive_bookings_do_not_hold_slot(self, seed_booking, has_conflict, status):
        seed_booking(status=status.value)
        assert has_conflict("10:00", "12:00") is False

    def test_pending_booking_holds_slot(self, seed_booking, has_conflict):
        seed_booking(status=BookingStatus.PENDING.value)
        assert has_conflict("10:00", "12:00") is True


@pytest.mark.integration
class TestFindAvailableSlots:
    """Test hourly availability listing."""

    def test_full_day_free(self, read_repository):
        policy = BookingPolicy(open_time="08:00", close_time="12:00")
        slots = read_repository(
            lambda repo: ConflictChecker(repo).find_available_slots("Studio A", DAY, policy)
        )
        assert slots == [("08:00", "09:00"), ("09:00", "10:00"), ("10:00", "11:00"), ("11:00", "12:00")]

    def test_booked_hours_removed(self, seed_booking, read_repository):
        seed_booking(start_time=time(9, 0), end_time=time(10, 0))
        policy = BookingPolicy(open_time="08:00", close_time="12:00")
        slots = read_repository(
            lambda repo: ConflictChecker(repo).find_available_slots("Studio A", DAY, policy)
        )
        assert slots == [("08:00", "09:00"), ("10:00", "11:00"), ("11:00", "12:00")]

    def test_buffer_removes_neighbouring_hours(self, seed_booking, read_repository):
        seed_booking(start_time=time(9, 0), end_time=time(10, 0))
        policy = BookingPolicy(open_time="08:00", close_time="12:00", buffer_minutes=15)
        slots = read_repository(
            lambda repo: ConflictChecker(repo).find_available_slots("Studio A", DAY, policy)
        )
        assert slots == [("11:00", "12:00")]

    def test_ended_hours_removed_today(self, read_repository, now):
        policy = BookingPolicy(open_time="08:00", close_time="12:00")
        slots = read_repository(
            lambda repo: ConflictChecker(repo).find_available_slots("Studio A", now.date(), policy, now=now)
        )
        assert slots == [("10:00", "11:00"), ("11:00", "12:00")]

    def test_hour_in_progress_still_listed(self, read_repository, now):
        policy = BookingPolicy(open_time="08:00", close_time="12:00")
        half_past = now + timedelta(minutes=30)
        slots = read_repository(
            lambda repo: ConflictChecker(repo).find_available_slots("Studio A", now.date(), policy, now=half_past)
        )
        assert slots == [("10:00", "11:00"), ("11:00", "12:00")]

    def test_today_judged_in_business_timezone(self, read_repository, now):
        policy = BookingPolicy(open_time="08:00", close_time="12:00")
        utc_now = now.astimezone(pytz.utc)
        slots = read_repository(
            lambda repo: ConflictChecker(repo).find_available_slots("Studio A", now.date(), policy, now=utc_now)
        )
        assert slots == [("10:00", "11:00"), ("11:00", "12:00")]

    def test_other_days_ignore_clock(self, read_repository, now):
        policy = BookingPolicy(open_time="08:00", close_time="12:00")
        slots = read_repository(
            lambda repo: ConflictChecker(repo).find_available_slots("Studio A", DAY, policy, now=now)
        )
        assert len(slots) == 4
