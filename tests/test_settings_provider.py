"""Tests for reading and updating the booking policy."""
import logging

import pytest
from pydantic import ValidationError
from unittest.mock import patch

from core.exceptions import InvalidPolicy, StorageUnavailable
from db.repository import BookingRepository
from domain.enums import AuditAction
from domain.models import BookingPolicy
from services.settings_provider import SettingsProvider, validate_policy


@pytest.fixture
def store_settings(read_repository):
    def _store(**values):
        def _upsert(repo):
            for key, value in values.items():
                repo.upsert_setting(key, value)
        read_repository(_upsert)
    return _store


@pytest.mark.integration
class TestGetPolicy:
    """Test policy reads."""

    def test_defaults_when_nothing_stored(self, settings_provider):
        policy = settings_provider.get_policy()

        assert policy == BookingPolicy()
        assert policy.min_duration_hours == 1
        assert policy.max_duration_hours == 8
        assert policy.buffer_minutes == 0
        assert policy.advance_booking_days == 30
        assert policy.open_time == "08:00"
        assert policy.close_time == "22:00"

    def test_stored_values_used(self, settings_provider, store_settings):
        store_settings(
            min_booking_duration=2,
            max_booking_duration=6,
            booking_buffer=15,
            advance_booking_days=60,
            default_open_time="09:00",
            default_close_time="21:00",
        )

        assert settings_provider.get_policy() == BookingPolicy(
            min_duration_hours=2,
            max_duration_hours=6,
            buffer_minutes=15,
            advance_booking_days=60,
            open_time="09:00",
            close_time="21:00",
        )

    def test_numeric_strings_accepted(self, settings_provider, store_settings):
        store_settings(booking_buffer="30")
        assert settings_provider.get_policy().buffer_minutes == 30

    @pytest.mark.parametrize("key,value,field", [
        ("booking_buffer", "lots", "buffer_minutes"),
        ("booking_buffer", 7.5, "buffer_minutes"),
        ("min_booking_duration", None, "min_duration_hours"),
        ("advance_booking_days", True, "advance_booking_days"),
        ("default_open_time", "8 o'clock", "open_time"),
        ("default_close_time", {"h": 22}, "close_time"),
    ])
    def test_malformed_value_falls_back_per_key(self, settings_provider, store_settings, caplog, key, value, field):
        store_settings(**{key: value, "max_booking_duration": 4})

        with caplog.at_level(logging.WARNING, logger="services.settings_provider"):
            policy = settings_provider.get_policy()

        assert getattr(policy, field) == getattr(BookingPolicy(), field)
        assert policy.max_duration_hours == 4
        assert key in caplog.text

    @pytest.mark.parametrize("key,value,field", [
        ("booking_buffer", -60, "buffer_minutes"),
        ("booking_buffer", 500, "buffer_minutes"),
        ("min_booking_duration", 0, "min_duration_hours"),
        ("max_booking_duration", 48, "max_duration_hours"),
        ("advance_booking_days", 0, "advance_booking_days"),
        ("advance_booking_days", 1000, "advance_booking_days"),
    ])
    def test_out_of_range_value_falls_back_per_key(self, settings_provider, store_settings, caplog, key, value, field):
        store_settings(**{key: value, "default_open_time": "09:00"})

        with caplog.at_level(logging.WARNING, logger="services.settings_provider"):
            policy = settings_provider.get_policy()

        assert getattr(policy, field) == getattr(BookingPolicy(), field)
        assert policy.open_time == "09:00"
        assert key in caplog.text

    def test_contradictory_durations_fall_back_together(self, settings_provider, store_settings, caplog):
        store_settings(min_booking_duration=6, max_booking_duration=4, booking_buffer=10)

        with caplog.at_level(logging.WARNING, logger="services.settings_provider"):
            policy = settings_provider.get_policy()

        assert policy.min_duration_hours == 1
        assert policy.max_duration_hours == 8
        assert policy.buffer_minutes == 10
        assert "min_duration_hours" in caplog.text

    def test_inverted_opening_hours_fall_back_together(self, settings_provider, store_settings):
        store_settings(default_open_time="20:00", default_close_time="09:00")

        policy = settings_provider.get_policy()

        assert policy.open_time == "08:00"
        assert policy.close_time == "22:00"

    def test_storage_failure_falls_back_to_defaults(self, settings_provider, store_settings, caplog):
        store_settings(booking_buffer=30)

        with patch.object(BookingRepository, "get_setting_values", side_effect=StorageUnavailable("down")):
            with caplog.at_level(logging.ERROR, logger="services.settings_provider"):
                policy = settings_provider.get_policy()

        assert policy == BookingPolicy()
        assert "using defaults" in caplog.text

    def test_reread_on_every_call(self, settings_provider, store_settings):
        assert settings_provider.get_policy().buffer_minutes == 0
        store_settings(booking_buffer=45)
        assert settings_provider.get_policy().buffer_minutes == 45


@pytest.mark.integration
class TestUpdatePolicy:
    """Test validated policy updates."""

    def test_partial_update(self, settings_provider):
        policy = settings_provider.update_policy({"buffer_minutes": 15, "advance_booking_days": 90})

        assert policy.buffer_minutes == 15
        assert policy.advance_booking_days == 90
        assert policy.max_duration_hours == 8
        assert settings_provider.get_policy() == policy

    def test_update_is_audited(self, settings_provider, read_repository):
        settings_provider.update_policy({"buffer_minutes": 10}, actor="admin")

        entries = read_repository(lambda repo: repo.list_audit_entries("global"))
        assert len(entries) == 1
        assert entries[0].action == AuditAction.SETTINGS_UPDATED.value
        assert entries[0].details == {"buffer_minutes": 10}
        assert entries[0].actor == "admin"

    @pytest.mark.parametrize("changes,field", [
        ({"min_duration_hours": 0}, "min_duration_hours"),
        ({"max_duration_hours": 25}, "max_duration_hours"),
        ({"min_duration_hours": 6, "max_duration_hours": 4}, "min_duration_hours"),
        ({"buffer_minutes": -5}, "buffer_minutes"),
        ({"buffer_minutes": 121}, "buffer_minutes"),
        ({"advance_booking_days": 0}, "advance_booking_days"),
        ({"advance_booking_days": 366}, "advance_booking_days"),
        ({"open_time": "8am"}, "open_time"),
        ({"open_time": "22:00", "close_time": "08:00"}, "close_time"),
        ({"fee": 10}, "fee"),
    ])
    def test_invalid_update_rejected(self, settings_provider, changes, field):
        with pytest.raises(InvalidPolicy) as exc_info:
            settings_provider.update_policy(changes)

        assert exc_info.value.field == field
        assert settings_provider.get_policy() == BookingPolicy()


@pytest.mark.unit
class TestValidatePolicy:
    """Test the settings rules directly."""

    def test_default_policy_is_valid(self):
        assert validate_policy(BookingPolicy()) == BookingPolicy()

    def test_boundaries_are_valid(self):
        policy = BookingPolicy(
            min_duration_hours=24,
            max_duration_hours=24,
            buffer_minutes=120,
            advance_booking_days=365,
        )
        assert validate_policy(policy) is policy

    @pytest.mark.parametrize("fields", [
        {"buffer_minutes": -1},
        {"min_duration_hours": 0},
        {"max_duration_hours": 25},
        {"advance_booking_days": 0},
    ])
    def test_policy_model_rejects_out_of_range(self, fields):
        with pytest.raises(ValidationError):
            BookingPolicy(**fields)
