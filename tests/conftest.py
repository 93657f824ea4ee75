"""Pytest configuration and fixtures for studio booking tests."""
import pytest
from datetime import date, datetime, time
from typing import Any, Dict

from core.utils_datetime import TIMEZONE
from db.repository import BookingRepository
from db.session import create_engine, create_session_factory, get_session_context, init_db
from domain.enums import BookingStatus
from domain.models import BookingRecord, BookingRequest
from services.booking_admitter import BookingAdmitter
from services.cancellation_engine import CancellationEngine
from services.settings_provider import SettingsProvider


# Tuesday, 10:00 in the studio's timezone
FROZEN_NOW = TIMEZONE.localize(datetime(2024, 2, 20, 10, 0))


@pytest.fixture(scope="function")
def db_engine():
    """Create an in-memory SQLite database engine for testing."""
    engine = create_engine("sqlite://", echo=False)
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture(scope="function")
def session_factory(db_engine):
    """Session factory bound to the test engine."""
    return create_session_factory(db_engine)


@pytest.fixture(scope="function")
def now():
    return FROZEN_NOW


@pytest.fixture(scope="function")
def clock(now):
    """Clock frozen at FROZEN_NOW."""
    return lambda: now


@pytest.fixture(scope="function")
def published():
    """Collects events published by the services."""
    return []


@pytest.fixture(scope="function")
def settings_provider(session_factory):
    return SettingsProvider(session_factory)


@pytest.fixture(scope="function")
def admitter(session_factory, settings_provider, clock, published):
    """Booking admitter wired to the test database and frozen clock."""
    return BookingAdmitter(
        session_factory=session_factory,
        settings_provider=settings_provider,
        clock=clock,
        publish=published.append,
    )


@pytest.fixture(scope="function")
def cancellation_engine(session_factory, clock, published):
    """Cancellation engine with the cancellation window disabled."""
    return CancellationEngine(
        session_factory=session_factory,
        clock=clock,
        publish=published.append,
        window_hours=0,
    )


@pytest.fixture(scope="function")
def sample_booking_data() -> Dict[str, Any]:
    """Provide sample booking request data for testing."""
    return {
        "studio": "Studio A",
        "date": date(2024, 3, 1),
        "start_time": "10:00",
        "end_time": "12:00",
        "contact_identifier": "9876543210",
        "name": "Asha Rao",
        "session_type": "Recording",
    }


@pytest.fixture(scope="function")
def make_request(sample_booking_data):
    """Factory fixture building booking requests from the sample data."""
    def _make(**kwargs) -> BookingRequest:
        data = sample_booking_data.copy()
        data.update(kwargs)
        return BookingRequest(**data)
    return _make


@pytest.fixture(scope="function")
def seed_booking(session_factory, now):
    """Factory fixture inserting a booking row directly, bypassing admission."""
    def _seed(**kwargs) -> BookingRecord:
        fields = {
            "studio": "Studio A",
            "date": date(2024, 3, 1),
            "start_time": time(10, 0),
            "end_time": time(12, 0),
            "status": BookingStatus.CONFIRMED.value,
            "contact_identifier": "9876543210",
            "created_at": now,
            "updated_at": now,
        }
        fields.update(kwargs)
        with get_session_context(session_factory) as session:
            row = BookingRepository(session).insert_booking(**fields)
            return BookingRecord.model_validate(row)
    return _seed


@pytest.fixture(scope="function")
def read_repository(session_factory):
    """Run a read against a short-lived repository session."""
    def _read(fn):
        with get_session_context(session_factory) as session:
            return fn(BookingRepository(session))
    return _read
