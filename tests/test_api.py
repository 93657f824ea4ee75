"""HTTP tests for the booking API."""
import pytest
from unittest.mock import MagicMock
from uuid import uuid4

from fastapi.testclient import TestClient

from apps.api.deps import get_booking_admitter, get_clock, get_dispatcher, get_session_factory
from apps.api.main import app
from core.exceptions import StorageUnavailable
from domain.enums import AuditAction
from services.events import AuditLogSubscriber, EventDispatcher


@pytest.fixture
def client(session_factory, clock):
    """Test client wired to the in-memory database and frozen clock."""
    dispatcher = EventDispatcher(subscribers=[AuditLogSubscriber(session_factory)])
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_clock] = lambda: clock
    app.dependency_overrides[get_dispatcher] = lambda: dispatcher
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def booking_payload():
    return {
        "studio": "Studio C",
        "date": "2024-03-01",
        "start_time": "09:00",
        "end_time": "10:00",
        "contact_identifier": "9876543210",
        "name": "Asha Rao",
        "rate_per_hour": 200,
    }


@pytest.mark.integration
class TestBookingEndpoints:
    """Test admission and cancellation over HTTP."""

    def test_create_booking(self, client, booking_payload):
        response = client.post("/api/v1/bookings", json=booking_payload)

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "admitted"
        assert data["booking"]["studio"] == "Studio C"
        assert data["booking"]["start_time"] == "09:00"
        assert data["booking"]["total_amount"] == 200
        assert data["booking"]["status"] == "confirmed"

    def test_rejection_is_200(self, client, booking_payload):
        client.post("/api/v1/bookings", json=booking_payload)
        response = client.post("/api/v1/bookings", json=booking_payload)

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "rejected"
        assert data["reason"] == "slot_unavailable"
        assert data["message"] == "Time slot is no longer available"
        assert data["booking"] is None

    def test_missing_field_rejected(self, client, booking_payload):
        del booking_payload["studio"]
        response = client.post("/api/v1/bookings", json=booking_payload)

        assert response.status_code == 200
        assert response.json()["reason"] == "invalid_input"

    def test_admission_audited(self, client, booking_payload, read_repository):
        booking_id = client.post("/api/v1/bookings", json=booking_payload).json()["booking"]["id"]

        entries = read_repository(lambda repo: repo.list_audit_entries(booking_id))
        assert [e.action for e in entries] == [AuditAction.BOOKING_ADMITTED.value]

    def test_cancel_booking(self, client, booking_payload, read_repository):
        booking_id = client.post("/api/v1/bookings", json=booking_payload).json()["booking"]["id"]

        response = client.post(
            f"/api/v1/bookings/{booking_id}/cancel",
            json={"contact_identifier": "9876543210", "reason": "Ill"},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "cancelled"
        assert data["booking"]["status"] == "cancelled"
        assert data["booking"]["cancellation_reason"] == "Ill"

        actions = [e.action for e in read_repository(lambda repo: repo.list_audit_entries(booking_id))]
        assert actions == [AuditAction.BOOKING_ADMITTED.value, AuditAction.BOOKING_CANCELLED.value]

    def test_cancel_unknown_booking(self, client):
        response = client.post(
            f"/api/v1/bookings/{uuid4()}/cancel",
            json={"contact_identifier": "9876543210"},
        )

        assert response.status_code == 200
        assert response.json()["reason"] == "not_found"

    def test_list_bookings_for_contact(self, client, booking_payload):
        client.post("/api/v1/bookings", json=booking_payload)

        response = client.get("/api/v1/bookings", params={"contact_identifier": "9876543210"})

        assert response.status_code == 200
        assert len(response.json()) == 1

    def test_storage_unavailable_is_503(self, client, booking_payload):
        failing = MagicMock()
        failing.admit.side_effect = StorageUnavailable("down")
        app.dependency_overrides[get_booking_admitter] = lambda: failing

        response = client.post("/api/v1/bookings", json=booking_payload)

        assert response.status_code == 503
        assert "try again" in response.json()["detail"]


@pytest.mark.integration
class TestAvailabilityEndpoint:
    """Test the free-slot listing."""

    def test_availability(self, client, booking_payload):
        client.post("/api/v1/bookings", json=booking_payload)

        response = client.get("/api/v1/availability", params={"studio": "Studio C", "date": "2024-03-01"})

        assert response.status_code == 200
        data = response.json()
        starts = [slot["start_time"] for slot in data["slots"]]
        assert "09:00" not in starts
        assert starts[0] == "08:00"
        assert len(starts) == 13

    def test_availability_today_skips_ended_hours(self, client):
        response = client.get("/api/v1/availability", params={"studio": "Studio A", "date": "2024-02-20"})

        assert response.status_code == 200
        starts = [slot["start_time"] for slot in response.json()["slots"]]
        assert starts[0] == "10:00"
        assert "09:00" not in starts

    def test_unknown_studio(self, client):
        response = client.get("/api/v1/availability", params={"studio": "Studio Z", "date": "2024-03-01"})
        assert response.status_code == 422


@pytest.mark.integration
class TestSettingsEndpoints:
    """Test policy read and update."""

    def test_get_settings(self, client):
        response = client.get("/api/v1/settings")

        assert response.status_code == 200
        assert response.json() == {
            "min_duration_hours": 1.0,
            "max_duration_hours": 8.0,
            "buffer_minutes": 0,
            "advance_booking_days": 30,
            "open_time": "08:00",
            "close_time": "22:00",
        }

    def test_update_settings(self, client):
        response = client.put("/api/v1/admin/settings", json={"buffer_minutes": 30})

        assert response.status_code == 200
        assert response.json()["buffer_minutes"] == 30
        assert client.get("/api/v1/settings").json()["buffer_minutes"] == 30

    def test_invalid_update_is_400(self, client):
        response = client.put("/api/v1/admin/settings", json={"buffer_minutes": 500})

        assert response.status_code == 400
        assert response.json()["detail"]["field"] == "buffer_minutes"

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
