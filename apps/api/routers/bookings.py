"""Customer endpoints for admitting, cancelling and browsing bookings."""

import logging
from datetime import date, datetime
from typing import Callable, List
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import sessionmaker

from apps.api.deps import (
    get_booking_admitter,
    get_cancellation_engine,
    get_clock,
    get_session_factory,
    get_settings_provider,
)
from db.repository import BookingRepository
from db.session import get_session_context
from domain.enums import Studio
from domain.models import (
    AdmissionResponse,
    AvailabilityResponse,
    AvailabilitySlot,
    BookingRecord,
    BookingRequest,
    CancellationResponse,
    CancelRequest,
)
from services.booking_admitter import BookingAdmitter
from services.booking_validation import normalize_contact_identifier
from services.cancellation_engine import CancellationEngine
from services.conflict_checker import ConflictChecker
from services.settings_provider import SettingsProvider


logger = logging.getLogger(__name__)

router = APIRouter(tags=["bookings"])


@router.post("/bookings", response_model=AdmissionResponse)
def create_booking(
    request: BookingRequest,
    admitter: BookingAdmitter = Depends(get_booking_admitter)
):
    """
    Admit a new booking.

    Rejections are returned with status "rejected" and a reason code.
    """
    return admitter.admit(request)


@router.post("/bookings/{booking_id}/cancel", response_model=CancellationResponse)
def cancel_booking(
    booking_id: UUID,
    request: CancelRequest,
    engine: CancellationEngine = Depends(get_cancellation_engine)
):
    """Cancel a booking owned by the given phone number."""
    return engine.cancel(booking_id, request.contact_identifier, request.reason)


@router.get("/bookings", response_model=List[BookingRecord])
def list_bookings(
    contact_identifier: str = Query(..., description="10-digit phone number of the owner"),
    session_factory: sessionmaker = Depends(get_session_factory)
):
    """List the bookings of one contact, newest first."""
    contact = normalize_contact_identifier(contact_identifier)
    if contact is None:
        return []

    with get_session_context(session_factory) as session:
        rows = BookingRepository(session).list_bookings_for_contact(contact)
        return [BookingRecord.model_validate(row) for row in rows]


@router.get("/availability", response_model=AvailabilityResponse)
def get_availability(
    studio: Studio = Query(..., description="Studio name"),
    day: date = Query(..., alias="date", description="Date to inspect (YYYY-MM-DD)"),
    session_factory: sessionmaker = Depends(get_session_factory),
    settings_provider: SettingsProvider = Depends(get_settings_provider),
    clock: Callable[[], datetime] = Depends(get_clock)
):
    """Free one-hour slots for a studio on a given day."""
    policy = settings_provider.get_policy()

    with get_session_context(session_factory) as session:
        slots = ConflictChecker(BookingRepository(session)).find_available_slots(
            studio.value, day, policy, now=clock()
        )

    return AvailabilityResponse(
        studio=studio.value,
        date=day,
        slots=[AvailabilitySlot(start_time=start, end_time=end) for start, end in slots],
    )
