"""Domain models using Pydantic v2 for the studio booking core."""

from datetime import date as date_type, datetime, time
from typing import Optional, Literal
from uuid import UUID

from pydantic import BaseModel, Field, ConfigDict, field_validator

from .enums import BookingStatus, ReminderKind, ReminderStatus, RejectionReason


class BookingPolicy(BaseModel):
    """Booking rules in force for one request."""

    min_duration_hours: float = Field(default=1, ge=1, le=24, description="Shortest allowed booking")
    max_duration_hours: float = Field(default=8, ge=1, le=24, description="Longest allowed booking")
    buffer_minutes: int = Field(default=0, ge=0, le=120, description="Idle minutes required between bookings")
    advance_booking_days: int = Field(default=30, ge=1, le=365, description="How many days ahead bookings are accepted")
    open_time: str = Field(default="08:00", description="Studio opening time (HH:MM)")
    close_time: str = Field(default="22:00", description="Studio closing time (HH:MM)")

    model_config = ConfigDict(frozen=True)


class BookingPolicyUpdate(BaseModel):
    """Partial policy change submitted by an administrator."""

    min_duration_hours: Optional[float] = None
    max_duration_hours: Optional[float] = None
    buffer_minutes: Optional[int] = None
    advance_booking_days: Optional[int] = None
    open_time: Optional[str] = None
    close_time: Optional[str] = None

    model_config = ConfigDict(extra="forbid")


class BookingRequest(BaseModel):
    """Proposed booking as received from the caller."""

    studio: Optional[str] = None
    date: Optional[date_type] = None
    start_time: Optional[str] = Field(None, description="HH:MM")
    end_time: Optional[str] = Field(None, description="HH:MM")
    contact_identifier: Optional[str] = Field(None, description="10-digit phone number")
    name: Optional[str] = Field(None, max_length=255)
    session_type: Optional[str] = Field(None, max_length=100)
    session_details: Optional[str] = None
    rate_per_hour: Optional[float] = Field(None, ge=0)

    model_config = ConfigDict(str_strip_whitespace=True)


class CancelRequest(BaseModel):
    """Request to cancel a booking."""

    contact_identifier: str
    reason: Optional[str] = Field(None, max_length=500)

    model_config = ConfigDict(str_strip_whitespace=True)


class BookingRecord(BaseModel):
    """Complete booking record from database."""

    id: UUID
    studio: str
    date: date_type
    start_time: str
    end_time: str
    status: BookingStatus
    contact_identifier: str
    name: Optional[str] = None
    session_type: Optional[str] = None
    session_details: Optional[str] = None
    total_amount: Optional[float] = None
    cancelled_at: Optional[datetime] = None
    cancellation_reason: Optional[str] = None
    external_calendar_ref: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def format_wall_clock(cls, v):
        """Render stored TIME columns as HH:MM."""
        if isinstance(v, time):
            return v.strftime("%H:%M")
        return v


class ReminderRecord(BaseModel):
    """Reminder row as stored."""

    id: Optional[UUID] = None
    booking_id: UUID
    scheduled_at: datetime
    kind: ReminderKind
    status: ReminderStatus

    model_config = ConfigDict(from_attributes=True)


class AvailabilitySlot(BaseModel):
    """Free one-hour chunk."""

    start_time: str
    end_time: str


class AvailabilityResponse(BaseModel):
    """Response with free chunks for a studio and day."""

    studio: str
    date: date_type
    slots: list[AvailabilitySlot]


class AdmissionResponse(BaseModel):
    """Outcome of an admission attempt."""

    status: Literal["admitted", "rejected"]
    booking: Optional[BookingRecord] = None
    reason: Optional[RejectionReason] = None
    message: Optional[str] = None


class CancellationResponse(BaseModel):
    """Outcome of a cancellation attempt."""

    status: Literal["cancelled", "rejected"]
    booking: Optional[BookingRecord] = None
    reason: Optional[RejectionReason] = None
    message: Optional[str] = None
