"""
Booking lifecycle events and their dispatch to collaborators.

Subscribers run after the booking change is committed. A failing subscriber
is logged and skipped; it never undoes the change that produced the event.
"""
import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Union

from sqlalchemy.orm import sessionmaker

from core.exceptions import BookingCoreError
from db.repository import BookingRepository
from db.session import SessionLocal, get_session_context
from domain.enums import AuditAction
from domain.models import BookingRecord


logger = logging.getLogger(__name__)


@dataclass
class BookingAdmitted:
    """A booking was admitted."""
    booking: BookingRecord


@dataclass
class BookingCancelled:
    """A booking was cancelled."""
    booking: BookingRecord
    reason: Optional[str] = None


BookingEvent = Union[BookingAdmitted, BookingCancelled]
Subscriber = Callable[[BookingEvent], None]


@dataclass
class EventDispatcher:
    """Fans booking events out to registered subscribers."""
    subscribers: List[Subscriber] = field(default_factory=list)

    def subscribe(self, subscriber: Subscriber) -> None:
        self.subscribers.append(subscriber)

    def publish(self, event: BookingEvent) -> None:
        """Deliver an event to every subscriber, logging failures."""
        for subscriber in self.subscribers:
            name = getattr(subscriber, "__name__", type(subscriber).__name__)
            try:
                subscriber(event)
            except Exception as e:
                logger.warning(
                    f"Subscriber {name} failed on {type(event).__name__} "
                    f"for booking {event.booking.id}: {e}"
                )


class AuditLogSubscriber:
    """Writes booking lifecycle events to the audit log table."""

    def __init__(self, session_factory: Optional[sessionmaker] = None):
        self.session_factory = session_factory or SessionLocal

    def __call__(self, event: BookingEvent) -> None:
        booking = event.booking

        if isinstance(event, BookingAdmitted):
            action = AuditAction.BOOKING_ADMITTED
            details = {
                "studio": booking.studio,
                "date": booking.date.isoformat(),
                "start_time": booking.start_time,
                "end_time": booking.end_time,
                "total_amount": booking.total_amount,
            }
        elif isinstance(event, BookingCancelled):
            action = AuditAction.BOOKING_CANCELLED
            details = {"reason": event.reason}
        else:
            raise BookingCoreError(f"Unsupported event: {event!r}")

        with get_session_context(self.session_factory) as session:
            BookingRepository(session).add_audit_entry(
                action=action.value,
                entity_type="booking",
                entity_id=str(booking.id),
                details=details,
                actor=booking.contact_identifier,
            )

        logger.info(f"Audit log: {action.value} for booking {booking.id}")
