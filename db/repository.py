"""Storage operations used by the booking services.

All SQLAlchemy failures leave this module translated into the core's
exceptions, so services never handle driver errors directly.
"""

import logging
from contextlib import contextmanager
from datetime import date
from typing import Any, Dict, Iterable, List, Optional
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.exc import DBAPIError, IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from core.exceptions import OverlapViolation, SerializationConflict, StorageUnavailable
from domain.enums import ACTIVE_BOOKING_STATUSES, BookingStatus, ReminderStatus
from .models_sqlalchemy import AuditLog, Booking, BookingSetting, Reminder


logger = logging.getLogger(__name__)

EXCLUSION_VIOLATION = "23P01"
SERIALIZATION_FAILURE = "40001"
DEADLOCK_DETECTED = "40P01"

OVERLAP_CONSTRAINT_NAME = "bookings_no_overlap_per_studio"


def _sqlstate(exc: DBAPIError) -> Optional[str]:
    """SQLSTATE code from psycopg 3 or psycopg2 driver errors."""
    orig = getattr(exc, "orig", None)
    return getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)


@contextmanager
def storage_errors(operation: str):
    """
    Translate SQLAlchemy errors raised inside the block.

    Raises:
        OverlapViolation: exclusion constraint rejected a booking row
        SerializationConflict: transaction lost a race and can be re-run
        StorageUnavailable: any other database failure
    """
    try:
        yield
    except IntegrityError as e:
        if _sqlstate(e) == EXCLUSION_VIOLATION or OVERLAP_CONSTRAINT_NAME in str(e.orig):
            raise OverlapViolation(f"{operation}: overlapping booking") from e
        logger.error(f"Integrity error during {operation}: {e}")
        raise StorageUnavailable(f"{operation} failed") from e
    except DBAPIError as e:
        code = _sqlstate(e)
        if code in (SERIALIZATION_FAILURE, DEADLOCK_DETECTED) or "database is locked" in str(e.orig):
            raise SerializationConflict(f"{operation}: concurrent transaction conflict") from e
        logger.error(f"Database error during {operation}: {e}")
        raise StorageUnavailable(f"{operation} failed") from e
    except SQLAlchemyError as e:
        logger.error(f"Database error during {operation}: {e}")
        raise StorageUnavailable(f"{operation} failed") from e


class BookingRepository:
    """Bookings, reminders, settings and audit rows behind one session."""

    def __init__(self, session: Session):
        """
        Initialize the repository.

        Args:
            session: SQLAlchemy session owning the current unit of work
        """
        self.session = session

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    def begin_nested(self):
        """Open a savepoint inside the current transaction."""
        with storage_errors("savepoint"):
            return self.session.begin_nested()

    # ------------------------------------------------------------------
    # Bookings
    # ------------------------------------------------------------------

    def list_active_bookings(self, studio: str, day: date) -> List[Booking]:
        """Bookings for a studio and day that still hold their slot."""
        stmt = (
            select(Booking)
            .where(
                Booking.studio == studio,
                Booking.date == day,
                Booking.status.in_([s.value for s in ACTIVE_BOOKING_STATUSES]),
            )
            .order_by(Booking.start_time)
        )
        with storage_errors("list_active_bookings"):
            return list(self.session.scalars(stmt))

    def get_booking(self, booking_id: UUID) -> Optional[Booking]:
        with storage_errors("get_booking"):
            return self.session.get(Booking, booking_id)

    def list_bookings_for_contact(self, contact_identifier: str) -> List[Booking]:
        """All bookings owned by a contact, newest session first."""
        stmt = (
            select(Booking)
            .where(Booking.contact_identifier == contact_identifier)
            .order_by(Booking.date.desc(), Booking.start_time.desc())
        )
        with storage_errors("list_bookings_for_contact"):
            return list(self.session.scalars(stmt))

    def insert_booking(self, **fields: Any) -> Booking:
        """
        Add a booking row and flush it so constraints are checked now.

        Raises:
            OverlapViolation: If the exclusion constraint refuses the row
        """
        booking = Booking(**fields)
        with storage_errors("insert_booking"):
            self.session.add(booking)
            self.session.flush()
        return booking

    def update_booking_status(
        self,
        booking: Booking,
        status: BookingStatus,
        **fields: Any
    ) -> Booking:
        """Change a booking's status along with any extra columns."""
        booking.status = status.value
        for key, value in fields.items():
            setattr(booking, key, value)
        with storage_errors("update_booking_status"):
            self.session.flush()
        return booking

    # ------------------------------------------------------------------
    # Reminders
    # ------------------------------------------------------------------

    def insert_reminders(self, reminders: Iterable[Reminder]) -> List[Reminder]:
        reminders = list(reminders)
        with storage_errors("insert_reminders"):
            self.session.add_all(reminders)
            self.session.flush()
        return reminders

    def list_reminders(self, booking_id: UUID) -> List[Reminder]:
        stmt = (
            select(Reminder)
            .where(Reminder.booking_id == booking_id)
            .order_by(Reminder.scheduled_at)
        )
        with storage_errors("list_reminders"):
            return list(self.session.scalars(stmt))

    def update_reminders_status(
        self,
        booking_id: UUID,
        from_status: ReminderStatus,
        to_status: ReminderStatus
    ) -> int:
        """
        Move every reminder of a booking from one status to another.

        Returns:
            Number of reminders changed
        """
        stmt = (
            update(Reminder)
            .where(
                Reminder.booking_id == booking_id,
                Reminder.status == from_status.value,
            )
            .values(status=to_status.value)
            .execution_options(synchronize_session="fetch")
        )
        with storage_errors("update_reminders_status"):
            result = self.session.execute(stmt)
        return result.rowcount

    # ------------------------------------------------------------------
    # Settings
    # ------------------------------------------------------------------

    def get_setting_values(self) -> Dict[str, Any]:
        """All stored booking settings as a key -> value mapping."""
        with storage_errors("get_setting_values"):
            rows = self.session.scalars(select(BookingSetting)).all()
        return {row.key: row.value for row in rows}

    def upsert_setting(self, key: str, value: Any, description: Optional[str] = None) -> BookingSetting:
        with storage_errors("upsert_setting"):
            setting = self.session.scalars(
                select(BookingSetting).where(BookingSetting.key == key)
            ).first()
            if setting is None:
                setting = BookingSetting(key=key, value=value, description=description)
                self.session.add(setting)
            else:
                setting.value = value
                if description is not None:
                    setting.description = description
            self.session.flush()
        return setting

    # ------------------------------------------------------------------
    # Audit
    # ------------------------------------------------------------------

    def add_audit_entry(
        self,
        action: str,
        entity_type: str,
        entity_id: str,
        details: Optional[Dict[str, Any]] = None,
        actor: Optional[str] = None,
    ) -> AuditLog:
        entry = AuditLog(
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            details=details or {},
            actor=actor,
        )
        with storage_errors("add_audit_entry"):
            self.session.add(entry)
            self.session.flush()
        return entry

    def list_audit_entries(self, entity_id: Optional[str] = None) -> List[AuditLog]:
        stmt = select(AuditLog).order_by(AuditLog.id)
        if entity_id is not None:
            stmt = stmt.where(AuditLog.entity_id == entity_id)
        with storage_errors("list_audit_entries"):
            return list(self.session.scalars(stmt))
