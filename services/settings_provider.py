"""
Settings Provider for the booking policy.

The policy is stored as key/value rows in ``booking_settings`` and re-read on
every call, so an admin update applies to the very next request. Reads never
fail: unusable values fall back to the documented defaults.
"""
import logging
from typing import Any, Callable, Dict, Optional

from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from core.exceptions import InvalidPolicy, StorageUnavailable, InvalidTimeFormat
from core.time_range import to_minutes
from db.repository import BookingRepository
from db.session import SessionLocal, get_session_context
from domain.enums import AuditAction
from domain.models import BookingPolicy


logger = logging.getLogger(__name__)


# Stored key -> (policy field, parser, description)
SETTING_KEYS: Dict[str, tuple] = {
    "min_booking_duration": ("min_duration_hours", float, "Minimum booking duration in hours"),
    "max_booking_duration": ("max_duration_hours", float, "Maximum booking duration in hours"),
    "booking_buffer": ("buffer_minutes", int, "Buffer time between bookings in minutes"),
    "advance_booking_days": ("advance_booking_days", int, "How many days in advance bookings can be made"),
    "default_open_time": ("open_time", str, "Default studio opening time"),
    "default_close_time": ("close_time", str, "Default studio closing time"),
}

POLICY_FIELD_TO_KEY = {field: key for key, (field, _, _) in SETTING_KEYS.items()}

DEFAULT_POLICY = BookingPolicy()


def _parse_value(field: str, parser: Callable, raw: Any) -> Any:
    """Coerce one stored value; raises ValueError/TypeError when unusable or out of range."""
    if isinstance(raw, bool) or raw is None:
        raise ValueError(f"Unusable value for {field}: {raw!r}")
    if parser is str:
        to_minutes(raw)
        return raw
    value = parser(raw)
    if parser is int and value != float(raw):
        raise ValueError(f"Expected a whole number for {field}: {raw!r}")
    # Range check against the policy's own field bounds
    BookingPolicy(**{field: value})
    return value


def _drop_inconsistent(values: Dict[str, Any]) -> None:
    """Discard stored pairs that contradict each other, keeping their defaults."""
    merged = {**DEFAULT_POLICY.model_dump(), **values}
    pairs = (
        ("min_duration_hours", "max_duration_hours",
         merged["min_duration_hours"] > merged["max_duration_hours"]),
        ("open_time", "close_time",
         to_minutes(merged["open_time"]) >= to_minutes(merged["close_time"])),
    )
    for low, high, broken in pairs:
        if broken:
            logger.warning(
                f"Ignoring stored {low}={merged[low]!r} and {high}={merged[high]!r}, "
                f"using defaults {getattr(DEFAULT_POLICY, low)!r}-{getattr(DEFAULT_POLICY, high)!r}"
            )
            values.pop(low, None)
            values.pop(high, None)


def validate_policy(policy: BookingPolicy) -> BookingPolicy:
    """
    Check a proposed policy against the settings rules.

    Raises:
        InvalidPolicy: On the first rule the policy breaks
    """
    if not 1 <= policy.min_duration_hours <= 24:
        raise InvalidPolicy("min_duration_hours", "Minimum duration must be between 1 and 24 hours")
    if not 1 <= policy.max_duration_hours <= 24:
        raise InvalidPolicy("max_duration_hours", "Maximum duration must be between 1 and 24 hours")
    if policy.min_duration_hours > policy.max_duration_hours:
        raise InvalidPolicy("min_duration_hours", "Minimum duration cannot be greater than maximum duration")
    if not 0 <= policy.buffer_minutes <= 120:
        raise InvalidPolicy("buffer_minutes", "Booking buffer must be between 0 and 120 minutes")
    if not 1 <= policy.advance_booking_days <= 365:
        raise InvalidPolicy("advance_booking_days", "Advance booking days must be between 1 and 365")

    try:
        open_minutes = to_minutes(policy.open_time)
    except InvalidTimeFormat:
        raise InvalidPolicy("open_time", "Open time must be in HH:MM format")
    try:
        close_minutes = to_minutes(policy.close_time)
    except InvalidTimeFormat:
        raise InvalidPolicy("close_time", "Close time must be in HH:MM format")
    if open_minutes >= close_minutes:
        raise InvalidPolicy("close_time", "Close time must be after open time")

    return policy


class SettingsProvider:
    """Reads and updates the global booking policy."""

    def __init__(self, session_factory: Optional[sessionmaker] = None):
        """
        Initialize SettingsProvider.

        Args:
            session_factory: Factory for the sessions used per read/update
        """
        self.session_factory = session_factory or SessionLocal

    def get_policy(self) -> BookingPolicy:
        """
        Current booking policy.

        Missing keys take their defaults. A malformed stored value falls back
        to the default for that key; a storage failure falls back to the
        defaults for every key.
        """
        try:
            with get_session_context(self.session_factory) as session:
                stored = BookingRepository(session).get_setting_values()
        except (StorageUnavailable, SQLAlchemyError) as e:
            logger.error(f"Could not read booking settings, using defaults: {e}")
            return DEFAULT_POLICY

        values: Dict[str, Any] = {}
        for key, (field, parser, _) in SETTING_KEYS.items():
            if key not in stored:
                continue
            try:
                values[field] = _parse_value(field, parser, stored[key])
            except (ValueError, TypeError, InvalidTimeFormat):
                logger.warning(
                    f"Ignoring malformed booking setting {key}={stored[key]!r}, "
                    f"using default {getattr(DEFAULT_POLICY, field)!r}"
                )

        _drop_inconsistent(values)
        return BookingPolicy(**values)

    def update_policy(self, changes: Dict[str, Any], actor: Optional[str] = None) -> BookingPolicy:
        """
        Validate and store a partial policy update.

        Args:
            changes: Policy field -> new value; omitted fields keep their current value
            actor: Who made the change, recorded in the audit log

        Returns:
            The policy now in force

        Raises:
            InvalidPolicy: If the merged policy breaks a settings rule
            StorageUnavailable: If the update could not be stored
        """
        unknown = set(changes) - set(POLICY_FIELD_TO_KEY)
        if unknown:
            field = sorted(unknown)[0]
            raise InvalidPolicy(field, f"Unknown booking setting: {field}")

        current = self.get_policy()
        merged = {**current.model_dump(), **changes}
        try:
            policy = BookingPolicy(**merged)
        except ValidationError as e:
            error = e.errors()[0]
            field = error["loc"][0] if error["loc"] else next(iter(changes))
            raise InvalidPolicy(field, f"Invalid booking setting value: {error['msg']}")
        validate_policy(policy)

        with get_session_context(self.session_factory) as session:
            self._store(session, policy, changes, actor)

        logger.info(f"Booking policy updated: {changes}")
        return policy

    def _store(
        self,
        session: Session,
        policy: BookingPolicy,
        changes: Dict[str, Any],
        actor: Optional[str]
    ) -> None:
        repository = BookingRepository(session)
        for field in changes:
            key = POLICY_FIELD_TO_KEY[field]
            repository.upsert_setting(key, getattr(policy, field), SETTING_KEYS[key][2])
        repository.add_audit_entry(
            action=AuditAction.SETTINGS_UPDATED.value,
            entity_type="booking_settings",
            entity_id="global",
            details={field: getattr(policy, field) for field in changes},
            actor=actor,
        )
