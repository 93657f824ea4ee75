"""Database layer for the studio booking core."""

from .base import Base, TimestampMixin
from .models_sqlalchemy import Booking, Reminder, BookingSetting, AuditLog
from .repository import BookingRepository
from .session import (
    engine,
    SessionLocal,
    create_engine,
    create_session_factory,
    get_session_context,
    init_db,
    close_db,
    DatabaseConfig,
    run_serializable,
)

__all__ = [
    # Base
    "Base",
    "TimestampMixin",
    # Models
    "Booking",
    "Reminder",
    "BookingSetting",
    "AuditLog",
    # Repository
    "BookingRepository",
    # Session
    "engine",
    "SessionLocal",
    "create_engine",
    "create_session_factory",
    "get_session_context",
    "init_db",
    "close_db",
    "DatabaseConfig",
    "run_serializable",
]
