"""FastAPI dependencies shared by the routers."""

from datetime import datetime
from typing import Callable, Optional

from fastapi import BackgroundTasks, Depends
from sqlalchemy.orm import sessionmaker

from core.config import settings
from core.utils_datetime import get_current_datetime
from db.session import SessionLocal
from integrations.twilio.whatsapp import WhatsAppNotifier
from services.booking_admitter import BookingAdmitter
from services.cancellation_engine import CancellationEngine
from services.events import AuditLogSubscriber, BookingEvent, EventDispatcher
from services.settings_provider import SettingsProvider


_dispatcher: Optional[EventDispatcher] = None


def build_dispatcher(session_factory: sessionmaker) -> EventDispatcher:
    """Dispatcher with the audit log and WhatsApp subscribers registered."""
    dispatcher = EventDispatcher()
    dispatcher.subscribe(AuditLogSubscriber(session_factory))
    if settings.whatsapp_enabled:
        dispatcher.subscribe(WhatsAppNotifier())
    return dispatcher


def get_session_factory() -> sessionmaker:
    """Session factory for the request's units of work."""
    return SessionLocal


def get_clock() -> Callable[[], datetime]:
    return get_current_datetime


def get_dispatcher(
    session_factory: sessionmaker = Depends(get_session_factory)
) -> EventDispatcher:
    global _dispatcher

    if _dispatcher is None:
        _dispatcher = build_dispatcher(session_factory)

    return _dispatcher


def get_publisher(
    background_tasks: BackgroundTasks,
    dispatcher: EventDispatcher = Depends(get_dispatcher)
) -> Callable[[BookingEvent], None]:
    """Publish events once the response has been sent."""

    def publish(event: BookingEvent) -> None:
        background_tasks.add_task(dispatcher.publish, event)

    return publish


def get_settings_provider(
    session_factory: sessionmaker = Depends(get_session_factory)
) -> SettingsProvider:
    return SettingsProvider(session_factory)


def get_booking_admitter(
    session_factory: sessionmaker = Depends(get_session_factory),
    settings_provider: SettingsProvider = Depends(get_settings_provider),
    clock: Callable[[], datetime] = Depends(get_clock),
    publish: Callable[[BookingEvent], None] = Depends(get_publisher),
) -> BookingAdmitter:
    return BookingAdmitter(
        session_factory=session_factory,
        settings_provider=settings_provider,
        clock=clock,
        publish=publish,
    )


def get_cancellation_engine(
    session_factory: sessionmaker = Depends(get_session_factory),
    clock: Callable[[], datetime] = Depends(get_clock),
    publish: Callable[[BookingEvent], None] = Depends(get_publisher),
) -> CancellationEngine:
    return CancellationEngine(
        session_factory=session_factory,
        clock=clock,
        publish=publish,
    )
