"""
WhatsApp notifications for booking events, sent through the Twilio REST API.
"""
import logging
from typing import Optional

from twilio.base.exceptions import TwilioRestException
from twilio.rest import Client

from core.config import settings
from core.exceptions import BookingCoreError
from domain.models import BookingRecord
from services.events import BookingAdmitted, BookingCancelled, BookingEvent


logger = logging.getLogger(__name__)

WHATSAPP_PREFIX = "whatsapp:"


def to_whatsapp_address(number: str, country_code: str = "") -> str:
    """Prefix a number for the WhatsApp channel, adding the country code to bare 10-digit numbers."""
    if number.startswith(WHATSAPP_PREFIX):
        return number
    if not number.startswith("+"):
        number = f"{country_code}{number}"
    return f"{WHATSAPP_PREFIX}{number}"


def format_confirmation(booking: BookingRecord) -> str:
    greeting = f"Hi {booking.name}! " if booking.name else ""
    amount_line = f"\nTotal: {booking.total_amount:,.0f}" if booking.total_amount else ""
    return (
        f"{greeting}*Booking Confirmed!*\n\n"
        f"*Studio:* {booking.studio}\n"
        f"*Date:* {booking.date.isoformat()}\n"
        f"*Time:* {booking.start_time} - {booking.end_time}{amount_line}\n\n"
        f"*Booking ID:* {booking.id}"
    )


def format_cancellation(booking: BookingRecord, reason: Optional[str]) -> str:
    reason_line = f"\n*Reason:* {reason}" if reason else ""
    return (
        f"*Booking Cancelled*\n\n"
        f"*Studio:* {booking.studio}\n"
        f"*Date:* {booking.date.isoformat()}\n"
        f"*Time:* {booking.start_time} - {booking.end_time}{reason_line}\n\n"
        f"*Booking ID:* {booking.id}"
    )


class WhatsAppNotifier:
    """Event subscriber that messages the booking owner on WhatsApp."""

    def __init__(self, client: Optional[Client] = None, from_number: Optional[str] = None):
        """
        Initialize WhatsAppNotifier.

        Args:
            client: Twilio client; built from settings when omitted
            from_number: WhatsApp-enabled sender number; defaults to settings
        """
        self.from_number = from_number or settings.twilio_whatsapp_number
        self.country_code = settings.whatsapp_country_code
        self.enabled = client is not None or settings.whatsapp_enabled

        if client is not None:
            self.client = client
        elif self.enabled:
            self.client = Client(settings.twilio_account_sid, settings.twilio_auth_token)
        else:
            self.client = None
            logger.info("WhatsApp notifications disabled - Twilio credentials not configured")

    def __call__(self, event: BookingEvent) -> None:
        if not self.enabled:
            return

        if isinstance(event, BookingAdmitted):
            body = format_confirmation(event.booking)
        elif isinstance(event, BookingCancelled):
            body = format_cancellation(event.booking, event.reason)
        else:
            raise BookingCoreError(f"Unsupported event: {event!r}")

        self.send_message(event.booking.contact_identifier, body)

    def send_message(self, to_number: str, body: str) -> Optional[str]:
        """
        Send a WhatsApp message.

        Returns:
            Twilio message SID, or None when sending failed
        """
        to_address = to_whatsapp_address(to_number, self.country_code)
        try:
            message = self.client.messages.create(
                from_=to_whatsapp_address(self.from_number),
                to=to_address,
                body=body,
            )
        except TwilioRestException as e:
            logger.error(f"Twilio error sending WhatsApp message to ...{to_number[-4:]}: {e}")
            return None

        logger.info(f"WhatsApp message sent to ...{to_number[-4:]}, SID: {message.sid}")
        return message.sid
