"""Stub calendar booking service."""

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from urllib.parse import urlencode
from uuid import uuid4

import structlog

from leadline.models import utcnow

logger = structlog.get_logger()

LINK_TTL = timedelta(days=7)
DEFAULT_SLOTS = ("10:00", "11:30", "14:00", "16:00", "18:00")


@dataclass
class BookingLink:
    url: str
    token: str
    booking_type: str
    expires_at: datetime


@dataclass
class TimeSlot:
    date: str
    time: str
    available: bool = True


class BookingService:
    """Hands out booking links and fixed slots; no calendar behind it."""

    def __init__(self, base_url: str) -> None:
        self.base_url = base_url.rstrip("/")

    def generate_booking_link(self, lead_id: str, booking_type: str = "demo") -> BookingLink:
        """Create a booking link for a lead, valid for seven days."""
        token = uuid4().hex
        query = urlencode({"lead": lead_id, "type": booking_type, "token": token})
        link = BookingLink(
            url=f"{self.base_url}?{query}",
            token=token,
            booking_type=booking_type,
            expires_at=utcnow() + LINK_TTL,
        )
        logger.info("Generated booking link", lead_id=lead_id, booking_type=booking_type)
        return link

    def available_slots(self, day: date | None = None) -> list[TimeSlot]:
        day = day or (utcnow().date() + timedelta(days=1))
        return [TimeSlot(date=day.isoformat(), time=slot) for slot in DEFAULT_SLOTS]
