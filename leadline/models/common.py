"""Enums and helpers shared by all models."""

from datetime import datetime, timezone
from enum import Enum


def utcnow() -> datetime:
    """Timezone-aware current UTC time."""
    return datetime.now(timezone.utc)


class ChannelType(str, Enum):
    """Channels a customer can reach us through."""

    WHATSAPP = "whatsapp"
    WEB = "web"
    VOICE = "voice"
    SOCIAL = "social"

    @property
    def label(self) -> str:
        """Human-readable name used in summaries."""
        return {"whatsapp": "WhatsApp", "web": "Web"}.get(self.value, self.value.title())


class Tenant(str, Enum):
    """Brands served by this deployment."""

    PROXE = "proxe"
    WINDCHASERS = "windchasers"
