"""Channel adapters and payload rendering."""

from leadline.services.channels.base import ChannelAdapter
from leadline.services.channels.formatter import ActionButton, format_payload, sanitize_markup
from leadline.services.channels.whatsapp import WhatsAppCloudAdapter

__all__ = [
    "ActionButton",
    "ChannelAdapter",
    "WhatsAppCloudAdapter",
    "format_payload",
    "sanitize_markup",
]
