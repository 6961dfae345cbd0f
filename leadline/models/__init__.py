"""Data models for the application."""

from leadline.models.common import ChannelType, Tenant, utcnow
from leadline.models.conversation import (
    Booking,
    ConversationContext,
    GeneratedResponse,
    NextAction,
    ResponseShape,
    Urgency,
)
from leadline.models.lead import IdentityHint, Lead, lead_key
from leadline.models.message import (
    DeliveryStatus,
    InboundMessage,
    MessageType,
    SenderRole,
    TranscriptEntry,
)
from leadline.models.session import (
    ChannelSession,
    ConversationData,
    ConversationPhase,
    SessionHint,
    session_key,
)

__all__ = [
    # Common
    "ChannelType",
    "Tenant",
    "utcnow",
    # Lead
    "IdentityHint",
    "Lead",
    "lead_key",
    # Session
    "ChannelSession",
    "ConversationData",
    "ConversationPhase",
    "SessionHint",
    "session_key",
    # Message
    "DeliveryStatus",
    "InboundMessage",
    "MessageType",
    "SenderRole",
    "TranscriptEntry",
    # Conversation
    "Booking",
    "ConversationContext",
    "GeneratedResponse",
    "NextAction",
    "ResponseShape",
    "Urgency",
]
