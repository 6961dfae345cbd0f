"""Transcript and inbound message models."""

from datetime import datetime
from enum import Enum
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, Field

from leadline.models.common import ChannelType, Tenant, utcnow


class SenderRole(str, Enum):
    """Who authored a transcript entry."""

    CUSTOMER = "customer"
    AGENT = "agent"  # The assistant
    SYSTEM = "system"


class MessageType(str, Enum):
    """Type of message content."""

    TEXT = "text"
    BUTTON_CLICK = "button_click"
    LIST_CLICK = "list_click"
    IMAGE = "image"
    AUDIO = "audio"
    VIDEO = "video"
    DOCUMENT = "document"
    TEMPLATE = "template"


class TranscriptEntry(BaseModel):
    """One logged message in the append-only cross-channel history."""

    id: str = Field(default_factory=lambda: str(uuid4()))
    lead_id: str
    channel: ChannelType = ChannelType.WHATSAPP
    sender: SenderRole
    content: str
    message_type: MessageType = MessageType.TEXT

    # Timing, token usage, action ids
    metadata: dict[str, Any] = Field(default_factory=dict)

    created_at: datetime = Field(default_factory=utcnow)

    def to_llm_message(self) -> dict[str, str]:
        """Convert to completion-service message format."""
        role = "user" if self.sender == SenderRole.CUSTOMER else "assistant"
        return {"role": role, "content": self.content}


class InboundMessage(BaseModel):
    """Normalized inbound message from the webhook or the synchronous API."""

    channel: ChannelType = ChannelType.WHATSAPP
    external_id: str
    text: str
    message_type: MessageType = MessageType.TEXT
    tenant: Tenant = Tenant.PROXE

    display_name: str | None = None
    email: str | None = None

    # Provider ids
    message_id: str | None = None
    action_id: str | None = None  # Button/list reply id
    timestamp: str | None = None

    raw_payload: dict[str, Any] = Field(default_factory=dict)


class DeliveryStatus(BaseModel):
    """Status callback for a message we sent."""

    message_id: str
    recipient_id: str | None = None
    status: str
    timestamp: str | None = None
    errors: list[dict[str, Any]] = Field(default_factory=list)
