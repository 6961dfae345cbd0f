"""Per-channel session models."""

from datetime import datetime
from enum import Enum
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, Field

from leadline.models.common import ChannelType, Tenant, utcnow


class ConversationPhase(str, Enum):
    """Coarse stage of a conversation, derived from its length."""

    DISCOVERY_ENTRY = "discovery_entry"  # No messages yet
    DISCOVERY = "discovery"
    EVALUATION = "evaluation"
    CLOSING = "closing"


class SessionHint(BaseModel):
    """Sender details used when opening a channel session."""

    channel: ChannelType = ChannelType.WHATSAPP
    name: str | None = None
    email: str | None = None
    channel_data: dict[str, Any] = Field(default_factory=dict)


class ConversationData(BaseModel):
    """Derived fields written back to a session after each turn."""

    summary: str | None = None
    context: dict[str, Any] = Field(default_factory=dict)
    interests: list[str] = Field(default_factory=list)
    phase: ConversationPhase | None = None


class ChannelSession(BaseModel):
    """Session tracking for one customer on one channel."""

    id: str = Field(default_factory=lambda: str(uuid4()))
    channel: ChannelType = ChannelType.WHATSAPP
    external_id: str = Field(..., description="Raw channel identifier")
    tenant: Tenant = Tenant.PROXE

    # Set once, when the identity is resolved
    lead_id: str | None = None

    # Profile snapshot
    name: str | None = None
    email: str | None = None

    # Counters
    message_count: int = 0
    last_message_at: datetime | None = None

    # Channel-specific metadata
    channel_data: dict[str, Any] = Field(default_factory=dict)

    # Derived conversation data
    conversation_summary: str | None = None
    conversation_context: dict[str, Any] = Field(default_factory=dict)
    user_inputs: list[str] = Field(default_factory=list)
    conversation_phase: ConversationPhase | None = None

    # Timestamps
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @property
    def dedup_key(self) -> str:
        return session_key(self.external_id, self.tenant, self.channel)


def session_key(external_id: str, tenant: Tenant | str, channel: ChannelType | str) -> str:
    tenant_value = tenant.value if isinstance(tenant, Tenant) else tenant
    channel_value = channel.value if isinstance(channel, ChannelType) else channel
    return f"{tenant_value}:{channel_value}:{external_id}"
