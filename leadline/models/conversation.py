"""Per-turn conversation context and generated response models."""

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from leadline.models.common import ChannelType, Tenant
from leadline.models.session import ConversationPhase


class Booking(BaseModel):
    """A booking recorded against the customer on any channel."""

    date: str | None = None
    time: str | None = None
    status: str | None = None

    @property
    def exists(self) -> bool:
        return bool(self.date or self.time)


class ConversationContext(BaseModel):
    """Ephemeral aggregate of identity, session and transcript for one turn.

    Never persisted as a unit; only the derived summary, interests and phase
    are written back to the session and the lead.
    """

    lead_id: str
    session_id: str
    tenant: Tenant
    channel: ChannelType = ChannelType.WHATSAPP

    customer_name: str | None = None
    phone: str | None = None
    email: str | None = None
    first_touch: ChannelType | None = None

    # Derived
    message_count: int = 0
    phase: ConversationPhase = ConversationPhase.DISCOVERY_ENTRY
    summary: str = ""
    interests: list[str] = Field(default_factory=list)
    combined_summary: str = ""
    combined_interests: list[str] = Field(default_factory=list)
    booking: Booking | None = None
    has_cross_channel_history: bool = False
    channel_data: dict[str, Any] = Field(default_factory=dict)
    budget: str | None = None

    # Prompt material
    customer_note: str = ""
    history: list[dict[str, str]] = Field(default_factory=list)  # Oldest first
    last_agent_message: str | None = None

    @property
    def has_booking(self) -> bool:
        return self.booking is not None and self.booking.exists

    @property
    def is_returning(self) -> bool:
        """Returning means known from another channel."""
        return self.has_cross_channel_history


class ResponseShape(str, Enum):
    """Wire shape a reply is rendered into."""

    TEXT_ONLY = "text_only"
    TEXT_WITH_BUTTONS = "text_with_buttons"
    CAROUSEL = "carousel"
    LIST = "list"
    TEMPLATE = "template"


class Urgency(str, Enum):
    URGENT = "urgent"
    HIGH = "high"
    NORMAL = "normal"


class NextAction(str, Enum):
    WAIT_FOR_RESPONSE = "wait_for_response"
    CONTINUE_CONVERSATION = "continue_conversation"


class GeneratedResponse(BaseModel):
    """Reply produced for one turn."""

    text: str
    shape: ResponseShape = ResponseShape.TEXT_ONLY
    actions: list[str] = Field(default_factory=list)
    urgency: Urgency = Urgency.NORMAL
    next_action: NextAction = NextAction.CONTINUE_CONVERSATION

    # Usage
    model: str = ""
    tokens_input: int = 0
    tokens_output: int = 0
    latency_ms: float = 0.0

    # Which rule picked the action, or "marker" when the model supplied it
    action_source: str | None = None

    @property
    def tokens_used(self) -> int:
        return self.tokens_input + self.tokens_output
