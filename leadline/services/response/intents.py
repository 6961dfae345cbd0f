"""Action intents and handling of quick-reply clicks."""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

import structlog

from leadline.models import ChannelType, MessageType, ResponseShape, SenderRole
from leadline.services.identity.resolver import IdentityResolver
from leadline.services.knowledge.retriever import KnowledgeBase
from leadline.services.scheduling.booking import BookingService
from leadline.services.transcript.log import TranscriptLog

logger = structlog.get_logger()


class ActionIntent(str, Enum):
    """What tapping an action is meant to do."""

    VIEW_PROPERTY = "view_property"
    CALL = "call"
    GET_INFO = "get_info"
    CONTACT_SALES = "contact_sales"
    UNKNOWN = "unknown"


_PROPERTY_ID = re.compile(r"prop(?:erty)?_?(\d+)")


def infer_intent(label: str, action_id: str = "") -> ActionIntent:
    """Infer an action's intent from its id and label."""
    action_id = action_id.lower()
    label = label.lower()

    if "prop_" in action_id or "property_" in action_id or "property" in label:
        return ActionIntent.VIEW_PROPERTY
    if any(word in action_id or word in label for word in ("schedule", "call", "book", "demo")):
        return ActionIntent.CALL
    if any(word in action_id or word in label for word in ("info", "more", "plans", "started")):
        return ActionIntent.GET_INFO
    if any(word in action_id or word in label for word in ("sales", "contact", "team")):
        return ActionIntent.CONTACT_SALES
    return ActionIntent.UNKNOWN


@dataclass
class ActionOutcome:
    """Follow-up message for a clicked action."""

    intent: ActionIntent
    message: str
    shape: ResponseShape = ResponseShape.TEXT_ONLY
    details: dict[str, Any] = field(default_factory=dict)


class ButtonActionHandler:
    """Turns quick-reply clicks sent outside the webhook into follow-ups."""

    def __init__(
        self,
        identity: IdentityResolver,
        transcript: TranscriptLog,
        knowledge: KnowledgeBase,
        booking: BookingService,
    ) -> None:
        self.identity = identity
        self.transcript = transcript
        self.knowledge = knowledge
        self.booking = booking

    async def handle(
        self,
        lead_id: str,
        action_id: str,
        label: str,
        channel: ChannelType = ChannelType.WHATSAPP,
    ) -> ActionOutcome:
        """Log the click and route it by intent.

        Raises:
            NotFoundError: If the lead does not exist
        """
        lead = await self.identity.get_identity(lead_id)
        await self.transcript.append(
            lead.id,
            SenderRole.CUSTOMER,
            f"Clicked: {label}",
            channel=channel,
            message_type=MessageType.BUTTON_CLICK,
            metadata={"action_id": action_id},
        )

        intent = infer_intent(label, action_id)
        logger.info("Button clicked", lead_id=lead.id, action_id=action_id, intent=intent.value)

        if intent == ActionIntent.CALL:
            link = self.booking.generate_booking_link(lead.id, booking_type="call")
            return ActionOutcome(
                intent=intent,
                message=f"Great! Pick a time that suits you here: {link.url}",
                details={"booking_link": link.url, "expires_at": link.expires_at.isoformat()},
            )

        if intent == ActionIntent.GET_INFO:
            snippets = await self.knowledge.search(label, lead.tenant, limit=1)
            if snippets:
                snippet = snippets[0]
                return ActionOutcome(
                    intent=intent,
                    message=snippet.answer or snippet.content or "",
                    details={"source": "knowledge_base", "snippet_id": snippet.id},
                )
            return ActionOutcome(
                intent=intent,
                message="I'm looking that up for you. Could you tell me a bit more about what you need?",
            )

        if intent == ActionIntent.CONTACT_SALES:
            return ActionOutcome(
                intent=intent,
                message="I've flagged your request for our team. They will reach out to you shortly!",
                details={"flagged": True},
            )

        if intent == ActionIntent.VIEW_PROPERTY:
            match = _PROPERTY_ID.search(action_id.lower())
            return ActionOutcome(
                intent=intent,
                message="Here are the details you asked for. Want me to arrange a visit?",
                details={"property_id": match.group(1) if match else None},
            )

        return ActionOutcome(
            intent=intent,
            message="Thank you for your interest! How can I help you further?",
        )
