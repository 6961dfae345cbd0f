"""Per-turn context assembly from identity, session and transcript."""

import json
from dataclasses import dataclass, field
from typing import Any

import structlog

from leadline.models import (
    Booking,
    ChannelSession,
    ChannelType,
    ConversationContext,
    ConversationData,
    IdentityHint,
    Lead,
    SenderRole,
    SessionHint,
    Tenant,
    TranscriptEntry,
)
from leadline.services.conversation.summary import (
    NEW_CUSTOMER_SUMMARY,
    determine_phase,
    extract_interests,
    generate_summary,
)
from leadline.services.identity.resolver import IdentityResolver
from leadline.services.sessions.store import ChannelSessionStore
from leadline.services.transcript.log import TranscriptLog

logger = structlog.get_logger()

MAX_COMBINED_INTERESTS = 10

_SUMMARY_KEYS = ("conversation_summary", "summary", "last_conversation_summary")
_INTEREST_KEYS = ("user_inputs", "interests")


@dataclass
class CrossChannelHistory:
    """What other channels already know about the customer."""

    summaries: dict[str, str] = field(default_factory=dict)  # Channel label -> summary
    interests: list[str] = field(default_factory=list)
    user_input_summary: str | None = None


def _channel_label(key: str) -> str:
    try:
        return ChannelType(key).label
    except ValueError:
        return key.title()


def collect_cross_channel(lead: Lead, current: ChannelType) -> CrossChannelHistory:
    """Read stored summaries and interests from every other channel."""
    history = CrossChannelHistory()
    top_level = lead.context.get("user_input_summary")

    for key, value in lead.context.items():
        if key == current.value or not isinstance(value, dict):
            continue

        summary = next((value[k] for k in _SUMMARY_KEYS if value.get(k)), None)
        if summary and summary != NEW_CUSTOMER_SUMMARY:
            history.summaries[_channel_label(key)] = str(summary)

        for interest_key in _INTEREST_KEYS:
            for item in value.get(interest_key) or []:
                text = item if isinstance(item, str) else json.dumps(item, default=str)
                if text:
                    history.interests.append(text)

        if not history.user_input_summary and value.get("user_input_summary"):
            history.user_input_summary = str(value["user_input_summary"])

    if not history.user_input_summary and top_level:
        history.user_input_summary = str(top_level)
    return history


def find_booking(context: dict[str, Any]) -> Booking | None:
    """Booking stored at the top of the context blob or in any channel."""
    candidates = [context] + [v for v in context.values() if isinstance(v, dict)]
    for candidate in candidates:
        booking = Booking(
            date=candidate.get("booking_date"),
            time=candidate.get("booking_time"),
            status=candidate.get("booking_status"),
        )
        if booking.exists:
            return booking
    return None


def combine_summaries(
    other_channels: dict[str, str],
    channel: ChannelType,
    current_summary: str,
) -> str:
    """Join per-channel summaries into one block, e.g. "Web: ...\\nWhatsApp: ..."."""
    lines = [f"{label}: {summary}" for label, summary in other_channels.items()]
    if not lines:
        return current_summary
    if current_summary != NEW_CUSTOMER_SUMMARY:
        lines.append(f"{channel.label}: {current_summary}")
    return "\n".join(lines)


def merge_interests(*groups: list[str]) -> list[str]:
    merged: list[str] = []
    for group in groups:
        for item in group:
            if item and item not in merged:
                merged.append(item)
    return merged[:MAX_COMBINED_INTERESTS]


def greeting_instruction(context: ConversationContext, history: CrossChannelHistory, session_messages: int) -> str:
    if context.has_booking:
        date = context.booking.date or "the scheduled date"
        time = context.booking.time or "the scheduled time"
        return (
            "GREETING INSTRUCTION: This is a returning customer with a confirmed booking "
            f"on {date} at {time}. Greet them by name and acknowledge their booking. "
            "Do NOT ask 'What brings you here today?'"
        )
    if history.summaries:
        channels = " and ".join(history.summaries)
        return (
            "GREETING INSTRUCTION: This is a returning customer who previously chatted "
            f"with us on {channels}. Greet them by name and reference you've chatted before. "
            "Do NOT treat them as new."
        )
    if session_messages > 0:
        return (
            "GREETING INSTRUCTION: This is a returning customer. Greet them warmly by name "
            "if available. Do NOT ask generic questions like 'What brings you here today?'"
        )
    return "GREETING INSTRUCTION: This is a new customer. Welcome them warmly and ask how you can help."


def render_customer_note(
    context: ConversationContext,
    history: CrossChannelHistory,
    session_messages: int,
) -> str:
    """Customer-context note placed in the system prompt."""
    parts: list[str] = []

    if context.customer_name:
        parts.append(f"Customer: {context.customer_name}")
    if session_messages > 0:
        parts.append(f"Previous conversations: {session_messages}")
    parts.append(f"Phase: {context.phase.value}")

    for label, summary in history.summaries.items():
        parts.append(f"{label} conversation summary: {summary}")
    if history.user_input_summary:
        parts.append(f"User input summary: {history.user_input_summary}")

    if context.has_booking:
        booking = context.booking
        details = [
            f"{name}: {value}"
            for name, value in (("Date", booking.date), ("Time", booking.time), ("Status", booking.status))
            if value
        ]
        parts.append(f"Existing booking: {', '.join(details)}")

    if history.interests:
        parts.append(f"Previous interests from other channels: {', '.join(history.interests)}")
    if context.channel_data:
        parts.append(f"Channel data: {json.dumps(context.channel_data, default=str)}")
    if context.combined_interests:
        parts.append(f"All interests: {', '.join(context.combined_interests)}")
    if context.budget:
        parts.append(f"Budget: {context.budget}")
    if context.combined_summary and context.combined_summary != NEW_CUSTOMER_SUMMARY:
        parts.append(f"Conversation summary: {context.combined_summary}")

    parts.append(greeting_instruction(context, history, session_messages))
    return "\n".join(parts)


class ContextBuilder:
    """Builds the per-turn ConversationContext.

    Resolution failures propagate. Writing the derived summary and interests
    back is best effort and never affects the returned context.
    """

    def __init__(
        self,
        identity: IdentityResolver,
        sessions: ChannelSessionStore,
        transcript: TranscriptLog,
        history_window: int = 10,
    ) -> None:
        self.identity = identity
        self.sessions = sessions
        self.transcript = transcript
        self.history_window = history_window

    async def build_context(
        self,
        external_id: str,
        tenant: Tenant,
        hint: IdentityHint | None = None,
        channel_data: dict[str, Any] | None = None,
    ) -> ConversationContext:
        """Resolve the sender and assemble everything the reply needs.

        Args:
            external_id: Raw channel identifier of the sender
            tenant: Brand the message belongs to
            hint: Channel, profile and metadata from the inbound message
            channel_data: Channel-specific session metadata

        Returns:
            ConversationContext for this turn
        """
        hint = hint or IdentityHint()
        channel = hint.channel

        lead = await self.identity.get_or_create_identity(external_id, tenant, hint)
        session = await self.sessions.get_or_create_session(
            external_id,
            tenant,
            SessionHint(
                channel=channel,
                name=hint.name,
                email=hint.email,
                channel_data=channel_data or {},
            ),
        )
        session = await self.sessions.link_to_identity(session, lead.id)

        entries = await self.transcript.recent(lead.id, channel)

        interests = extract_interests(entries)
        phase = determine_phase(len(entries))
        summary = generate_summary(entries)

        history = collect_cross_channel(lead, channel)

        context = ConversationContext(
            lead_id=lead.id,
            session_id=session.id,
            tenant=tenant,
            channel=channel,
            customer_name=lead.name or session.name,
            phone=lead.phone,
            email=lead.email,
            first_touch=lead.first_touch,
            message_count=len(entries),
            phase=phase,
            summary=summary,
            interests=interests,
            combined_summary=combine_summaries(history.summaries, channel, summary),
            combined_interests=merge_interests(history.interests, interests),
            booking=find_booking(lead.context),
            has_cross_channel_history=bool(history.summaries or history.interests),
            channel_data=session.channel_data,
            budget=_budget(lead.context),
            history=[e.to_llm_message() for e in reversed(entries[:self.history_window])],
            last_agent_message=_latest_from(entries, SenderRole.AGENT),
        )
        context.customer_note = render_customer_note(context, history, session.message_count)

        await self._persist_derivatives(lead, session, context)
        return context

    async def _persist_derivatives(
        self,
        lead: Lead,
        session: ChannelSession,
        context: ConversationContext,
    ) -> None:
        # Each write is independent; one failing never blocks the other
        try:
            await self.sessions.update_conversation_data(
                session,
                ConversationData(
                    summary=context.summary,
                    context={
                        "combined_summary": context.combined_summary,
                        "combined_interests": context.combined_interests,
                        "has_booking": context.has_booking,
                    },
                    interests=context.interests,
                    phase=context.phase,
                ),
            )
        except Exception as e:
            logger.warning(
                "Failed to persist session conversation data",
                lead_id=lead.id,
                session_id=session.id,
                error=str(e),
            )

        try:
            await self.identity.update_channel_context(
                lead.id,
                context.channel.value,
                {
                    "conversation_summary": context.summary,
                    "user_inputs": context.interests,
                    "conversation_phase": context.phase.value,
                },
            )
        except Exception as e:
            logger.warning(
                "Failed to persist channel context",
                lead_id=lead.id,
                session_id=session.id,
                error=str(e),
            )


def _budget(context: dict[str, Any]) -> str | None:
    value = context.get("budget")
    return str(value) if value is not None else None


def _latest_from(entries: list[TranscriptEntry], sender: SenderRole) -> str | None:
    for entry in entries:
        if entry.sender == sender:
            return entry.content
    return None
