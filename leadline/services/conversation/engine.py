"""Conversation engine - runs one customer turn through the pipeline."""

import time
from dataclasses import dataclass
from typing import Any

import structlog

from leadline.models import (
    ConversationContext,
    GeneratedResponse,
    IdentityHint,
    InboundMessage,
    MessageType,
    SenderRole,
    TranscriptEntry,
    utcnow,
)
from leadline.services.analytics.recorder import AnalyticsRecorder, TurnAnalytics
from leadline.services.channels.base import ChannelAdapter
from leadline.services.channels.formatter import format_payload, sanitize_markup
from leadline.services.conversation.context import ContextBuilder
from leadline.services.response.generator import ResponseGenerator
from leadline.services.sessions.store import ChannelSessionStore
from leadline.services.transcript.log import TranscriptLog

logger = structlog.get_logger()


@dataclass
class TurnResult:
    """Everything produced while handling one inbound message."""

    context: ConversationContext
    response: GeneratedResponse
    payload: dict[str, Any]
    customer_entry: TranscriptEntry
    agent_entry: TranscriptEntry | None = None
    delivered: bool = False
    response_time_ms: float = 0.0
    input_to_output_gap_ms: float = 0.0


class ConversationEngine:
    """Main conversation engine that orchestrates the per-turn pipeline.

    Handles:
    - Identity, session and context resolution
    - Transcript logging for both sides of the turn
    - Reply generation and payload rendering
    - Outbound delivery and analytics

    Identity, session and customer-entry failures propagate. Counter,
    agent-entry and analytics failures are logged and the turn carries on.
    """

    def __init__(
        self,
        contexts: ContextBuilder,
        sessions: ChannelSessionStore,
        transcript: TranscriptLog,
        generator: ResponseGenerator,
        analytics: AnalyticsRecorder,
        channel: ChannelAdapter | None = None,
        catalog_id: str = "",
    ) -> None:
        self.contexts = contexts
        self.sessions = sessions
        self.transcript = transcript
        self.generator = generator
        self.analytics = analytics
        self.channel = channel
        self.catalog_id = catalog_id

    async def process_message(self, inbound: InboundMessage, deliver: bool = False) -> TurnResult:
        """Process an inbound message and produce the reply.

        Args:
            inbound: Normalized inbound message
            deliver: Send the payload through the channel adapter

        Returns:
            TurnResult for the turn

        Raises:
            InvalidIdentifier: If the sender id can't be normalized
            UpstreamError: If the completion service or delivery fails
        """
        started = time.perf_counter()
        received_at = utcnow()

        context = await self.contexts.build_context(
            inbound.external_id,
            inbound.tenant,
            IdentityHint(
                channel=inbound.channel,
                name=inbound.display_name,
                email=inbound.email,
            ),
        )

        customer_metadata: dict[str, Any] = {"input_received_at": received_at.isoformat()}
        if inbound.action_id:
            customer_metadata["action_id"] = inbound.action_id
        if inbound.message_id:
            customer_metadata["provider_message_id"] = inbound.message_id

        customer_entry = await self.transcript.append(
            context.lead_id,
            SenderRole.CUSTOMER,
            inbound.text,
            channel=inbound.channel,
            message_type=inbound.message_type,
            metadata=customer_metadata,
        )
        await self._increment(context.session_id)

        response = await self.generator.generate(context, inbound.text)
        response.text = sanitize_markup(response.text)
        response_time_ms = (time.perf_counter() - started) * 1000

        payload = format_payload(
            response.text,
            response.shape,
            response.actions,
            meta={
                "lead_id": context.lead_id,
                "urgency": response.urgency.value,
                "next_action": response.next_action.value,
            },
            catalog_id=self.catalog_id,
        )

        delivered = False
        if deliver and self.channel is not None:
            await self.channel.send(inbound.external_id, payload)
            delivered = True

        gap_ms = (time.perf_counter() - started) * 1000

        agent_entry = await self._log_reply(context, response, response_time_ms, gap_ms)
        if agent_entry is not None:
            await self._increment(context.session_id)
            await self.analytics.record_turn(
                context.lead_id,
                context.channel,
                TurnAnalytics(
                    tokens_used=response.tokens_used,
                    response_time_ms=response_time_ms,
                    input_to_output_gap_ms=gap_ms,
                    response_type=response.shape.value,
                    buttons=list(response.actions),
                    urgency=response.urgency.value,
                    next_action=response.next_action.value,
                ),
                entry_id=agent_entry.id,
            )

        logger.info(
            "Processed message",
            lead_id=context.lead_id,
            session_id=context.session_id,
            channel=inbound.channel.value,
            response_type=response.shape.value,
            delivered=delivered,
            response_time_ms=round(response_time_ms, 2),
        )

        return TurnResult(
            context=context,
            response=response,
            payload=payload,
            customer_entry=customer_entry,
            agent_entry=agent_entry,
            delivered=delivered,
            response_time_ms=response_time_ms,
            input_to_output_gap_ms=gap_ms,
        )

    async def _increment(self, session_id: str) -> None:
        try:
            await self.sessions.increment_message_count(session_id)
        except Exception as e:
            logger.warning("Failed to increment session messages", session_id=session_id, error=str(e))

    async def _log_reply(
        self,
        context: ConversationContext,
        response: GeneratedResponse,
        response_time_ms: float,
        gap_ms: float,
    ) -> TranscriptEntry | None:
        try:
            return await self.transcript.append(
                context.lead_id,
                SenderRole.AGENT,
                response.text,
                channel=context.channel,
                message_type=MessageType.TEXT,
                metadata={
                    "model": response.model,
                    "response_time_ms": response_time_ms,
                    "input_to_output_gap_ms": gap_ms,
                    "action_source": response.action_source,
                },
            )
        except Exception as e:
            logger.warning("Failed to log agent reply", lead_id=context.lead_id, error=str(e))
            return None
