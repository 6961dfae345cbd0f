"""Aggregates recent conversations into fine-tuning pairs."""

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any

import structlog

from leadline.core.exceptions import ValidationError
from leadline.models import ChannelType, Lead, SenderRole, Tenant, TranscriptEntry, utcnow
from leadline.storage.base import StorageBackend

logger = structlog.get_logger()

MIN_HOURS = 1
MAX_HOURS = 168
NEW_CUSTOMER_MAX_MESSAGES = 3
HOT_TAGS = {"hot", "hot_lead"}

SEGMENTS = ("new_customers", "hot_leads", "evaluation_phase", "closing_phase")


@dataclass
class TrainingPair:
    """A customer message and the reply that followed it."""

    customer_message: str
    agent_response: str
    lead: Lead | None
    metadata: dict[str, Any] = field(default_factory=dict)


def pair_entries(entries: list[TranscriptEntry]) -> list[tuple[TranscriptEntry, TranscriptEntry]]:
    """Adjacent customer -> agent pairs from entries sorted oldest first."""
    return [
        (current, following)
        for current, following in zip(entries, entries[1:])
        if current.sender == SenderRole.CUSTOMER and following.sender == SenderRole.AGENT
    ]


def segment_for(lead: Lead | None, channel: ChannelType) -> str | None:
    if lead is None:
        return None

    channel_context = lead.channel_context(channel)
    message_count = int(channel_context.get("message_count") or 0)
    tags = set(lead.context.get("tags") or [])
    phase = channel_context.get("conversation_phase")

    if message_count <= NEW_CUSTOMER_MAX_MESSAGES:
        return "new_customers"
    if tags & HOT_TAGS:
        return "hot_leads"
    if phase == "evaluation":
        return "evaluation_phase"
    if phase == "closing":
        return "closing_phase"
    return None


def to_record(pair: TrainingPair) -> dict[str, Any]:
    lead = pair.lead
    return {
        "input": pair.customer_message,
        "output": pair.agent_response,
        "context": {
            "name": lead.name if lead else None,
            "phone": lead.phone if lead else None,
            "tenant": lead.tenant.value if lead else None,
            "tags": list(lead.context.get("tags") or []) if lead else [],
        },
        "metadata": {
            "response_type": pair.metadata.get("response_type", "text_only"),
            "tokens_used": pair.metadata.get("tokens_used", 0),
            "response_time_ms": pair.metadata.get("response_time_ms", 0),
            "message_type": pair.metadata.get("message_type", "text"),
        },
    }


class TrainingExporter:
    """Builds the nightly training dataset from the transcript."""

    def __init__(self, storage: StorageBackend, channel: ChannelType = ChannelType.WHATSAPP) -> None:
        self.storage = storage
        self.channel = channel

    async def aggregate(self, hours: int = 24, tenant: Tenant | None = None) -> dict[str, Any]:
        """Collect customer -> agent pairs from the last `hours`.

        Args:
            hours: Look-back window, 1 to 168
            tenant: Only include leads of this tenant

        Returns:
            Summary with per-segment pairs and a flat dataset

        Raises:
            ValidationError: If hours is out of range
        """
        if not MIN_HOURS <= hours <= MAX_HOURS:
            raise ValidationError(
                f"Hours must be between {MIN_HOURS} and {MAX_HOURS}",
                details={"hours": hours},
            )

        since = utcnow() - timedelta(hours=hours)
        entries = await self.storage.list_entries_since(since, self.channel)

        by_lead: dict[str, list[TranscriptEntry]] = defaultdict(list)
        for entry in entries:
            by_lead[entry.lead_id].append(entry)

        pairs: list[TrainingPair] = []
        for lead_id, lead_entries in by_lead.items():
            lead = await self.storage.get_lead(lead_id)
            if tenant is not None and (lead is None or lead.tenant != tenant):
                continue

            lead_entries.sort(key=lambda e: e.created_at)
            for customer, agent in pair_entries(lead_entries):
                pairs.append(
                    TrainingPair(
                        customer_message=customer.content,
                        agent_response=agent.content,
                        lead=lead,
                        metadata={
                            **agent.metadata,
                            "timestamp": agent.created_at.isoformat(),
                            "message_type": agent.message_type.value,
                        },
                    )
                )

        segments: dict[str, list[dict[str, Any]]] = {name: [] for name in SEGMENTS}
        for pair in pairs:
            segment = segment_for(pair.lead, self.channel)
            if segment:
                segments[segment].append(to_record(pair))

        logger.info("Aggregated training pairs", pairs=len(pairs), hours=hours)

        return {
            "timestamp": utcnow().isoformat(),
            "period": f"{hours} hours",
            "total_conversations": len(pairs),
            "segments": segments,
            "dataset": [to_record(pair) for pair in pairs],
        }
