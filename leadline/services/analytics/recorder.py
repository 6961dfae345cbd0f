"""Attaches timing and usage analytics to logged replies."""

from dataclasses import asdict, dataclass, field

import structlog

from leadline.models import ChannelType, SenderRole
from leadline.services.identity.resolver import IdentityResolver
from leadline.services.transcript.log import TranscriptLog

logger = structlog.get_logger()


@dataclass
class TurnAnalytics:
    """Measurements for one customer message and its reply."""

    tokens_used: int = 0
    response_time_ms: float = 0.0
    input_to_output_gap_ms: float = 0.0
    response_type: str = "text_only"
    buttons: list[str] = field(default_factory=list)
    urgency: str = "normal"
    next_action: str = "continue_conversation"


class AnalyticsRecorder:
    """Merges turn analytics into a logged agent entry.

    Analytics never fail a turn: every error is logged and swallowed.
    """

    def __init__(self, transcript: TranscriptLog, identity: IdentityResolver) -> None:
        self.transcript = transcript
        self.identity = identity

    async def record_turn(
        self,
        lead_id: str,
        channel: ChannelType,
        analytics: TurnAnalytics,
        entry_id: str | None = None,
    ) -> bool:
        """Record analytics for a reply to a lead.

        Args:
            lead_id: Lead the reply was sent to
            channel: Channel of the reply
            analytics: Measurements for the turn
            entry_id: Transcript entry of the reply; the latest agent entry
                on the channel is used when omitted

        Returns:
            True if the analytics were stored
        """
        try:
            if entry_id is None:
                entry = await self.transcript.latest_agent_entry(lead_id, channel)
                if entry is None:
                    logger.warning("No agent entry to attach analytics to", lead_id=lead_id)
                    return False
                entry_id = entry.id

            await self.transcript.update_metadata(entry_id, asdict(analytics))
            await self.identity.touch(lead_id)
        except Exception as e:
            logger.warning("Failed to record analytics", lead_id=lead_id, entry_id=entry_id, error=str(e))
            return False

        logger.debug(
            "Recorded turn analytics",
            lead_id=lead_id,
            entry_id=entry_id,
            response_time_ms=round(analytics.response_time_ms, 2),
            tokens_used=analytics.tokens_used,
        )
        return True

    async def average_response_times(
        self,
        lead_id: str,
        channel: ChannelType = ChannelType.WHATSAPP,
        sample: int = 5,
    ) -> dict[str, float | int]:
        """Average timings over the last few replies."""
        entries = await self.transcript.recent(lead_id, channel, limit=sample * 2)
        replies = [e for e in entries if e.sender == SenderRole.AGENT][:sample]

        response_times = [float(e.metadata["response_time_ms"]) for e in replies if "response_time_ms" in e.metadata]
        gaps = [float(e.metadata["input_to_output_gap_ms"]) for e in replies if "input_to_output_gap_ms" in e.metadata]

        return {
            "avg_response_time_ms": round(sum(response_times) / len(response_times), 2) if response_times else 0.0,
            "avg_input_to_output_gap_ms": round(sum(gaps) / len(gaps), 2) if gaps else 0.0,
            "sample_size": len(replies),
        }
