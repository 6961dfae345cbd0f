"""Append-only cross-channel transcript."""

from typing import Any

import structlog

from leadline.core.exceptions import NotFoundError
from leadline.models import ChannelType, MessageType, SenderRole, TranscriptEntry
from leadline.storage.base import StorageBackend

logger = structlog.get_logger()


class TranscriptLog:
    """Message history shared by every channel a lead talks to us on."""

    def __init__(self, storage: StorageBackend, window: int = 20) -> None:
        self.storage = storage
        self.window = window

    async def append(
        self,
        lead_id: str,
        sender: SenderRole,
        content: str,
        channel: ChannelType = ChannelType.WHATSAPP,
        message_type: MessageType = MessageType.TEXT,
        metadata: dict[str, Any] | None = None,
    ) -> TranscriptEntry:
        """Log one message for a lead.

        Raises:
            NotFoundError: If the lead does not exist
        """
        if await self.storage.get_lead(lead_id) is None:
            raise NotFoundError("Lead", lead_id)

        entry = TranscriptEntry(
            lead_id=lead_id,
            channel=channel,
            sender=sender,
            content=content,
            message_type=message_type,
            metadata=metadata or {},
        )
        await self.storage.append_entry(entry)

        logger.debug(
            "Logged transcript entry",
            lead_id=lead_id,
            sender=sender.value,
            message_type=message_type.value,
        )
        return entry

    async def recent(
        self,
        lead_id: str,
        channel: ChannelType | None = ChannelType.WHATSAPP,
        limit: int | None = None,
    ) -> list[TranscriptEntry]:
        """Most recent entries, newest first."""
        return await self.storage.get_recent_entries(lead_id, channel, limit or self.window)

    async def latest_agent_entry(
        self,
        lead_id: str,
        channel: ChannelType = ChannelType.WHATSAPP,
    ) -> TranscriptEntry | None:
        return await self.storage.get_latest_entry(lead_id, channel, SenderRole.AGENT)

    async def update_metadata(self, entry_id: str, metadata: dict[str, Any]) -> TranscriptEntry:
        return await self.storage.update_entry_metadata(entry_id, metadata)
