"""In-memory storage backend for development and testing."""

import asyncio
from datetime import datetime
from typing import Any

from leadline.core.exceptions import DuplicateKeyError, NotFoundError
from leadline.models import (
    ChannelSession,
    ChannelType,
    Lead,
    SenderRole,
    Tenant,
    TranscriptEntry,
    lead_key,
    session_key,
    utcnow,
)
from leadline.storage.base import StorageBackend


class InMemoryStorage(StorageBackend):
    """In-memory storage implementation for development."""

    def __init__(self) -> None:
        self._leads: dict[str, Lead] = {}
        self._lead_keys: dict[str, str] = {}
        self._sessions: dict[str, ChannelSession] = {}
        self._session_keys: dict[str, str] = {}
        # Insertion order doubles as the tie-breaker for equal timestamps
        self._entries: list[TranscriptEntry] = []
        self._lock = asyncio.Lock()

    # ==================== Lead Operations ====================

    async def get_lead(self, lead_id: str) -> Lead | None:
        return self._leads.get(lead_id)

    async def get_lead_by_phone(self, phone_normalized: str, tenant: Tenant) -> Lead | None:
        lead_id = self._lead_keys.get(lead_key(phone_normalized, tenant))
        return self._leads.get(lead_id) if lead_id else None

    async def insert_lead(self, lead: Lead) -> Lead:
        async with self._lock:
            if lead.dedup_key in self._lead_keys:
                raise DuplicateKeyError("leads", lead.dedup_key)
            self._lead_keys[lead.dedup_key] = lead.id
            self._leads[lead.id] = lead
        return lead

    async def save_lead(self, lead: Lead) -> Lead:
        if lead.id not in self._leads:
            raise NotFoundError("Lead", lead.id)
        lead.updated_at = utcnow()
        self._leads[lead.id] = lead
        return lead

    # ==================== Session Operations ====================

    async def get_session(self, session_id: str) -> ChannelSession | None:
        return self._sessions.get(session_id)

    async def get_session_by_external_id(
        self,
        external_id: str,
        tenant: Tenant,
        channel: ChannelType,
    ) -> ChannelSession | None:
        session_id = self._session_keys.get(session_key(external_id, tenant, channel))
        return self._sessions.get(session_id) if session_id else None

    async def insert_session(self, session: ChannelSession) -> ChannelSession:
        async with self._lock:
            if session.dedup_key in self._session_keys:
                raise DuplicateKeyError("sessions", session.dedup_key)
            self._session_keys[session.dedup_key] = session.id
            self._sessions[session.id] = session
        return session

    async def update_session(self, session_id: str, fields: dict[str, Any]) -> ChannelSession:
        async with self._lock:
            session = self._require_session(session_id)
            for name, value in fields.items():
                setattr(session, name, value)
            session.updated_at = utcnow()
        return session

    async def increment_session_messages(self, session_id: str) -> ChannelSession:
        async with self._lock:
            session = self._require_session(session_id)
            session.message_count += 1
            session.last_message_at = utcnow()
            session.updated_at = session.last_message_at
        return session

    def _require_session(self, session_id: str) -> ChannelSession:
        session = self._sessions.get(session_id)
        if session is None:
            raise NotFoundError("Session", session_id)
        return session

    # ==================== Transcript Operations ====================

    async def append_entry(self, entry: TranscriptEntry) -> TranscriptEntry:
        self._entries.append(entry)
        return entry

    async def get_recent_entries(
        self,
        lead_id: str,
        channel: ChannelType | None = None,
        limit: int = 20,
    ) -> list[TranscriptEntry]:
        entries = [
            e for e in self._entries
            if e.lead_id == lead_id and (channel is None or e.channel == channel)
        ]
        # Stable sort keeps insertion order among equal timestamps
        entries.sort(key=lambda x: x.created_at)
        return list(reversed(entries[-limit:]))

    async def get_latest_entry(
        self,
        lead_id: str,
        channel: ChannelType,
        sender: SenderRole,
    ) -> TranscriptEntry | None:
        for entry in reversed(self._entries):
            if entry.lead_id == lead_id and entry.channel == channel and entry.sender == sender:
                return entry
        return None

    async def update_entry_metadata(self, entry_id: str, metadata: dict[str, Any]) -> TranscriptEntry:
        for entry in self._entries:
            if entry.id == entry_id:
                entry.metadata = {**entry.metadata, **metadata}
                return entry
        raise NotFoundError("TranscriptEntry", entry_id)

    async def list_entries_since(
        self,
        since: datetime,
        channel: ChannelType | None = None,
    ) -> list[TranscriptEntry]:
        entries = [
            e for e in self._entries
            if e.created_at >= since and (channel is None or e.channel == channel)
        ]
        entries.sort(key=lambda x: x.created_at)
        return entries

    # ==================== Health Check ====================

    async def health_check(self) -> bool:
        return True

    # ==================== Development Helpers ====================

    @property
    def lead_count(self) -> int:
        return len(self._leads)

    @property
    def session_count(self) -> int:
        return len(self._sessions)
