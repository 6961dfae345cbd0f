"""Abstract base class for storage backends."""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any

from leadline.models import ChannelSession, ChannelType, Lead, SenderRole, Tenant, TranscriptEntry


class StorageBackend(ABC):
    """Abstract storage backend interface.

    Inserts of leads and sessions enforce a uniqueness constraint on their
    dedup keys and raise DuplicateKeyError when the key is already taken.
    """

    # ==================== Lead Operations ====================

    @abstractmethod
    async def get_lead(self, lead_id: str) -> Lead | None:
        """Get a lead by ID."""
        ...

    @abstractmethod
    async def get_lead_by_phone(self, phone_normalized: str, tenant: Tenant) -> Lead | None:
        """Get a lead by its (normalized phone, tenant) key."""
        ...

    @abstractmethod
    async def insert_lead(self, lead: Lead) -> Lead:
        """Insert a new lead, raising DuplicateKeyError if the key exists."""
        ...

    @abstractmethod
    async def save_lead(self, lead: Lead) -> Lead:
        """Update an existing lead."""
        ...

    # ==================== Session Operations ====================

    @abstractmethod
    async def get_session(self, session_id: str) -> ChannelSession | None:
        """Get a channel session by ID."""
        ...

    @abstractmethod
    async def get_session_by_external_id(
        self,
        external_id: str,
        tenant: Tenant,
        channel: ChannelType,
    ) -> ChannelSession | None:
        """Get the session for a raw channel identifier."""
        ...

    @abstractmethod
    async def insert_session(self, session: ChannelSession) -> ChannelSession:
        """Insert a new session, raising DuplicateKeyError if the key exists."""
        ...

    @abstractmethod
    async def update_session(self, session_id: str, fields: dict[str, Any]) -> ChannelSession:
        """Overwrite the given top-level fields of a session."""
        ...

    @abstractmethod
    async def increment_session_messages(self, session_id: str) -> ChannelSession:
        """Atomically add one to the message counter and stamp last_message_at."""
        ...

    # ==================== Transcript Operations ====================

    @abstractmethod
    async def append_entry(self, entry: TranscriptEntry) -> TranscriptEntry:
        """Append a transcript entry."""
        ...

    @abstractmethod
    async def get_recent_entries(
        self,
        lead_id: str,
        channel: ChannelType | None = None,
        limit: int = 20,
    ) -> list[TranscriptEntry]:
        """Get the most recent entries for a lead, newest first."""
        ...

    @abstractmethod
    async def get_latest_entry(
        self,
        lead_id: str,
        channel: ChannelType,
        sender: SenderRole,
    ) -> TranscriptEntry | None:
        """Get the newest entry from one sender."""
        ...

    @abstractmethod
    async def update_entry_metadata(self, entry_id: str, metadata: dict[str, Any]) -> TranscriptEntry:
        """Merge keys into an entry's metadata."""
        ...

    @abstractmethod
    async def list_entries_since(
        self,
        since: datetime,
        channel: ChannelType | None = None,
    ) -> list[TranscriptEntry]:
        """List entries created at or after a time, oldest first."""
        ...

    # ==================== Health Check ====================

    @abstractmethod
    async def health_check(self) -> bool:
        """Check if storage is healthy."""
        ...
