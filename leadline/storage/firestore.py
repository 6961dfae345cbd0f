"""Firestore storage backend for production."""

import os
from datetime import datetime
from typing import Any

import structlog
from google.api_core.exceptions import AlreadyExists
from google.cloud import firestore
from pydantic_core import to_jsonable_python

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

logger = structlog.get_logger()


class FirestoreStorage(StorageBackend):
    """Firestore storage implementation for production.

    Collection structure:
    - leads/{tenant}:{phone_normalized}
    - sessions/{tenant}:{channel}:{external_id}
    - transcript/{entry_id}

    Leads and sessions are keyed by their dedup key so that
    ``DocumentReference.create`` gives an atomic insert-if-absent.
    """

    def __init__(self, project_id: str | None = None) -> None:
        self._project_id = project_id

        if os.environ.get("FIRESTORE_EMULATOR_HOST"):
            logger.info("Using Firestore emulator")

        self._db = firestore.AsyncClient(project=project_id)
        logger.info("Firestore client initialized", project=project_id)

    async def _find_one(self, collection: str, field: str, value: Any):
        query = self._db.collection(collection).where(field, "==", value).limit(1)
        docs = await query.get()
        for doc in docs:
            return doc
        return None

    async def _create(self, collection: str, key: str, data: dict[str, Any]) -> None:
        try:
            await self._db.collection(collection).document(key).create(data)
        except AlreadyExists as e:
            raise DuplicateKeyError(collection, key) from e

    # ==================== Lead Operations ====================

    async def get_lead(self, lead_id: str) -> Lead | None:
        doc = await self._find_one("leads", "id", lead_id)
        return Lead(**doc.to_dict()) if doc else None

    async def get_lead_by_phone(self, phone_normalized: str, tenant: Tenant) -> Lead | None:
        doc = await self._db.collection("leads").document(lead_key(phone_normalized, tenant)).get()
        if not doc.exists:
            return None
        return Lead(**doc.to_dict())

    async def insert_lead(self, lead: Lead) -> Lead:
        await self._create("leads", lead.dedup_key, lead.model_dump(mode="json"))
        return lead

    async def save_lead(self, lead: Lead) -> Lead:
        lead.updated_at = utcnow()
        await self._db.collection("leads").document(lead.dedup_key).set(
            lead.model_dump(mode="json")
        )
        return lead

    # ==================== Session Operations ====================

    async def get_session(self, session_id: str) -> ChannelSession | None:
        doc = await self._find_one("sessions", "id", session_id)
        return ChannelSession(**doc.to_dict()) if doc else None

    async def get_session_by_external_id(
        self,
        external_id: str,
        tenant: Tenant,
        channel: ChannelType,
    ) -> ChannelSession | None:
        key = session_key(external_id, tenant, channel)
        doc = await self._db.collection("sessions").document(key).get()
        if not doc.exists:
            return None
        return ChannelSession(**doc.to_dict())

    async def insert_session(self, session: ChannelSession) -> ChannelSession:
        await self._create("sessions", session.dedup_key, session.model_dump(mode="json"))
        return session

    async def update_session(self, session_id: str, fields: dict[str, Any]) -> ChannelSession:
        doc = await self._find_one("sessions", "id", session_id)
        if doc is None:
            raise NotFoundError("Session", session_id)

        update = to_jsonable_python({**fields, "updated_at": utcnow()})
        await doc.reference.update(update)
        refreshed = await doc.reference.get()
        return ChannelSession(**refreshed.to_dict())

    async def increment_session_messages(self, session_id: str) -> ChannelSession:
        doc = await self._find_one("sessions", "id", session_id)
        if doc is None:
            raise NotFoundError("Session", session_id)

        now = utcnow().isoformat()
        await doc.reference.update({
            "message_count": firestore.Increment(1),
            "last_message_at": now,
            "updated_at": now,
        })
        refreshed = await doc.reference.get()
        return ChannelSession(**refreshed.to_dict())

    # ==================== Transcript Operations ====================

    async def append_entry(self, entry: TranscriptEntry) -> TranscriptEntry:
        await self._db.collection("transcript").document(entry.id).set(
            entry.model_dump(mode="json")
        )
        return entry

    async def get_recent_entries(
        self,
        lead_id: str,
        channel: ChannelType | None = None,
        limit: int = 20,
    ) -> list[TranscriptEntry]:
        query = self._db.collection("transcript").where("lead_id", "==", lead_id)
        if channel:
            query = query.where("channel", "==", channel.value)

        query = query.order_by("created_at", direction="DESCENDING").limit(limit)
        docs = await query.get()
        return [TranscriptEntry(**doc.to_dict()) for doc in docs]

    async def get_latest_entry(
        self,
        lead_id: str,
        channel: ChannelType,
        sender: SenderRole,
    ) -> TranscriptEntry | None:
        query = (
            self._db.collection("transcript")
            .where("lead_id", "==", lead_id)
            .where("channel", "==", channel.value)
            .where("sender", "==", sender.value)
            .order_by("created_at", direction="DESCENDING")
            .limit(1)
        )
        docs = await query.get()
        for doc in docs:
            return TranscriptEntry(**doc.to_dict())
        return None

    async def update_entry_metadata(self, entry_id: str, metadata: dict[str, Any]) -> TranscriptEntry:
        ref = self._db.collection("transcript").document(entry_id)
        doc = await ref.get()
        if not doc.exists:
            raise NotFoundError("TranscriptEntry", entry_id)

        await ref.update({f"metadata.{key}": to_jsonable_python(value) for key, value in metadata.items()})
        refreshed = await ref.get()
        return TranscriptEntry(**refreshed.to_dict())

    async def list_entries_since(
        self,
        since: datetime,
        channel: ChannelType | None = None,
    ) -> list[TranscriptEntry]:
        query = self._db.collection("transcript").where("created_at", ">=", since.isoformat())
        if channel:
            query = query.where("channel", "==", channel.value)

        docs = await query.order_by("created_at").get()
        return [TranscriptEntry(**doc.to_dict()) for doc in docs]

    # ==================== Health Check ====================

    async def health_check(self) -> bool:
        try:
            await self._db.collection("_health").document("check").get()
            return True
        except Exception as e:
            logger.error("Firestore health check failed", error=str(e))
            return False
