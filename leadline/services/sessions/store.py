"""Channel session tracking."""

import structlog
from tenacity import retry, retry_if_exception_type, stop_after_attempt

from leadline.core.exceptions import DuplicateKeyError
from leadline.models import ChannelSession, ConversationData, SessionHint, Tenant
from leadline.storage.base import StorageBackend

logger = structlog.get_logger()


class ChannelSessionStore:
    """Per-channel, per-customer sessions keyed by raw external id."""

    def __init__(self, storage: StorageBackend) -> None:
        self.storage = storage

    @retry(
        retry=retry_if_exception_type(DuplicateKeyError),
        stop=stop_after_attempt(3),
        reraise=True,
    )
    async def get_or_create_session(
        self,
        external_id: str,
        tenant: Tenant,
        hint: SessionHint | None = None,
    ) -> ChannelSession:
        """Get the session for (external id, tenant, channel) or open one.

        Args:
            external_id: Raw channel identifier
            tenant: Brand the message belongs to
            hint: Channel plus profile fields to fill in

        Returns:
            ChannelSession
        """
        hint = hint or SessionHint()

        session = await self.storage.get_session_by_external_id(external_id, tenant, hint.channel)
        if session:
            fields = {}
            if session.name is None and hint.name:
                fields["name"] = hint.name
            if session.email is None and hint.email:
                fields["email"] = hint.email
            if fields:
                session = await self.storage.update_session(session.id, fields)
            return session

        session = ChannelSession(
            channel=hint.channel,
            external_id=external_id,
            tenant=tenant,
            name=hint.name,
            email=hint.email,
            channel_data=dict(hint.channel_data),
        )
        await self.storage.insert_session(session)

        logger.info(
            "Created channel session",
            session_id=session.id,
            channel=hint.channel.value,
            tenant=tenant.value,
        )
        return session

    async def link_to_identity(self, session: ChannelSession, lead_id: str) -> ChannelSession:
        """Point the session at its lead. Set once; later calls are no-ops."""
        if session.lead_id:
            if session.lead_id != lead_id:
                logger.warning(
                    "Session already linked to a different lead",
                    session_id=session.id,
                    linked_lead_id=session.lead_id,
                    requested_lead_id=lead_id,
                )
            return session

        session = await self.storage.update_session(session.id, {"lead_id": lead_id})
        logger.debug("Linked session to lead", session_id=session.id, lead_id=lead_id)
        return session

    async def increment_message_count(self, session_id: str) -> ChannelSession:
        """Add one to the session's message counter."""
        return await self.storage.increment_session_messages(session_id)

    async def update_conversation_data(
        self,
        session: ChannelSession,
        data: ConversationData,
    ) -> ChannelSession:
        """Replace the derived conversation fields (last writer wins)."""
        return await self.storage.update_session(
            session.id,
            {
                "conversation_summary": data.summary,
                "conversation_context": data.context,
                "user_inputs": data.interests,
                "conversation_phase": data.phase,
            },
        )
