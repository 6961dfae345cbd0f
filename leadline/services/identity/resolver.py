"""Identity resolution - sender identifier to deduplicated lead."""

import re

import structlog
from tenacity import retry, retry_if_exception_type, stop_after_attempt

from leadline.core.exceptions import DuplicateKeyError, InvalidIdentifier, NotFoundError
from leadline.models import IdentityHint, Lead, Tenant, utcnow
from leadline.storage.base import StorageBackend

logger = structlog.get_logger()

_NON_DIGITS = re.compile(r"\D")


def normalize_phone(raw_id: str, match_digits: int = 10) -> str:
    """Normalize a phone-like identifier to its trailing digits.

    Country-code prefixes are dropped by keeping only the last
    ``match_digits`` digits, so "919876543210" and "+91 98765 43210"
    both become "9876543210".

    Raises:
        InvalidIdentifier: If fewer than ``match_digits`` digits remain
    """
    digits = _NON_DIGITS.sub("", raw_id or "")
    if len(digits) < match_digits:
        raise InvalidIdentifier(raw_id, match_digits)
    return digits[-match_digits:]


class IdentityResolver:
    """Upserts one lead per (normalized phone, tenant).

    The storage insert is guarded by a uniqueness constraint. When two first
    messages race, the loser gets DuplicateKeyError and is retried, which then
    finds and updates the winner's record.
    """

    def __init__(self, storage: StorageBackend, match_digits: int = 10) -> None:
        self.storage = storage
        self.match_digits = match_digits

    @retry(
        retry=retry_if_exception_type(DuplicateKeyError),
        stop=stop_after_attempt(3),
        reraise=True,
    )
    async def get_or_create_identity(
        self,
        raw_id: str,
        tenant: Tenant,
        hint: IdentityHint | None = None,
    ) -> Lead:
        """Resolve a sender to a lead, creating it on first contact.

        Args:
            raw_id: Sender identifier as received (phone, wa_id)
            tenant: Brand the message belongs to
            hint: Channel, profile fields and metadata from the message

        Returns:
            The existing (updated) or newly created Lead
        """
        hint = hint or IdentityHint()
        phone = normalize_phone(raw_id, self.match_digits)

        lead = await self.storage.get_lead_by_phone(phone, tenant)
        if lead:
            return await self._touch_existing(lead, hint)

        now = utcnow()
        lead = Lead(
            phone=raw_id,
            phone_normalized=phone,
            tenant=tenant,
            name=hint.name,
            email=hint.email,
            first_touch=hint.channel,
            last_touch=hint.channel,
            last_interaction_at=now,
            context={
                hint.channel.value: {
                    **hint.metadata,
                    "message_count": 1,
                    "last_interaction": now.isoformat(),
                }
            },
        )
        await self.storage.insert_lead(lead)

        logger.info(
            "Created new lead",
            lead_id=lead.id,
            tenant=tenant.value,
            channel=hint.channel.value,
        )
        return lead

    async def _touch_existing(self, lead: Lead, hint: IdentityHint) -> Lead:
        now = utcnow()
        channel = hint.channel.value

        if lead.name is None and hint.name:
            lead.name = hint.name
        if lead.email is None and hint.email:
            lead.email = hint.email

        lead.last_touch = hint.channel
        lead.last_interaction_at = now

        # Only this channel's sub-object changes
        channel_context = dict(lead.channel_context(hint.channel))
        channel_context.update(hint.metadata)
        channel_context["message_count"] = int(channel_context.get("message_count") or 0) + 1
        channel_context["last_interaction"] = now.isoformat()
        lead.context = {**lead.context, channel: channel_context}

        await self.storage.save_lead(lead)

        logger.debug("Found existing lead", lead_id=lead.id, channel=channel)
        return lead

    async def find_identity(self, raw_id: str, tenant: Tenant) -> Lead | None:
        """Look up a lead without creating it."""
        phone = normalize_phone(raw_id, self.match_digits)
        return await self.storage.get_lead_by_phone(phone, tenant)

    async def get_identity(self, lead_id: str) -> Lead:
        """Get a lead by ID.

        Raises:
            NotFoundError: If no such lead exists
        """
        lead = await self.storage.get_lead(lead_id)
        if lead is None:
            raise NotFoundError("Lead", lead_id)
        return lead

    async def update_channel_context(
        self,
        lead_id: str,
        channel: str,
        values: dict,
    ) -> Lead:
        """Merge values into one channel's sub-object of the context blob."""
        lead = await self.get_identity(lead_id)
        channel_context = dict(lead.context.get(channel) or {})
        channel_context.update(values)
        lead.context = {**lead.context, channel: channel_context}
        return await self.storage.save_lead(lead)

    async def touch(self, lead_id: str) -> Lead:
        """Record that we just interacted with a lead."""
        lead = await self.get_identity(lead_id)
        lead.last_interaction_at = utcnow()
        return await self.storage.save_lead(lead)
