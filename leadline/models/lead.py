"""Customer identity (lead) models."""

from datetime import datetime
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, Field

from leadline.models.common import ChannelType, Tenant, utcnow


class IdentityHint(BaseModel):
    """What the current inbound message tells us about the sender."""

    channel: ChannelType = ChannelType.WHATSAPP
    name: str | None = None
    email: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)


class Lead(BaseModel):
    """Canonical, deduplicated customer record keyed by normalized phone."""

    id: str = Field(default_factory=lambda: str(uuid4()))
    phone: str = Field(..., description="Identifier as first seen")
    phone_normalized: str = Field(..., description="Deduplication key")
    tenant: Tenant = Tenant.PROXE

    # Profile
    name: str | None = None
    email: str | None = None

    # Touchpoints
    first_touch: ChannelType
    last_touch: ChannelType
    last_interaction_at: datetime = Field(default_factory=utcnow)

    # Free-form context partitioned by channel name
    context: dict[str, Any] = Field(default_factory=dict)

    # Timestamps
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @property
    def dedup_key(self) -> str:
        """Uniqueness key for the (normalized phone, tenant) constraint."""
        return lead_key(self.phone_normalized, self.tenant)

    def channel_context(self, channel: ChannelType) -> dict[str, Any]:
        """Sub-object of the context blob owned by one channel."""
        value = self.context.get(channel.value)
        return value if isinstance(value, dict) else {}


def lead_key(phone_normalized: str, tenant: Tenant | str) -> str:
    tenant_value = tenant.value if isinstance(tenant, Tenant) else tenant
    return f"{tenant_value}:{phone_normalized}"
