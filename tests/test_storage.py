"""Tests for storage backends."""

from datetime import timedelta

import pytest

from leadline.core.exceptions import DuplicateKeyError, NotFoundError
from leadline.models import (
    ChannelSession,
    ChannelType,
    Lead,
    SenderRole,
    Tenant,
    TranscriptEntry,
    utcnow,
)


def make_lead(phone="9876543210", tenant=Tenant.PROXE) -> Lead:
    return Lead(
        phone=phone,
        phone_normalized=phone,
        tenant=tenant,
        first_touch=ChannelType.WHATSAPP,
        last_touch=ChannelType.WHATSAPP,
    )


@pytest.mark.asyncio
async def test_lead_insert_enforces_unique_phone_per_tenant(storage):
    """Second insert for the same (phone, tenant) is rejected."""
    await storage.insert_lead(make_lead())

    with pytest.raises(DuplicateKeyError):
        await storage.insert_lead(make_lead())

    # Same phone under another tenant is a different lead
    await storage.insert_lead(make_lead(tenant=Tenant.WINDCHASERS))
    assert storage.lead_count == 2


@pytest.mark.asyncio
async def test_lead_lookup_by_phone(storage):
    lead = await storage.insert_lead(make_lead())

    found = await storage.get_lead_by_phone("9876543210", Tenant.PROXE)
    assert found is not None
    assert found.id == lead.id
    assert await storage.get_lead_by_phone("9876543210", Tenant.WINDCHASERS) is None


@pytest.mark.asyncio
async def test_save_unknown_lead_raises(storage):
    with pytest.raises(NotFoundError):
        await storage.save_lead(make_lead())


@pytest.mark.asyncio
async def test_session_crud(storage):
    """Test session insert, lookup and update."""
    session = ChannelSession(external_id="919876543210", tenant=Tenant.PROXE)
    await storage.insert_session(session)

    with pytest.raises(DuplicateKeyError):
        await storage.insert_session(ChannelSession(external_id="919876543210", tenant=Tenant.PROXE))

    found = await storage.get_session_by_external_id("919876543210", Tenant.PROXE, ChannelType.WHATSAPP)
    assert found is not None
    assert found.id == session.id

    updated = await storage.update_session(session.id, {"name": "Asha"})
    assert updated.name == "Asha"

    incremented = await storage.increment_session_messages(session.id)
    assert incremented.message_count == 1
    assert incremented.last_message_at is not None


@pytest.mark.asyncio
async def test_transcript_ordering_and_metadata(storage):
    """Recent entries come back newest first; metadata merges."""
    lead = await storage.insert_lead(make_lead())
    base = utcnow()
    for i, sender in enumerate([SenderRole.CUSTOMER, SenderRole.AGENT, SenderRole.CUSTOMER]):
        await storage.append_entry(
            TranscriptEntry(
                lead_id=lead.id,
                sender=sender,
                content=f"message {i}",
                created_at=base + timedelta(seconds=i),
            )
        )

    recent = await storage.get_recent_entries(lead.id, ChannelType.WHATSAPP, limit=2)
    assert [e.content for e in recent] == ["message 2", "message 1"]

    latest_agent = await storage.get_latest_entry(lead.id, ChannelType.WHATSAPP, SenderRole.AGENT)
    assert latest_agent is not None
    assert latest_agent.content == "message 1"

    await storage.update_entry_metadata(latest_agent.id, {"tokens_used": 20})
    await storage.update_entry_metadata(latest_agent.id, {"urgency": "normal"})
    assert latest_agent.metadata == {"tokens_used": 20, "urgency": "normal"}

    since = await storage.list_entries_since(base + timedelta(seconds=1))
    assert [e.content for e in since] == ["message 1", "message 2"]


@pytest.mark.asyncio
async def test_health_check(storage):
    assert await storage.health_check() is True
