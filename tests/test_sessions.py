"""Tests for channel sessions."""

import pytest

from leadline.models import ChannelType, ConversationData, ConversationPhase, SessionHint, Tenant
from leadline.services.sessions.store import ChannelSessionStore


@pytest.fixture
def sessions(storage):
    return ChannelSessionStore(storage)


@pytest.mark.asyncio
async def test_get_or_create_returns_same_session(sessions, storage):
    first = await sessions.get_or_create_session("919876543210", Tenant.PROXE)
    second = await sessions.get_or_create_session("919876543210", Tenant.PROXE, SessionHint(name="Asha"))

    assert first.id == second.id
    assert second.name == "Asha"
    assert storage.session_count == 1


@pytest.mark.asyncio
async def test_sessions_are_per_channel(sessions):
    whatsapp = await sessions.get_or_create_session("919876543210", Tenant.PROXE)
    web = await sessions.get_or_create_session(
        "919876543210",
        Tenant.PROXE,
        SessionHint(channel=ChannelType.WEB),
    )
    assert whatsapp.id != web.id


@pytest.mark.asyncio
async def test_increments_add_up(sessions):
    session = await sessions.get_or_create_session("919876543210", Tenant.PROXE)
    for _ in range(7):
        await sessions.increment_message_count(session.id)

    session = await sessions.get_or_create_session("919876543210", Tenant.PROXE)
    assert session.message_count == 7


@pytest.mark.asyncio
async def test_link_to_identity_is_set_once(sessions):
    session = await sessions.get_or_create_session("919876543210", Tenant.PROXE)

    linked = await sessions.link_to_identity(session, "lead-1")
    assert linked.lead_id == "lead-1"

    relinked = await sessions.link_to_identity(linked, "lead-2")
    assert relinked.lead_id == "lead-1"


@pytest.mark.asyncio
async def test_update_conversation_data(sessions):
    session = await sessions.get_or_create_session("919876543210", Tenant.PROXE)
    updated = await sessions.update_conversation_data(
        session,
        ConversationData(
            summary="Customer inquired about: Pricing inquiry",
            interests=["budget around 50k"],
            phase=ConversationPhase.DISCOVERY,
        ),
    )

    assert updated.conversation_summary == "Customer inquired about: Pricing inquiry"
    assert updated.user_inputs == ["budget around 50k"]
    assert updated.conversation_phase == ConversationPhase.DISCOVERY
