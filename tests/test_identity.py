"""Tests for identity resolution."""

import asyncio

import pytest

from leadline.core.exceptions import InvalidIdentifier, NotFoundError
from leadline.models import ChannelType, IdentityHint, Tenant
from leadline.services.identity.resolver import IdentityResolver, normalize_phone


@pytest.fixture
def resolver(storage):
    return IdentityResolver(storage)


@pytest.mark.parametrize(
    "raw",
    ["9876543210", "919876543210", "+91 98765 43210", "+91-9876-543-210", "0919876543210"],
)
def test_normalize_phone_keeps_trailing_digits(raw):
    assert normalize_phone(raw) == "9876543210"


def test_normalize_phone_rejects_short_identifiers():
    with pytest.raises(InvalidIdentifier) as exc_info:
        normalize_phone("12345")
    assert exc_info.value.status_code == 400
    assert exc_info.value.code == "INVALID_IDENTIFIER"


def test_normalize_phone_match_digits_is_configurable():
    assert normalize_phone("+91 98765 43210", match_digits=12) == "919876543210"


@pytest.mark.asyncio
async def test_get_or_create_is_idempotent(resolver, storage):
    """Identifiers with the same suffix resolve to one lead."""
    first = await resolver.get_or_create_identity(
        "919876543210",
        Tenant.PROXE,
        IdentityHint(channel=ChannelType.WHATSAPP, name="Asha"),
    )
    second = await resolver.get_or_create_identity("+91 98765 43210", Tenant.PROXE)

    assert first.id == second.id
    assert storage.lead_count == 1
    assert first.first_touch == ChannelType.WHATSAPP
    assert second.context["whatsapp"]["message_count"] == 2


@pytest.mark.asyncio
async def test_tenants_are_isolated(resolver):
    proxe = await resolver.get_or_create_identity("9876543210", Tenant.PROXE)
    windchasers = await resolver.get_or_create_identity("9876543210", Tenant.WINDCHASERS)
    assert proxe.id != windchasers.id


@pytest.mark.asyncio
async def test_concurrent_first_contact_creates_one_lead(resolver, storage):
    leads = await asyncio.gather(
        *(resolver.get_or_create_identity("9876543210", Tenant.PROXE) for _ in range(5))
    )
    assert len({lead.id for lead in leads}) == 1
    assert storage.lead_count == 1


@pytest.mark.asyncio
async def test_profile_fields_are_filled_not_overwritten(resolver):
    await resolver.get_or_create_identity("9876543210", Tenant.PROXE, IdentityHint(name="Asha"))
    lead = await resolver.get_or_create_identity(
        "9876543210",
        Tenant.PROXE,
        IdentityHint(name="Someone Else", email="asha@example.com"),
    )
    assert lead.name == "Asha"
    assert lead.email == "asha@example.com"


@pytest.mark.asyncio
async def test_other_channel_context_is_preserved(resolver):
    """Touching one channel never rewrites another channel's sub-object."""
    lead = await resolver.get_or_create_identity(
        "9876543210",
        Tenant.PROXE,
        IdentityHint(channel=ChannelType.WEB, metadata={"page": "/pricing"}),
    )
    await resolver.update_channel_context(lead.id, "web", {"conversation_summary": "Asked about plans"})

    lead = await resolver.get_or_create_identity(
        "9876543210",
        Tenant.PROXE,
        IdentityHint(channel=ChannelType.WHATSAPP, metadata={"wa_profile": "Asha"}),
    )

    assert lead.first_touch == ChannelType.WEB
    assert lead.last_touch == ChannelType.WHATSAPP
    assert lead.context["web"]["conversation_summary"] == "Asked about plans"
    assert lead.context["web"]["page"] == "/pricing"
    assert lead.context["whatsapp"]["wa_profile"] == "Asha"
    assert lead.context["whatsapp"]["message_count"] == 1


@pytest.mark.asyncio
async def test_get_identity_unknown_lead(resolver):
    with pytest.raises(NotFoundError):
        await resolver.get_identity("missing")
