"""Tests for the training data export."""

from datetime import timedelta

import pytest

from leadline.core.exceptions import ValidationError
from leadline.models import ChannelType, SenderRole, Tenant, TranscriptEntry, utcnow
from leadline.services.training import TrainingExporter
from leadline.services.training.exporter import pair_entries, segment_for


async def make_lead(container, phone, tenant=Tenant.PROXE, **channel_values):
    lead = await container.identity.get_or_create_identity(phone, tenant)
    if channel_values:
        lead = await container.identity.update_channel_context(lead.id, "whatsapp", channel_values)
    return lead


async def exchange(container, lead, question, answer, **agent_metadata):
    await container.transcript.append(lead.id, SenderRole.CUSTOMER, question)
    await container.transcript.append(lead.id, SenderRole.AGENT, answer, metadata=agent_metadata)


def entry(sender, content="x"):
    return TranscriptEntry(lead_id="lead-1", sender=sender, content=content)


def test_pair_entries_only_pairs_adjacent_turns():
    entries = [
        entry(SenderRole.AGENT, "Welcome"),
        entry(SenderRole.CUSTOMER, "Hi"),
        entry(SenderRole.AGENT, "Hello!"),
        entry(SenderRole.CUSTOMER, "Pricing?"),
        entry(SenderRole.CUSTOMER, "Anyone?"),
        entry(SenderRole.AGENT, "Starter is ₹4,999/month."),
    ]

    pairs = pair_entries(entries)

    assert [(c.content, a.content) for c, a in pairs] == [
        ("Hi", "Hello!"),
        ("Anyone?", "Starter is ₹4,999/month."),
    ]


@pytest.mark.asyncio
async def test_segments(container, storage):
    new = await make_lead(container, "9000000001")
    evaluating = await make_lead(container, "9000000002", message_count=6, conversation_phase="evaluation")
    closing = await make_lead(container, "9000000003", message_count=12, conversation_phase="closing")
    hot = await make_lead(container, "9000000004", message_count=5, conversation_phase="evaluation")
    hot.context = {**hot.context, "tags": ["hot"]}
    hot = await storage.save_lead(hot)
    quiet = await make_lead(container, "9000000005", message_count=5, conversation_phase="discovery")

    assert segment_for(new, ChannelType.WHATSAPP) == "new_customers"
    assert segment_for(evaluating, ChannelType.WHATSAPP) == "evaluation_phase"
    assert segment_for(closing, ChannelType.WHATSAPP) == "closing_phase"
    assert segment_for(hot, ChannelType.WHATSAPP) == "hot_leads"
    assert segment_for(quiet, ChannelType.WHATSAPP) is None
    assert segment_for(None, ChannelType.WHATSAPP) is None


@pytest.mark.asyncio
async def test_aggregate(container, storage):
    new = await make_lead(container, "9000000001")
    evaluating = await make_lead(container, "9000000002", message_count=6, conversation_phase="evaluation")
    await exchange(container, new, "Hi", "Hello! How can I help?", response_type="text_only", tokens_used=20)
    await exchange(container, evaluating, "Does it support voice?", "Yes, voice is included.")

    # Outside the window
    await storage.append_entry(TranscriptEntry(
        lead_id=new.id,
        sender=SenderRole.CUSTOMER,
        content="Old question",
        created_at=utcnow() - timedelta(hours=30),
    ))

    result = await TrainingExporter(storage).aggregate(hours=24)

    assert result["period"] == "24 hours"
    assert result["total_conversations"] == 2
    assert len(result["segments"]["new_customers"]) == 1
    assert len(result["segments"]["evaluation_phase"]) == 1
    assert result["segments"]["hot_leads"] == []

    record = result["segments"]["new_customers"][0]
    assert record["input"] == "Hi"
    assert record["output"] == "Hello! How can I help?"
    assert record["context"]["phone"] == "9000000001"
    assert record["metadata"]["tokens_used"] == 20


@pytest.mark.asyncio
async def test_aggregate_filters_tenant(container, storage):
    proxe = await make_lead(container, "9000000001")
    pilot = await make_lead(container, "9000000002", tenant=Tenant.WINDCHASERS)
    await exchange(container, proxe, "Hi", "Hello!")
    await exchange(container, pilot, "Hi", "Welcome aboard!")

    result = await TrainingExporter(storage).aggregate(tenant=Tenant.WINDCHASERS)

    assert [r["output"] for r in result["dataset"]] == ["Welcome aboard!"]


@pytest.mark.asyncio
@pytest.mark.parametrize("hours", [0, 169, -5])
async def test_aggregate_rejects_window(storage, hours):
    with pytest.raises(ValidationError):
        await TrainingExporter(storage).aggregate(hours=hours)
