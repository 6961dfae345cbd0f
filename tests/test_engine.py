"""Tests for the conversation engine and webhook dispatcher."""

import asyncio

import pytest

from leadline.core.exceptions import UpstreamAuthError
from leadline.models import InboundMessage, MessageType, Tenant


def inbound(text="Hello", external_id="919876543210", **extra):
    return InboundMessage(external_id=external_id, text=text, tenant=Tenant.PROXE, **extra)


class TestConversationEngine:
    @pytest.mark.asyncio
    async def test_delivers_when_asked(self, container, graph):
        result = await container.engine.process_message(inbound(), deliver=True)

        assert result.delivered is True
        assert graph.bodies[0]["to"] == "919876543210"
        assert result.agent_entry is not None
        assert result.input_to_output_gap_ms >= result.response_time_ms

    @pytest.mark.asyncio
    async def test_payload_carries_turn_metadata(self, container, graph):
        result = await container.engine.process_message(inbound())

        assert result.delivered is False
        assert graph.requests == []
        assert result.payload["metadata"] == {
            "lead_id": result.context.lead_id,
            "urgency": "normal",
            "next_action": "wait_for_response",
        }

    @pytest.mark.asyncio
    async def test_button_click_is_logged_with_action_id(self, container):
        result = await container.engine.process_message(
            inbound("Book Demo", message_type=MessageType.BUTTON_CLICK, action_id="book_demo", message_id="wamid.7"),
        )

        entry = result.customer_entry
        assert entry.message_type == MessageType.BUTTON_CLICK
        assert entry.metadata["action_id"] == "book_demo"
        assert entry.metadata["provider_message_id"] == "wamid.7"

    @pytest.mark.asyncio
    async def test_delivery_failure_skips_agent_entry(self, container, graph):
        graph.status_code = 401

        with pytest.raises(UpstreamAuthError):
            await container.engine.process_message(inbound(), deliver=True)

        lead = await container.identity.find_identity("919876543210", Tenant.PROXE)
        entries = await container.transcript.recent(lead.id)
        assert [e.sender.value for e in entries] == ["customer"]

    @pytest.mark.asyncio
    async def test_agent_log_failure_keeps_reply(self, container, monkeypatch):
        original = container.transcript.append

        async def append(lead_id, sender, content, **kwargs):
            if sender.value == "agent":
                raise RuntimeError("write failed")
            return await original(lead_id, sender, content, **kwargs)

        monkeypatch.setattr(container.transcript, "append", append)

        result = await container.engine.process_message(inbound())

        assert result.agent_entry is None
        assert result.response.text == "Hi there! Welcome to PROXe."
        session = await container.storage.get_session(result.context.session_id)
        assert session.message_count == 1

    @pytest.mark.asyncio
    async def test_analytics_attach_to_own_reply(self, container, monkeypatch):
        original = container.transcript.append

        async def append(lead_id, sender, content, **kwargs):
            entry = await original(lead_id, sender, content, **kwargs)
            if sender.value == "agent" and content != "Overlapping reply":
                # Another turn for the same lead logs its reply in between
                await original(lead_id, sender, "Overlapping reply")
            return entry

        monkeypatch.setattr(container.transcript, "append", append)

        result = await container.engine.process_message(inbound())

        overlapping, own, customer = await container.transcript.recent(result.context.lead_id)
        assert own.id == result.agent_entry.id
        assert own.metadata["tokens_used"] == result.response.tokens_used
        assert own.metadata["response_time_ms"] == result.response_time_ms
        assert overlapping.content == "Overlapping reply"
        assert "tokens_used" not in overlapping.metadata

    @pytest.mark.asyncio
    async def test_second_turn_sees_history(self, container, llm):
        await container.engine.process_message(inbound("Hello"))
        await container.engine.process_message(inbound("Tell me about pricing"))

        messages = llm.calls[1]["messages"]
        assert [m["content"] for m in messages] == [
            "Hello",
            "Hi there! Welcome to PROXe.",
            "Tell me about pricing",
        ]


class TestWebhookDispatcher:
    @pytest.mark.asyncio
    async def test_empty_batch(self, container):
        assert container.dispatcher.dispatch([]) is None

    @pytest.mark.asyncio
    async def test_bad_message_does_not_stop_siblings(self, container, graph):
        task = container.dispatcher.dispatch([
            inbound("Hello", external_id="123"),
            inbound("Hello", external_id="919876543210"),
        ])

        assert container.dispatcher.pending == 1
        await task

        assert container.dispatcher.pending == 0
        assert len(graph.requests) == 1
        [error] = container.errors.latest()
        assert error["type"] == "InvalidIdentifier"
        assert error["context"]["external_id"] == "123"

    @pytest.mark.asyncio
    async def test_drain_cancels_after_timeout(self, container, monkeypatch):
        started = asyncio.Event()

        async def stall(message, deliver=False):
            started.set()
            await asyncio.sleep(60)

        monkeypatch.setattr(container.engine, "process_message", stall)

        container.dispatcher.dispatch([inbound()])
        await started.wait()
        await container.dispatcher.drain(timeout=0.01)

        assert container.dispatcher.pending == 0
