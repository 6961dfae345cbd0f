"""Tests for the WhatsApp webhook endpoints."""

import json

import pytest

from leadline.models import Tenant

from conftest import VERIFY_TOKEN


def text_delivery(sender="919876543210", body="Hello", message_id="wamid.in.1"):
    return {
        "object": "whatsapp_business_account",
        "entry": [{
            "id": "waba-1",
            "changes": [{
                "field": "messages",
                "value": {
                    "messaging_product": "whatsapp",
                    "contacts": [{"wa_id": sender, "profile": {"name": "Asha"}}],
                    "messages": [{
                        "from": sender,
                        "id": message_id,
                        "timestamp": "1700000000",
                        "type": "text",
                        "text": {"body": body},
                    }],
                },
            }],
        }],
    }


class TestHandshake:
    @pytest.mark.asyncio
    async def test_returns_challenge(self, client):
        response = await client.get(
            "/webhook/whatsapp",
            params={"hub.mode": "subscribe", "hub.verify_token": VERIFY_TOKEN, "hub.challenge": "4242"},
        )

        assert response.status_code == 200
        assert response.text == "4242"

    @pytest.mark.asyncio
    async def test_wrong_token(self, client):
        response = await client.get(
            "/webhook/whatsapp",
            params={"hub.mode": "subscribe", "hub.verify_token": "nope", "hub.challenge": "4242"},
        )

        assert response.status_code == 403
        assert response.json()["error"] == "SIGNATURE_ERROR"


class TestDelivery:
    @pytest.mark.asyncio
    async def test_rejects_bad_signature(self, client, storage):
        body = json.dumps(text_delivery()).encode()

        response = await client.post(
            "/webhook/whatsapp",
            content=body,
            headers={"Content-Type": "application/json", "X-Hub-Signature-256": "sha256=deadbeef"},
        )

        assert response.status_code == 403
        assert storage.lead_count == 0

    @pytest.mark.asyncio
    async def test_rejects_missing_signature(self, client):
        response = await client.post("/webhook/whatsapp", content=b"{}")
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_rejects_invalid_json(self, client, sign):
        body = b"{not json"

        response = await client.post(
            "/webhook/whatsapp",
            content=body,
            headers={"X-Hub-Signature-256": sign(body)},
        )

        assert response.status_code == 400
        assert response.json()["error"] == "VALIDATION_ERROR"

    @pytest.mark.asyncio
    async def test_processes_and_delivers_reply(self, client, container, storage, graph, sign):
        body = json.dumps(text_delivery()).encode()

        response = await client.post(
            "/webhook/whatsapp",
            content=body,
            headers={"Content-Type": "application/json", "X-Hub-Signature-256": sign(body)},
        )
        await container.dispatcher.drain()

        assert response.status_code == 200
        assert response.json() == {"status": "received"}
        assert storage.lead_count == 1
        assert storage.session_count == 1

        [sent] = graph.bodies
        assert sent["to"] == "919876543210"
        assert sent["interactive"]["action"]["buttons"][0]["reply"]["title"] == "Learn More"
        assert "metadata" not in sent

        lead = await container.identity.find_identity("919876543210", Tenant.PROXE)
        entries = await container.transcript.recent(lead.id)
        assert [e.sender.value for e in entries] == ["agent", "customer"]
        assert entries[1].metadata["provider_message_id"] == "wamid.in.1"

    @pytest.mark.asyncio
    async def test_status_callbacks_are_acknowledged(self, client, container, graph, sign):
        payload = {"entry": [{"changes": [{"value": {
            "statuses": [{"id": "wamid.out.1", "status": "read", "recipient_id": "919876543210"}],
        }}]}]}
        body = json.dumps(payload).encode()

        response = await client.post(
            "/webhook/whatsapp",
            content=body,
            headers={"X-Hub-Signature-256": sign(body)},
        )

        assert response.status_code == 200
        assert container.dispatcher.pending == 0
        assert graph.requests == []

    @pytest.mark.asyncio
    async def test_failed_delivery_is_recorded(self, client, container, storage, graph, sign):
        graph.status_code = 500
        body = json.dumps(text_delivery()).encode()

        response = await client.post(
            "/webhook/whatsapp",
            content=body,
            headers={"X-Hub-Signature-256": sign(body)},
        )
        await container.dispatcher.drain()

        assert response.status_code == 200
        [error] = container.errors.latest()
        assert error["source"] == "webhook"
        assert error["type"] == "UpstreamServerError"
        assert error["context"]["message_id"] == "wamid.in.1"

        # Customer entry is kept; the undelivered reply is not logged
        lead = await container.identity.find_identity("919876543210", Tenant.PROXE)
        entries = await container.transcript.recent(lead.id)
        assert [e.sender.value for e in entries] == ["customer"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "body",
        [
            b"\xff\xfe{not utf8",
            json.dumps({"entry": 5}).encode(),
            json.dumps({"entry": ["oops"]}).encode(),
            json.dumps({"entry": [{"changes": [{"value": {"messages": ["oops"]}}]}]}).encode(),
            json.dumps({"entry": [{"changes": [{"value": {"statuses": "read"}}]}]}).encode(),
            json.dumps([text_delivery()]).encode(),
        ],
        ids=["not-utf8", "entry-not-list", "entry-item-not-object", "message-not-object",
             "statuses-not-list", "top-level-array"],
    )
    async def test_rejects_malformed_payload(self, client, container, storage, sign, body):
        response = await client.post(
            "/webhook/whatsapp",
            content=body,
            headers={"X-Hub-Signature-256": sign(body)},
        )

        assert response.status_code == 400
        assert response.json()["error"] == "VALIDATION_ERROR"
        assert container.dispatcher.pending == 0
        assert container.errors.latest() == []
        assert storage.lead_count == 0

    @pytest.mark.asyncio
    async def test_odd_field_types_are_skipped(self, client, container, storage, graph, sign):
        payload = text_delivery()
        value = payload["entry"][0]["changes"][0]["value"]
        value["contacts"][0]["profile"] = "Asha"
        value["messages"].append({"from": 919876543210, "id": 7, "type": "text", "text": "Hi"})
        body = json.dumps(payload).encode()

        response = await client.post(
            "/webhook/whatsapp",
            content=body,
            headers={"X-Hub-Signature-256": sign(body)},
        )
        await container.dispatcher.drain()

        assert response.status_code == 200
        assert storage.lead_count == 1
        assert len(graph.bodies) == 1
