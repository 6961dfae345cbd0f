"""Synchronous messaging and customer endpoints."""

from typing import Annotated, Any

import structlog
from fastapi import APIRouter, Query
from pydantic import BaseModel, ConfigDict, Field

from leadline.api.dependencies import ContainerDep, EngineDep, SettingsDep
from leadline.core.exceptions import NotFoundError
from leadline.models import ChannelType, IdentityHint, InboundMessage, ResponseShape, Tenant
from leadline.services.channels.formatter import ActionButton, format_payload, format_text
from leadline.services.response.intents import infer_intent

logger = structlog.get_logger()

router = APIRouter(prefix="/api", tags=["Messages"])


# ==================== Pydantic Schemas ====================


class CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class MessageRequest(CamelModel):
    """Inbound message for the synchronous API."""

    external_id: str = Field(alias="externalId", min_length=10, max_length=15)
    text: str = Field(min_length=1, max_length=4000)
    display_name: str | None = Field(default=None, alias="displayName")
    timestamp: str | None = None
    tenant: Tenant | None = None


class ContextRequest(CamelModel):
    external_id: str = Field(alias="externalId", min_length=10, max_length=15)
    tenant: Tenant | None = None
    channel: ChannelType = ChannelType.WHATSAPP
    display_name: str | None = Field(default=None, alias="displayName")
    email: str | None = None


class ButtonActionRequest(CamelModel):
    lead_id: str = Field(alias="leadId")
    action_id: str = Field(alias="actionId", min_length=1)
    label: str = Field(min_length=1)
    channel: ChannelType = ChannelType.WHATSAPP


class FormatRequest(CamelModel):
    """Reply to render into a channel payload."""

    text: str = Field(min_length=1, max_length=4000)
    shape: ResponseShape = ResponseShape.TEXT_ONLY
    actions: list[ActionButton | str] = Field(default_factory=list)
    items: list[dict[str, Any]] = Field(default_factory=list)
    catalog_id: str | None = Field(default=None, alias="catalogId")
    template_name: str | None = Field(default=None, alias="templateName")
    template_parameters: list[str] = Field(default_factory=list, alias="templateParameters")
    language: str = "en"
    metadata: dict[str, Any] | None = None


def payload_buttons(payload: dict[str, Any]) -> list[dict[str, str]]:
    """Buttons of an interactive payload with their inferred intents."""
    interactive = payload.get("interactive") or {}
    if interactive.get("type") != "button":
        return []

    buttons = []
    for button in interactive.get("action", {}).get("buttons", []):
        reply = button["reply"]
        buttons.append({
            "id": reply["id"],
            "label": reply["title"],
            "intent": infer_intent(reply["title"], reply["id"]).value,
        })
    return buttons


# ==================== Messaging ====================


@router.post("/whatsapp/message")
async def handle_whatsapp_message(
    data: MessageRequest,
    engine: EngineDep,
    settings: SettingsDep,
) -> dict[str, Any]:
    """Generate a reply for one customer message and return its payload."""
    tenant = data.tenant or Tenant(settings.default_tenant)
    result = await engine.process_message(
        InboundMessage(
            channel=ChannelType.WHATSAPP,
            external_id=data.external_id,
            text=data.text,
            tenant=tenant,
            display_name=data.display_name,
            timestamp=data.timestamp,
        ),
        deliver=settings.deliver_sync_replies,
    )
    response = result.response

    return {
        "status": "success",
        "responseType": response.shape.value,
        "message": response.text,
        "buttons": payload_buttons(result.payload),
        "whatsappPayload": result.payload,
        "urgency": response.urgency.value,
        "nextAction": response.next_action.value,
        "metadata": {
            "leadId": result.context.lead_id,
            "sessionId": result.context.session_id,
            "responseTimeMs": round(result.response_time_ms, 2),
            "tokensUsed": response.tokens_used,
            "tenant": tenant.value,
            "delivered": result.delivered,
        },
    }


@router.post("/button/action")
async def handle_button_action(data: ButtonActionRequest, container: ContainerDep) -> dict[str, Any]:
    """Log a quick-reply click and return the follow-up message."""
    outcome = await container.buttons.handle(data.lead_id, data.action_id, data.label, data.channel)
    return {
        "status": "success",
        "intent": outcome.intent.value,
        "message": outcome.message,
        "whatsappPayload": format_text(outcome.message),
        "details": outcome.details,
    }


@router.post("/response/format")
async def format_response(data: FormatRequest, settings: SettingsDep) -> dict[str, Any]:
    """Render text and actions into a WhatsApp payload."""
    payload = format_payload(
        data.text,
        data.shape,
        data.actions,
        data.metadata,
        items=data.items,
        catalog_id=data.catalog_id or settings.whatsapp_catalog_id,
        template_name=data.template_name,
        template_parameters=data.template_parameters,
        language=data.language,
    )
    return {"status": "success", "payload": payload}


# ==================== Customers ====================


@router.post("/customer/context")
async def build_customer_context(data: ContextRequest, container: ContainerDep) -> dict[str, Any]:
    """Resolve a customer and return the context a reply would see."""
    tenant = data.tenant or Tenant(container.settings.default_tenant)
    context = await container.contexts.build_context(
        data.external_id,
        tenant,
        IdentityHint(channel=data.channel, name=data.display_name, email=data.email),
    )
    return {"status": "success", "context": context.model_dump(mode="json")}


@router.get("/customer/{external_id}")
async def get_customer(
    external_id: str,
    container: ContainerDep,
    tenant: Tenant | None = None,
) -> dict[str, Any]:
    """Look up a customer without creating one."""
    tenant = tenant or Tenant(container.settings.default_tenant)
    lead = await container.identity.find_identity(external_id, tenant)
    if lead is None:
        raise NotFoundError("Lead", external_id)
    return {"status": "success", "customer": lead.model_dump(mode="json")}


@router.get("/conversation/{lead_id}/history")
async def get_conversation_history(
    lead_id: str,
    container: ContainerDep,
    channel: ChannelType | None = None,
    limit: Annotated[int, Query(ge=1, le=100)] = 20,
) -> dict[str, Any]:
    """Transcript window for a lead, oldest first, with reply timing averages."""
    lead = await container.identity.get_identity(lead_id)
    entries = await container.transcript.recent(lead.id, channel, limit)
    analytics = await container.analytics.average_response_times(lead.id, channel or ChannelType.WHATSAPP)

    return {
        "lead_id": lead.id,
        "count": len(entries),
        "analytics": analytics,
        "messages": [
            {
                "id": e.id,
                "sender": e.sender.value,
                "channel": e.channel.value,
                "content": e.content,
                "message_type": e.message_type.value,
                "metadata": e.metadata,
                "created_at": e.created_at.isoformat(),
            }
            for e in reversed(entries)
        ],
    }
