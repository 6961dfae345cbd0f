"""Webhook endpoints for the WhatsApp Cloud API."""

import json
from typing import Annotated

import structlog
from fastapi import APIRouter, Header, Query, Request
from fastapi.responses import PlainTextResponse

from leadline.api.dependencies import ChannelDep, DispatcherDep
from leadline.core.exceptions import SignatureError, ValidationError

logger = structlog.get_logger()

router = APIRouter(prefix="/webhook", tags=["Webhooks"])


@router.get("/whatsapp", response_class=PlainTextResponse)
async def verify_whatsapp_webhook(
    channel: ChannelDep,
    mode: Annotated[str | None, Query(alias="hub.mode")] = None,
    token: Annotated[str | None, Query(alias="hub.verify_token")] = None,
    challenge: Annotated[str, Query(alias="hub.challenge")] = "",
) -> str:
    """Answer the subscription handshake with the challenge."""
    if not channel.verify_handshake(mode, token):
        logger.warning("WhatsApp webhook verification failed", mode=mode)
        raise SignatureError("Webhook verification failed")

    logger.info("WhatsApp webhook verified")
    return challenge


@router.post("/whatsapp")
async def whatsapp_webhook(
    request: Request,
    channel: ChannelDep,
    dispatcher: DispatcherDep,
    x_hub_signature_256: Annotated[str | None, Header()] = None,
) -> dict[str, str]:
    """Accept a signed webhook delivery.

    Messages are processed in the background; the provider only needs a
    quick 200.
    """
    body = await request.body()

    if not channel.verify_signature(body, x_hub_signature_256):
        logger.warning("Rejected WhatsApp webhook with invalid signature")
        raise SignatureError()

    try:
        payload = json.loads(body)
    except ValueError as e:
        raise ValidationError("Webhook body is not valid JSON") from e
    if not isinstance(payload, dict):
        raise ValidationError("Webhook body must be a JSON object")

    for delivery in channel.parse_statuses(payload):
        logger.debug(
            "WhatsApp status callback",
            message_id=delivery.message_id,
            status=delivery.status,
            errors=delivery.errors or None,
        )

    messages = channel.parse_webhook(payload)
    if messages:
        dispatcher.dispatch(messages)
        logger.info("Dispatched WhatsApp messages", count=len(messages))

    return {"status": "received"}
