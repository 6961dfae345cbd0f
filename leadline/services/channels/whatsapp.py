"""WhatsApp Cloud API channel adapter."""

import hashlib
import hmac
from typing import Any

import httpx
import structlog

from leadline.core.exceptions import ConfigurationError, ValidationError, classify_upstream_error
from leadline.models import ChannelType, DeliveryStatus, InboundMessage, MessageType, Tenant
from leadline.services.channels.base import ChannelAdapter

logger = structlog.get_logger()

SIGNATURE_PREFIX = "sha256="


def _items(value: Any, where: str) -> list[dict[str, Any]]:
    """Objects of a list field; a missing field is empty.

    Raises:
        ValidationError: If the field is not a list of objects
    """
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(item, dict) for item in value):
        raise ValidationError(f"Webhook field '{where}' must be a list of objects")
    return value


def _object(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _text(value: Any) -> str | None:
    return value if isinstance(value, str) and value else None


def compute_signature(body: bytes, secret: str) -> str:
    """Signature header value the provider sends for a body."""
    digest = hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()
    return f"{SIGNATURE_PREFIX}{digest}"


class WhatsAppCloudAdapter(ChannelAdapter):
    """WhatsApp Cloud API channel adapter.

    Handles:
    - Webhook signature validation (X-Hub-Signature-256)
    - Webhook parsing for text, button and list-reply messages
    - Sending payloads through the Graph API
    """

    channel = ChannelType.WHATSAPP

    def __init__(
        self,
        access_token: str,
        phone_number_id: str,
        app_secret: str,
        verify_token: str,
        api_version: str = "v21.0",
        graph_url: str = "https://graph.facebook.com",
        timeout_seconds: float = 10.0,
        tenant: Tenant = Tenant.PROXE,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.phone_number_id = phone_number_id
        self.app_secret = app_secret
        self.verify_token = verify_token
        self.tenant = tenant

        self._client = httpx.AsyncClient(
            base_url=f"{graph_url.rstrip('/')}/{api_version}",
            headers={"Authorization": f"Bearer {access_token}"},
            timeout=httpx.Timeout(timeout_seconds),
            transport=transport,
        )

        if access_token and phone_number_id:
            logger.info("WhatsApp Cloud adapter initialized", api_version=api_version)
        else:
            logger.warning("WhatsApp Cloud credentials not configured")

    # ==================== Webhook Verification ====================

    def verify_signature(self, body: bytes, signature: str | None) -> bool:
        """Validate X-Hub-Signature-256 over the raw body.

        Raises:
            ConfigurationError: If no app secret is configured
        """
        if not self.app_secret:
            raise ConfigurationError("WhatsApp app secret is not configured")
        if not signature or not signature.startswith(SIGNATURE_PREFIX):
            return False
        return hmac.compare_digest(compute_signature(body, self.app_secret), signature)

    def verify_handshake(self, mode: str | None, token: str | None) -> bool:
        """Check a subscription handshake.

        Raises:
            ConfigurationError: If no verify token is configured
        """
        if not self.verify_token:
            raise ConfigurationError("WhatsApp verify token is not configured")
        return mode == "subscribe" and token is not None and hmac.compare_digest(token, self.verify_token)

    # ==================== Webhook Parsing ====================

    @staticmethod
    def _values(payload: dict[str, Any]) -> list[dict[str, Any]]:
        """The entry[].changes[].value objects of a payload.

        Raises:
            ValidationError: If the payload does not have that shape
        """
        values = []
        for entry in _items(payload.get("entry"), "entry"):
            for change in _items(entry.get("changes"), "changes"):
                value = change.get("value")
                if value is None:
                    continue
                if not isinstance(value, dict):
                    raise ValidationError("Webhook field 'value' must be an object")
                values.append(value)
        return values

    def parse_webhook(self, payload: dict[str, Any]) -> list[InboundMessage]:
        """Parse entry[].changes[].value.messages[] into inbound messages.

        Button and list replies become plain text carrying the tapped label;
        the reply id is kept as action_id. Unsupported types are skipped.
        """
        messages: list[InboundMessage] = []

        for value in self._values(payload):
            names = {
                contact.get("wa_id"): _text(_object(contact.get("profile")).get("name"))
                for contact in _items(value.get("contacts"), "contacts")
            }

            for raw in _items(value.get("messages"), "messages"):
                parsed = self._parse_message(raw, names)
                if parsed:
                    messages.append(parsed)

        return messages

    def _parse_message(
        self,
        raw: dict[str, Any],
        names: dict[str | None, str | None],
    ) -> InboundMessage | None:
        sender = _text(raw.get("from"))
        kind = raw.get("type")
        text: str | None = None
        action_id: str | None = None
        message_type = MessageType.TEXT

        if kind == "text":
            text = _text(_object(raw.get("text")).get("body"))
        elif kind == "button":
            button = _object(raw.get("button"))
            text = _text(button.get("text")) or _text(button.get("payload"))
            action_id = _text(button.get("payload"))
            message_type = MessageType.BUTTON_CLICK
        elif kind == "interactive":
            interactive = _object(raw.get("interactive"))
            if interactive.get("type") == "button_reply":
                reply = _object(interactive.get("button_reply"))
                message_type = MessageType.BUTTON_CLICK
            elif interactive.get("type") == "list_reply":
                reply = _object(interactive.get("list_reply"))
                message_type = MessageType.LIST_CLICK
            else:
                reply = {}
            text = _text(reply.get("title"))
            action_id = _text(reply.get("id"))

        if not sender or not text:
            logger.info(
                "Skipping unsupported WhatsApp message",
                message_id=raw.get("id"),
                message_type=kind,
            )
            return None

        return InboundMessage(
            channel=ChannelType.WHATSAPP,
            external_id=sender,
            text=text,
            message_type=message_type,
            tenant=self.tenant,
            display_name=names.get(sender),
            message_id=_text(raw.get("id")),
            action_id=action_id,
            timestamp=_text(raw.get("timestamp")),
            raw_payload=raw,
        )

    def parse_statuses(self, payload: dict[str, Any]) -> list[DeliveryStatus]:
        statuses = []
        for value in self._values(payload):
            for raw in _items(value.get("statuses"), "statuses"):
                message_id = _text(raw.get("id"))
                status = _text(raw.get("status"))
                if not message_id or not status:
                    continue
                statuses.append(
                    DeliveryStatus(
                        message_id=message_id,
                        recipient_id=_text(raw.get("recipient_id")),
                        status=status,
                        timestamp=_text(raw.get("timestamp")),
                        errors=_items(raw.get("errors"), "errors"),
                    )
                )
        return statuses

    # ==================== Sending ====================

    async def send(self, recipient_id: str, payload: dict[str, Any]) -> dict[str, Any]:
        """Send a formatted payload via the Graph API.

        Args:
            recipient_id: Recipient's WhatsApp id (phone number)
            payload: Envelope from the payload formatter

        Returns:
            Graph API response body

        Raises:
            UpstreamAuthError, UpstreamRateLimit, UpstreamServerError, UpstreamError
        """
        body = {key: value for key, value in payload.items() if key != "metadata"}
        body["to"] = recipient_id

        try:
            response = await self._client.post(f"/{self.phone_number_id}/messages", json=body)
        except httpx.HTTPError as e:
            logger.error("WhatsApp send failed", error=str(e), to=recipient_id)
            raise classify_upstream_error(None, f"WhatsApp send failed: {e}", service="whatsapp") from e

        if response.is_error:
            logger.error(
                "WhatsApp API rejected message",
                status=response.status_code,
                body=response.text[:500],
                to=recipient_id,
            )
            raise classify_upstream_error(
                response.status_code,
                f"WhatsApp API error ({response.status_code})",
                service="whatsapp",
            )

        data = response.json()
        logger.info(
            "Sent WhatsApp message",
            to=recipient_id,
            message_ids=[m.get("id") for m in data.get("messages", [])],
        )
        return data

    async def close(self) -> None:
        await self._client.aclose()
