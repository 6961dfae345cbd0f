"""Abstract base class for channel adapters."""

from abc import ABC, abstractmethod
from typing import Any

from leadline.models import ChannelType, DeliveryStatus, InboundMessage


class ChannelAdapter(ABC):
    """Abstract base class for communication channel adapters.

    Each channel (WhatsApp, web, voice) implements this interface.
    """

    @property
    @abstractmethod
    def channel(self) -> ChannelType:
        """The channel this adapter speaks."""
        ...

    @abstractmethod
    def parse_webhook(self, payload: dict[str, Any]) -> list[InboundMessage]:
        """Parse an inbound webhook payload into normalized messages.

        Args:
            payload: Decoded webhook body

        Returns:
            Messages in delivery order; empty for non-message events
        """
        ...

    @abstractmethod
    def parse_statuses(self, payload: dict[str, Any]) -> list[DeliveryStatus]:
        """Parse delivery status callbacks from a webhook payload."""
        ...

    @abstractmethod
    def verify_signature(self, body: bytes, signature: str | None) -> bool:
        """Check a webhook signature over the raw request body.

        Args:
            body: Raw request body
            signature: Signature header value

        Returns:
            True if valid, False otherwise
        """
        ...

    @abstractmethod
    def verify_handshake(self, mode: str | None, token: str | None) -> bool:
        """Check a webhook subscription handshake."""
        ...

    @abstractmethod
    async def send(self, recipient_id: str, payload: dict[str, Any]) -> dict[str, Any]:
        """Deliver a formatted payload to a recipient.

        Returns:
            Provider response
        """
        ...

    async def close(self) -> None:
        """Release network resources."""
