"""Port to the hosted card processor.

The processor is the source of truth for capture.  This side only opens
checkout sessions and later receives events about them.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field

from grocery_oms.domain.model.value_objects import Money


@dataclass(frozen=True)
class CheckoutSession:
    session_id: str
    url: str


@dataclass(frozen=True)
class WebhookEvent:
    """A processor event whose signature was already verified upstream."""

    event_id: str
    type: str
    session_id: str | None = None
    payment_intent_id: str | None = None
    metadata: dict[str, str] = field(default_factory=dict)

    @staticmethod
    def from_payload(payload: dict) -> WebhookEvent:
        """Build an event from the processor's JSON envelope."""
        obj = (payload.get("data") or {}).get("object") or {}
        metadata = obj.get("metadata") or {}
        return WebhookEvent(
            event_id=str(payload.get("id", "")),
            type=str(payload.get("type", "")),
            session_id=obj.get("id"),
            payment_intent_id=obj.get("payment_intent"),
            metadata={str(k): str(v) for k, v in metadata.items()},
        )


class PaymentProcessor(ABC):

    @abstractmethod
    def create_session(
        self,
        amount: Money,
        metadata: dict[str, str],
        description: str,
        customer_email: str | None = None,
    ) -> CheckoutSession:
        """Open a hosted checkout session for *amount*.

        *metadata* is echoed back on every event about the session.
        Raises ``PaymentRejectedError`` if the processor refuses.
        """

    @abstractmethod
    def parse_event(self, payload: bytes, signature: str) -> WebhookEvent:
        """Verify a raw webhook delivery and decode it.

        Raises ``ValidationError`` if the payload or signature is bad.
        """
