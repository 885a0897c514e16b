"""Stripe implementation of the PaymentProcessor port.

Sessions are opened for a single line carrying the whole amount; order
details travel in the metadata, which Stripe echoes on every event.
"""

from __future__ import annotations

import json

import stripe
import structlog

from grocery_oms.domain.exceptions import PaymentRejectedError, ValidationError
from grocery_oms.domain.gateway.payment_processor import (
    CheckoutSession,
    PaymentProcessor,
    WebhookEvent,
)
from grocery_oms.domain.model.value_objects import Money

logger = structlog.get_logger(__name__)


class StripeCheckoutProcessor(PaymentProcessor):

    def __init__(self, api_key: str, webhook_secret: str, frontend_url: str) -> None:
        self._api_key = api_key
        self._webhook_secret = webhook_secret
        self._frontend_url = frontend_url.rstrip("/")

    def create_session(
        self,
        amount: Money,
        metadata: dict[str, str],
        description: str,
        customer_email: str | None = None,
    ) -> CheckoutSession:
        if not self._api_key:
            raise PaymentRejectedError("Payment processor is not configured")

        order_id = metadata.get("order_id", "")
        params = dict(
            mode="payment",
            payment_method_types=["card"],
            line_items=[
                {
                    "price_data": {
                        "currency": amount.currency.lower(),
                        "product_data": {"name": description},
                        "unit_amount": amount.cents,
                    },
                    "quantity": 1,
                }
            ],
            success_url=(
                f"{self._frontend_url}/order-success"
                f"?session_id={{CHECKOUT_SESSION_ID}}&order_id={order_id}"
            ),
            cancel_url=f"{self._frontend_url}/checkout?canceled=true&order_id={order_id}",
            metadata=metadata,
            api_key=self._api_key,
        )
        if customer_email:
            params["customer_email"] = customer_email

        try:
            session = stripe.checkout.Session.create(**params)
        except stripe.StripeError as exc:
            logger.error(
                "checkout_session_failed",
                order_number=metadata.get("order_number"),
                error=str(exc),
                error_type=type(exc).__name__,
            )
            raise PaymentRejectedError(f"Payment processor refused the session: {exc}") from exc

        logger.info(
            "checkout_session_created",
            order_number=metadata.get("order_number"),
            session_id=session.id,
            amount=str(amount),
        )
        return CheckoutSession(session_id=session.id, url=session.url)

    def parse_event(self, payload: bytes, signature: str) -> WebhookEvent:
        # Verify the signature before trusting any of the body.
        try:
            stripe.Webhook.construct_event(payload, signature, self._webhook_secret)
        except stripe.SignatureVerificationError as exc:
            logger.warning("webhook_signature_invalid", error=str(exc))
            raise ValidationError("Invalid webhook signature") from exc
        except ValueError as exc:
            logger.warning("webhook_payload_invalid", error=str(exc))
            raise ValidationError("Invalid webhook payload") from exc

        return WebhookEvent.from_payload(json.loads(payload))
