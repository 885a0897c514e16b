"""Domain service: Payment Reconciliation.

The single writer of payment state.  Capture outcomes (offline batches,
processor sessions) and processor webhook events are all applied here,
and nothing else marks an order paid or confirmed.

Processors retry webhooks on timeout and may deliver them out of order,
so every path checks the order's current payment status before writing.
A replayed settlement is acknowledged without touching the order.  The
remaining check-then-write window is closed by the repository's version
check: a concurrent writer makes ``save`` raise
``ConcurrentModificationError`` and the processor's redelivery then hits
the already-settled branch.
"""

from __future__ import annotations

from dataclasses import dataclass

import structlog

from grocery_oms.domain.exceptions import OrderNotFoundError
from grocery_oms.domain.gateway.payment_processor import WebhookEvent
from grocery_oms.domain.model.order import Order, PaymentMethod, PaymentStatus
from grocery_oms.domain.repository.order_repository import OrderRepository
from grocery_oms.domain.service.payment_capture import REMAINING_PAYMENT, PaymentOutcome

logger = structlog.get_logger(__name__)

SESSION_COMPLETED = "checkout.session.completed"
SESSION_ASYNC_SUCCEEDED = "checkout.session.async_payment_succeeded"
SESSION_EXPIRED = "checkout.session.expired"
SESSION_ASYNC_FAILED = "checkout.session.async_payment_failed"

SUCCESS_EVENTS = frozenset({SESSION_COMPLETED, SESSION_ASYNC_SUCCEEDED})
FAILURE_EVENTS = frozenset({SESSION_EXPIRED, SESSION_ASYNC_FAILED})


@dataclass(frozen=True)
class WebhookResult:
    """Acknowledgement for a processed event.

    ``applied`` is False when the event was a duplicate, irrelevant, or
    could not be matched to an order.
    """

    event_id: str
    event_type: str
    applied: bool
    order_number: str | None = None
    reason: str = ""


class PaymentReconciliationService:

    def __init__(self, order_repo: OrderRepository) -> None:
        self._order_repo = order_repo

    # --- Synchronous capture outcomes -----------------------------------------

    def apply_outcome(self, order: Order, outcome: PaymentOutcome, actor: str = "system") -> bool:
        """Apply a capture outcome to *order* and persist it.

        Returns True if payment state changed.  An outcome still awaiting
        processor confirmation only records the session reference.
        """
        log = logger.bind(order_number=order.order_number, method=outcome.method.value)

        if outcome.awaiting_confirmation:
            if outcome.external_reference:
                order.attach_checkout_session(outcome.external_reference)
                self._order_repo.save(order)
            log.info("checkout_session_attached", session_id=outcome.external_reference)
            return False

        if order.is_settled:
            log.info("capture_ignored_already_settled", payment_status=order.payment_status.value)
            return False

        cards = list(outcome.cards)
        if outcome.is_full_settlement:
            order.record_settlement(
                method=outcome.method,
                note=self._settlement_note(outcome),
                cards=cards,
                actor=actor,
            )
        else:
            order.record_partial_payment(
                amount=outcome.settled_amount,
                method=outcome.method,
                cards=cards,
                actor=actor,
            )
        self._order_repo.save(order)

        log.info(
            "payment_applied",
            settled=str(outcome.settled_amount.amount),
            payment_status=order.payment_status.value,
            remaining=str(order.remaining_amount.amount) if order.remaining_amount else None,
        )
        return True

    # --- Asynchronous processor events ----------------------------------------

    def handle_webhook(self, event: WebhookEvent) -> WebhookResult:
        log = logger.bind(event_id=event.event_id, event_type=event.type)

        if event.type not in SUCCESS_EVENTS and event.type not in FAILURE_EVENTS:
            log.info("webhook_unhandled_type")
            return WebhookResult(event.event_id, event.type, applied=False, reason="unhandled")

        try:
            order = self._locate(event)
        except OrderNotFoundError:
            log.error("webhook_order_not_found", session_id=event.session_id, metadata=event.metadata)
            return WebhookResult(event.event_id, event.type, applied=False, reason="order_not_found")

        log = log.bind(order_number=order.order_number)
        if event.type in SUCCESS_EVENTS:
            applied, reason = self._settle(order, event)
        else:
            applied, reason = self._fail(order, event)

        if applied:
            self._order_repo.save(order)
            log.info("webhook_applied", payment_status=order.payment_status.value, status=order.status.value)
        else:
            log.info("webhook_ignored", reason=reason, payment_status=order.payment_status.value)
        return WebhookResult(event.event_id, event.type, applied, order.order_number, reason)

    def _settle(self, order: Order, event: WebhookEvent) -> tuple[bool, str]:
        # Explicit idempotency guard: a settled order never changes again here.
        if order.is_settled:
            return False, "already_settled"

        is_top_up = event.metadata.get("payment_type") == REMAINING_PAYMENT or (
            order.payment_status == PaymentStatus.PARTIAL
            and order.remaining_amount is not None
            and not order.remaining_amount.is_zero
        )
        if is_top_up:
            method = order.payment_method
            note = f"Remaining payment of {order.outstanding_balance} completed via processor"
        else:
            method = PaymentMethod.STRIPE
            note = "Payment confirmed via processor webhook"

        if event.session_id:
            order.attach_checkout_session(event.session_id)
        order.record_settlement(
            method=method,
            note=note,
            payment_intent_id=event.payment_intent_id,
            actor="processor",
        )
        return True, "remaining_payment" if is_top_up else "full_payment"

    def _fail(self, order: Order, event: WebhookEvent) -> tuple[bool, str]:
        # Failure never cancels the order or restores stock; staff follow up.
        if order.payment_status != PaymentStatus.PENDING:
            return False, f"payment_{order.payment_status.value}"
        if event.session_id:
            order.attach_checkout_session(event.session_id)
        reason = "expired" if event.type == SESSION_EXPIRED else "failed"
        order.record_payment_failure(
            note=f"Checkout session {reason}; awaiting manual follow-up",
            actor="processor",
        )
        return True, f"session_{reason}"

    def _locate(self, event: WebhookEvent) -> Order:
        order_number = event.metadata.get("order_number")
        if order_number:
            order = self._order_repo.get_by_order_number(order_number)
            if order is not None:
                return order

        if event.session_id:
            order = self._order_repo.get_by_processor_session(event.session_id)
            if order is not None:
                return order

        order_id = event.metadata.get("order_id", "")
        if order_id.isdigit():
            order = self._order_repo.get_by_id(int(order_id))
            if order is not None:
                return order

        raise OrderNotFoundError(
            f"No order for processor session '{event.session_id}'"
        )

    @staticmethod
    def _settlement_note(outcome: PaymentOutcome) -> str:
        if outcome.cards:
            return (
                f"Payment of {outcome.settled_amount} completed via "
                f"{outcome.method.value} ({len(outcome.cards)} card(s))"
            )
        return f"Payment of {outcome.settled_amount} completed via {outcome.method.value}"
