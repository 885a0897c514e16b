"""Application service: Handle Payment Webhook use case.

Verifies a raw processor delivery and hands the decoded event to
reconciliation.  Every verified event is acknowledged, including ones
that change nothing (duplicates, unknown types, unmatched sessions), so
the processor stops redelivering; bad signatures raise instead.
"""

from __future__ import annotations

from grocery_oms.domain.gateway.payment_processor import PaymentProcessor
from grocery_oms.domain.repository.order_repository import OrderRepository
from grocery_oms.domain.service.payment_reconciliation_service import (
    PaymentReconciliationService,
    WebhookResult,
)


class HandlePaymentWebhookHandler:

    def __init__(self, order_repo: OrderRepository, processor: PaymentProcessor) -> None:
        self._processor = processor
        self._reconciliation = PaymentReconciliationService(order_repo)

    def handle(self, payload: bytes, signature: str) -> WebhookResult:
        event = self._processor.parse_event(payload, signature)
        return self._reconciliation.handle_webhook(event)
