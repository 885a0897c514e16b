"""Application service: Start Processor Checkout use case.

Opens a hosted checkout session for an order and records the session
reference on it.  Nothing is marked paid here; the processor's webhook
settles the order later through ``HandlePaymentWebhookHandler``.
"""

from __future__ import annotations

from grocery_oms.application.dto import CheckoutSessionDTO
from grocery_oms.domain.exceptions import OrderNotFoundError, PaymentRejectedError
from grocery_oms.domain.gateway.payment_processor import PaymentProcessor
from grocery_oms.domain.model.value_objects import Money
from grocery_oms.domain.repository.order_repository import OrderRepository
from grocery_oms.domain.service.payment_capture import (
    ORDER_PAYMENT,
    CaptureRequest,
    ProcessorCheckoutAdapter,
)
from grocery_oms.domain.service.payment_reconciliation_service import (
    PaymentReconciliationService,
)


class StartProcessorCheckoutHandler:

    def __init__(self, order_repo: OrderRepository, processor: PaymentProcessor) -> None:
        self._order_repo = order_repo
        self._adapter = ProcessorCheckoutAdapter(processor)
        self._reconciliation = PaymentReconciliationService(order_repo)

    def handle(
        self,
        order_number: str,
        payment_type: str = ORDER_PAYMENT,
        amount: str | None = None,
        customer_email: str | None = None,
    ) -> CheckoutSessionDTO:
        """Open a session for the order's balance, or for *amount* if given.

        ``payment_type`` is one of ``order_payment``, ``remaining_payment``
        or ``extra_payment``; it is echoed back in the webhook metadata.
        """
        order = self._order_repo.get_by_order_number(order_number)
        if order is None:
            raise OrderNotFoundError(f"Order {order_number} not found")

        request = CaptureRequest(
            amount=Money.of(amount) if amount else None,
            payment_type=payment_type,
            customer_email=customer_email,
        )
        outcome = self._adapter.capture(order, request)
        if not outcome.external_reference or not outcome.redirect_url:
            raise PaymentRejectedError("Payment processor returned no checkout session")

        self._reconciliation.apply_outcome(order, outcome, actor=order.user_id)

        requested = request.amount or order.outstanding_balance
        return CheckoutSessionDTO(
            order_number=order.order_number,
            session_id=outcome.external_reference,
            url=outcome.redirect_url,
            amount=str(requested.rounded()),
            payment_type=payment_type,
        )
