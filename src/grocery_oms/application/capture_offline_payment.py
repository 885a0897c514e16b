"""Application service: Capture Offline Card Payment use case.

Staff key in one or more OTC/EBT cards at the counter.  The batch is
summed against the order's outstanding balance: enough money settles and
confirms the order, less leaves it partially paid with a remaining
balance to collect later.
"""

from __future__ import annotations

from typing import Mapping

from grocery_oms.application.dto import PaymentResultDTO
from grocery_oms.domain.exceptions import OrderNotFoundError, ValidationError
from grocery_oms.domain.model.order import PaymentMethod
from grocery_oms.domain.repository.order_repository import OrderRepository
from grocery_oms.domain.service.payment_capture import (
    CaptureRequest,
    OfflineCardCaptureAdapter,
)
from grocery_oms.domain.service.payment_reconciliation_service import (
    PaymentReconciliationService,
)


class CaptureOfflinePaymentHandler:

    def __init__(self, order_repo: OrderRepository) -> None:
        self._order_repo = order_repo
        self._reconciliation = PaymentReconciliationService(order_repo)

    def handle(
        self,
        order_number: str,
        card_type: str,
        cards: list[Mapping[str, object]],
        actor: str = "staff",
    ) -> PaymentResultDTO:
        try:
            method = PaymentMethod(card_type)
        except ValueError as exc:
            raise ValidationError(f"Unknown payment method '{card_type}'") from exc
        if not method.is_offline_card:
            raise ValidationError(f"'{card_type}' is not an offline card type")

        order = self._order_repo.get_by_order_number(order_number)
        if order is None:
            raise OrderNotFoundError(f"Order {order_number} not found")

        outcome = OfflineCardCaptureAdapter(method).capture(order, CaptureRequest(cards=cards))
        self._reconciliation.apply_outcome(order, outcome, actor=actor)

        return PaymentResultDTO(
            order_number=order.order_number,
            payment_method=order.payment_method.value,
            payment_status=order.payment_status.value,
            status=order.status.value,
            settled_amount=str(outcome.settled_amount),
            remaining_amount=(
                str(order.remaining_amount) if order.remaining_amount is not None else None
            ),
            cards_processed=len(outcome.cards),
        )
