"""Application service: Refund Order use case (admin).

Records a refund that was issued on the processor or at the counter.
Refunds are the only way a settled payment status moves again: a refund
below the order total gives ``partial_refund``, reaching the total gives
``refunded``.  Money movement itself happens outside this system.
"""

from __future__ import annotations

import structlog

from grocery_oms.application.dto import OrderDTO
from grocery_oms.domain.exceptions import OrderNotFoundError, ValidationError
from grocery_oms.domain.model.value_objects import Money
from grocery_oms.domain.repository.order_repository import OrderRepository

logger = structlog.get_logger(__name__)


class RefundOrderHandler:

    def __init__(self, order_repo: OrderRepository) -> None:
        self._order_repo = order_repo

    def handle(
        self,
        order_number: str,
        amount: str | None = None,
        reason: str = "",
        actor: str = "admin",
    ) -> OrderDTO:
        """Refund *amount*, or whatever has not been refunded yet."""
        if not reason.strip():
            raise ValidationError("Refund reason is required")

        order = self._order_repo.get_by_order_number(order_number)
        if order is None:
            raise OrderNotFoundError(f"Order {order_number} not found")

        if amount:
            refund = Money.of(amount).rounded()
        else:
            refund = order.total_amount - (order.refund_amount or Money.zero())
        order.record_refund(refund, reason.strip(), actor=actor)
        self._order_repo.save(order)

        logger.info(
            "order_refunded",
            order_number=order.order_number,
            amount=str(refund),
            payment_status=order.payment_status.value,
        )
        return OrderDTO.from_order(order)
