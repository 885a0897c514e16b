"""Application service: admin payment request use cases.

A payment request is advisory: it stores the amount the admin wants the
customer to pay through an out-of-band link.  Setting or clearing it
never moves either state machine.
"""

from __future__ import annotations

import structlog

from grocery_oms.application.dto import OrderDTO
from grocery_oms.domain.exceptions import OrderNotFoundError
from grocery_oms.domain.model.order import Order
from grocery_oms.domain.model.value_objects import Money
from grocery_oms.domain.repository.order_repository import OrderRepository

logger = structlog.get_logger(__name__)


class _OrderLookup:

    def __init__(self, order_repo: OrderRepository) -> None:
        self._order_repo = order_repo

    def _load(self, order_number: str) -> Order:
        order = self._order_repo.get_by_order_number(order_number)
        if order is None:
            raise OrderNotFoundError(f"Order {order_number} not found")
        return order


class RequestPaymentHandler(_OrderLookup):

    def handle(self, order_number: str, amount: str) -> OrderDTO:
        order = self._load(order_number)
        order.request_payment(Money.of(amount).rounded())
        self._order_repo.save(order)
        logger.info(
            "payment_requested",
            order_number=order.order_number,
            amount=str(order.requested_payment_amount),
        )
        return OrderDTO.from_order(order)


class CancelPaymentRequestHandler(_OrderLookup):

    def handle(self, order_number: str) -> OrderDTO:
        order = self._load(order_number)
        order.clear_payment_request()
        self._order_repo.save(order)
        logger.info("payment_request_cancelled", order_number=order.order_number)
        return OrderDTO.from_order(order)
