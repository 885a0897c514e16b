"""Application service: Update Order Status use case (admin).

Moves a paid order through processing -> shipped -> delivered.
Confirmation comes from payment reconciliation and cancellation goes
through ``CancelOrderHandler``; the aggregate refuses both here.
"""

from __future__ import annotations

import structlog

from grocery_oms.application.dto import OrderDTO
from grocery_oms.domain.exceptions import OrderNotFoundError, ValidationError
from grocery_oms.domain.model.order import FulfillmentStatus
from grocery_oms.domain.repository.order_repository import OrderRepository

logger = structlog.get_logger(__name__)


class UpdateOrderStatusHandler:

    def __init__(self, order_repo: OrderRepository) -> None:
        self._order_repo = order_repo

    def handle(
        self,
        order_number: str,
        status: str,
        note: str = "",
        tracking_number: str | None = None,
        actor: str = "admin",
    ) -> OrderDTO:
        try:
            new_status = FulfillmentStatus(status)
        except ValueError as exc:
            raise ValidationError(f"Invalid status '{status}'") from exc

        order = self._order_repo.get_by_order_number(order_number)
        if order is None:
            raise OrderNotFoundError(f"Order {order_number} not found")

        old_status = order.status
        order.advance_fulfillment(
            new_status,
            note=note,
            actor=actor,
            tracking_number=tracking_number,
        )
        self._order_repo.save(order)

        logger.info(
            "order_status_updated",
            order_number=order.order_number,
            old_status=old_status.value,
            new_status=new_status.value,
            actor=actor,
        )
        return OrderDTO.from_order(order)
