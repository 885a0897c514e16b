"""Application service: Cancel Order use case.

Only PENDING or CONFIRMED orders can be cancelled.  The cancellation is
persisted first; only then does every line's quantity go back to
inventory (reopening the products for sale) and the customer's lifetime
counters get reversed (best-effort).

Cancelling does not touch payment state; refunds are a separate admin
operation.
"""

from __future__ import annotations

import structlog

from grocery_oms.application.dto import OrderDTO
from grocery_oms.domain.exceptions import (
    DomainException,
    InvalidTransitionError,
    OrderNotFoundError,
)
from grocery_oms.domain.model.order import CANCELLABLE_STATUSES
from grocery_oms.domain.repository.customer_repository import CustomerRepository
from grocery_oms.domain.repository.inventory_repository import InventoryRepository
from grocery_oms.domain.repository.order_repository import OrderRepository
from grocery_oms.domain.service.inventory_reservation_service import (
    InventoryReservationService,
)
from grocery_oms.domain.service.order_stats_service import OrderStatsService

logger = structlog.get_logger(__name__)

DEFAULT_REASON = "Customer cancellation"


class CancelOrderHandler:

    def __init__(
        self,
        order_repo: OrderRepository,
        inventory_repo: InventoryRepository,
        customer_repo: CustomerRepository,
    ) -> None:
        self._order_repo = order_repo
        self._inventory_repo = inventory_repo
        self._customer_repo = customer_repo

    def handle(
        self,
        order_number: str,
        reason: str = DEFAULT_REASON,
        actor: str = "customer",
    ) -> OrderDTO:
        order = self._order_repo.get_by_order_number(order_number)
        if order is None:
            raise OrderNotFoundError(f"Order {order_number} not found")

        # Guard first so a rejected cancel changes nothing.
        if order.status not in CANCELLABLE_STATUSES:
            raise InvalidTransitionError(
                f"Cannot cancel order with status: {order.status.value}"
            )

        order.cancel(reason or DEFAULT_REASON, actor=actor)
        self._order_repo.save(order)

        log = logger.bind(order_number=order.order_number, user_id=order.user_id)
        log.info("order_cancelled", reason=order.cancellation_reason, actor=actor)

        # Stock goes back only once the cancellation is persisted.
        try:
            InventoryReservationService(self._inventory_repo).restore_for_order(order)
        except DomainException:
            log.error("order_inventory_drift", step="restore", exc_info=True)

        try:
            OrderStatsService(self._customer_repo).record_order_cancelled(order)
        except Exception:
            log.warning("order_side_effect_failed", step="stats_reversal", exc_info=True)

        return OrderDTO.from_order(order)
