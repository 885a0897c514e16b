"""Domain service: lifetime order counters on the customer record.

Placing an order adds one order and its total; cancelling takes them
back.  Adjustments are keyed by order number and direction, so running
either twice for the same order has no further effect.  A cancellation
is only reversed if the placement was counted in the first place.
"""

from __future__ import annotations

from grocery_oms.domain.model.customer import Customer
from grocery_oms.domain.model.order import Order
from grocery_oms.domain.repository.customer_repository import CustomerRepository


class OrderStatsService:

    def __init__(self, customer_repo: CustomerRepository) -> None:
        self._customer_repo = customer_repo

    def record_order_placed(self, order: Order) -> bool:
        customer = self._customer_repo.get(order.user_id)
        return self._adjust(customer, order, _placed_key(order), 1)

    def record_order_cancelled(self, order: Order) -> bool:
        customer = self._customer_repo.get(order.user_id)
        # Placement stats are best-effort; nothing to take back if they never landed.
        if _placed_key(order) not in customer.applied_adjustments:
            return False
        return self._adjust(customer, order, f"cancelled:{order.order_number}", -1)

    def _adjust(self, customer: Customer, order: Order, key: str, sign: int) -> bool:
        changed = customer.adjust_order_stats(
            key=key,
            orders_delta=sign,
            spent_delta=order.total_amount.amount * sign,
        )
        if changed:
            self._customer_repo.save(customer)
        return changed


def _placed_key(order: Order) -> str:
    return f"placed:{order.order_number}"
