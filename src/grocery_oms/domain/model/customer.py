"""Customer aggregate: the slice of the user record the order engine touches.

Lifetime counters (order count, amount spent) move as a side effect of
placing and cancelling orders.  Each movement carries a key so that a
replayed request cannot count the same order twice.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal


@dataclass
class Customer:

    user_id: str
    total_orders: int = 0
    total_spent: Decimal = Decimal("0.00")
    applied_adjustments: set[str] = field(default_factory=set)

    def adjust_order_stats(self, key: str, orders_delta: int, spent_delta: Decimal) -> bool:
        """Apply a counter movement once per *key*.

        Returns False when the key was already applied.  Counters never
        drop below zero.
        """
        if key in self.applied_adjustments:
            return False
        self.total_orders = max(self.total_orders + orders_delta, 0)
        self.total_spent = max(self.total_spent + spent_delta, Decimal("0.00"))
        self.applied_adjustments.add(key)
        return True
