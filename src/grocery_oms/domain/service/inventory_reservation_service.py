"""Domain service: Inventory Reservation.

This service coordinates the cross-aggregate work of checking, committing
and restoring stock for an order.  It lives in the domain layer because
the logic is a core business rule, not just orchestration.

Checkout runs it in three explicit steps:

  1. ``check_availability``: live read of every line, fails fast with
     ``OutOfStockError`` before anything is written.
  2. the caller persists the order.
  3. ``commit_for_order``: decrements stock for each line.

Nothing locks the records between steps 1 and 3, so two concurrent
checkouts can both pass the check; the decrement floors at zero.
"""

from __future__ import annotations

import structlog

from grocery_oms.domain.exceptions import EntityNotFoundError, OutOfStockError
from grocery_oms.domain.model.inventory import InventoryItem
from grocery_oms.domain.model.order import Order
from grocery_oms.domain.repository.inventory_repository import InventoryRepository

logger = structlog.get_logger(__name__)


class InventoryReservationService:

    def __init__(self, inventory_repo: InventoryRepository) -> None:
        self._inventory_repo = inventory_repo

    def check_availability(self, lines: list[tuple[str, str, int]]) -> None:
        """Validate ``(product_id, product_name, quantity)`` lines against stock.

        Quantities of repeated products are summed before comparing.
        """
        requested: dict[str, tuple[str, int]] = {}
        for product_id, product_name, qty in lines:
            _, already = requested.get(product_id, (product_name, 0))
            requested[product_id] = (product_name, already + qty)

        for product_id, (product_name, qty) in requested.items():
            inv = self._load(product_id, product_name)
            if not inv.can_supply(qty):
                raise OutOfStockError(
                    product_id=product_id,
                    product_name=product_name,
                    requested=qty,
                    available=inv.available_quantity if inv.is_available_for_sale else 0,
                )

    def commit_for_order(self, order: Order) -> None:
        """Decrement stock for every line of a persisted order.

        A failure part-way leaves earlier lines decremented; it is logged
        with the order number and re-raised for manual reconciliation.
        """
        committed: list[str] = []
        for line in order.items:
            try:
                inv = self._load(line.product_id, line.product_name)
                inv.decrement(line.quantity.value)
                self._inventory_repo.save(inv)
            except Exception:
                logger.error(
                    "inventory_commit_failed",
                    order_number=order.order_number,
                    product_id=line.product_id,
                    committed=committed,
                )
                raise
            committed.append(line.product_id)
            if not inv.is_available_for_sale:
                logger.info(
                    "product_sold_out",
                    product_id=inv.product_id,
                    order_number=order.order_number,
                )

    def restore_for_order(self, order: Order) -> None:
        """Put every line's quantity back and reopen the products for sale.

        There is no per-order reservation count: a product is marked
        available even if other orders hold its remaining units.
        """
        for line in order.items:
            inv = self._load(line.product_id, line.product_name)
            inv.restore(line.quantity.value)
            self._inventory_repo.save(inv)

    def repair_availability_flags(self) -> list[InventoryItem]:
        """Re-derive ``is_available_for_sale`` everywhere; return the fixed records."""
        fixed: list[InventoryItem] = []
        for inv in self._inventory_repo.list_all():
            if inv.repair_availability():
                self._inventory_repo.save(inv)
                fixed.append(inv)
        return fixed

    def _load(self, product_id: str, product_name: str) -> InventoryItem:
        inv = self._inventory_repo.get_by_product_id(product_id)
        if inv is None:
            raise EntityNotFoundError(
                f"No inventory record for product '{product_name}'"
            )
        return inv
