"""InventoryItem aggregate: tracks sellable stock per product.

Each product has one InventoryItem holding the quantity still available
for sale and the derived availability flag shown in the storefront.
"""

from __future__ import annotations

from dataclasses import dataclass

from grocery_oms.domain.exceptions import ValidationError


@dataclass
class InventoryItem:
    """Aggregate root for inventory tracking.

    Invariants:
    - ``available_quantity`` is always >= 0
    - ``is_available_for_sale == (available_quantity > 0)`` after every write
    """

    product_id: str
    product_name: str
    available_quantity: int
    # None derives the flag from the quantity; stored records pass it
    # explicitly so that drift can be found by ``repair_availability``.
    is_available_for_sale: bool | None = None

    def __post_init__(self) -> None:
        if self.available_quantity < 0:
            raise ValidationError(
                f"Stock for {self.product_name} cannot be negative"
            )
        if self.is_available_for_sale is None:
            self._sync_availability()

    def can_supply(self, quantity: int) -> bool:
        return bool(self.is_available_for_sale) and quantity <= self.available_quantity

    def decrement(self, quantity: int) -> None:
        """Take committed units out of stock.

        Floors at zero: a concurrent checkout may already have consumed
        the units this order was validated against.
        """
        if quantity <= 0:
            raise ValidationError("Decrement quantity must be positive")
        self.available_quantity = max(self.available_quantity - quantity, 0)
        self._sync_availability()

    def restore(self, quantity: int) -> None:
        """Return units from a cancelled order and reopen the product for sale."""
        if quantity <= 0:
            raise ValidationError("Restore quantity must be positive")
        self.available_quantity += quantity
        self.is_available_for_sale = True

    def set_quantity(self, quantity: int) -> None:
        if quantity < 0:
            raise ValidationError("Stock level cannot be negative")
        self.available_quantity = quantity
        self._sync_availability()

    def repair_availability(self) -> bool:
        """Re-derive the availability flag; return True if it was wrong."""
        expected = self.available_quantity > 0
        if self.is_available_for_sale == expected:
            return False
        self.is_available_for_sale = expected
        return True

    def _sync_availability(self) -> None:
        self.is_available_for_sale = self.available_quantity > 0
