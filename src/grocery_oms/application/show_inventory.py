"""Application service: Show Inventory use case (query)."""

from __future__ import annotations

from dataclasses import dataclass

from grocery_oms.domain.repository.inventory_repository import InventoryRepository


@dataclass(frozen=True)
class InventoryLineDTO:
    product_id: str
    product_name: str
    available: int
    for_sale: bool


class ShowInventoryHandler:

    def __init__(self, inventory_repo: InventoryRepository) -> None:
        self._inventory_repo = inventory_repo

    def handle(self) -> list[InventoryLineDTO]:
        items = self._inventory_repo.list_all()
        return [
            InventoryLineDTO(
                product_id=item.product_id,
                product_name=item.product_name,
                available=item.available_quantity,
                for_sale=bool(item.is_available_for_sale),
            )
            for item in items
        ]
