"""Application service: Set Inventory use case."""

from __future__ import annotations

import structlog

from grocery_oms.domain.exceptions import EntityNotFoundError
from grocery_oms.domain.model.inventory import InventoryItem
from grocery_oms.domain.repository.inventory_repository import InventoryRepository
from grocery_oms.domain.repository.product_repository import ProductRepository

logger = structlog.get_logger(__name__)


class SetInventoryHandler:

    def __init__(
        self,
        inventory_repo: InventoryRepository,
        product_repo: ProductRepository,
    ) -> None:
        self._inventory_repo = inventory_repo
        self._product_repo = product_repo

    def handle(self, product_id: str, quantity: int) -> None:
        """Set the stock level for a product; the sale flag follows it."""
        product = self._product_repo.get_by_id(product_id)
        if product is None:
            raise EntityNotFoundError(f"Product not found: '{product_id}'")

        existing = self._inventory_repo.get_by_product_id(product.id)
        if existing is not None:
            existing.set_quantity(quantity)
            self._inventory_repo.save(existing)
        else:
            item = InventoryItem(
                product_id=product.id,
                product_name=product.name,
                available_quantity=quantity,
            )
            self._inventory_repo.save(item)
        logger.info("inventory_set", product_id=product.id, quantity=quantity)
