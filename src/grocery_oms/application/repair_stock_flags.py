"""Application service: Repair Stock Flags use case (admin maintenance).

Re-derives every product's ``is_available_for_sale`` flag from its stock
level.  Cancellations reopen products unconditionally, so the flag can
drift from the quantity; this puts it back.
"""

from __future__ import annotations

import structlog

from grocery_oms.application.show_inventory import InventoryLineDTO
from grocery_oms.domain.repository.inventory_repository import InventoryRepository
from grocery_oms.domain.service.inventory_reservation_service import (
    InventoryReservationService,
)

logger = structlog.get_logger(__name__)


class RepairStockFlagsHandler:

    def __init__(self, inventory_repo: InventoryRepository) -> None:
        self._inventory_repo = inventory_repo

    def handle(self) -> list[InventoryLineDTO]:
        fixed = InventoryReservationService(self._inventory_repo).repair_availability_flags()
        logger.info("stock_flags_repaired", fixed=len(fixed))
        return [
            InventoryLineDTO(
                product_id=item.product_id,
                product_name=item.product_name,
                available=item.available_quantity,
                for_sale=bool(item.is_available_for_sale),
            )
            for item in fixed
        ]
