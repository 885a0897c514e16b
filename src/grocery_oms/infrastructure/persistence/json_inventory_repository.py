"""JSON-file-backed implementation of InventoryRepository.

The file is an object keyed by product id.  Rows exported from the old
catalog (``quantity`` / ``in_stock``) are read as well; they are written
back in the current shape on the next save.
"""

from __future__ import annotations

import json
from pathlib import Path

from grocery_oms.domain.model.inventory import InventoryItem
from grocery_oms.domain.repository.inventory_repository import InventoryRepository


class JsonInventoryRepository(InventoryRepository):

    def __init__(self, file_path: Path) -> None:
        self._file_path = file_path
        self._ensure_file()

    def get_by_product_id(self, product_id: str) -> InventoryItem | None:
        raw = self._load_raw().get(product_id)
        return None if raw is None else self._to_domain(product_id, raw)

    def list_all(self) -> list[InventoryItem]:
        return [self._to_domain(pid, raw) for pid, raw in self._load_raw().items()]

    def save(self, item: InventoryItem) -> None:
        records = self._load_raw()
        records[item.product_id] = {
            "product_name": item.product_name,
            "available_quantity": item.available_quantity,
            "is_available_for_sale": bool(item.is_available_for_sale),
        }
        self._file_path.write_text(
            json.dumps(records, indent=2) + "\n", encoding="utf-8"
        )

    @staticmethod
    def _to_domain(product_id: str, raw: dict) -> InventoryItem:
        quantity = raw.get("available_quantity", raw.get("quantity", 0))
        flag = raw.get("is_available_for_sale", raw.get("in_stock"))
        # Stored flag is kept even when it disagrees with the quantity.
        return InventoryItem(
            product_id=product_id,
            product_name=raw.get("product_name", product_id),
            available_quantity=int(quantity),
            is_available_for_sale=flag,
        )

    def _load_raw(self) -> dict[str, dict]:
        return json.loads(self._file_path.read_text(encoding="utf-8"))

    def _ensure_file(self) -> None:
        if not self._file_path.exists():
            self._file_path.parent.mkdir(parents=True, exist_ok=True)
            self._file_path.write_text("{}", encoding="utf-8")
