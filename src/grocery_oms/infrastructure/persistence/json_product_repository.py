"""JSON-file-backed implementation of ProductRepository.

The catalog is owned elsewhere; this side only reads it.
"""

from __future__ import annotations

import json
from decimal import Decimal
from pathlib import Path

from grocery_oms.domain.model.product import Product
from grocery_oms.domain.model.value_objects import Money
from grocery_oms.domain.repository.product_repository import ProductRepository


class JsonProductRepository(ProductRepository):

    def __init__(self, file_path: Path) -> None:
        self._file_path = file_path
        self._ensure_file()

    # --- ProductRepository interface ------------------------------------------

    def get_by_id(self, product_id: str) -> Product | None:
        products = self._load()
        return products.get(product_id)

    def list_all(self) -> list[Product]:
        return list(self._load().values())

    # --- Serialization helpers ------------------------------------------------

    def _load(self) -> dict[str, Product]:
        raw = json.loads(self._file_path.read_text(encoding="utf-8"))
        return {
            item["id"]: Product(
                id=item["id"],
                name=item["name"],
                price=Money(Decimal(item["price"]), item.get("currency", "USD")),
                category=item.get("category", ""),
                sold_by_weight=item.get("sold_by_weight", False),
            )
            for item in raw
        }

    def _ensure_file(self) -> None:
        if not self._file_path.exists():
            self._file_path.parent.mkdir(parents=True, exist_ok=True)
            self._file_path.write_text("[]", encoding="utf-8")
