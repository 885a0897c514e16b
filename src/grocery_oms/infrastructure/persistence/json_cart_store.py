"""JSON-file-backed cart, keyed by user id.

Stands in for the storefront's cart service when running from the CLI.
"""

from __future__ import annotations

import json
from decimal import Decimal
from pathlib import Path

from grocery_oms.domain.gateway.cart_gateway import CartGateway, CartLine


class JsonCartStore(CartGateway):

    def __init__(self, file_path: Path) -> None:
        self._file_path = file_path
        self._ensure_file()

    def items_for(self, user_id: str) -> list[CartLine]:
        return [
            CartLine(
                product_id=line["product_id"],
                quantity=line["quantity"],
                weight=Decimal(line["weight"]) if line.get("weight") else None,
            )
            for line in self._load_raw().get(user_id, [])
        ]

    def add(self, user_id: str, line: CartLine) -> None:
        carts = self._load_raw()
        carts.setdefault(user_id, []).append(
            {
                "product_id": line.product_id,
                "quantity": line.quantity,
                "weight": str(line.weight) if line.weight is not None else None,
            }
        )
        self._persist_raw(carts)

    def clear(self, user_id: str) -> None:
        carts = self._load_raw()
        if carts.pop(user_id, None) is not None:
            self._persist_raw(carts)

    def _load_raw(self) -> dict[str, list[dict]]:
        return json.loads(self._file_path.read_text(encoding="utf-8"))

    def _persist_raw(self, carts: dict[str, list[dict]]) -> None:
        self._file_path.write_text(
            json.dumps(carts, indent=2) + "\n", encoding="utf-8"
        )

    def _ensure_file(self) -> None:
        if not self._file_path.exists():
            self._file_path.parent.mkdir(parents=True, exist_ok=True)
            self._file_path.write_text("{}", encoding="utf-8")
