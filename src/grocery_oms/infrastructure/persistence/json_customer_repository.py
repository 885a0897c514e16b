"""JSON-file-backed implementation of CustomerRepository."""

from __future__ import annotations

import json
from decimal import Decimal
from pathlib import Path

from grocery_oms.domain.model.customer import Customer
from grocery_oms.domain.repository.customer_repository import CustomerRepository


class JsonCustomerRepository(CustomerRepository):

    def __init__(self, file_path: Path) -> None:
        self._file_path = file_path
        self._ensure_file()

    def get(self, user_id: str) -> Customer:
        raw = self._load_raw().get(user_id)
        if raw is None:
            return Customer(user_id=user_id)
        return Customer(
            user_id=user_id,
            total_orders=raw["total_orders"],
            total_spent=Decimal(raw["total_spent"]),
            applied_adjustments=set(raw.get("applied_adjustments", [])),
        )

    def save(self, customer: Customer) -> None:
        records = self._load_raw()
        records[customer.user_id] = {
            "total_orders": customer.total_orders,
            "total_spent": str(customer.total_spent),
            "applied_adjustments": sorted(customer.applied_adjustments),
        }
        self._file_path.write_text(
            json.dumps(records, indent=2) + "\n", encoding="utf-8"
        )

    def _load_raw(self) -> dict[str, dict]:
        return json.loads(self._file_path.read_text(encoding="utf-8"))

    def _ensure_file(self) -> None:
        if not self._file_path.exists():
            self._file_path.parent.mkdir(parents=True, exist_ok=True)
            self._file_path.write_text("{}", encoding="utf-8")
