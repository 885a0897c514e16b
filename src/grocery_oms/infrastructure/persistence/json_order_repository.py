"""JSON-file-backed implementation of OrderRepository."""

from __future__ import annotations

import json
from datetime import datetime
from decimal import Decimal
from pathlib import Path

from grocery_oms.domain.exceptions import ConcurrentModificationError
from grocery_oms.domain.model.order import (
    FulfillmentStatus,
    OfflineCardEntry,
    Order,
    OrderLineItem,
    OrderTotals,
    PaymentMethod,
    PaymentStatus,
    StatusHistoryEntry,
)
from grocery_oms.domain.model.value_objects import Address, Money, Quantity
from grocery_oms.domain.repository.order_repository import OrderRepository


class JsonOrderRepository(OrderRepository):

    def __init__(self, file_path: Path) -> None:
        self._file_path = file_path
        self._ensure_file()

    # --- OrderRepository interface --------------------------------------------

    def next_id(self) -> int:
        orders = self._load_raw()
        if not orders:
            return 1
        return max(o["id"] for o in orders) + 1

    def get_by_id(self, order_id: int) -> Order | None:
        return self._find(lambda raw: raw["id"] == order_id)

    def get_by_order_number(self, order_number: str) -> Order | None:
        return self._find(lambda raw: raw["order_number"] == order_number)

    def get_by_processor_session(self, session_id: str) -> Order | None:
        return self._find(lambda raw: raw.get("processor_session_id") == session_id)

    def list_for_user(self, user_id: str) -> list[Order]:
        orders = [self._to_domain(raw) for raw in self._load_raw() if raw["user_id"] == user_id]
        return sorted(orders, key=lambda o: o.created_at, reverse=True)

    def save(self, order: Order) -> None:
        orders = self._load_raw()

        if order.id is None:
            order.id = self.next_id()

        # Upsert with a version check: replace if exists, otherwise append
        index = next((i for i, raw in enumerate(orders) if raw["id"] == order.id), None)
        stored_version = orders[index].get("version", 0) if index is not None else 0
        if stored_version != order.version:
            raise ConcurrentModificationError(
                f"Order {order.order_number} was modified concurrently "
                f"(expected version {order.version}, found {stored_version})"
            )

        order.version += 1
        if index is not None:
            orders[index] = self._to_raw(order)
        else:
            orders.append(self._to_raw(order))

        self._persist_raw(orders)

    # --- Serialization --------------------------------------------------------

    @staticmethod
    def _to_raw(order: Order) -> dict:
        totals = order.totals
        return {
            "id": order.id,
            "version": order.version,
            "order_number": order.order_number,
            "user_id": order.user_id,
            "status": order.status.value,
            "payment_method": order.payment_method.value,
            "payment_status": order.payment_status.value,
            "created_at": order.created_at.isoformat(),
            "currency": totals.total_amount.currency,
            "items": [
                {
                    "product_id": item.product_id,
                    "product_name": item.product_name,
                    "quantity": item.quantity.value,
                    "unit_price": str(item.unit_price.amount),
                    "category": item.category,
                    "weight": str(item.weight) if item.weight is not None else None,
                }
                for item in order.items
            ],
            "shipping_address": order.shipping_address.to_dict(),
            "billing_address": order.billing_address.to_dict(),
            "totals": {
                "subtotal": str(totals.subtotal.amount),
                "tax_amount": str(totals.tax_amount.amount),
                "shipping_amount": str(totals.shipping_amount.amount),
                "tip_amount": str(totals.tip_amount.amount),
                "discount_amount": str(totals.discount_amount.amount),
                "total_amount": str(totals.total_amount.amount),
            },
            "status_history": [
                {
                    "status": entry.status.value,
                    "timestamp": entry.timestamp.isoformat(),
                    "note": entry.note,
                    "actor": entry.actor,
                }
                for entry in order.status_history
            ],
            "partial_payment_amount": _money_out(order.partial_payment_amount),
            "remaining_amount": _money_out(order.remaining_amount),
            "requested_payment_amount": _money_out(order.requested_payment_amount),
            "requested_payment_at": _time_out(order.requested_payment_at),
            "processor_session_id": order.processor_session_id,
            "processor_payment_intent_id": order.processor_payment_intent_id,
            "paid_at": _time_out(order.paid_at),
            "payment_cards": [
                {
                    "holder_name": card.holder_name,
                    "card_number": card.card_number,
                    "pin": card.pin,
                    "amount": str(card.amount.amount),
                    "card_type": card.card_type.value,
                }
                for card in order.payment_cards
            ],
            "refund_amount": _money_out(order.refund_amount),
            "refund_reason": order.refund_reason,
            "tracking_number": order.tracking_number,
            "delivered_at": _time_out(order.delivered_at),
            "cancellation_reason": order.cancellation_reason,
        }

    @staticmethod
    def _to_domain(raw: dict) -> Order:
        currency = raw.get("currency", "USD")

        def money(value: str) -> Money:
            return Money(Decimal(value), currency)

        items = [
            OrderLineItem(
                product_id=i["product_id"],
                product_name=i["product_name"],
                quantity=Quantity(i["quantity"]),
                unit_price=money(i["unit_price"]),
                category=i.get("category", ""),
                weight=Decimal(i["weight"]) if i.get("weight") else None,
            )
            for i in raw["items"]
        ]
        t = raw["totals"]
        return Order(
            id=raw["id"],
            version=raw.get("version", 0),
            order_number=raw["order_number"],
            user_id=raw["user_id"],
            items=items,
            shipping_address=Address(**raw["shipping_address"]),
            billing_address=Address(**raw["billing_address"]),
            totals=OrderTotals(
                subtotal=money(t["subtotal"]),
                tax_amount=money(t["tax_amount"]),
                shipping_amount=money(t["shipping_amount"]),
                tip_amount=money(t["tip_amount"]),
                discount_amount=money(t["discount_amount"]),
                total_amount=money(t["total_amount"]),
            ),
            payment_method=PaymentMethod(raw["payment_method"]),
            payment_status=PaymentStatus(raw["payment_status"]),
            status=FulfillmentStatus(raw["status"]),
            status_history=[
                StatusHistoryEntry(
                    status=FulfillmentStatus(h["status"]),
                    timestamp=datetime.fromisoformat(h["timestamp"]),
                    note=h["note"],
                    actor=h.get("actor", "system"),
                )
                for h in raw.get("status_history", [])
            ],
            partial_payment_amount=_money_in(raw.get("partial_payment_amount"), currency),
            remaining_amount=_money_in(raw.get("remaining_amount"), currency),
            requested_payment_amount=_money_in(raw.get("requested_payment_amount"), currency),
            requested_payment_at=_time_in(raw.get("requested_payment_at")),
            processor_session_id=raw.get("processor_session_id"),
            processor_payment_intent_id=raw.get("processor_payment_intent_id"),
            paid_at=_time_in(raw.get("paid_at")),
            payment_cards=[
                OfflineCardEntry(
                    holder_name=c["holder_name"],
                    card_number=c["card_number"],
                    pin=c.get("pin", ""),
                    amount=money(c["amount"]),
                    card_type=PaymentMethod(c["card_type"]),
                )
                for c in raw.get("payment_cards", [])
            ],
            refund_amount=_money_in(raw.get("refund_amount"), currency),
            refund_reason=raw.get("refund_reason", ""),
            tracking_number=raw.get("tracking_number", ""),
            delivered_at=_time_in(raw.get("delivered_at")),
            cancellation_reason=raw.get("cancellation_reason", ""),
            created_at=datetime.fromisoformat(raw["created_at"]),
        )

    # --- File helpers ---------------------------------------------------------

    def _find(self, predicate) -> Order | None:
        for raw in self._load_raw():
            if predicate(raw):
                return self._to_domain(raw)
        return None

    def _load_raw(self) -> list[dict]:
        return json.loads(self._file_path.read_text(encoding="utf-8"))

    def _persist_raw(self, orders: list[dict]) -> None:
        self._file_path.write_text(
            json.dumps(orders, indent=2) + "\n", encoding="utf-8"
        )

    def _ensure_file(self) -> None:
        if not self._file_path.exists():
            self._file_path.parent.mkdir(parents=True, exist_ok=True)
            self._file_path.write_text("[]", encoding="utf-8")


def _money_out(value: Money | None) -> str | None:
    return str(value.amount) if value is not None else None


def _money_in(value: str | None, currency: str) -> Money | None:
    return Money(Decimal(value), currency) if value is not None else None


def _time_out(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _time_in(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None
