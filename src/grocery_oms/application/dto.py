"""Data Transfer Objects: plain containers that cross layer boundaries.

DTOs carry data between the CLI and application layers without
exposing domain internals to the outside world.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from grocery_oms.domain.model.order import Order


@dataclass(frozen=True)
class OrderItemSpec:
    """Input: what the customer asked for (product id + quantity, optional weight)."""

    product_id: str
    quantity: int
    weight: Decimal | None = None


@dataclass(frozen=True)
class OrderLineItemDTO:
    """Output: a single line item as displayed to the user."""

    product_name: str
    quantity: int
    unit_price: str  # formatted, e.g. "$15.00"
    line_total: str
    weight: str | None = None


@dataclass(frozen=True)
class StatusHistoryDTO:
    status: str
    timestamp: str
    note: str
    actor: str


@dataclass(frozen=True)
class OrderDTO:
    """Output: a complete order as displayed to the user."""

    id: int
    order_number: str
    user_id: str
    status: str
    payment_status: str
    payment_method: str
    items: list[OrderLineItemDTO]
    subtotal: str
    tax_amount: str
    shipping_amount: str
    tip_amount: str
    discount_amount: str
    total: str
    remaining_amount: str | None
    requested_payment_amount: str | None
    history: list[StatusHistoryDTO]
    created_at: str

    @staticmethod
    def from_order(order: Order) -> OrderDTO:
        totals = order.totals
        return OrderDTO(
            id=order.id,  # type: ignore[arg-type]
            order_number=order.order_number,
            user_id=order.user_id,
            status=order.status.value,
            payment_status=order.payment_status.value,
            payment_method=order.payment_method.value,
            items=[
                OrderLineItemDTO(
                    product_name=item.product_name,
                    quantity=item.quantity.value,
                    unit_price=str(item.unit_price),
                    line_total=str(item.line_total),
                    weight=f"{item.weight} lb" if item.weight is not None else None,
                )
                for item in order.items
            ],
            subtotal=str(totals.subtotal),
            tax_amount=str(totals.tax_amount),
            shipping_amount=str(totals.shipping_amount),
            tip_amount=str(totals.tip_amount),
            discount_amount=str(totals.discount_amount),
            total=str(totals.total_amount),
            remaining_amount=(
                str(order.remaining_amount) if order.remaining_amount is not None else None
            ),
            requested_payment_amount=(
                str(order.requested_payment_amount)
                if order.requested_payment_amount is not None
                else None
            ),
            history=[
                StatusHistoryDTO(
                    status=entry.status.value,
                    timestamp=entry.timestamp.strftime("%Y-%m-%d %H:%M UTC"),
                    note=entry.note,
                    actor=entry.actor,
                )
                for entry in order.status_history
            ],
            created_at=order.created_at.strftime("%Y-%m-%d %H:%M UTC"),
        )


@dataclass(frozen=True)
class PaymentResultDTO:
    """Output: the order's payment state after a capture."""

    order_number: str
    payment_method: str
    payment_status: str
    status: str
    settled_amount: str
    remaining_amount: str | None
    cards_processed: int


@dataclass(frozen=True)
class CheckoutSessionDTO:
    """Output: where to send the customer to pay."""

    order_number: str
    session_id: str
    url: str
    amount: str
    payment_type: str
