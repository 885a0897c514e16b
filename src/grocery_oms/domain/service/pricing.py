"""Domain service: order pricing.

Totals are always recomputed here from the snapshotted line items;
amounts sent by a client are display-only and never trusted.
"""

from __future__ import annotations

from decimal import Decimal

from grocery_oms.domain.model.order import OrderLineItem, OrderTotals
from grocery_oms.domain.model.value_objects import Money

# ---------------------------------------------------------------------------
# Constants for business rules
# ---------------------------------------------------------------------------
TAX_RATE = Decimal("0.08875")  # NY state + NYC sales tax
FREE_SHIPPING_THRESHOLD = Money(Decimal("35.00"))
FLAT_SHIPPING_FEE = Money(Decimal("10.00"))


def shipping_for(subtotal: Money) -> Money:
    if subtotal >= FREE_SHIPPING_THRESHOLD:
        return Money.zero(subtotal.currency)
    return FLAT_SHIPPING_FEE


def compute_totals(
    items: list[OrderLineItem],
    tip: Money | None = None,
    discount: Money | None = None,
) -> OrderTotals:
    """Compute subtotal, tax, shipping and grand total for *items*.

    ``total = subtotal + tax + shipping + tip - discount``.  Tax is
    rounded half-up to the cent; the discount may not exceed the rest
    of the bill.
    """
    subtotal = Money.zero()
    for item in items:
        subtotal = subtotal + item.line_total

    tax = (subtotal * TAX_RATE).rounded()
    shipping = shipping_for(subtotal)
    tip = tip or Money.zero()
    discount = discount or Money.zero()

    gross = subtotal + tax + shipping + tip
    total = gross - discount  # raises if the discount exceeds the bill

    return OrderTotals(
        subtotal=subtotal,
        tax_amount=tax,
        shipping_amount=shipping,
        tip_amount=tip,
        discount_amount=discount,
        total_amount=total,
    )
