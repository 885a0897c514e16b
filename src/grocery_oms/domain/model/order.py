"""Order aggregate, the core of the domain.

The Order is an aggregate root that owns its line items, its payment
state and its append-only status history.  Two independent state
machines live here:

* ``FulfillmentStatus``: pending -> confirmed -> processing -> shipped
  -> delivered, with cancellation allowed from pending or confirmed.
* ``PaymentStatus``: pending -> partial -> completed, failed reachable
  from pending, refunds reachable from completed.

Every transition appends exactly one ``StatusHistoryEntry``.  The
history is never edited or truncated; it is the audit trail for
disputes.
"""

from __future__ import annotations

import secrets
import string
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum

from grocery_oms.domain.exceptions import (
    EmptyCartError,
    InvalidTransitionError,
    ValidationError,
)
from grocery_oms.domain.model.value_objects import Address, Money, Quantity


class FulfillmentStatus(Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class PaymentStatus(Enum):
    PENDING = "pending"
    PARTIAL = "partial"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"
    PARTIAL_REFUND = "partial_refund"


class PaymentMethod(Enum):
    STRIPE = "stripe"
    OTC = "otc"
    EBT = "ebt"

    @property
    def is_offline_card(self) -> bool:
        return self in (PaymentMethod.OTC, PaymentMethod.EBT)


# ---------------------------------------------------------------------------
# Allowed transitions
# ---------------------------------------------------------------------------
FULFILLMENT_TRANSITIONS: dict[FulfillmentStatus, frozenset[FulfillmentStatus]] = {
    FulfillmentStatus.PENDING: frozenset(
        {FulfillmentStatus.CONFIRMED, FulfillmentStatus.CANCELLED}
    ),
    FulfillmentStatus.CONFIRMED: frozenset(
        {FulfillmentStatus.PROCESSING, FulfillmentStatus.CANCELLED}
    ),
    FulfillmentStatus.PROCESSING: frozenset({FulfillmentStatus.SHIPPED}),
    FulfillmentStatus.SHIPPED: frozenset({FulfillmentStatus.DELIVERED}),
    FulfillmentStatus.DELIVERED: frozenset(),
    FulfillmentStatus.CANCELLED: frozenset(),
}

PAYMENT_TRANSITIONS: dict[PaymentStatus, frozenset[PaymentStatus]] = {
    PaymentStatus.PENDING: frozenset(
        {PaymentStatus.PARTIAL, PaymentStatus.COMPLETED, PaymentStatus.FAILED}
    ),
    PaymentStatus.PARTIAL: frozenset({PaymentStatus.PARTIAL, PaymentStatus.COMPLETED}),
    PaymentStatus.FAILED: frozenset({PaymentStatus.PARTIAL, PaymentStatus.COMPLETED}),
    PaymentStatus.COMPLETED: frozenset(
        {PaymentStatus.REFUNDED, PaymentStatus.PARTIAL_REFUND}
    ),
    PaymentStatus.PARTIAL_REFUND: frozenset(
        {PaymentStatus.PARTIAL_REFUND, PaymentStatus.REFUNDED}
    ),
    PaymentStatus.REFUNDED: frozenset(),
}

CANCELLABLE_STATUSES = frozenset({FulfillmentStatus.PENDING, FulfillmentStatus.CONFIRMED})
SETTLED_PAYMENT_STATUSES = frozenset(
    {PaymentStatus.COMPLETED, PaymentStatus.PARTIAL_REFUND, PaymentStatus.REFUNDED}
)

TOTAL_EPSILON = Decimal("0.01")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def generate_order_number(now: datetime | None = None) -> str:
    """``ORD-<epoch millis>-<9 random uppercase alphanumerics>``."""
    moment = now or _utcnow()
    alphabet = string.ascii_uppercase + string.digits
    suffix = "".join(secrets.choice(alphabet) for _ in range(9))
    return f"ORD-{int(moment.timestamp() * 1000)}-{suffix}"


@dataclass(frozen=True)
class StatusHistoryEntry:
    status: FulfillmentStatus
    timestamp: datetime
    note: str
    actor: str = "system"


@dataclass(frozen=True)
class OrderLineItem:
    """Captures the price snapshot of a product at order-creation time.

    Weighed produce carries a ``weight`` (lbs) and is charged
    ``unit_price * weight * quantity``; everything else is charged
    ``unit_price * quantity``.
    """

    product_id: str
    product_name: str
    quantity: Quantity
    unit_price: Money  # locked at order-creation time
    category: str = ""
    weight: Decimal | None = None

    def __post_init__(self) -> None:
        if self.weight is not None and (not self.weight.is_finite() or self.weight <= 0):
            raise ValidationError(f"Weight for {self.product_name} must be positive")

    @property
    def line_total(self) -> Money:
        if self.weight is not None:
            return (self.unit_price * self.weight * self.quantity.value).rounded()
        return self.unit_price * self.quantity.value


@dataclass(frozen=True)
class OfflineCardEntry:
    """One manually keyed card in an OTC/EBT batch, as recorded on the order."""

    holder_name: str
    card_number: str
    amount: Money
    card_type: PaymentMethod
    pin: str = ""


@dataclass(frozen=True)
class OrderTotals:
    subtotal: Money
    tax_amount: Money
    shipping_amount: Money
    tip_amount: Money
    discount_amount: Money
    total_amount: Money

    @property
    def is_balanced(self) -> bool:
        expected = (
            self.subtotal.amount
            + self.tax_amount.amount
            + self.shipping_amount.amount
            + self.tip_amount.amount
            - self.discount_amount.amount
        )
        return abs(expected - self.total_amount.amount) < TOTAL_EPSILON


@dataclass
class Order:
    """Aggregate root for customer orders.

    Use the ``Order.create()`` factory for new orders; it enforces all
    business rules.  The ``__init__`` is intentionally simple so the
    repository can reconstitute persisted orders without re-validating.

    Payment fields are written only through the ``record_*`` methods,
    which ``PaymentReconciliationService`` drives.
    """

    id: int | None
    order_number: str
    user_id: str
    items: list[OrderLineItem]
    shipping_address: Address
    billing_address: Address
    totals: OrderTotals
    payment_method: PaymentMethod = PaymentMethod.STRIPE
    payment_status: PaymentStatus = PaymentStatus.PENDING
    status: FulfillmentStatus = FulfillmentStatus.PENDING
    status_history: list[StatusHistoryEntry] = field(default_factory=list)
    partial_payment_amount: Money | None = None
    remaining_amount: Money | None = None
    requested_payment_amount: Money | None = None
    requested_payment_at: datetime | None = None
    processor_session_id: str | None = None
    processor_payment_intent_id: str | None = None
    paid_at: datetime | None = None
    payment_cards: list[OfflineCardEntry] = field(default_factory=list)
    refund_amount: Money | None = None
    refund_reason: str = ""
    tracking_number: str = ""
    delivered_at: datetime | None = None
    cancellation_reason: str = ""
    created_at: datetime = field(default_factory=_utcnow)
    version: int = 0

    # --- Factory (used for NEW orders only) -----------------------------------

    @staticmethod
    def create(
        user_id: str,
        items: list[OrderLineItem],
        shipping_address: Address,
        totals: OrderTotals,
        billing_address: Address | None = None,
        payment_method: PaymentMethod = PaymentMethod.STRIPE,
        now: datetime | None = None,
    ) -> Order:
        """Create a new pending order, enforcing all invariants."""
        if not user_id or not user_id.strip():
            raise ValidationError("User ID is required")

        if not items:
            raise EmptyCartError("Cart is empty. Cannot create order.")

        if not totals.is_balanced:
            raise ValidationError(
                f"Order total {totals.total_amount} does not match its components"
            )

        created_at = now or _utcnow()
        order = Order(
            id=None,
            order_number=generate_order_number(created_at),
            user_id=user_id.strip(),
            items=list(items),
            shipping_address=shipping_address,
            billing_address=billing_address or shipping_address,
            totals=totals,
            payment_method=payment_method,
            created_at=created_at,
        )
        order._append_history("Order created", actor=order.user_id, at=created_at)
        return order

    # --- Money accessors ------------------------------------------------------

    @property
    def subtotal(self) -> Money:
        return self.totals.subtotal

    @property
    def total_amount(self) -> Money:
        return self.totals.total_amount

    @property
    def outstanding_balance(self) -> Money:
        """What a capture still has to collect to settle the order."""
        if self.payment_status in SETTLED_PAYMENT_STATUSES:
            return Money.zero(self.total_amount.currency)
        if self.payment_status == PaymentStatus.PARTIAL and self.remaining_amount is not None:
            return self.remaining_amount
        return self.total_amount

    @property
    def is_settled(self) -> bool:
        return self.payment_status in SETTLED_PAYMENT_STATUSES

    @property
    def item_count(self) -> int:
        return sum(item.quantity.value for item in self.items)

    # --- Fulfillment transitions ----------------------------------------------

    def advance_fulfillment(
        self,
        new_status: FulfillmentStatus,
        note: str = "",
        actor: str = "admin",
        tracking_number: str | None = None,
        now: datetime | None = None,
    ) -> None:
        """Move the order along processing -> shipped -> delivered.

        Confirmation belongs to payment reconciliation and cancellation
        has its own operation, so neither is reachable from here.
        """
        if new_status in (FulfillmentStatus.CONFIRMED, FulfillmentStatus.CANCELLED):
            raise InvalidTransitionError(
                f"Status '{new_status.value}' cannot be set directly"
            )
        old_status = self.status
        self._move_fulfillment(new_status)

        moment = now or _utcnow()
        if new_status == FulfillmentStatus.DELIVERED:
            self.delivered_at = moment
        if tracking_number:
            self.tracking_number = tracking_number
        self._append_history(
            note or f"Status updated from {old_status.value} to {new_status.value}",
            actor=actor,
            at=moment,
        )

    def cancel(self, reason: str, actor: str = "customer", now: datetime | None = None) -> None:
        """Transition PENDING|CONFIRMED -> CANCELLED.

        Inventory restoration and stat reversal are coordinated by the
        application handler; this only guards and records the transition.
        """
        if self.status not in CANCELLABLE_STATUSES:
            raise InvalidTransitionError(
                f"Cannot cancel order with status: {self.status.value}"
            )
        self._move_fulfillment(FulfillmentStatus.CANCELLED)
        self.cancellation_reason = reason
        self._append_history(reason, actor=actor, at=now)

    # --- Payment transitions (driven by reconciliation) -----------------------

    def attach_checkout_session(self, session_id: str) -> None:
        self.processor_session_id = session_id

    def record_partial_payment(
        self,
        amount: Money,
        method: PaymentMethod,
        cards: list[OfflineCardEntry] | None = None,
        actor: str = "system",
        now: datetime | None = None,
    ) -> None:
        self._guard_payment(PaymentStatus.PARTIAL)
        balance = self.outstanding_balance
        if amount.is_zero or amount >= balance:
            raise ValidationError(
                f"Partial payment {amount} must be between $0.00 and {balance}"
            )
        self._move_payment(PaymentStatus.PARTIAL)

        previous = self.partial_payment_amount or Money.zero(amount.currency)
        self.partial_payment_amount = previous + amount
        self.remaining_amount = (balance - amount).rounded()
        self.payment_method = method
        self.payment_cards.extend(cards or [])
        self._append_history(
            f"Partial payment of {amount} received via {method.value}; "
            f"{self.remaining_amount} remaining",
            actor=actor,
            at=now,
        )

    def record_settlement(
        self,
        method: PaymentMethod,
        note: str,
        cards: list[OfflineCardEntry] | None = None,
        payment_intent_id: str | None = None,
        actor: str = "system",
        now: datetime | None = None,
    ) -> None:
        """Mark the order fully paid and confirm it if it is still pending."""
        self._move_payment(PaymentStatus.COMPLETED)

        moment = now or _utcnow()
        self.remaining_amount = Money.zero(self.total_amount.currency)
        self.paid_at = moment
        self.payment_method = method
        self.payment_cards.extend(cards or [])
        if payment_intent_id:
            self.processor_payment_intent_id = payment_intent_id
        if self.status == FulfillmentStatus.PENDING:
            self._move_fulfillment(FulfillmentStatus.CONFIRMED)
        self._append_history(note, actor=actor, at=moment)

    def record_payment_failure(self, note: str, actor: str = "system", now: datetime | None = None) -> None:
        self._move_payment(PaymentStatus.FAILED)
        self._append_history(note, actor=actor, at=now)

    def record_refund(
        self,
        amount: Money,
        reason: str,
        actor: str = "admin",
        now: datetime | None = None,
    ) -> None:
        already = self.refund_amount or Money.zero(amount.currency)
        refunded = already + amount
        if amount.is_zero:
            raise ValidationError("Refund amount must be positive")
        if refunded > self.total_amount:
            raise ValidationError(
                f"Refunds of {refunded} would exceed the order total {self.total_amount}"
            )
        target = (
            PaymentStatus.REFUNDED
            if refunded >= self.total_amount
            else PaymentStatus.PARTIAL_REFUND
        )
        self._move_payment(target)
        self.refund_amount = refunded
        self.refund_reason = reason
        self._append_history(f"Refund of {amount} recorded: {reason}", actor=actor, at=now)

    # --- Admin payment request (advisory only) --------------------------------

    def request_payment(self, amount: Money, now: datetime | None = None) -> None:
        if amount.is_zero:
            raise ValidationError("Valid payment amount is required")
        self.requested_payment_amount = amount
        self.requested_payment_at = now or _utcnow()

    def clear_payment_request(self) -> None:
        self.requested_payment_amount = None
        self.requested_payment_at = None

    # --- Internal helpers -----------------------------------------------------

    def _move_fulfillment(self, new_status: FulfillmentStatus) -> None:
        if new_status not in FULFILLMENT_TRANSITIONS[self.status]:
            raise InvalidTransitionError(
                f"Cannot move order from {self.status.value} to {new_status.value}"
            )
        self.status = new_status

    def _guard_payment(self, new_status: PaymentStatus) -> None:
        if new_status not in PAYMENT_TRANSITIONS[self.payment_status]:
            raise InvalidTransitionError(
                f"Cannot move payment from {self.payment_status.value} "
                f"to {new_status.value}"
            )

    def _move_payment(self, new_status: PaymentStatus) -> None:
        self._guard_payment(new_status)
        self.payment_status = new_status

    def _append_history(self, note: str, actor: str, at: datetime | None = None) -> None:
        self.status_history.append(
            StatusHistoryEntry(
                status=self.status,
                timestamp=at or _utcnow(),
                note=note,
                actor=actor,
            )
        )
