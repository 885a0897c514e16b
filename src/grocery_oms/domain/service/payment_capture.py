"""Payment capture adapters.

Three interchangeable ways of settling an order share one contract,
``capture(order, request) -> PaymentOutcome``:

* ``ProcessorCheckoutAdapter`` opens a hosted checkout session.  It never
  settles anything itself; the processor reports back through a webhook.
* ``OfflineCardCaptureAdapter`` records a batch of manually keyed OTC or
  EBT cards and settles synchronously, fully or partially.

Adapters only compute outcomes.  Applying them to the order is the job
of ``PaymentReconciliationService``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Mapping

from grocery_oms.domain.exceptions import PaymentRejectedError, ValidationError
from grocery_oms.domain.gateway.payment_processor import PaymentProcessor
from grocery_oms.domain.model.order import (
    FulfillmentStatus,
    OfflineCardEntry,
    Order,
    PaymentMethod,
    PaymentStatus,
)
from grocery_oms.domain.model.value_objects import Money

ORDER_PAYMENT = "order_payment"
REMAINING_PAYMENT = "remaining_payment"
EXTRA_PAYMENT = "extra_payment"
PAYMENT_TYPES = (ORDER_PAYMENT, REMAINING_PAYMENT, EXTRA_PAYMENT)

# A shortfall at or below one cent counts as settled.
SETTLEMENT_TOLERANCE = Decimal("0.01")

DEFAULT_HOLDER_NAME = "Cardholder"
DEFAULT_CARD_NUMBER = "N/A"


@dataclass(frozen=True)
class CaptureRequest:
    """What the caller supplies for a capture.

    Offline rails read ``cards`` (loose mappings as keyed in by staff);
    the processor rail reads ``amount``, ``payment_type`` and
    ``customer_email``.
    """

    cards: list[Mapping[str, object]] = field(default_factory=list)
    amount: Money | None = None
    payment_type: str = ORDER_PAYMENT
    customer_email: str | None = None


@dataclass(frozen=True)
class PaymentOutcome:
    method: PaymentMethod
    settled_amount: Money
    is_full_settlement: bool
    external_reference: str | None = None
    cards: tuple[OfflineCardEntry, ...] = ()
    redirect_url: str | None = None
    awaiting_confirmation: bool = False


class PaymentCaptureAdapter(ABC):

    method: PaymentMethod

    @abstractmethod
    def capture(self, order: Order, request: CaptureRequest) -> PaymentOutcome:
        """Capture money for *order* or raise ``PaymentRejectedError``."""


def _reject_if_closed(order: Order) -> None:
    if order.status == FulfillmentStatus.CANCELLED:
        raise PaymentRejectedError(f"Order {order.order_number} is cancelled")


class ProcessorCheckoutAdapter(PaymentCaptureAdapter):

    method = PaymentMethod.STRIPE

    def __init__(self, processor: PaymentProcessor) -> None:
        self._processor = processor

    def capture(self, order: Order, request: CaptureRequest) -> PaymentOutcome:
        """Open a checkout session for the order's balance or a custom amount.

        ``remaining_payment`` sessions are only valid on partially paid
        orders and may not exceed the remaining balance.  ``extra_payment``
        sessions (admin-requested top-ups) are allowed on paid orders.
        """
        if request.payment_type not in PAYMENT_TYPES:
            raise PaymentRejectedError(f"Unknown payment type '{request.payment_type}'")
        _reject_if_closed(order)
        if order.is_settled and request.payment_type != EXTRA_PAYMENT:
            raise PaymentRejectedError(f"Order {order.order_number} is already paid")

        if request.payment_type == REMAINING_PAYMENT:
            remaining = order.remaining_amount
            if order.payment_status != PaymentStatus.PARTIAL or remaining is None or remaining.is_zero:
                raise PaymentRejectedError("This order does not have a remaining payment")
            amount = request.amount or remaining
            if amount > remaining:
                raise PaymentRejectedError(
                    f"Amount cannot exceed remaining balance of {remaining}"
                )
        else:
            amount = request.amount or order.outstanding_balance

        if amount.is_zero:
            raise PaymentRejectedError("Valid payment amount is required")

        metadata = {
            "order_id": str(order.id),
            "order_number": order.order_number,
            "payment_type": request.payment_type,
            "amount": str(amount.rounded().amount),
        }
        session = self._processor.create_session(
            amount=amount.rounded(),
            metadata=metadata,
            description=self._describe(order, request.payment_type),
            customer_email=request.customer_email or order.shipping_address.email or None,
        )
        return PaymentOutcome(
            method=self.method,
            settled_amount=Money.zero(amount.currency),
            is_full_settlement=False,
            external_reference=session.session_id,
            redirect_url=session.url,
            awaiting_confirmation=True,
        )

    @staticmethod
    def _describe(order: Order, payment_type: str) -> str:
        if payment_type == REMAINING_PAYMENT:
            return f"Remaining Payment - Order #{order.order_number}"
        if payment_type == EXTRA_PAYMENT:
            return f"Extra Payment - Order #{order.order_number}"
        return f"Grocery Order #{order.order_number}"


class OfflineCardCaptureAdapter(PaymentCaptureAdapter):
    """Manually keyed card batch (OTC or EBT).

    Staff vet these cards at the counter, so the entries are recorded as
    typed rather than validated: blanks get placeholders and a missing
    amount becomes an even share of the outstanding balance.
    """

    def __init__(self, card_type: PaymentMethod) -> None:
        if not card_type.is_offline_card:
            raise ValueError(f"{card_type.value} is not an offline card type")
        self.method = card_type

    def capture(self, order: Order, request: CaptureRequest) -> PaymentOutcome:
        _reject_if_closed(order)
        if order.is_settled:
            raise PaymentRejectedError(f"Order {order.order_number} is already paid")
        if not request.cards:
            raise PaymentRejectedError("At least one card is required")

        balance = order.outstanding_balance
        entries = normalize_card_entries(request.cards, self.method, balance)

        settled = Money.zero(balance.currency)
        for entry in entries:
            settled = settled + entry.amount

        shortfall = balance.amount - settled.amount
        return PaymentOutcome(
            method=self.method,
            settled_amount=settled,
            is_full_settlement=shortfall <= SETTLEMENT_TOLERANCE,
            cards=tuple(entries),
        )


def normalize_card_entries(
    raw_cards: list[Mapping[str, object]],
    card_type: PaymentMethod,
    balance: Money,
) -> list[OfflineCardEntry]:
    """Turn loosely keyed card rows into ``OfflineCardEntry`` records."""
    share = balance / len(raw_cards)
    entries: list[OfflineCardEntry] = []
    for raw in raw_cards:
        holder = str(raw.get("holder_name") or raw.get("name") or "").strip()
        number = str(raw.get("card_number") or "").strip()
        pin = raw.get("pin")
        entries.append(
            OfflineCardEntry(
                holder_name=holder or DEFAULT_HOLDER_NAME,
                card_number=number or DEFAULT_CARD_NUMBER,
                pin=str(pin) if pin else "",
                amount=_card_amount(raw.get("amount"), share),
                card_type=card_type,
            )
        )
    return entries


def _card_amount(raw_amount: object, fallback: Money) -> Money:
    if raw_amount is None or raw_amount == "":
        return fallback
    try:
        amount = Money.of(raw_amount, fallback.currency).rounded()  # type: ignore[arg-type]
    except (ValidationError, ArithmeticError):
        return fallback
    return fallback if amount.is_zero else amount
