"""Unit tests for the Order aggregate and its business rules."""

import re
from datetime import datetime, timezone
from decimal import Decimal

import pytest

from grocery_oms.domain.exceptions import (
    EmptyCartError,
    InvalidTransitionError,
    ValidationError,
)
from grocery_oms.domain.model.order import (
    FulfillmentStatus,
    OfflineCardEntry,
    Order,
    OrderLineItem,
    OrderTotals,
    PaymentMethod,
    PaymentStatus,
    generate_order_number,
)
from grocery_oms.domain.model.value_objects import Address, Money, Quantity
from tests.fakes import SHIPPING, make_order


def _make_item(name: str = "Gala Apple", qty: int = 1, price: str = "15.00") -> OrderLineItem:
    """Helper to build a valid line item."""
    return OrderLineItem(
        product_id="1",
        product_name=name,
        quantity=Quantity(qty),
        unit_price=Money.of(price),
    )


def _paid_order() -> Order:
    order = make_order()
    order.record_settlement(PaymentMethod.STRIPE, note="paid")
    return order


class TestOrderCreation:

    def test_happy_path(self):
        order = make_order()
        assert order.status == FulfillmentStatus.PENDING
        assert order.payment_status == PaymentStatus.PENDING
        assert order.total_amount == Money.of("31.78")
        assert order.id is None  # assigned by repository

    def test_creation_appends_one_history_entry(self):
        order = make_order(user_id="ann")
        assert len(order.status_history) == 1
        entry = order.status_history[0]
        assert entry.status == FulfillmentStatus.PENDING
        assert entry.note == "Order created"
        assert entry.actor == "ann"

    def test_billing_defaults_to_shipping(self):
        order = make_order()
        assert order.billing_address == order.shipping_address

    def test_empty_items_rejected(self):
        totals = OrderTotals(*(Money.zero() for _ in range(6)))
        with pytest.raises(EmptyCartError, match="Cart is empty"):
            Order.create("ann", [], Address.from_mapping(SHIPPING), totals)

    def test_blank_user_rejected(self):
        item = _make_item()
        totals = OrderTotals(
            subtotal=Money.of("15.00"),
            tax_amount=Money.zero(),
            shipping_amount=Money.zero(),
            tip_amount=Money.zero(),
            discount_amount=Money.zero(),
            total_amount=Money.of("15.00"),
        )
        with pytest.raises(ValidationError, match="User ID is required"):
            Order.create("   ", [item], Address.from_mapping(SHIPPING), totals)

    def test_unbalanced_totals_rejected(self):
        totals = OrderTotals(
            subtotal=Money.of("15.00"),
            tax_amount=Money.of("1.33"),
            shipping_amount=Money.of("10.00"),
            tip_amount=Money.zero(),
            discount_amount=Money.zero(),
            total_amount=Money.of("20.00"),
        )
        with pytest.raises(ValidationError, match="does not match"):
            Order.create("ann", [_make_item()], Address.from_mapping(SHIPPING), totals)


class TestOrderNumber:

    def test_format(self):
        moment = datetime(2024, 5, 1, tzinfo=timezone.utc)
        number = generate_order_number(moment)
        assert re.fullmatch(r"ORD-\d+-[A-Z0-9]{9}", number)
        assert number.split("-")[1] == str(int(moment.timestamp() * 1000))

    def test_numbers_differ(self):
        assert make_order().order_number != make_order().order_number


class TestLineItem:

    def test_line_total(self):
        assert _make_item(qty=3, price="2.50").line_total == Money.of("7.50")

    def test_weighed_line_total(self):
        item = OrderLineItem(
            product_id="carrot",
            product_name="Carrots",
            quantity=Quantity(2),
            unit_price=Money.of("1.99"),
            weight=Decimal("1.5"),
        )
        # 1.99 * 1.5 * 2 = 5.97
        assert item.line_total == Money.of("5.97")

    def test_non_positive_weight_rejected(self):
        with pytest.raises(ValidationError, match="must be positive"):
            OrderLineItem("c", "Carrots", Quantity(1), Money.of("1"), weight=Decimal("0"))

    @pytest.mark.parametrize("weight", ["NaN", "Infinity"])
    def test_non_finite_weight_rejected(self, weight):
        with pytest.raises(ValidationError, match="must be positive"):
            OrderLineItem("c", "Carrots", Quantity(1), Money.of("1"), weight=Decimal(weight))


class TestFulfillment:

    def test_full_path_after_payment(self):
        order = _paid_order()
        order.advance_fulfillment(FulfillmentStatus.PROCESSING)
        order.advance_fulfillment(FulfillmentStatus.SHIPPED, tracking_number="1Z999")
        order.advance_fulfillment(FulfillmentStatus.DELIVERED)
        assert order.status == FulfillmentStatus.DELIVERED
        assert order.tracking_number == "1Z999"
        assert order.delivered_at is not None

    def test_default_note(self):
        order = _paid_order()
        order.advance_fulfillment(FulfillmentStatus.PROCESSING)
        assert order.status_history[-1].note == "Status updated from confirmed to processing"

    def test_skipping_states_rejected(self):
        order = _paid_order()
        with pytest.raises(InvalidTransitionError, match="confirmed to shipped"):
            order.advance_fulfillment(FulfillmentStatus.SHIPPED)

    def test_unpaid_order_cannot_be_processed(self):
        with pytest.raises(InvalidTransitionError):
            make_order().advance_fulfillment(FulfillmentStatus.PROCESSING)

    @pytest.mark.parametrize(
        "status", [FulfillmentStatus.CONFIRMED, FulfillmentStatus.CANCELLED]
    )
    def test_reserved_statuses_cannot_be_set_directly(self, status):
        with pytest.raises(InvalidTransitionError, match="cannot be set directly"):
            make_order().advance_fulfillment(status)


class TestCancel:

    @pytest.mark.parametrize("paid", [False, True])
    def test_cancel_from_pending_or_confirmed(self, paid):
        order = _paid_order() if paid else make_order()
        before = len(order.status_history)
        order.cancel("Changed my mind")
        assert order.status == FulfillmentStatus.CANCELLED
        assert order.cancellation_reason == "Changed my mind"
        assert len(order.status_history) == before + 1
        assert order.status_history[-1].status == FulfillmentStatus.CANCELLED
        assert order.status_history[-1].note == "Changed my mind"

    def test_cancel_after_shipping_rejected_and_state_unchanged(self):
        order = _paid_order()
        order.advance_fulfillment(FulfillmentStatus.PROCESSING)
        order.advance_fulfillment(FulfillmentStatus.SHIPPED)
        history = list(order.status_history)

        with pytest.raises(InvalidTransitionError, match="Cannot cancel order with status: shipped"):
            order.cancel("too late")

        assert order.status == FulfillmentStatus.SHIPPED
        assert order.status_history == history


class TestPayments:

    def test_settlement_confirms_pending_order(self):
        order = _paid_order()
        assert order.payment_status == PaymentStatus.COMPLETED
        assert order.status == FulfillmentStatus.CONFIRMED
        assert order.paid_at is not None
        assert order.remaining_amount == Money.zero()
        assert order.is_settled

    def test_partial_then_settle(self):
        order = make_order()
        order.record_partial_payment(Money.of("20.00"), PaymentMethod.OTC)
        assert order.payment_status == PaymentStatus.PARTIAL
        assert order.remaining_amount == Money.of("11.78")
        assert order.outstanding_balance == Money.of("11.78")
        assert order.status == FulfillmentStatus.PENDING

        order.record_settlement(PaymentMethod.STRIPE, note="top-up")
        assert order.payment_status == PaymentStatus.COMPLETED
        assert order.status == FulfillmentStatus.CONFIRMED

    def test_two_partials_accumulate(self):
        order = make_order()
        order.record_partial_payment(Money.of("10.00"), PaymentMethod.EBT)
        order.record_partial_payment(Money.of("5.00"), PaymentMethod.EBT)
        assert order.partial_payment_amount == Money.of("15.00")
        assert order.remaining_amount == Money.of("16.78")

    def test_partial_covering_balance_rejected(self):
        with pytest.raises(ValidationError, match="Partial payment"):
            make_order().record_partial_payment(Money.of("31.78"), PaymentMethod.OTC)

    def test_cards_recorded(self):
        order = make_order()
        card = OfflineCardEntry("Ann", "4111", Money.of("31.78"), PaymentMethod.OTC)
        order.record_settlement(PaymentMethod.OTC, note="paid", cards=[card])
        assert order.payment_cards == [card]
        assert order.payment_method == PaymentMethod.OTC

    def test_completed_cannot_return_to_partial(self):
        order = _paid_order()
        with pytest.raises(InvalidTransitionError, match="completed to partial"):
            order.record_partial_payment(Money.of("1.00"), PaymentMethod.OTC)

    def test_completed_cannot_settle_again(self):
        with pytest.raises(InvalidTransitionError, match="completed to completed"):
            _paid_order().record_settlement(PaymentMethod.STRIPE, note="again")

    def test_failure_only_from_pending(self):
        order = make_order()
        order.record_payment_failure("expired")
        assert order.payment_status == PaymentStatus.FAILED
        assert order.status == FulfillmentStatus.PENDING

        with pytest.raises(InvalidTransitionError):
            _paid_order().record_payment_failure("late failure")

    def test_failed_payment_can_be_retried(self):
        order = make_order()
        order.record_payment_failure("expired")
        order.record_settlement(PaymentMethod.STRIPE, note="retry paid")
        assert order.payment_status == PaymentStatus.COMPLETED


class TestRefunds:

    def test_partial_then_full_refund(self):
        order = _paid_order()
        order.record_refund(Money.of("10.00"), "bruised fruit")
        assert order.payment_status == PaymentStatus.PARTIAL_REFUND
        assert order.is_settled

        order.record_refund(Money.of("21.78"), "order returned")
        assert order.payment_status == PaymentStatus.REFUNDED
        assert order.refund_amount == Money.of("31.78")

    def test_refund_beyond_total_rejected(self):
        with pytest.raises(ValidationError, match="exceed the order total"):
            _paid_order().record_refund(Money.of("40.00"), "oops")

    def test_unpaid_order_cannot_be_refunded(self):
        with pytest.raises(InvalidTransitionError):
            make_order().record_refund(Money.of("5.00"), "nothing paid")


class TestPaymentRequest:

    def test_request_and_clear_leave_state_alone(self):
        order = make_order()
        history = len(order.status_history)
        order.request_payment(Money.of("5.00"))
        assert order.requested_payment_amount == Money.of("5.00")
        assert order.requested_payment_at is not None

        order.clear_payment_request()
        assert order.requested_payment_amount is None
        assert order.requested_payment_at is None
        assert order.payment_status == PaymentStatus.PENDING
        assert order.status == FulfillmentStatus.PENDING
        assert len(order.status_history) == history

    def test_zero_request_rejected(self):
        with pytest.raises(ValidationError, match="Valid payment amount"):
            make_order().request_payment(Money.zero())
