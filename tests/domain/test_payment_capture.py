"""Unit tests for the payment capture adapters."""

import pytest

from grocery_oms.domain.exceptions import PaymentRejectedError
from grocery_oms.domain.model.order import PaymentMethod
from grocery_oms.domain.model.value_objects import Money
from grocery_oms.domain.service.payment_capture import (
    DEFAULT_CARD_NUMBER,
    DEFAULT_HOLDER_NAME,
    EXTRA_PAYMENT,
    REMAINING_PAYMENT,
    CaptureRequest,
    OfflineCardCaptureAdapter,
    ProcessorCheckoutAdapter,
    normalize_card_entries,
)
from tests.fakes import FakePaymentProcessor, make_order


class TestOfflineCardCapture:

    def test_batch_covering_total_is_full_settlement(self):
        # Order total is $31.78.
        cards = [
            {"holder_name": "Ann", "card_number": "1111", "amount": "20.00"},
            {"holder_name": "Ann", "card_number": "2222", "amount": "11.78"},
        ]
        outcome = OfflineCardCaptureAdapter(PaymentMethod.OTC).capture(
            make_order(), CaptureRequest(cards=cards)
        )
        assert outcome.is_full_settlement
        assert outcome.settled_amount == Money.of("31.78")
        assert len(outcome.cards) == 2
        assert outcome.method == PaymentMethod.OTC

    def test_one_cent_short_still_settles(self):
        cards = [{"amount": "31.77"}]
        outcome = OfflineCardCaptureAdapter(PaymentMethod.EBT).capture(
            make_order(), CaptureRequest(cards=cards)
        )
        assert outcome.is_full_settlement

    def test_short_batch_is_partial(self):
        cards = [{"amount": "20.00"}]
        outcome = OfflineCardCaptureAdapter(PaymentMethod.EBT).capture(
            make_order(), CaptureRequest(cards=cards)
        )
        assert not outcome.is_full_settlement
        assert outcome.settled_amount == Money.of("20.00")

    def test_empty_batch_rejected(self):
        with pytest.raises(PaymentRejectedError, match="At least one card"):
            OfflineCardCaptureAdapter(PaymentMethod.OTC).capture(make_order(), CaptureRequest())

    def test_paid_order_rejected(self):
        order = make_order()
        order.record_settlement(PaymentMethod.STRIPE, note="paid")
        with pytest.raises(PaymentRejectedError, match="already paid"):
            OfflineCardCaptureAdapter(PaymentMethod.OTC).capture(
                order, CaptureRequest(cards=[{"amount": "1"}])
            )

    def test_cancelled_order_rejected(self):
        order = make_order()
        order.cancel("no longer needed")
        with pytest.raises(PaymentRejectedError, match="cancelled"):
            OfflineCardCaptureAdapter(PaymentMethod.OTC).capture(
                order, CaptureRequest(cards=[{"amount": "1"}])
            )

    def test_processor_method_is_not_an_offline_card(self):
        with pytest.raises(ValueError):
            OfflineCardCaptureAdapter(PaymentMethod.STRIPE)


class TestNormalizeCardEntries:

    def test_blank_fields_get_placeholders(self):
        [entry] = normalize_card_entries(
            [{"holder_name": " ", "card_number": ""}], PaymentMethod.OTC, Money.of("10.00")
        )
        assert entry.holder_name == DEFAULT_HOLDER_NAME
        assert entry.card_number == DEFAULT_CARD_NUMBER
        assert entry.pin == ""

    def test_name_alias_and_pin(self):
        [entry] = normalize_card_entries(
            [{"name": "Bo", "card_number": "9", "pin": 1234, "amount": "3"}],
            PaymentMethod.EBT,
            Money.of("10.00"),
        )
        assert entry.holder_name == "Bo"
        assert entry.pin == "1234"
        assert entry.card_type == PaymentMethod.EBT

    def test_missing_or_bad_amount_becomes_even_share(self):
        entries = normalize_card_entries(
            [{"amount": ""}, {"amount": "abc"}, {"amount": "0"}],
            PaymentMethod.OTC,
            Money.of("30.00"),
        )
        assert [e.amount for e in entries] == [Money.of("10.00")] * 3


class TestProcessorCheckout:

    def test_opens_session_for_full_balance(self):
        processor = FakePaymentProcessor()
        order = make_order()
        outcome = ProcessorCheckoutAdapter(processor).capture(order, CaptureRequest())

        assert outcome.awaiting_confirmation
        assert outcome.settled_amount.is_zero
        assert outcome.external_reference == "cs_test_1"
        session = processor.sessions[0]
        assert session["amount"] == Money.of("31.78")
        assert session["metadata"]["order_number"] == order.order_number
        assert session["metadata"]["payment_type"] == "order_payment"
        assert session["description"] == f"Grocery Order #{order.order_number}"
        assert session["customer_email"] == "ann@example.com"

    def test_remaining_payment_uses_remaining_balance(self):
        processor = FakePaymentProcessor()
        order = make_order()
        order.record_partial_payment(Money.of("20.00"), PaymentMethod.OTC)

        ProcessorCheckoutAdapter(processor).capture(
            order, CaptureRequest(payment_type=REMAINING_PAYMENT)
        )
        session = processor.sessions[0]
        assert session["amount"] == Money.of("11.78")
        assert session["description"].startswith("Remaining Payment")

    def test_remaining_payment_requires_partial_order(self):
        with pytest.raises(PaymentRejectedError, match="does not have a remaining payment"):
            ProcessorCheckoutAdapter(FakePaymentProcessor()).capture(
                make_order(), CaptureRequest(payment_type=REMAINING_PAYMENT)
            )

    def test_remaining_payment_cannot_exceed_balance(self):
        order = make_order()
        order.record_partial_payment(Money.of("20.00"), PaymentMethod.OTC)
        with pytest.raises(PaymentRejectedError, match="cannot exceed"):
            ProcessorCheckoutAdapter(FakePaymentProcessor()).capture(
                order,
                CaptureRequest(payment_type=REMAINING_PAYMENT, amount=Money.of("12.00")),
            )

    def test_paid_order_rejected_unless_extra_payment(self):
        order = make_order()
        order.record_settlement(PaymentMethod.STRIPE, note="paid")
        adapter = ProcessorCheckoutAdapter(FakePaymentProcessor())

        with pytest.raises(PaymentRejectedError, match="already paid"):
            adapter.capture(order, CaptureRequest())

        outcome = adapter.capture(
            order, CaptureRequest(payment_type=EXTRA_PAYMENT, amount=Money.of("4.00"))
        )
        assert outcome.awaiting_confirmation

    def test_unknown_payment_type_rejected(self):
        with pytest.raises(PaymentRejectedError, match="Unknown payment type"):
            ProcessorCheckoutAdapter(FakePaymentProcessor()).capture(
                make_order(), CaptureRequest(payment_type="bitcoin")
            )

    def test_processor_refusal_propagates(self):
        with pytest.raises(PaymentRejectedError, match="Card network"):
            ProcessorCheckoutAdapter(FakePaymentProcessor(refuse=True)).capture(
                make_order(), CaptureRequest()
            )
