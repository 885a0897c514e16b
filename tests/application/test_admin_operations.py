"""Integration tests for admin-facing handlers."""

import pytest

from grocery_oms.application.refund_order import RefundOrderHandler
from grocery_oms.application.repair_stock_flags import RepairStockFlagsHandler
from grocery_oms.application.request_payment import (
    CancelPaymentRequestHandler,
    RequestPaymentHandler,
)
from grocery_oms.application.set_inventory import SetInventoryHandler
from grocery_oms.application.show_inventory import ShowInventoryHandler
from grocery_oms.application.show_order import ListOrdersHandler, ShowOrderHandler
from grocery_oms.application.update_order_status import UpdateOrderStatusHandler
from grocery_oms.domain.exceptions import (
    EntityNotFoundError,
    InvalidTransitionError,
    OrderNotFoundError,
    ValidationError,
)
from grocery_oms.domain.model.inventory import InventoryItem
from grocery_oms.domain.model.order import PaymentMethod
from grocery_oms.domain.model.product import Product
from grocery_oms.domain.model.value_objects import Money
from tests.fakes import (
    FakeInventoryRepository,
    FakeOrderRepository,
    FakeProductRepository,
    make_order,
)


def _setup(paid: bool = True):
    repo = FakeOrderRepository()
    order = make_order(user_id="ann")
    if paid:
        order.record_settlement(PaymentMethod.STRIPE, note="paid")
    repo.save(order)
    return repo, order.order_number


class TestUpdateOrderStatus:

    def test_walks_to_delivered(self):
        repo, number = _setup()
        handler = UpdateOrderStatusHandler(repo)
        handler.handle(number, "processing")
        handler.handle(number, "shipped", tracking_number="1Z999", note="Left the store")
        dto = handler.handle(number, "delivered")

        assert dto.status == "delivered"
        saved = repo.get_by_order_number(number)
        assert saved.tracking_number == "1Z999"
        assert saved.delivered_at is not None
        assert saved.status_history[-2].note == "Left the store"
        assert saved.status_history[-1].actor == "admin"

    def test_invalid_status_value(self):
        repo, number = _setup()
        with pytest.raises(ValidationError, match="Invalid status"):
            UpdateOrderStatusHandler(repo).handle(number, "teleported")

    def test_confirm_not_settable(self):
        repo, number = _setup(paid=False)
        with pytest.raises(InvalidTransitionError, match="cannot be set directly"):
            UpdateOrderStatusHandler(repo).handle(number, "confirmed")

    def test_unknown_order(self):
        repo, _ = _setup()
        with pytest.raises(OrderNotFoundError):
            UpdateOrderStatusHandler(repo).handle("ORD-1-NOPE", "processing")


class TestRefundOrder:

    def test_partial_then_rest(self):
        repo, number = _setup()
        handler = RefundOrderHandler(repo)

        assert handler.handle(number, amount="5.00", reason="bruised").payment_status == "partial_refund"
        dto = handler.handle(number, reason="returned the rest")

        assert dto.payment_status == "refunded"
        assert repo.get_by_order_number(number).refund_amount == Money.of("31.78")

    def test_reason_required(self):
        repo, number = _setup()
        with pytest.raises(ValidationError, match="reason is required"):
            RefundOrderHandler(repo).handle(number, amount="1.00", reason=" ")

    def test_unpaid_order_rejected(self):
        repo, number = _setup(paid=False)
        with pytest.raises(InvalidTransitionError):
            RefundOrderHandler(repo).handle(number, reason="nothing to refund")


class TestPaymentRequest:

    def test_request_then_cancel(self):
        repo, number = _setup(paid=False)

        dto = RequestPaymentHandler(repo).handle(number, "12.50")
        assert dto.requested_payment_amount == "$12.50"
        assert dto.payment_status == "pending"
        assert dto.status == "pending"

        dto = CancelPaymentRequestHandler(repo).handle(number)
        assert dto.requested_payment_amount is None
        assert repo.get_by_order_number(number).requested_payment_at is None

    def test_zero_amount_rejected(self):
        repo, number = _setup()
        with pytest.raises(ValidationError, match="Valid payment amount"):
            RequestPaymentHandler(repo).handle(number, "0")


class TestOrderQueries:

    def test_show_by_number(self):
        repo, number = _setup()
        dto = ShowOrderHandler(repo).handle(number)
        assert dto.order_number == number
        assert [h.note for h in dto.history] == ["Order created", "paid"]

    def test_show_unknown(self):
        repo, _ = _setup()
        with pytest.raises(OrderNotFoundError):
            ShowOrderHandler(repo).handle("ORD-1-NOPE")

    def test_list_for_user(self):
        repo, number = _setup()
        other = make_order(user_id="bob")
        repo.save(other)

        orders = ListOrdersHandler(repo).handle("ann")
        assert [dto.order_number for dto in orders] == [number]


class TestInventoryAdmin:

    def _repos(self):
        products = FakeProductRepository([Product(id="apple", name="Gala Apple", price=Money.of("1.00"))])
        inventory = FakeInventoryRepository()
        return products, inventory

    def test_set_creates_and_updates(self):
        products, inventory = self._repos()
        handler = SetInventoryHandler(inventory, products)

        handler.handle("apple", 0)
        assert inventory.get_by_product_id("apple").is_available_for_sale is False

        handler.handle("apple", 12)
        item = inventory.get_by_product_id("apple")
        assert item.available_quantity == 12
        assert item.is_available_for_sale is True

    def test_set_unknown_product(self):
        products, inventory = self._repos()
        with pytest.raises(EntityNotFoundError, match="Product not found"):
            SetInventoryHandler(inventory, products).handle("durian", 3)

    def test_show_and_repair(self):
        inventory = FakeInventoryRepository(
            [
                InventoryItem("apple", "Gala Apple", available_quantity=0, is_available_for_sale=True),
                InventoryItem("milk", "Whole Milk", available_quantity=3),
            ]
        )

        fixed = RepairStockFlagsHandler(inventory).handle()
        assert [line.product_id for line in fixed] == ["apple"]
        assert fixed[0].for_sale is False

        lines = ShowInventoryHandler(inventory).handle()
        assert [(line.product_name, line.available, line.for_sale) for line in lines] == [
            ("Gala Apple", 0, False),
            ("Whole Milk", 3, True),
        ]
