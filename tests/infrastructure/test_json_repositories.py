"""Tests for the JSON-file repositories, against a temporary directory."""

from decimal import Decimal

import pytest

from grocery_oms.domain.exceptions import ConcurrentModificationError
from grocery_oms.domain.gateway.cart_gateway import CartLine
from grocery_oms.domain.model.customer import Customer
from grocery_oms.domain.model.inventory import InventoryItem
from grocery_oms.domain.model.order import OfflineCardEntry, PaymentMethod
from grocery_oms.domain.model.value_objects import Money
from grocery_oms.infrastructure.persistence.json_cart_store import JsonCartStore
from grocery_oms.infrastructure.persistence.json_customer_repository import (
    JsonCustomerRepository,
)
from grocery_oms.infrastructure.persistence.json_inventory_repository import (
    JsonInventoryRepository,
)
from grocery_oms.infrastructure.persistence.json_order_repository import JsonOrderRepository
from grocery_oms.infrastructure.persistence.json_product_repository import (
    JsonProductRepository,
)
from tests.fakes import make_order


class TestJsonOrderRepository:

    def test_round_trip_keeps_payment_state(self, tmp_path):
        repo = JsonOrderRepository(tmp_path / "orders.json")
        order = make_order()
        order.record_partial_payment(
            Money.of("20.00"),
            PaymentMethod.EBT,
            cards=[OfflineCardEntry("Ann", "1234", Money.of("20.00"), PaymentMethod.EBT, pin="99")],
        )
        order.attach_checkout_session("cs_1")
        repo.save(order)

        loaded = repo.get_by_order_number(order.order_number)

        assert loaded.id == 1
        assert loaded.version == 1
        assert loaded.totals == order.totals
        assert loaded.payment_status == order.payment_status
        assert loaded.remaining_amount == Money.of("11.78")
        assert loaded.payment_cards == order.payment_cards
        assert loaded.status_history == order.status_history
        assert loaded.shipping_address == order.shipping_address
        assert repo.get_by_processor_session("cs_1").order_number == order.order_number

    def test_stale_save_rejected(self, tmp_path):
        repo = JsonOrderRepository(tmp_path / "orders.json")
        order = make_order()
        repo.save(order)

        first = repo.get_by_id(order.id)
        second = repo.get_by_id(order.id)
        first.record_settlement(PaymentMethod.STRIPE, note="paid")
        repo.save(first)

        second.record_payment_failure("expired")
        with pytest.raises(ConcurrentModificationError):
            repo.save(second)
        assert repo.get_by_id(order.id).payment_status == first.payment_status

    def test_list_for_user_newest_first(self, tmp_path):
        repo = JsonOrderRepository(tmp_path / "orders.json")
        older, newer = make_order(user_id="ann"), make_order(user_id="ann")
        newer.created_at = older.created_at.replace(year=older.created_at.year + 1)
        repo.save(older)
        repo.save(newer)
        repo.save(make_order(user_id="bob"))

        numbers = [o.order_number for o in repo.list_for_user("ann")]
        assert numbers == [newer.order_number, older.order_number]

    def test_line_items_survive(self, tmp_path):
        repo = JsonOrderRepository(tmp_path / "orders.json")
        order = make_order()
        repo.save(order)
        assert repo.get_by_id(order.id).items == order.items


class TestJsonInventoryRepository:

    def test_stored_flag_is_not_rederived(self, tmp_path):
        repo = JsonInventoryRepository(tmp_path / "inventory.json")
        item = InventoryItem("apple", "Apple", available_quantity=0, is_available_for_sale=True)
        repo.save(item)

        loaded = repo.get_by_product_id("apple")
        assert loaded.is_available_for_sale is True
        assert loaded.repair_availability() is True

    def test_reads_legacy_catalog_rows(self, tmp_path):
        path = tmp_path / "inventory.json"
        path.write_text('{"milk": {"quantity": 4, "in_stock": false}}', encoding="utf-8")
        repo = JsonInventoryRepository(path)

        item = repo.get_by_product_id("milk")
        assert item.available_quantity == 4
        assert item.is_available_for_sale is False

        repo.save(item)
        assert '"available_quantity": 4' in path.read_text(encoding="utf-8")


class TestJsonProductRepository:

    def test_reads_catalog(self, tmp_path):
        path = tmp_path / "products.json"
        path.write_text(
            '[{"id": "carrot", "name": "Carrots", "price": "1.99", "category": "Vegetables"}]',
            encoding="utf-8",
        )
        product = JsonProductRepository(path).get_by_id("carrot")
        assert product.price == Money.of("1.99")
        assert product.is_weighed


class TestJsonCustomerAndCart:

    def test_customer_round_trip(self, tmp_path):
        repo = JsonCustomerRepository(tmp_path / "customers.json")
        assert repo.get("ann") == Customer("ann")

        customer = repo.get("ann")
        customer.adjust_order_stats("placed:X", 1, Decimal("9.99"))
        repo.save(customer)

        loaded = repo.get("ann")
        assert loaded.total_orders == 1
        assert loaded.total_spent == Decimal("9.99")
        assert loaded.applied_adjustments == {"placed:X"}

    def test_cart_add_and_clear(self, tmp_path):
        cart = JsonCartStore(tmp_path / "carts.json")
        cart.add("ann", CartLine("carrot", 2, Decimal("1.5")))
        assert cart.items_for("ann") == [CartLine("carrot", 2, Decimal("1.5"))]

        cart.clear("ann")
        assert cart.items_for("ann") == []
