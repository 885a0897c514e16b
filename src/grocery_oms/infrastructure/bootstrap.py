"""Composition root: wires concrete implementations to domain interfaces.

This is the only place in the codebase that knows about *all* layers.
Every other module depends only on abstractions.
"""

from __future__ import annotations

from grocery_oms.infrastructure.config import get_settings
from grocery_oms.infrastructure.notifier import LoggingOrderNotifier
from grocery_oms.infrastructure.payments.stripe_processor import StripeCheckoutProcessor
from grocery_oms.infrastructure.persistence.json_cart_store import JsonCartStore
from grocery_oms.infrastructure.persistence.json_customer_repository import (
    JsonCustomerRepository,
)
from grocery_oms.infrastructure.persistence.json_inventory_repository import (
    JsonInventoryRepository,
)
from grocery_oms.infrastructure.persistence.json_order_repository import (
    JsonOrderRepository,
)
from grocery_oms.infrastructure.persistence.json_product_repository import (
    JsonProductRepository,
)


def product_repository() -> JsonProductRepository:
    return JsonProductRepository(get_settings().DATA_DIR / "products.json")


def order_repository() -> JsonOrderRepository:
    return JsonOrderRepository(get_settings().DATA_DIR / "orders.json")


def inventory_repository() -> JsonInventoryRepository:
    return JsonInventoryRepository(get_settings().DATA_DIR / "inventory.json")


def customer_repository() -> JsonCustomerRepository:
    return JsonCustomerRepository(get_settings().DATA_DIR / "customers.json")


def cart_store() -> JsonCartStore:
    return JsonCartStore(get_settings().DATA_DIR / "carts.json")


def order_notifier() -> LoggingOrderNotifier:
    return LoggingOrderNotifier()


def payment_processor() -> StripeCheckoutProcessor:
    settings = get_settings()
    return StripeCheckoutProcessor(
        api_key=settings.STRIPE_SECRET_KEY,
        webhook_secret=settings.STRIPE_WEBHOOK_SECRET,
        frontend_url=settings.FRONTEND_URL,
    )
