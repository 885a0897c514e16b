"""Application service: Create Order use case.

Orchestrates the flow between repositories, the inventory ledger and the
Order aggregate.  The sequence is deliberately explicit and is *not*
transactional:

1. check: live stock read for every line (fails before any write)
2. persist: the pending order is saved
3. commit: stock is decremented line by line

A crash between 2 and 3 leaves a valid order with stale stock; that
drift is logged and reconciled by hand.  Follow-up side effects (user
counters, cart clearing, realtime notification) are best-effort and
never undo the order.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Callable, Mapping

import structlog

from grocery_oms.application.dto import OrderDTO, OrderItemSpec
from grocery_oms.domain.exceptions import (
    DomainException,
    EmptyCartError,
    EntityNotFoundError,
    ValidationError,
)
from grocery_oms.domain.gateway.cart_gateway import CartGateway
from grocery_oms.domain.gateway.order_notifier import OrderNotifier
from grocery_oms.domain.model.order import Order, OrderLineItem, PaymentMethod
from grocery_oms.domain.model.value_objects import Address, Money, Quantity
from grocery_oms.domain.repository.customer_repository import CustomerRepository
from grocery_oms.domain.repository.inventory_repository import InventoryRepository
from grocery_oms.domain.repository.order_repository import OrderRepository
from grocery_oms.domain.repository.product_repository import ProductRepository
from grocery_oms.domain.service.inventory_reservation_service import (
    InventoryReservationService,
)
from grocery_oms.domain.service.order_stats_service import OrderStatsService
from grocery_oms.domain.service.pricing import compute_totals

logger = structlog.get_logger(__name__)


class CreateOrderHandler:

    def __init__(
        self,
        order_repo: OrderRepository,
        product_repo: ProductRepository,
        inventory_repo: InventoryRepository,
        customer_repo: CustomerRepository,
        cart: CartGateway | None = None,
        notifier: OrderNotifier | None = None,
    ) -> None:
        self._order_repo = order_repo
        self._product_repo = product_repo
        self._inventory = InventoryReservationService(inventory_repo)
        self._stats = OrderStatsService(customer_repo)
        self._cart = cart
        self._notifier = notifier

    def handle(
        self,
        user_id: str,
        item_specs: list[OrderItemSpec],
        shipping_address: Mapping[str, object] | None,
        billing_address: Mapping[str, object] | None = None,
        tip: str = "0",
        discount: str = "0",
        payment_method: str = PaymentMethod.STRIPE.value,
    ) -> OrderDTO:
        """Create a pending order from a direct item list.

        Steps:
        1. Validate address and lines; resolve each product id.
        2. Check live stock for every line (``OutOfStockError``).
        3. Build OrderLineItems with *current* prices (snapshot).
        4. Compute totals server-side and let the aggregate validate them.
        5. Persist, then decrement stock, then run side effects.
        """
        if not item_specs:
            raise EmptyCartError("Cart is empty. Cannot create order.")

        shipping = Address.from_mapping(shipping_address)
        billing = Address.from_mapping(billing_address) if billing_address else None
        method = self._parse_method(payment_method)

        line_items = self._build_lines(item_specs)
        self._inventory.check_availability(
            [(line.product_id, line.product_name, line.quantity.value) for line in line_items]
        )

        totals = compute_totals(line_items, tip=Money.of(tip), discount=Money.of(discount))
        order = Order.create(
            user_id=user_id,
            items=line_items,
            shipping_address=shipping,
            billing_address=billing,
            totals=totals,
            payment_method=method,
        )
        self._order_repo.save(order)

        log = logger.bind(order_number=order.order_number, user_id=order.user_id)
        log.info(
            "order_created",
            total=str(order.total_amount.amount),
            items=len(order.items),
            payment_method=method.value,
        )

        try:
            self._inventory.commit_for_order(order)
        except DomainException:
            log.error("order_inventory_drift", exc_info=True)

        self._best_effort("stats_update", lambda: self._stats.record_order_placed(order), log)
        if self._cart is not None:
            cart = self._cart
            self._best_effort("cart_clear", lambda: cart.clear(order.user_id), log)
        if self._notifier is not None:
            notifier = self._notifier
            self._best_effort(
                "realtime_notify",
                lambda: notifier.notify_new_order(self._summary(order)),
                log,
            )

        return OrderDTO.from_order(order)

    def handle_cart(
        self,
        user_id: str,
        shipping_address: Mapping[str, object] | None,
        billing_address: Mapping[str, object] | None = None,
        tip: str = "0",
        discount: str = "0",
        payment_method: str = PaymentMethod.STRIPE.value,
    ) -> OrderDTO:
        """Create a pending order from everything in the user's cart."""
        lines = self._cart.items_for(user_id) if self._cart is not None else []
        specs = [
            OrderItemSpec(product_id=line.product_id, quantity=line.quantity, weight=line.weight)
            for line in lines
        ]
        return self.handle(
            user_id=user_id,
            item_specs=specs,
            shipping_address=shipping_address,
            billing_address=billing_address,
            tip=tip,
            discount=discount,
            payment_method=payment_method,
        )

    # --- Helpers --------------------------------------------------------------

    def _build_lines(self, item_specs: list[OrderItemSpec]) -> list[OrderLineItem]:
        line_items: list[OrderLineItem] = []
        for spec in item_specs:
            product = self._product_repo.get_by_id(spec.product_id)
            if product is None:
                raise EntityNotFoundError(f"Product not found: '{spec.product_id}'")

            weight = self._parse_weight(spec.weight) if product.is_weighed else None
            line_items.append(
                OrderLineItem(
                    product_id=product.id,
                    product_name=product.name,
                    quantity=Quantity(spec.quantity),
                    unit_price=product.price,  # <-- price snapshot
                    category=product.category,
                    weight=weight,
                )
            )
        return line_items

    @staticmethod
    def _parse_weight(raw: Decimal | str | None) -> Decimal | None:
        if raw is None or raw == "":
            return None
        try:
            weight = Decimal(str(raw))
        except InvalidOperation as exc:
            raise ValidationError(f"Invalid weight: {raw!r}") from exc
        if not weight.is_finite():
            raise ValidationError(f"Invalid weight: {raw!r}")
        return weight

    @staticmethod
    def _parse_method(raw: str) -> PaymentMethod:
        try:
            return PaymentMethod(raw)
        except ValueError as exc:
            raise ValidationError(f"Unknown payment method '{raw}'") from exc

    @staticmethod
    def _summary(order: Order) -> dict:
        return {
            "order_number": order.order_number,
            "user_id": order.user_id,
            "status": order.status.value,
            "total_amount": str(order.total_amount.amount),
            "item_count": len(order.items),
            "created_at": order.created_at.isoformat(),
        }

    @staticmethod
    def _best_effort(step: str, action: Callable[[], object], log) -> None:
        try:
            action()
        except Exception:
            log.warning("order_side_effect_failed", step=step, exc_info=True)
