"""CLI commands for the Order aggregate."""

from __future__ import annotations

from decimal import Decimal, InvalidOperation

import click

from grocery_oms.application.cancel_order import DEFAULT_REASON, CancelOrderHandler
from grocery_oms.application.create_order import CreateOrderHandler
from grocery_oms.application.dto import OrderDTO, OrderItemSpec
from grocery_oms.application.refund_order import RefundOrderHandler
from grocery_oms.application.request_payment import (
    CancelPaymentRequestHandler,
    RequestPaymentHandler,
)
from grocery_oms.application.show_order import ListOrdersHandler, ShowOrderHandler
from grocery_oms.application.update_order_status import UpdateOrderStatusHandler
from grocery_oms.domain.exceptions import DomainException
from grocery_oms.domain.gateway.cart_gateway import CartLine
from grocery_oms.infrastructure.bootstrap import (
    cart_store,
    customer_repository,
    inventory_repository,
    order_notifier,
    order_repository,
    product_repository,
)


def _parse_items(raw: str) -> list[OrderItemSpec]:
    """Parse 'apple-1:3,carrot-2:1:1.5' into OrderItemSpec list.

    The optional third field is the weight in lbs for produce.
    """
    specs: list[OrderItemSpec] = []
    for pair in raw.split(","):
        pair = pair.strip()
        parts = pair.split(":")
        if len(parts) not in (2, 3):
            raise click.BadParameter(
                f"Invalid item format '{pair}'. Expected 'ProductId:Quantity[:Weight]'."
            )
        product_id = parts[0].strip()
        try:
            qty = int(parts[1])
        except ValueError:
            raise click.BadParameter(
                f"Invalid quantity '{parts[1]}' for product '{product_id}'."
            )
        weight = _parse_weight(parts[2]) if len(parts) == 3 else None
        specs.append(OrderItemSpec(product_id=product_id, quantity=qty, weight=weight))
    return specs


def _parse_weight(raw: str) -> Decimal:
    try:
        weight = Decimal(raw.strip())
    except InvalidOperation:
        raise click.BadParameter(f"Invalid weight '{raw}'.")
    if not weight.is_finite():
        raise click.BadParameter(f"Invalid weight '{raw}'.")
    return weight


def address_options(func):
    """Shipping address options shared by the create commands."""
    options = [
        click.option("--street", default="", help="Street address."),
        click.option("--city", default="", help="City."),
        click.option("--zip", "zip_code", default="", help="ZIP code."),
        click.option("--state", default="NY", show_default=True, help="State."),
        click.option("--first-name", default="", help="Recipient first name."),
        click.option("--last-name", default="", help="Recipient last name."),
        click.option("--email", default="", help="Contact email."),
        click.option("--phone", default="", help="Contact phone."),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def _address(**fields: str) -> dict[str, str]:
    return {key: value for key, value in fields.items() if value}


def _create_handler() -> CreateOrderHandler:
    return CreateOrderHandler(
        order_repo=order_repository(),
        product_repo=product_repository(),
        inventory_repo=inventory_repository(),
        customer_repo=customer_repository(),
        cart=cart_store(),
        notifier=order_notifier(),
    )


def _display_order(dto: OrderDTO) -> None:
    """Shared formatting for displaying an order."""
    click.echo(f"Order {dto.order_number}  (status={dto.status}, payment={dto.payment_status})")
    click.echo(f"Customer: {dto.user_id}")
    click.echo(f"Created:  {dto.created_at}")
    click.echo(f"Method:   {dto.payment_method}")
    click.echo()

    click.echo(f"  {'Product':<24} {'Qty':>5} {'Weight':>9} {'Price':>10} {'Total':>10}")
    click.echo(f"  {'-'*62}")
    for item in dto.items:
        click.echo(
            f"  {item.product_name:<24} {item.quantity:>5} {item.weight or '':>9} "
            f"{item.unit_price:>10} {item.line_total:>10}"
        )
    click.echo(f"  {'-'*62}")
    click.echo(f"  {'Subtotal':<40} {dto.subtotal:>21}")
    click.echo(f"  {'Tax':<40} {dto.tax_amount:>21}")
    click.echo(f"  {'Shipping':<40} {dto.shipping_amount:>21}")
    click.echo(f"  {'Tip':<40} {dto.tip_amount:>21}")
    click.echo(f"  {'Discount':<40} {dto.discount_amount:>21}")
    click.echo(f"  {'Order Total':<40} {dto.total:>21}")
    if dto.remaining_amount is not None and dto.payment_status == "partial":
        click.echo(f"  {'Remaining':<40} {dto.remaining_amount:>21}")
    if dto.requested_payment_amount is not None:
        click.echo(f"  {'Payment requested':<40} {dto.requested_payment_amount:>21}")

    click.echo()
    click.echo("History:")
    for entry in dto.history:
        click.echo(f"  {entry.timestamp}  [{entry.status}] {entry.note} ({entry.actor})")


@click.command("create")
@click.option("--user", "user_id", required=True, help="Customer user id.")
@click.option("--items", required=True, help="Items as 'ProductId:Qty[:Weight],...'.")
@address_options
@click.option("--tip", default="0", help="Tip amount.")
@click.option("--discount", default="0", help="Discount amount.")
@click.option(
    "--payment-method",
    type=click.Choice(["stripe", "otc", "ebt"]),
    default="stripe",
    show_default=True,
)
def order_create(user_id: str, items: str, tip: str, discount: str, payment_method: str, **address) -> None:
    """Create a new order from an explicit item list."""
    specs = _parse_items(items)

    try:
        dto = _create_handler().handle(
            user_id=user_id,
            item_specs=specs,
            shipping_address=_address(**address),
            tip=tip,
            discount=discount,
            payment_method=payment_method,
        )
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Order {dto.order_number} created  (status={dto.status})")
    _display_order(dto)


@click.command("checkout-cart")
@click.option("--user", "user_id", required=True, help="Customer user id.")
@address_options
@click.option("--tip", default="0", help="Tip amount.")
@click.option("--discount", default="0", help="Discount amount.")
@click.option(
    "--payment-method",
    type=click.Choice(["stripe", "otc", "ebt"]),
    default="stripe",
    show_default=True,
)
def order_checkout_cart(user_id: str, tip: str, discount: str, payment_method: str, **address) -> None:
    """Create a new order from everything in the user's cart."""
    try:
        dto = _create_handler().handle_cart(
            user_id=user_id,
            shipping_address=_address(**address),
            tip=tip,
            discount=discount,
            payment_method=payment_method,
        )
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Order {dto.order_number} created  (status={dto.status})")
    _display_order(dto)


@click.command("cart-add")
@click.option("--user", "user_id", required=True, help="Customer user id.")
@click.option("--product", "product_id", required=True, help="Product id.")
@click.option("--quantity", required=True, type=int, help="Units to add.")
@click.option("--weight", default=None, help="Weight in lbs for produce.")
def order_cart_add(user_id: str, product_id: str, quantity: int, weight: str | None) -> None:
    """Put a product in a user's cart."""
    line = CartLine(
        product_id=product_id,
        quantity=quantity,
        weight=_parse_weight(weight) if weight else None,
    )
    cart_store().add(user_id, line)
    click.echo(f"Added {quantity} x {product_id} to {user_id}'s cart.")


@click.command("show")
@click.option("--number", "order_number", required=True, help="Order number to display.")
def order_show(order_number: str) -> None:
    """Show details of an existing order."""
    handler = ShowOrderHandler(order_repo=order_repository())

    try:
        dto = handler.handle(order_number)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    _display_order(dto)


@click.command("list")
@click.option("--user", "user_id", required=True, help="Customer user id.")
def order_list(user_id: str) -> None:
    """List a customer's orders, newest first."""
    orders = ListOrdersHandler(order_repo=order_repository()).handle(user_id)
    if not orders:
        click.echo("No orders found.")
        return

    click.echo(f"{'Order':<32} {'Status':<11} {'Payment':<15} {'Total':>10}")
    click.echo("-" * 71)
    for dto in orders:
        click.echo(f"{dto.order_number:<32} {dto.status:<11} {dto.payment_status:<15} {dto.total:>10}")


@click.command("cancel")
@click.option("--number", "order_number", required=True, help="Order number to cancel.")
@click.option("--reason", default=DEFAULT_REASON, show_default=True, help="Cancellation reason.")
@click.option("--actor", default="customer", show_default=True, help="Who is cancelling.")
def order_cancel(order_number: str, reason: str, actor: str) -> None:
    """Cancel an order (restores its stock)."""
    handler = CancelOrderHandler(
        order_repo=order_repository(),
        inventory_repo=inventory_repository(),
        customer_repo=customer_repository(),
    )

    try:
        handler.handle(order_number, reason=reason, actor=actor)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Order {order_number} cancelled.")


@click.command("status")
@click.option("--number", "order_number", required=True, help="Order number to update.")
@click.option(
    "--to",
    "status",
    required=True,
    type=click.Choice(["processing", "shipped", "delivered"]),
    help="New fulfillment status.",
)
@click.option("--note", default="", help="History note.")
@click.option("--tracking", "tracking_number", default=None, help="Carrier tracking number.")
def order_status(order_number: str, status: str, note: str, tracking_number: str | None) -> None:
    """Advance an order's fulfillment status (admin)."""
    handler = UpdateOrderStatusHandler(order_repo=order_repository())

    try:
        dto = handler.handle(order_number, status, note=note, tracking_number=tracking_number)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Order {dto.order_number} is now {dto.status}.")


@click.command("refund")
@click.option("--number", "order_number", required=True, help="Order number to refund.")
@click.option("--amount", default=None, help="Refund amount (default: everything not yet refunded).")
@click.option("--reason", required=True, help="Refund reason.")
def order_refund(order_number: str, amount: str | None, reason: str) -> None:
    """Record a refund against a paid order (admin)."""
    handler = RefundOrderHandler(order_repo=order_repository())

    try:
        dto = handler.handle(order_number, amount=amount, reason=reason)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Order {dto.order_number} payment is now {dto.payment_status}.")


@click.command("request-payment")
@click.option("--number", "order_number", required=True, help="Order number.")
@click.option("--amount", required=True, help="Amount to request from the customer.")
def order_request_payment(order_number: str, amount: str) -> None:
    """Ask the customer for an additional payment (admin)."""
    handler = RequestPaymentHandler(order_repo=order_repository())

    try:
        dto = handler.handle(order_number, amount)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Requested {dto.requested_payment_amount} for order {dto.order_number}.")


@click.command("cancel-request")
@click.option("--number", "order_number", required=True, help="Order number.")
def order_cancel_request(order_number: str) -> None:
    """Withdraw an outstanding payment request (admin)."""
    handler = CancelPaymentRequestHandler(order_repo=order_repository())

    try:
        handler.handle(order_number)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Payment request for order {order_number} cancelled.")
