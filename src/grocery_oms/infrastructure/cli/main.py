import click

from grocery_oms.infrastructure.cli.inventory_commands import (
    inventory_repair,
    inventory_set,
    inventory_show,
)
from grocery_oms.infrastructure.cli.order_commands import (
    order_cancel,
    order_cancel_request,
    order_cart_add,
    order_checkout_cart,
    order_create,
    order_list,
    order_refund,
    order_request_payment,
    order_show,
    order_status,
)
from grocery_oms.infrastructure.cli.payment_commands import (
    payment_checkout,
    payment_offline,
    payment_webhook,
)
from grocery_oms.infrastructure.config import get_settings
from grocery_oms.infrastructure.logging_config import configure_logging


@click.group()
def cli() -> None:
    """Grocery OMS: order lifecycle and payment reconciliation"""
    settings = get_settings()
    configure_logging(settings.LOG_LEVEL, json=settings.LOG_JSON)


@cli.group()
def order() -> None:
    """Manage orders."""


@cli.group()
def payment() -> None:
    """Take and reconcile payments."""


@cli.group()
def inventory() -> None:
    """Manage inventory."""


# Register subcommands
order.add_command(order_cancel)
order.add_command(order_cancel_request)
order.add_command(order_cart_add)
order.add_command(order_checkout_cart)
order.add_command(order_create)
order.add_command(order_list)
order.add_command(order_refund)
order.add_command(order_request_payment)
order.add_command(order_show)
order.add_command(order_status)
payment.add_command(payment_checkout)
payment.add_command(payment_offline)
payment.add_command(payment_webhook)
inventory.add_command(inventory_repair)
inventory.add_command(inventory_set)
inventory.add_command(inventory_show)
