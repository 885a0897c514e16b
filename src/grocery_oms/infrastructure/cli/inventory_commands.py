"""CLI commands for inventory management."""

from __future__ import annotations

import click

from grocery_oms.application.repair_stock_flags import RepairStockFlagsHandler
from grocery_oms.application.set_inventory import SetInventoryHandler
from grocery_oms.application.show_inventory import ShowInventoryHandler
from grocery_oms.domain.exceptions import DomainException
from grocery_oms.infrastructure.bootstrap import inventory_repository, product_repository


@click.command("set")
@click.option("--product", "product_id", required=True, help="Product id.")
@click.option("--quantity", required=True, type=int, help="Units available for sale.")
def inventory_set(product_id: str, quantity: int) -> None:
    """Set inventory level for a product."""
    handler = SetInventoryHandler(
        inventory_repo=inventory_repository(),
        product_repo=product_repository(),
    )

    try:
        handler.handle(product_id=product_id, quantity=quantity)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Inventory for '{product_id}' set to {quantity}")


@click.command("show")
def inventory_show() -> None:
    """Show current inventory levels."""
    handler = ShowInventoryHandler(inventory_repo=inventory_repository())
    lines = handler.handle()

    if not lines:
        click.echo("No inventory records found.")
        return

    click.echo(f"{'Product':<24} {'Available':>10} {'For sale':>9}")
    click.echo("-" * 45)
    for line in lines:
        for_sale = "yes" if line.for_sale else "no"
        click.echo(f"{line.product_name:<24} {line.available:>10} {for_sale:>9}")


@click.command("repair")
def inventory_repair() -> None:
    """Re-derive every product's for-sale flag from its stock level."""
    fixed = RepairStockFlagsHandler(inventory_repo=inventory_repository()).handle()

    if not fixed:
        click.echo("All stock flags are consistent.")
        return

    click.echo(f"Fixed {len(fixed)} product(s):")
    for line in fixed:
        for_sale = "yes" if line.for_sale else "no"
        click.echo(f"  {line.product_name:<24} available={line.available} for_sale={for_sale}")
