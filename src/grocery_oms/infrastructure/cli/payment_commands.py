"""CLI commands for taking and reconciling payments."""

from __future__ import annotations

import click

from grocery_oms.application.capture_offline_payment import CaptureOfflinePaymentHandler
from grocery_oms.application.handle_payment_webhook import HandlePaymentWebhookHandler
from grocery_oms.application.start_processor_checkout import StartProcessorCheckoutHandler
from grocery_oms.domain.exceptions import DomainException
from grocery_oms.domain.service.payment_capture import PAYMENT_TYPES
from grocery_oms.infrastructure.bootstrap import order_repository, payment_processor


def _parse_card(raw: str) -> dict[str, str]:
    """Parse 'Holder|Number|Amount[|Pin]'; blank fields are allowed."""
    parts = raw.split("|")
    if len(parts) not in (3, 4):
        raise click.BadParameter(
            f"Invalid card '{raw}'. Expected 'Holder|Number|Amount[|Pin]'."
        )
    card = {"holder_name": parts[0], "card_number": parts[1], "amount": parts[2]}
    if len(parts) == 4:
        card["pin"] = parts[3]
    return card


@click.command("checkout")
@click.option("--number", "order_number", required=True, help="Order number to pay.")
@click.option(
    "--type",
    "payment_type",
    type=click.Choice(PAYMENT_TYPES),
    default=PAYMENT_TYPES[0],
    show_default=True,
)
@click.option("--amount", default=None, help="Custom amount (default: outstanding balance).")
@click.option("--email", default=None, help="Customer email for the receipt.")
def payment_checkout(order_number: str, payment_type: str, amount: str | None, email: str | None) -> None:
    """Open a hosted card checkout session for an order."""
    handler = StartProcessorCheckoutHandler(
        order_repo=order_repository(),
        processor=payment_processor(),
    )

    try:
        dto = handler.handle(order_number, payment_type=payment_type, amount=amount, customer_email=email)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Checkout for order {dto.order_number}: {dto.amount} ({dto.payment_type})")
    click.echo(f"Session: {dto.session_id}")
    click.echo(f"Pay at:  {dto.url}")


@click.command("offline")
@click.option("--number", "order_number", required=True, help="Order number to pay.")
@click.option("--type", "card_type", required=True, type=click.Choice(["otc", "ebt"]))
@click.option(
    "--card",
    "cards",
    required=True,
    multiple=True,
    help="Card as 'Holder|Number|Amount[|Pin]'; repeat for a batch.",
)
@click.option("--staff", default="staff", show_default=True, help="Who keyed the cards.")
def payment_offline(order_number: str, card_type: str, cards: tuple[str, ...], staff: str) -> None:
    """Record a batch of OTC/EBT cards against an order."""
    batch = [_parse_card(raw) for raw in cards]
    handler = CaptureOfflinePaymentHandler(order_repo=order_repository())

    try:
        dto = handler.handle(order_number, card_type, batch, actor=staff)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(
        f"Recorded {dto.settled_amount} from {dto.cards_processed} card(s) "
        f"on order {dto.order_number}."
    )
    click.echo(f"Payment: {dto.payment_status}  Status: {dto.status}")
    if dto.payment_status == "partial":
        click.echo(f"Remaining: {dto.remaining_amount}")


@click.command("webhook")
@click.option(
    "--payload",
    "payload_file",
    required=True,
    type=click.File("rb"),
    help="Raw event body as received ('-' for stdin).",
)
@click.option("--signature", required=True, help="Value of the Stripe-Signature header.")
def payment_webhook(payload_file, signature: str) -> None:
    """Apply a processor webhook delivery."""
    handler = HandlePaymentWebhookHandler(
        order_repo=order_repository(),
        processor=payment_processor(),
    )

    try:
        result = handler.handle(payload_file.read(), signature)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    state = "applied" if result.applied else "ignored"
    click.echo(f"Event {result.event_id} ({result.event_type}) {state}: {result.reason}")
