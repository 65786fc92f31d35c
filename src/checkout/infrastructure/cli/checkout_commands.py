"""CLI commands that drive the checkout orchestrator."""

from __future__ import annotations

import asyncio

import click

from checkout.application.dto import CheckoutView
from checkout.application.orchestrator import CheckoutOrchestrator, CheckoutState
from checkout.domain.exceptions import DomainException, ValidationError
from checkout.domain.model.card import CardDetails
from checkout.domain.model.payment import PaymentMethod
from checkout.infrastructure.bootstrap import backend_client, checkout_session

_METHODS = [method.value for method in PaymentMethod]


def _parse_expiry(raw: str) -> tuple[int, int]:
    """Parse 'MM/YY' or 'MM/YYYY' into (month, year)."""
    if "/" not in raw:
        raise click.BadParameter(f"Invalid expiry '{raw}'. Expected 'MM/YY'.")
    month, year = raw.split("/", 1)
    try:
        return int(month), int(year)
    except ValueError:
        raise click.BadParameter(f"Invalid expiry '{raw}'. Expected 'MM/YY'.")


def _display_view(view: CheckoutView) -> None:
    """Shared formatting for a checkout snapshot."""
    click.echo(f"State:    {view.state}")
    if view.order_id is not None:
        click.echo(f"Order:    #{view.order_id}")
    if view.payment_id is not None:
        click.echo(f"Payment:  #{view.payment_id}  (status={view.payment_status})")
    if view.shipping_options:
        click.echo()
        click.echo("Shipping options:")
        for option in view.shipping_options:
            marker = "*" if option.service_id == view.shipping_service else " "
            click.echo(
                f"  {marker} {option.service_id:<14} {option.display_name:<16} "
                f"{option.price:>12}  {option.estimated_days} day(s)"
            )
    click.echo()
    click.echo(f"  {'Subtotal':<20} {view.subtotal:>15}")
    if view.coupon_code:
        click.echo(f"  {'Coupon ' + view.coupon_code:<20} {'-' + view.discount:>15}")
    click.echo(f"  {'Shipping':<20} {view.shipping:>15}")
    click.echo(f"  {'-'*36}")
    click.echo(f"  {'Total':<20} {view.total:>15}")
    if view.installment_amount:
        plan = f"{view.installments} x {view.installment_amount}"
        click.echo(f"  {'Installments':<20} {plan:>15}")

    if view.pay_code:
        click.echo()
        click.echo(f"PIX code: {view.pay_code}")
        click.echo(f"Expires:  {view.countdown}")
    if view.bank_slip_url:
        click.echo()
        click.echo(f"Bank slip: {view.bank_slip_url}")
    if view.error:
        click.echo()
        click.echo(f"Error: {view.error}")


async def _wait_for_payment(checkout: CheckoutOrchestrator) -> None:
    if checkout.state in (CheckoutState.INSTANT_TRANSFER_AWAITING, CheckoutState.CARD_PROCESSING):
        click.echo("Waiting for the payment to be confirmed...")
        await checkout.wait()


@click.command("pay")
@click.option("--user", "user_id", required=True, type=int, help="Customer account ID.")
@click.option("--method", required=True, type=click.Choice(_METHODS), help="Payment method.")
@click.option("--address-id", default=None, type=int, help="Saved address to ship to.")
@click.option("--shipping", "service_id", default=None, help="Shipping service ID.")
@click.option("--coupon", default=None, help="Coupon code.")
@click.option("--installments", default=1, show_default=True, type=int)
@click.option("--card-number", default=None)
@click.option("--card-expiry", default=None, help="Card expiry as MM/YY.")
@click.option("--card-cvc", default=None)
@click.option("--card-holder", default=None)
@click.option("--card-tax-id", default=None, help="Card holder CPF.")
@click.option("--wait/--no-wait", default=True, show_default=True, help="Wait for confirmation.")
def pay(
    user_id: int,
    method: str,
    address_id: int | None,
    service_id: str | None,
    coupon: str | None,
    installments: int,
    card_number: str | None,
    card_expiry: str | None,
    card_cvc: str | None,
    card_holder: str | None,
    card_tax_id: str | None,
    wait: bool,
) -> None:
    """Check out the current cart and pay for it."""
    payment_method = PaymentMethod(method)
    card = None
    if payment_method.is_card:
        if not (card_number and card_expiry and card_cvc and card_holder and card_tax_id):
            raise click.UsageError("Card payments need every --card-* option.")
        month, year = _parse_expiry(card_expiry)
        card = CardDetails(
            number=card_number,
            expiry_month=month,
            expiry_year=year,
            cvc=card_cvc,
            holder_name=card_holder,
            holder_tax_id=card_tax_id,
        )

    async def run() -> CheckoutView:
        async with checkout_session(user_id) as checkout:
            await checkout.load_addresses()
            if address_id is not None:
                await checkout.select_address(address_id)
            if checkout.address is None:
                raise ValidationError(
                    "No saved delivery address; add one before checking out",
                    {"address": "is required"},
                )
            if service_id:
                checkout.select_shipping(service_id)
            if coupon:
                await checkout.apply_coupon(coupon)
            checkout.select_method(payment_method, installments)
            await checkout.submit(card)
            if wait:
                await _wait_for_payment(checkout)
            return checkout.view()

    try:
        view = asyncio.run(run())
    except DomainException as exc:
        raise click.ClickException(str(exc))

    _display_view(view)


@click.command("resume")
@click.option("--user", "user_id", required=True, type=int, help="Customer account ID.")
@click.option("--wait/--no-wait", default=True, show_default=True, help="Wait for confirmation.")
def resume(user_id: int, wait: bool) -> None:
    """Resume a payment left in flight by a previous session."""

    async def run() -> CheckoutView:
        async with checkout_session(user_id) as checkout:
            await checkout.resume()
            if wait:
                await _wait_for_payment(checkout)
            return checkout.view()

    try:
        view = asyncio.run(run())
    except DomainException as exc:
        raise click.ClickException(str(exc))

    if view.payment_id is None:
        click.echo("No payment in flight.")
        return
    _display_view(view)


@click.command("status")
@click.option("--payment-id", required=True, type=int, help="Payment ID to look up.")
def status(payment_id: int) -> None:
    """Show the current status of a payment."""

    async def run():
        async with backend_client() as client:
            return await client.get_payment(payment_id)

    try:
        payment = asyncio.run(run())
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Payment #{payment.id}  (order #{payment.order_id})")
    click.echo(f"Method:  {payment.method.value}")
    click.echo(f"Amount:  {payment.amount}")
    click.echo(f"Status:  {payment.status.value}")
    if payment.status_detail:
        click.echo(f"Detail:  {payment.status_detail}")
