"""CLI commands for the client-local cart."""

from __future__ import annotations

import click

from checkout.application.dto import CartDTO
from checkout.application.manage_cart import CartHandler
from checkout.domain.exceptions import DomainException
from checkout.infrastructure.bootstrap import cart_repository


def _display_cart(dto: CartDTO) -> None:
    if not dto.lines:
        click.echo("Cart is empty.")
        return

    click.echo(f"  {'ID':>5} {'Product':<20} {'Size':<5} {'Color':<8} {'Qty':>4} {'Price':>12} {'Total':>12}")
    click.echo(f"  {'-'*72}")
    for line in dto.lines:
        click.echo(
            f"  {line.product_id:>5} {line.name:<20} {line.size:<5} {line.color:<8} "
            f"{line.quantity:>4} {line.unit_price:>12} {line.line_total:>12}"
        )
    click.echo(f"  {'-'*72}")
    click.echo(f"  {'Items':<20} {dto.total_items:>5}")
    click.echo(f"  {'Subtotal':<46} {dto.subtotal:>25}")


@click.command("add")
@click.option("--product", "product_id", required=True, type=int, help="Product ID.")
@click.option("--name", required=True, help="Product name.")
@click.option("--qty", "quantity", default=1, show_default=True, type=int, help="Units to add.")
@click.option("--price", required=True, help="Unit price, e.g. 49.90.")
@click.option("--size", default="", help="Size variant.")
@click.option("--color", default="", help="Color variant.")
@click.option("--variant", "variant_id", default=None, type=int, help="Variant ID.")
def cart_add(
    product_id: int,
    name: str,
    quantity: int,
    price: str,
    size: str,
    color: str,
    variant_id: int | None,
) -> None:
    """Add a product to the cart (merges with an identical line)."""
    handler = CartHandler(cart_repository())

    try:
        dto = handler.add(product_id, name, quantity, price, size, color, variant_id)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Added {quantity} x '{name}' to the cart.")
    _display_cart(dto)


@click.command("show")
def cart_show() -> None:
    """Show the cart contents and subtotal."""
    _display_cart(CartHandler(cart_repository()).show())


@click.command("update")
@click.option("--product", "product_id", required=True, type=int, help="Product ID.")
@click.option("--qty", "quantity", required=True, type=int, help="New quantity (0 removes).")
@click.option("--size", default="", help="Size variant.")
@click.option("--color", default="", help="Color variant.")
def cart_update(product_id: int, quantity: int, size: str, color: str) -> None:
    """Change the quantity of a cart line."""
    handler = CartHandler(cart_repository())

    try:
        dto = handler.update_quantity(product_id, quantity, size, color)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    _display_cart(dto)


@click.command("remove")
@click.option("--product", "product_id", required=True, type=int, help="Product ID.")
@click.option("--size", default="", help="Size variant.")
@click.option("--color", default="", help="Color variant.")
def cart_remove(product_id: int, size: str, color: str) -> None:
    """Remove a line from the cart."""
    dto = CartHandler(cart_repository()).remove(product_id, size, color)
    _display_cart(dto)


@click.command("clear")
def cart_clear() -> None:
    """Empty the cart."""
    CartHandler(cart_repository()).clear()
    click.echo("Cart cleared.")
