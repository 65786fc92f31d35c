import click

from checkout.infrastructure.cli.cart_commands import (
    cart_add,
    cart_clear,
    cart_remove,
    cart_show,
    cart_update,
)
from checkout.infrastructure.cli.checkout_commands import pay, resume, status
from checkout.infrastructure.config import load_settings
from checkout.infrastructure.logging_config import configure_logging


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Log at INFO level.")
def cli(verbose: bool) -> None:
    """Checkout: cart and payment orchestration"""
    configure_logging("INFO" if verbose else load_settings().log_level)


@cli.group()
def cart() -> None:
    """Manage the cart."""


# Register subcommands
cart.add_command(cart_add)
cart.add_command(cart_clear)
cart.add_command(cart_remove)
cart.add_command(cart_show)
cart.add_command(cart_update)
cli.add_command(pay)
cli.add_command(resume)
cli.add_command(status)
