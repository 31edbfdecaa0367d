import click

from reconciler.infrastructure.cli.inventory_commands import inventory_set, inventory_show
from reconciler.infrastructure.cli.order_commands import (
    order_cancel,
    order_create,
    order_replay,
)
from reconciler.infrastructure.config import get_settings
from reconciler.infrastructure.logging import configure_logging


@click.group()
def cli() -> None:
    """Inventory Reconciler: restocks inventory when orders are cancelled"""
    settings = get_settings()
    configure_logging(level=settings.log_level, fmt=settings.log_format)


@cli.group()
def order() -> None:
    """Write orders and replay order mutations."""


@cli.group()
def inventory() -> None:
    """Manage inventory."""


# Register subcommands
order.add_command(order_cancel)
order.add_command(order_create)
order.add_command(order_replay)
inventory.add_command(inventory_set)
inventory.add_command(inventory_show)
