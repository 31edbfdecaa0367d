"""CLI commands for inventory records."""

from __future__ import annotations

from datetime import datetime, timezone

import click

from reconciler.domain.exceptions import ReconcilerError
from reconciler.domain.model.inventory import INVENTORY
from reconciler.infrastructure.bootstrap import document_store


@click.command("set")
@click.option("--id", "item_id", required=True, help="Inventory item ID.")
@click.option("--stock", required=True, type=click.IntRange(min=0), help="Units on hand.")
def inventory_set(item_id: str, stock: int) -> None:
    """Create an inventory record or overwrite its stock level."""
    store = document_store()
    fields = {"stock": stock, "updatedAt": datetime.now(timezone.utc).isoformat()}

    try:
        store.run_transaction(lambda txn: txn.update(INVENTORY, item_id, fields))
    except ReconcilerError as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Inventory for '{item_id}' set to {stock}")


@click.command("show")
def inventory_show() -> None:
    """Show current stock levels."""
    try:
        documents = document_store().list_documents(INVENTORY)
    except ReconcilerError as exc:
        raise click.ClickException(str(exc))

    if not documents:
        click.echo("No inventory records found.")
        return

    click.echo(f"{'Item':<20} {'Stock':>8}")
    click.echo("-" * 29)
    for item_id, document in sorted(documents.items()):
        click.echo(f"{item_id:<20} {str(document.get('stock')):>8}")
