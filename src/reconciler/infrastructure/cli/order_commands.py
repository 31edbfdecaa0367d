"""CLI commands that write orders and feed their mutations to the reconciler."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import click

from reconciler.domain.exceptions import ReconcilerError
from reconciler.domain.model.order import OrderStatus
from reconciler.domain.model.restock_result import ReconciliationResult
from reconciler.infrastructure.bootstrap import document_store, mutation_dispatcher, order_feed


def _parse_items(raw: str) -> list[dict[str, Any]]:
    """Parse 'A:3,B:5' into order line documents."""
    items: list[dict[str, Any]] = []
    for pair in raw.split(","):
        pair = pair.strip()
        if ":" not in pair:
            raise click.BadParameter(
                f"Invalid item format '{pair}'. Expected 'ItemId:Quantity'."
            )
        item_id, qty_str = pair.rsplit(":", 1)
        try:
            qty = int(qty_str)
        except ValueError:
            raise click.BadParameter(
                f"Invalid quantity '{qty_str}' for item '{item_id}'."
            )
        items.append({"doorId": item_id.strip(), "quantity": qty})
    return items


def _load_snapshot(path: Path | None) -> dict[str, Any] | None:
    if path is None:
        return None
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except ValueError as exc:
        raise click.BadParameter(f"{path} is not valid JSON: {exc}")


def _display_result(result: ReconciliationResult) -> None:
    """Shared formatting for a reconciliation outcome."""
    click.echo(f"Order {result.order_id}: {result.outcome.value}")
    for adj in result.adjustments:
        note = "  (clamped)" if adj.clamped else ""
        click.echo(
            f"  {adj.inventory_item_id:<20} {adj.previous_stock:>6} -> {adj.new_stock:<6}{note}"
        )
    for skipped in result.skipped:
        item = skipped.inventory_item_id or f"line {skipped.index + 1}"
        click.echo(f"  {item:<20} skipped: {skipped.reason.value}")
    if result.error:
        click.echo(f"  error: {result.error}")


@click.command("create")
@click.option("--id", "order_id", required=True, help="Order ID.")
@click.option("--items", required=True, help="Items as 'ItemId:Qty,ItemId:Qty'.")
@click.option(
    "--status",
    type=click.Choice([s.value for s in OrderStatus]),
    default=OrderStatus.PROCESSING.value,
    show_default=True,
    help="Initial order status.",
)
def order_create(order_id: str, items: str, status: str) -> None:
    """Create an order (takes its items out of inventory)."""
    document = {"status": status, "items": _parse_items(items)}

    try:
        results = order_feed().create(order_id, document)
    except ReconcilerError as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Order {order_id} created  (status={status})")
    for result in results:
        _display_result(result)


@click.command("cancel")
@click.option("--id", "order_id", required=True, help="Order ID to cancel.")
def order_cancel(order_id: str) -> None:
    """Cancel an order (returns its items to inventory)."""
    try:
        results = order_feed().update(order_id, {"status": OrderStatus.CANCELLED.value})
    except ReconcilerError as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Order {order_id} cancelled.")
    for result in results:
        _display_result(result)


@click.command("replay")
@click.option("--id", "order_id", required=True, help="Order ID the mutation belongs to.")
@click.option(
    "--before",
    "before_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="JSON snapshot before the mutation (omit for a first write).",
)
@click.option(
    "--after",
    "after_path",
    required=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="JSON snapshot after the mutation.",
)
def order_replay(order_id: str, before_path: Path | None, after_path: Path) -> None:
    """Dispatch a recorded order mutation to the reconciler.

    Replaying a cancellation that was already processed credits its items
    again unless RECONCILER_MARK_RESTOCKED_ORDERS is enabled.
    """
    previous = _load_snapshot(before_path)
    new = _load_snapshot(after_path)

    dispatcher = mutation_dispatcher(document_store())
    _display_result(dispatcher.on_order_mutation(order_id, previous, new))
