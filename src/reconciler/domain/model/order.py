"""Order snapshots as delivered by the mutation feed.

Order documents are written by the ordering front end and arrive here as
plain mappings.  Nothing about their shape is guaranteed, so the reconciler
never reads a raw line item directly: ``OrderLineItem.parse`` turns each one
into a typed record or raises ``InvalidLineItem``.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any

from reconciler.domain.exceptions import InvalidLineItem
from reconciler.domain.model.value_objects import whole_number

ORDERS = "orders"

# Wire field holding the inventory reference; ``itemId`` is the older spelling.
ITEM_REFERENCE_FIELDS = ("doorId", "itemId")


class OrderStatus(Enum):
    PENDING_PAYMENT = "Pending Payment"
    PROCESSING = "Processing"
    SHIPPED = "Shipped"
    DELIVERED = "Delivered"
    CANCELLED = "Cancelled"
    REFUNDED = "Refunded"


@dataclass(frozen=True)
class OrderLineItem:
    """A validated order line: an inventory reference and a positive quantity."""

    index: int
    inventory_item_id: str
    quantity: int

    @staticmethod
    def parse(index: int, raw: Any) -> OrderLineItem:
        """Validate one raw line item taken from an order document.

        ``index`` is the zero-based position of the line in the order and is
        carried through so skipped lines can be reported precisely.
        """
        if not isinstance(raw, Mapping):
            raise InvalidLineItem(f"Line {index + 1} is not an object: {raw!r}")

        item_id = reference_of(raw)
        if not isinstance(item_id, str) or not item_id.strip():
            raise InvalidLineItem(
                f"Line {index + 1} has an invalid or missing inventory reference"
            )

        raw_quantity = raw.get("quantity")
        quantity = whole_number(raw_quantity)
        if quantity is None:
            raise InvalidLineItem(
                f"Line {index + 1} ({item_id}) has a non-integer quantity: {raw_quantity!r}"
            )
        if quantity <= 0:
            raise InvalidLineItem(
                f"Line {index + 1} ({item_id}) quantity must be positive, got {quantity}"
            )

        return OrderLineItem(index=index, inventory_item_id=item_id, quantity=quantity)


def status_of(snapshot: Mapping[str, Any] | None) -> str | None:
    """Return the raw ``status`` of an order snapshot, or None if it has none."""
    if not isinstance(snapshot, Mapping):
        return None
    status = snapshot.get("status")
    return status if isinstance(status, str) else None


def is_cancelled(snapshot: Mapping[str, Any] | None) -> bool:
    return status_of(snapshot) == OrderStatus.CANCELLED.value


def items_of(snapshot: Mapping[str, Any] | None) -> list[Any]:
    """Return the raw line items of a snapshot; anything but a list counts as none."""
    if not isinstance(snapshot, Mapping):
        return []
    items = snapshot.get("items")
    if not isinstance(items, list):
        return []
    return list(items)


def reference_of(raw: Mapping[str, Any]) -> Any:
    """Return the first non-null inventory reference field of a raw line."""
    for field in ITEM_REFERENCE_FIELDS:
        if raw.get(field) is not None:
            return raw[field]
    return None
