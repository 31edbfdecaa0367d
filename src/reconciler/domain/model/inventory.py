"""InventoryItem, the stock-keeping record the reconciler writes to.

Inventory documents are edited through forms the reconciler does not own,
so ``stock`` is validated on every read rather than trusted.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from reconciler.domain.exceptions import (
    InventoryRecordMalformed,
    InventoryRecordMissing,
    ValidationError,
)
from reconciler.domain.model.restock_result import StockAdjustment
from reconciler.domain.model.value_objects import whole_number

INVENTORY = "inventory"


@dataclass
class InventoryItem:
    """Aggregate root for a single stock record.

    Invariants:
    - ``stock`` is always a non-negative integer
    """

    id: str
    stock: int

    @staticmethod
    def from_document(item_id: str, document: Mapping[str, Any] | None) -> InventoryItem:
        """Build an item from a raw inventory document.

        Raises InventoryRecordMissing if there is no document, and
        InventoryRecordMalformed if ``stock`` is absent, not a whole number,
        or negative.  An integral float such as ``5.0`` is normalised to int.
        """
        if document is None:
            raise InventoryRecordMissing(f"Inventory item '{item_id}' not found")
        raw_stock = document.get("stock")
        stock = whole_number(raw_stock)
        if stock is None:
            raise InventoryRecordMalformed(
                f"Inventory item '{item_id}' has invalid stock data: {raw_stock!r}"
            )
        if stock < 0:
            raise InventoryRecordMalformed(
                f"Inventory item '{item_id}' has negative stock: {stock}"
            )
        return InventoryItem(id=item_id, stock=stock)

    def credit(self, quantity: int) -> StockAdjustment:
        """Return stock to the shelf (e.g. on order cancellation)."""
        if quantity <= 0:
            raise ValidationError("Credit quantity must be positive")
        previous = self.stock
        self.stock += quantity
        return StockAdjustment(
            inventory_item_id=self.id,
            quantity=quantity,
            previous_stock=previous,
            new_stock=self.stock,
        )

    def debit(self, quantity: int) -> StockAdjustment:
        """Take stock off the shelf for a new order.

        Overselling is the ordering front end's responsibility; here the
        stock bottoms out at zero and the adjustment is flagged as clamped.
        """
        if quantity <= 0:
            raise ValidationError("Debit quantity must be positive")
        previous = self.stock
        clamped = quantity > previous
        self.stock = 0 if clamped else previous - quantity
        return StockAdjustment(
            inventory_item_id=self.id,
            quantity=-quantity,
            previous_stock=previous,
            new_stock=self.stock,
            clamped=clamped,
        )
