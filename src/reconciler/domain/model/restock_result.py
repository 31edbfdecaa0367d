"""Result records produced by a stock reconciliation run."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class SkipReason(Enum):
    INVALID_LINE_ITEM = "InvalidLineItem"
    INVENTORY_RECORD_MISSING = "InventoryRecordMissing"
    INVENTORY_RECORD_MALFORMED = "InventoryRecordMalformed"


class Outcome(Enum):
    APPLIED = "Applied"
    PARTIALLY_APPLIED = "PartiallyApplied"
    NOTHING_APPLIED = "NothingApplied"
    NO_ITEMS = "NoItems"
    NOT_TRIGGERED = "NotTriggered"
    ALREADY_RESTOCKED = "AlreadyRestocked"
    TRANSACTION_FAILURE = "TransactionFailure"


@dataclass(frozen=True)
class SkippedItem:
    index: int
    inventory_item_id: str | None
    reason: SkipReason
    detail: str


@dataclass(frozen=True)
class StockAdjustment:
    """One staged stock change; ``quantity`` is negative for debits."""

    inventory_item_id: str
    quantity: int
    previous_stock: int
    new_stock: int
    clamped: bool = False


@dataclass(frozen=True)
class ReconciliationResult:
    order_id: str
    outcome: Outcome
    adjustments: list[StockAdjustment] = field(default_factory=list)
    skipped: list[SkippedItem] = field(default_factory=list)
    error: str | None = None

    @property
    def adjusted_item_ids(self) -> list[str]:
        return [a.inventory_item_id for a in self.adjustments]

    # Restock runs only ever credit, so both names describe the same list.
    credited_item_ids = adjusted_item_ids

    @property
    def skipped_item_ids(self) -> list[str | None]:
        return [s.inventory_item_id for s in self.skipped]

    @property
    def succeeded(self) -> bool:
        return self.outcome is not Outcome.TRANSACTION_FAILURE
