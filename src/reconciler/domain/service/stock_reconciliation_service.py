"""Domain service: Stock Reconciliation.

Applies an order's line items to inventory inside one store transaction,
either crediting stock back (cancellation) or debiting it (new order).

The run has three phases:
  Phase 1, validate: raw lines become ``OrderLineItem`` records.  Invalid
            lines are skipped here and never touch the store.
  Phase 2, read and stage: each referenced inventory document is read in
            the transaction and a new stock value is staged.  Missing or
            malformed documents are skipped without aborting the others.
  Phase 3, commit: every staged write lands together or not at all.  A
            conflicting concurrent write re-runs phase 2 from fresh reads.

Nothing here stops the same cancellation from being credited twice if it
is delivered twice, unless ``mark_restocked_orders`` is enabled; then the
order document is stamped in the same transaction as the credits and a
stamped order is never credited again.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from reconciler.domain.exceptions import (
    InvalidLineItem,
    InventoryRecordMalformed,
    InventoryRecordMissing,
    StoreUnavailableError,
    TransactionFailure,
)
from reconciler.domain.model.inventory import INVENTORY, InventoryItem
from reconciler.domain.model.order import ORDERS, OrderLineItem, reference_of
from reconciler.domain.model.restock_result import (
    Outcome,
    ReconciliationResult,
    SkippedItem,
    SkipReason,
    StockAdjustment,
)
from reconciler.domain.repository.document_store import DocumentStore, Transaction

RESTOCK_MARKER = "inventoryRestockedAt"

_SKIP_REASONS = {
    InventoryRecordMissing: SkipReason.INVENTORY_RECORD_MISSING,
    InventoryRecordMalformed: SkipReason.INVENTORY_RECORD_MALFORMED,
}


class Direction(Enum):
    CREDIT = "credit"
    DEBIT = "debit"


@dataclass
class _Attempt:
    """What one transaction attempt staged; rebuilt from scratch on retry."""

    adjustments: list[StockAdjustment] = field(default_factory=list)
    skipped: list[SkippedItem] = field(default_factory=list)
    already_restocked: bool = False


class StockReconciliationService:

    def __init__(self, store: DocumentStore, mark_restocked_orders: bool = False) -> None:
        self._store = store
        self._mark_restocked_orders = mark_restocked_orders

    def restock(self, order_id: str, items: Sequence[Any]) -> ReconciliationResult:
        """Credit every valid line of a cancelled order back to inventory."""
        return self._reconcile(order_id, items, Direction.CREDIT)

    def deduct(self, order_id: str, items: Sequence[Any]) -> ReconciliationResult:
        """Debit every valid line of a new order from inventory."""
        return self._reconcile(order_id, items, Direction.DEBIT)

    # --- Phases ---------------------------------------------------------------

    def _reconcile(
        self, order_id: str, items: Sequence[Any], direction: Direction
    ) -> ReconciliationResult:
        if not items:
            return ReconciliationResult(order_id=order_id, outcome=Outcome.NO_ITEMS)

        lines, invalid = self._validate(items)
        if not lines:
            return ReconciliationResult(
                order_id=order_id, outcome=Outcome.NOTHING_APPLIED, skipped=invalid
            )

        try:
            attempt = self._store.run_transaction(
                lambda txn: self._stage(txn, order_id, lines, direction)
            )
        except (TransactionFailure, StoreUnavailableError) as exc:
            return ReconciliationResult(
                order_id=order_id,
                outcome=Outcome.TRANSACTION_FAILURE,
                skipped=invalid,
                error=str(exc),
            )

        skipped = sorted(invalid + attempt.skipped, key=lambda s: s.index)
        if attempt.already_restocked:
            outcome = Outcome.ALREADY_RESTOCKED
        elif not attempt.adjustments:
            outcome = Outcome.NOTHING_APPLIED
        elif skipped:
            outcome = Outcome.PARTIALLY_APPLIED
        else:
            outcome = Outcome.APPLIED

        return ReconciliationResult(
            order_id=order_id,
            outcome=outcome,
            adjustments=attempt.adjustments,
            skipped=skipped,
        )

    @staticmethod
    def _validate(items: Sequence[Any]) -> tuple[list[OrderLineItem], list[SkippedItem]]:
        lines: list[OrderLineItem] = []
        invalid: list[SkippedItem] = []
        for index, raw in enumerate(items):
            try:
                lines.append(OrderLineItem.parse(index, raw))
            except InvalidLineItem as exc:
                invalid.append(
                    SkippedItem(
                        index=index,
                        inventory_item_id=_raw_reference(raw),
                        reason=SkipReason.INVALID_LINE_ITEM,
                        detail=str(exc),
                    )
                )
        return lines, invalid

    def _stage(
        self,
        txn: Transaction,
        order_id: str,
        lines: list[OrderLineItem],
        direction: Direction,
    ) -> _Attempt:
        attempt = _Attempt()
        now = datetime.now(timezone.utc).isoformat()

        marking = self._mark_restocked_orders and direction is Direction.CREDIT
        order_doc = txn.get(ORDERS, order_id) if marking else None
        if order_doc is not None and order_doc.get(RESTOCK_MARKER):
            attempt.already_restocked = True
            return attempt

        # Lines sharing an inventory item accumulate on the staged value.
        staged: dict[str, InventoryItem] = {}

        for line in lines:
            item = staged.get(line.inventory_item_id)
            if item is None:
                document = txn.get(INVENTORY, line.inventory_item_id)
                try:
                    item = InventoryItem.from_document(line.inventory_item_id, document)
                except (InventoryRecordMissing, InventoryRecordMalformed) as exc:
                    attempt.skipped.append(
                        SkippedItem(
                            index=line.index,
                            inventory_item_id=line.inventory_item_id,
                            reason=_SKIP_REASONS[type(exc)],
                            detail=str(exc),
                        )
                    )
                    continue
                staged[item.id] = item

            if direction is Direction.CREDIT:
                attempt.adjustments.append(item.credit(line.quantity))
            else:
                attempt.adjustments.append(item.debit(line.quantity))

        for item in staged.values():
            txn.update(INVENTORY, item.id, {"stock": item.stock, "updatedAt": now})

        if order_doc is not None and attempt.adjustments:
            txn.update(ORDERS, order_id, {RESTOCK_MARKER: now})

        return attempt


def _raw_reference(raw: Any) -> str | None:
    """The reference ``OrderLineItem.parse`` looked at, for reporting a skip."""
    if not isinstance(raw, Mapping):
        return None
    reference = reference_of(raw)
    if reference is None or not str(reference).strip():
        return None
    return str(reference)
