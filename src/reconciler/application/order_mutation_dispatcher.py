"""Application service: Order Mutation Dispatcher.

Entry point for the order mutation feed.  Each notification is handled on
its own with no state carried between calls.  The feed treats a raised
error as "redeliver", and a redelivered cancellation could be credited
twice, so neither entry point ever raises: every failure ends as a logged
terminal outcome.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import structlog

from reconciler.domain.model.order import items_of
from reconciler.domain.model.restock_result import (
    Outcome,
    ReconciliationResult,
    SkipReason,
)
from reconciler.domain.service.stock_reconciliation_service import (
    StockReconciliationService,
)
from reconciler.domain.service.transition_detector import Transition, classify

logger = structlog.get_logger(__name__)


class OrderMutationDispatcher:

    def __init__(self, reconciliation: StockReconciliationService) -> None:
        self._reconciliation = reconciliation

    def on_order_mutation(
        self,
        order_id: str,
        previous: Mapping[str, Any] | None,
        new: Mapping[str, Any] | None,
    ) -> ReconciliationResult:
        """Restock inventory if this mutation cancelled the order."""
        log = logger.bind(order_id=order_id, trigger="order_cancelled")

        try:
            transition = classify(previous, new)
            if transition is Transition.NOT_TRIGGERED:
                log.debug("restock_not_triggered")
                return ReconciliationResult(order_id=order_id, outcome=Outcome.NOT_TRIGGERED)

            if transition is Transition.NO_ITEMS:
                log.info("restock_noop", reason="order has no items")
                return ReconciliationResult(order_id=order_id, outcome=Outcome.NO_ITEMS)

            items = items_of(new)
            log.info("restock_started", item_count=len(items))
            result = self._reconciliation.restock(order_id, items)
        except Exception as exc:
            log.exception("restock_failed", outcome=Outcome.TRANSACTION_FAILURE.value)
            return ReconciliationResult(
                order_id=order_id, outcome=Outcome.TRANSACTION_FAILURE, error=str(exc)
            )

        _report(log, result, "restock")
        return result

    def on_order_created(
        self, order_id: str, snapshot: Mapping[str, Any] | None
    ) -> ReconciliationResult:
        """Take a new order's items out of inventory."""
        log = logger.bind(order_id=order_id, trigger="order_created")

        try:
            items = items_of(snapshot)
            if not items:
                log.info("deduct_noop", reason="order has no items")
                return ReconciliationResult(order_id=order_id, outcome=Outcome.NO_ITEMS)

            log.info("deduct_started", item_count=len(items))
            result = self._reconciliation.deduct(order_id, items)
        except Exception as exc:
            log.exception("deduct_failed", outcome=Outcome.TRANSACTION_FAILURE.value)
            return ReconciliationResult(
                order_id=order_id, outcome=Outcome.TRANSACTION_FAILURE, error=str(exc)
            )

        _report(log, result, "deduct")
        return result


def _report(log: Any, result: ReconciliationResult, action: str) -> None:
    """Log one line per skipped item, then the terminal outcome."""
    for skipped in result.skipped:
        emit = log.warning if skipped.reason is SkipReason.INVALID_LINE_ITEM else log.error
        emit(
            "line_item_skipped",
            index=skipped.index,
            inventory_item_id=skipped.inventory_item_id,
            reason=skipped.reason.value,
            detail=skipped.detail,
        )

    for adjustment in result.adjustments:
        if adjustment.clamped:
            log.warning(
                "stock_clamped",
                inventory_item_id=adjustment.inventory_item_id,
                requested=-adjustment.quantity,
                previous_stock=adjustment.previous_stock,
            )

    if result.outcome is Outcome.TRANSACTION_FAILURE:
        log.error(
            f"{action}_failed",
            outcome=result.outcome.value,
            error=result.error,
            skipped=result.skipped_item_ids,
        )
        return

    log.info(
        f"{action}_completed",
        outcome=result.outcome.value,
        adjusted=result.adjusted_item_ids,
        skipped=result.skipped_item_ids,
    )
