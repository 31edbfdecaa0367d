"""Integration tests for the OrderMutationDispatcher."""

from structlog.testing import capture_logs

from reconciler.application.order_mutation_dispatcher import OrderMutationDispatcher
from reconciler.domain.model.restock_result import Outcome
from reconciler.domain.service.stock_reconciliation_service import (
    StockReconciliationService,
)
from tests.fakes import FakeDocumentStore, inventory


def _setup(**stock):
    store = FakeDocumentStore(inventory(**stock))
    dispatcher = OrderMutationDispatcher(StockReconciliationService(store))
    return store, dispatcher


def _order(status, *lines):
    return {
        "status": status,
        "items": [{"doorId": item_id, "quantity": qty} for item_id, qty in lines],
    }


def _events(logs):
    return [entry["event"] for entry in logs]


class ExplodingService:

    def restock(self, order_id, items):
        raise RuntimeError("boom")

    def deduct(self, order_id, items):
        raise RuntimeError("boom")


class TestOnOrderMutation:

    def test_cancellation_restocks_inventory(self):
        store, dispatcher = _setup(A=5)

        result = dispatcher.on_order_mutation(
            "order-1", _order("Processing", ("A", 3)), _order("Cancelled", ("A", 3))
        )

        assert result.outcome == Outcome.APPLIED
        assert store.stock("A") == 8

    def test_edit_to_cancelled_order_does_not_restock(self):
        store, dispatcher = _setup(A=5)
        previous = _order("Cancelled", ("A", 3))
        new = {**_order("Cancelled", ("A", 3)), "shippingMethod": "Courier"}

        with capture_logs() as logs:
            result = dispatcher.on_order_mutation("order-1", previous, new)

        assert result.outcome == Outcome.NOT_TRIGGERED
        assert store.operations == 0
        assert store.stock("A") == 5
        assert logs[0]["event"] == "restock_not_triggered"
        assert logs[0]["log_level"] == "debug"

    def test_cancelled_order_without_items_is_a_logged_no_op(self):
        store, dispatcher = _setup(A=5)

        with capture_logs() as logs:
            result = dispatcher.on_order_mutation(
                "order-1", {"status": "Processing"}, {"status": "Cancelled", "items": []}
            )

        assert result.outcome == Outcome.NO_ITEMS
        assert store.operations == 0
        assert _events(logs) == ["restock_noop"]
        assert logs[0]["log_level"] == "info"
        assert logs[0]["order_id"] == "order-1"

    def test_first_ever_snapshot_cancelled_restocks(self):
        store, dispatcher = _setup(A=5)
        dispatcher.on_order_mutation("order-1", None, _order("Cancelled", ("A", 1)))
        assert store.stock("A") == 6

    def test_logs_start_skips_and_outcome(self):
        store, dispatcher = _setup(A=5)
        new = _order("Cancelled", ("A", 2), ("missing", 1), ("A", 0))

        with capture_logs() as logs:
            result = dispatcher.on_order_mutation("order-1", _order("Shipped"), new)

        assert result.outcome == Outcome.PARTIALLY_APPLIED
        assert _events(logs) == [
            "restock_started",
            "line_item_skipped",
            "line_item_skipped",
            "restock_completed",
        ]
        started, missing, invalid, completed = logs
        assert started["item_count"] == 3
        assert missing["reason"] == "InventoryRecordMissing"
        assert missing["log_level"] == "error"
        assert invalid["reason"] == "InvalidLineItem"
        assert invalid["log_level"] == "warning"
        assert completed["outcome"] == "PartiallyApplied"
        assert completed["adjusted"] == ["A"]
        assert completed["skipped"] == ["missing", "A"]

    def test_transaction_failure_is_logged_not_raised(self):
        store, dispatcher = _setup(A=5)
        store.conflicts_remaining = 100

        with capture_logs() as logs:
            result = dispatcher.on_order_mutation(
                "order-1", _order("Processing"), _order("Cancelled", ("A", 3))
            )

        assert result.outcome == Outcome.TRANSACTION_FAILURE
        assert store.stock("A") == 5
        assert logs[-1]["event"] == "restock_failed"
        assert logs[-1]["log_level"] == "error"

    def test_unexpected_error_is_swallowed(self):
        dispatcher = OrderMutationDispatcher(ExplodingService())

        with capture_logs() as logs:
            result = dispatcher.on_order_mutation(
                "order-1", _order("Processing"), _order("Cancelled", ("A", 3))
            )

        assert result.outcome == Outcome.TRANSACTION_FAILURE
        assert result.error == "boom"
        assert logs[-1]["event"] == "restock_failed"

    def test_duplicate_delivery_gets_identical_verdict(self):
        store, dispatcher = _setup(A=5)
        previous, new = _order("Processing", ("A", 3)), _order("Cancelled", ("A", 3))

        first = dispatcher.on_order_mutation("order-1", previous, new)
        second = dispatcher.on_order_mutation("order-1", previous, new)

        assert first.outcome == second.outcome == Outcome.APPLIED
        # Without the restock marker a redelivered edge is credited again
        assert store.stock("A") == 11


class TestOnOrderCreated:

    def test_new_order_deducts_inventory(self):
        store, dispatcher = _setup(A=5, B=3)

        result = dispatcher.on_order_created("order-1", _order("Processing", ("A", 2), ("B", 1)))

        assert result.outcome == Outcome.APPLIED
        assert store.stock("A") == 3
        assert store.stock("B") == 2

    def test_oversell_is_clamped_and_warned(self):
        store, dispatcher = _setup(A=1)

        with capture_logs() as logs:
            dispatcher.on_order_created("order-1", _order("Processing", ("A", 4)))

        assert store.stock("A") == 0
        clamped = [e for e in logs if e["event"] == "stock_clamped"]
        assert clamped[0]["log_level"] == "warning"
        assert clamped[0]["requested"] == 4
        assert logs[-1]["event"] == "deduct_completed"

    def test_order_without_items_is_a_no_op(self):
        store, dispatcher = _setup(A=1)

        with capture_logs() as logs:
            result = dispatcher.on_order_created("order-1", {"status": "Processing"})

        assert result.outcome == Outcome.NO_ITEMS
        assert store.operations == 0
        assert _events(logs) == ["deduct_noop"]

    def test_unexpected_error_is_swallowed(self):
        dispatcher = OrderMutationDispatcher(ExplodingService())

        with capture_logs() as logs:
            result = dispatcher.on_order_created("order-1", _order("Processing", ("A", 1)))

        assert result.outcome == Outcome.TRANSACTION_FAILURE
        assert logs[-1]["event"] == "deduct_failed"
