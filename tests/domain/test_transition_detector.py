"""Unit tests for cancellation edge detection."""

import pytest

from reconciler.domain.service.transition_detector import (
    Transition,
    classify,
    should_restock,
)

ITEMS = [{"doorId": "A", "quantity": 3}]


class TestShouldRestock:

    @pytest.mark.parametrize(
        "before", ["Pending Payment", "Processing", "Shipped", "Delivered", "Refunded"]
    )
    def test_edge_into_cancelled_triggers(self, before):
        assert should_restock({"status": before}, {"status": "Cancelled"})

    def test_missing_previous_snapshot_triggers(self):
        assert should_restock(None, {"status": "Cancelled"})

    def test_previous_without_status_triggers(self):
        assert should_restock({"items": ITEMS}, {"status": "Cancelled"})

    def test_already_cancelled_does_not_trigger(self):
        previous = {"status": "Cancelled", "items": ITEMS, "note": "old"}
        new = {"status": "Cancelled", "items": ITEMS, "note": "edited"}
        assert not should_restock(previous, new)

    @pytest.mark.parametrize("after", ["Processing", "Shipped", "Refunded", None])
    def test_not_cancelled_does_not_trigger(self, after):
        assert not should_restock({"status": "Processing"}, {"status": after})

    def test_leaving_cancelled_does_not_trigger(self):
        assert not should_restock({"status": "Cancelled"}, {"status": "Processing"})

    def test_missing_new_snapshot_does_not_trigger(self):
        assert not should_restock({"status": "Processing"}, None)

    def test_verdict_is_deterministic(self):
        previous = {"status": "Processing", "items": ITEMS}
        new = {"status": "Cancelled", "items": ITEMS}
        first = should_restock(previous, new)
        second = should_restock(previous, new)
        assert first is True
        assert first == second


class TestClassify:

    def test_restock_when_cancelled_with_items(self):
        assert classify({"status": "Shipped"}, {"status": "Cancelled", "items": ITEMS}) == (
            Transition.RESTOCK
        )

    @pytest.mark.parametrize("items", [[], None, "A:3"])
    def test_no_items_when_item_list_empty_or_unusable(self, items):
        new = {"status": "Cancelled", "items": items}
        assert classify({"status": "Processing"}, new) == Transition.NO_ITEMS

    def test_no_items_when_item_list_absent(self):
        assert classify({"status": "Processing"}, {"status": "Cancelled"}) == Transition.NO_ITEMS

    def test_not_triggered_wins_over_no_items(self):
        assert classify({"status": "Cancelled"}, {"status": "Cancelled"}) == (
            Transition.NOT_TRIGGERED
        )
