"""Domain service: detect the "order became Cancelled" edge.

Pure functions over a pair of order snapshots.  Delivery of mutations may be
duplicated or reordered, so the verdict depends only on the snapshots it is
given, never on anything remembered between calls.
"""

from __future__ import annotations

from collections.abc import Mapping
from enum import Enum
from typing import Any

from reconciler.domain.model.order import is_cancelled, items_of

Snapshot = Mapping[str, Any] | None


class Transition(Enum):
    NOT_TRIGGERED = "NotTriggered"
    NO_ITEMS = "NoItems"
    RESTOCK = "Restock"


def should_restock(previous: Snapshot, new: Snapshot) -> bool:
    """True only on the edge into Cancelled.

    A missing or partial ``previous`` snapshot counts as "not cancelled".
    Edits to an order that was already cancelled never trigger.
    """
    return is_cancelled(new) and not is_cancelled(previous)


def classify(previous: Snapshot, new: Snapshot) -> Transition:
    if not should_restock(previous, new):
        return Transition.NOT_TRIGGERED
    if not items_of(new):
        return Transition.NO_ITEMS
    return Transition.RESTOCK
