"""Order mutation feed.

Writes order documents through a DocumentStore and, after each commit,
notifies subscribers the way the hosted store's triggers do: creations as
``(order_id, snapshot)`` and updates as ``(order_id, previous, new)``.
Subscribers run synchronously in registration order.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from datetime import datetime, timezone
from typing import Any

import structlog

from reconciler.domain.exceptions import EntityNotFoundError, ValidationError
from reconciler.domain.model.order import ORDERS
from reconciler.domain.repository.document_store import DocumentStore, Transaction

logger = structlog.get_logger(__name__)

Snapshot = dict[str, Any]
CreatedSubscriber = Callable[[str, Snapshot], Any]
UpdatedSubscriber = Callable[[str, Snapshot, Snapshot], Any]


class OrderFeed:

    def __init__(self, store: DocumentStore) -> None:
        self._store = store
        self._created: list[CreatedSubscriber] = []
        self._updated: list[UpdatedSubscriber] = []

    def subscribe_created(self, subscriber: CreatedSubscriber) -> None:
        self._created.append(subscriber)

    def subscribe_updated(self, subscriber: UpdatedSubscriber) -> None:
        self._updated.append(subscriber)

    def get(self, order_id: str) -> Snapshot | None:
        return self._store.get(ORDERS, order_id)

    def create(self, order_id: str, document: Mapping[str, Any]) -> list[Any]:
        """Create an order document and notify creation subscribers.

        Returns whatever each subscriber returned, in order.
        """

        def body(txn: Transaction) -> Snapshot:
            if txn.get(ORDERS, order_id) is not None:
                raise ValidationError(f"Order '{order_id}' already exists")
            snapshot = dict(document)
            snapshot.setdefault("createdAt", _now())
            txn.set(ORDERS, order_id, snapshot)
            return snapshot

        snapshot = self._store.run_transaction(body)
        logger.debug("order_created", order_id=order_id, subscribers=len(self._created))
        return [subscriber(order_id, snapshot) for subscriber in self._created]

    def update(self, order_id: str, fields: Mapping[str, Any]) -> list[Any]:
        """Merge ``fields`` into an order document and notify update subscribers."""

        def body(txn: Transaction) -> tuple[Snapshot, Snapshot]:
            previous = txn.get(ORDERS, order_id)
            if previous is None:
                raise EntityNotFoundError(f"Order '{order_id}' not found")
            new = {**previous, **fields, "updatedAt": _now()}
            txn.set(ORDERS, order_id, new)
            return previous, new

        previous, new = self._store.run_transaction(body)
        logger.debug("order_updated", order_id=order_id, subscribers=len(self._updated))
        return [subscriber(order_id, previous, new) for subscriber in self._updated]


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()
