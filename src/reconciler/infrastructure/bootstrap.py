"""Composition root: wires concrete implementations to domain interfaces.

This is the only place in the codebase that knows about *all* layers.
The store handle is created here and injected downwards; nothing in the
domain or application layers reaches for a global client.
"""

from __future__ import annotations

from reconciler.application.order_mutation_dispatcher import OrderMutationDispatcher
from reconciler.domain.service.stock_reconciliation_service import (
    StockReconciliationService,
)
from reconciler.infrastructure.config import Settings, get_settings
from reconciler.infrastructure.notifications.order_feed import OrderFeed
from reconciler.infrastructure.persistence.json_document_store import (
    JsonDocumentStore,
)


def document_store(settings: Settings | None = None) -> JsonDocumentStore:
    settings = settings or get_settings()
    return JsonDocumentStore(
        settings.store_path,
        max_attempts=settings.max_attempts,
        backoff_seconds=settings.backoff_seconds,
        max_backoff_seconds=settings.max_backoff_seconds,
    )


def mutation_dispatcher(
    store: JsonDocumentStore, settings: Settings | None = None
) -> OrderMutationDispatcher:
    settings = settings or get_settings()
    service = StockReconciliationService(
        store, mark_restocked_orders=settings.mark_restocked_orders
    )
    return OrderMutationDispatcher(service)


def order_feed(settings: Settings | None = None) -> OrderFeed:
    """An order feed with the reconciler subscribed to it."""
    settings = settings or get_settings()
    store = document_store(settings)
    dispatcher = mutation_dispatcher(store, settings)

    feed = OrderFeed(store)
    feed.subscribe_created(dispatcher.on_order_created)
    feed.subscribe_updated(dispatcher.on_order_mutation)
    return feed
