"""Abstract document store with optimistic transactions.

Defined in the domain layer so the reconciler never depends on a concrete
backend.  Concrete stores (JSON file, in-memory) only provide revisioned
point reads and an atomic validate-and-apply commit; the retry loop lives
here so every backend shares the same conflict semantics.

A transaction records the revision of every document it reads.  On commit
the store rejects the whole write set with ``TransactionConflict`` if any
of those revisions moved, and ``run_transaction`` re-runs the body against
fresh reads, up to ``max_attempts`` times.
"""

from __future__ import annotations

import copy
import time
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, TypeVar

import structlog

from reconciler.domain.exceptions import TransactionConflict, TransactionFailure

logger = structlog.get_logger(__name__)

T = TypeVar("T")

DocumentKey = tuple[str, str]  # (collection, document id)

DEFAULT_MAX_ATTEMPTS = 5


@dataclass(frozen=True)
class Write:
    """A staged write.  ``merge`` updates fields in place instead of replacing."""

    key: DocumentKey
    data: dict[str, Any]
    merge: bool = False


class Transaction:
    """A single attempt of a transaction body.

    Reads are cached per document so repeated reads inside one attempt see
    the same value and register the same revision.
    """

    def __init__(self, store: DocumentStore) -> None:
        self._store = store
        self._reads: dict[DocumentKey, dict[str, Any] | None] = {}
        self.read_set: dict[DocumentKey, int] = {}
        self.writes: list[Write] = []

    def get(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        key = (collection, doc_id)
        if key not in self._reads:
            data, revision = self._store._read(collection, doc_id)
            self._reads[key] = data
            self.read_set[key] = revision
        return copy.deepcopy(self._reads[key])

    def set(self, collection: str, doc_id: str, data: dict[str, Any]) -> None:
        self.writes.append(Write((collection, doc_id), dict(data)))

    def update(self, collection: str, doc_id: str, fields: dict[str, Any]) -> None:
        self.writes.append(Write((collection, doc_id), dict(fields), merge=True))


class DocumentStore(ABC):

    def __init__(
        self,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        backoff_seconds: float = 0.0,
        max_backoff_seconds: float = 1.0,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.max_attempts = max_attempts
        self._backoff_seconds = backoff_seconds
        self._max_backoff_seconds = max_backoff_seconds
        self._sleep = sleep

    def run_transaction(self, body: Callable[[Transaction], T]) -> T:
        """Run ``body`` in a transaction, retrying it on commit conflicts.

        Exceptions raised by ``body`` abort the transaction without retry.
        Raises TransactionFailure once the retry budget is spent.
        """
        last_conflict: TransactionConflict | None = None
        for attempt in range(1, self.max_attempts + 1):
            txn = Transaction(self)
            result = body(txn)
            try:
                self._commit(txn.read_set, txn.writes)
            except TransactionConflict as exc:
                last_conflict = exc
                logger.debug(
                    "transaction_conflict",
                    attempt=attempt,
                    max_attempts=self.max_attempts,
                    error=str(exc),
                )
                if attempt < self.max_attempts:
                    self._backoff(attempt)
                continue
            return result

        raise TransactionFailure(
            f"Transaction aborted after {self.max_attempts} conflicting attempts",
            attempts=self.max_attempts,
        ) from last_conflict

    def get(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        """Non-transactional point read."""
        data, _ = self._read(collection, doc_id)
        return data

    @abstractmethod
    def list_documents(self, collection: str) -> dict[str, dict[str, Any]]:
        """Return every document in a collection, keyed by id."""

    @abstractmethod
    def _read(self, collection: str, doc_id: str) -> tuple[dict[str, Any] | None, int]:
        """Return ``(document or None, revision)``; a missing document is revision 0."""

    @abstractmethod
    def _commit(self, read_set: dict[DocumentKey, int], writes: list[Write]) -> None:
        """Atomically validate the read-set and apply every write.

        Raises TransactionConflict, leaving the store untouched, if any
        document in ``read_set`` is no longer at the recorded revision.
        """

    # --- Internal helpers -----------------------------------------------------

    def _backoff(self, attempt: int) -> None:
        if self._backoff_seconds <= 0:
            return
        delay = min(self._backoff_seconds * 2 ** (attempt - 1), self._max_backoff_seconds)
        self._sleep(delay)


def apply_write(current: dict[str, Any] | None, write: Write) -> dict[str, Any]:
    """Return the document that results from applying ``write`` to ``current``."""
    if write.merge and current is not None:
        merged = dict(current)
        merged.update(write.data)
        return merged
    return dict(write.data)
