"""Domain-level exceptions.

Every failure the reconciler knows about is a subclass of ReconcilerError so
the dispatcher and the CLI layer can catch them uniformly.  The per-item
classes double as reason codes on skipped line items.
"""


class ReconcilerError(Exception):
    """Base class for all reconciler errors."""


class ValidationError(ReconcilerError):
    """A business rule or invariant was violated."""


class EntityNotFoundError(ReconcilerError):
    """A requested document does not exist."""


class InvalidLineItem(ValidationError):
    """An order line has no usable inventory reference or a non-positive quantity."""


class InventoryRecordMissing(EntityNotFoundError):
    """An order line references an inventory document that does not exist."""


class InventoryRecordMalformed(ValidationError):
    """An inventory document has no usable ``stock`` value."""


class StoreUnavailableError(ReconcilerError):
    """The document store could not be read or written."""


class TransactionConflict(ReconcilerError):
    """A document in the transaction's read-set changed before commit."""


class TransactionFailure(ReconcilerError):
    """A transaction could not be committed within the retry budget."""

    def __init__(self, message: str, attempts: int = 0) -> None:
        super().__init__(message)
        self.attempts = attempts
