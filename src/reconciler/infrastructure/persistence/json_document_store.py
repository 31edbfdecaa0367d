"""JSON-file-backed implementation of DocumentStore.

The whole store lives in one file:

    {
      "collections": {"inventory": {"A": {...}}, "orders": {...}},
      "revisions": {"inventory/A": 3, ...}
    }

Each committed write bumps the document's revision.  A commit re-reads the
file and validates the read-set while holding two locks: one per resolved
file path shared by every store instance in the process, and an OS file
lock on ``<store>.lock`` shared with other processes.  Two transactions can
never both commit against the same stale read.
"""

from __future__ import annotations

import copy
import json
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

from filelock import FileLock, Timeout

from reconciler.domain.exceptions import StoreUnavailableError, TransactionConflict
from reconciler.domain.repository.document_store import (
    DocumentKey,
    DocumentStore,
    Write,
    apply_write,
)

FILE_LOCK_TIMEOUT_SECONDS = 10.0

_path_locks: dict[Path, threading.Lock] = {}
_path_locks_guard = threading.Lock()


def _lock_for(file_path: Path) -> threading.Lock:
    """Return the process-wide lock for one store file."""
    key = file_path.resolve()
    with _path_locks_guard:
        return _path_locks.setdefault(key, threading.Lock())


class JsonDocumentStore(DocumentStore):

    def __init__(self, file_path: Path, **retry_policy: Any) -> None:
        super().__init__(**retry_policy)
        self._file_path = file_path
        self._ensure_file()
        self._lock = _lock_for(file_path)
        self._file_lock = FileLock(
            str(file_path) + ".lock", timeout=FILE_LOCK_TIMEOUT_SECONDS
        )

    # --- DocumentStore interface ----------------------------------------------

    def list_documents(self, collection: str) -> dict[str, dict[str, Any]]:
        with self._lock:
            raw = self._load_raw()
        return raw["collections"].get(collection, {})

    def _read(self, collection: str, doc_id: str) -> tuple[dict[str, Any] | None, int]:
        with self._lock:
            raw = self._load_raw()
        document = raw["collections"].get(collection, {}).get(doc_id)
        return document, raw["revisions"].get(_revision_key((collection, doc_id)), 0)

    def _commit(self, read_set: dict[DocumentKey, int], writes: list[Write]) -> None:
        with self._lock, self._locked_file():
            raw = self._load_raw()
            revisions = raw["revisions"]

            for key, seen in read_set.items():
                current = revisions.get(_revision_key(key), 0)
                if current != seen:
                    raise TransactionConflict(
                        f"{_revision_key(key)} changed (revision {seen} -> {current})"
                    )

            if not writes:
                return

            collections = raw["collections"]
            for write in writes:
                collection, doc_id = write.key
                documents = collections.setdefault(collection, {})
                documents[doc_id] = apply_write(copy.deepcopy(documents.get(doc_id)), write)
                rkey = _revision_key(write.key)
                revisions[rkey] = revisions.get(rkey, 0) + 1

            self._persist_raw(raw)

    # --- File helpers ---------------------------------------------------------

    @contextmanager
    def _locked_file(self) -> Iterator[None]:
        try:
            self._file_lock.acquire()
        except Timeout as exc:
            raise StoreUnavailableError(
                f"Timed out waiting for the lock on {self._file_path}"
            ) from exc
        except OSError as exc:
            raise StoreUnavailableError(
                f"Cannot lock document store at {self._file_path}: {exc}"
            ) from exc
        try:
            yield
        finally:
            self._file_lock.release()

    def _load_raw(self) -> dict[str, Any]:
        try:
            raw = json.loads(self._file_path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            raise StoreUnavailableError(
                f"Cannot read document store at {self._file_path}: {exc}"
            ) from exc
        if not isinstance(raw, dict):
            raise StoreUnavailableError(
                f"Document store at {self._file_path} is not a JSON object"
            )
        raw.setdefault("collections", {})
        raw.setdefault("revisions", {})
        return raw

    def _persist_raw(self, raw: dict[str, Any]) -> None:
        # Readers never see a partially written file.
        tmp_path = self._file_path.with_suffix(self._file_path.suffix + ".tmp")
        try:
            tmp_path.write_text(json.dumps(raw, indent=2) + "\n", encoding="utf-8")
            tmp_path.replace(self._file_path)
        except OSError as exc:
            raise StoreUnavailableError(
                f"Cannot write document store at {self._file_path}: {exc}"
            ) from exc

    def _ensure_file(self) -> None:
        if not self._file_path.exists():
            self._file_path.parent.mkdir(parents=True, exist_ok=True)
            self._file_path.write_text(
                json.dumps({"collections": {}, "revisions": {}}) + "\n", encoding="utf-8"
            )


def _revision_key(key: DocumentKey) -> str:
    collection, doc_id = key
    return f"{collection}/{doc_id}"
