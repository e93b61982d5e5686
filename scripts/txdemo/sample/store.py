"""
In-process multi-version document store.

Every committed write gets a new version number. Transactions read either
the latest committed value (read committed) or the values as of the moment
they began (snapshot). Commits use first-committer-wins: a transaction that
wrote a key someone else committed after it began fails with WriteConflict.
"""

from __future__ import annotations

import copy
import threading
from dataclasses import dataclass, field
from typing import Any

READ_COMMITTED = "read-committed"
SNAPSHOT = "snapshot"

ISOLATION_LEVELS = (READ_COMMITTED, SNAPSHOT)

Document = dict[str, Any]


class StoreError(RuntimeError):
    pass


class WriteConflict(StoreError):
    """Another transaction committed a change to a key this one wrote."""

    def __init__(self, collection: str, key: str) -> None:
        super().__init__(f"WriteConflict on {collection}/{key}")
        self.collection = collection
        self.key = key


class TransactionClosed(StoreError):
    pass


@dataclass
class _Version:
    version: int
    # None marks a delete
    document: Document | None


@dataclass
class _Collection:
    history: dict[str, list[_Version]] = field(default_factory=dict)

    def visible(self, key: str, as_of: int | None) -> Document | None:
        for entry in reversed(self.history.get(key, [])):
            if as_of is None or entry.version <= as_of:
                return entry.document
        return None

    def latest_version(self, key: str) -> int:
        versions = self.history.get(key)
        return versions[-1].version if versions else 0


class VersionedStore:
    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._collections: dict[str, _Collection] = {}
        self._clock = 0

    @property
    def version(self) -> int:
        return self._clock

    def _collection(self, name: str) -> _Collection:
        return self._collections.setdefault(name, _Collection())

    def begin(self, isolation: str = SNAPSHOT) -> "Transaction":
        if isolation not in ISOLATION_LEVELS:
            raise ValueError(f"unknown isolation level {isolation!r}")
        with self._lock:
            return Transaction(self, isolation, self._clock)

    def drop(self, collection: str) -> None:
        with self._lock:
            self._collections.pop(collection, None)

    def get(self, collection: str, key: str) -> Document | None:
        """Latest committed document, outside any transaction."""
        with self._lock:
            doc = self._collection(collection).visible(key, None)
            return copy.deepcopy(doc)

    def find(self, collection: str) -> dict[str, Document]:
        """All committed documents, outside any transaction."""
        return self._snapshot(collection, None)

    def put(self, collection: str, key: str, document: Document) -> None:
        """Write and commit a single document."""
        txn = self.begin(READ_COMMITTED)
        txn.put(collection, key, document)
        txn.commit()

    def _snapshot(self, collection: str, as_of: int | None) -> dict[str, Document]:
        with self._lock:
            coll = self._collection(collection)
            docs = {}
            for key in coll.history:
                doc = coll.visible(key, as_of)
                if doc is not None:
                    docs[key] = copy.deepcopy(doc)
            return docs

    def _commit(self, txn: "Transaction") -> int:
        with self._lock:
            for (collection, key) in txn.writes:
                if self._collection(collection).latest_version(key) > txn.started_at:
                    raise WriteConflict(collection, key)
            if not txn.writes:
                return self._clock
            self._clock += 1
            for (collection, key), document in txn.writes.items():
                history = self._collection(collection).history.setdefault(key, [])
                history.append(_Version(self._clock, copy.deepcopy(document)))
            return self._clock


class Transaction:
    def __init__(self, store: VersionedStore, isolation: str, started_at: int) -> None:
        self._store = store
        self.isolation = isolation
        self.started_at = started_at
        self.writes: dict[tuple[str, str], Document | None] = {}
        self.open = True

    def _as_of(self) -> int | None:
        return self.started_at if self.isolation == SNAPSHOT else None

    def _check_open(self) -> None:
        if not self.open:
            raise TransactionClosed("transaction already ended")

    def get(self, collection: str, key: str) -> Document | None:
        self._check_open()
        if (collection, key) in self.writes:
            return copy.deepcopy(self.writes[(collection, key)])
        with self._store._lock:
            doc = self._store._collection(collection).visible(key, self._as_of())
            return copy.deepcopy(doc)

    def find(self, collection: str) -> dict[str, Document]:
        self._check_open()
        docs = self._store._snapshot(collection, self._as_of())
        for (coll, key), document in self.writes.items():
            if coll != collection:
                continue
            if document is None:
                docs.pop(key, None)
            else:
                docs[key] = copy.deepcopy(document)
        return docs

    def put(self, collection: str, key: str, document: Document) -> None:
        self._check_open()
        self.writes[(collection, key)] = copy.deepcopy(document)

    def update(self, collection: str, key: str, **inc: float) -> Document:
        """Increment numeric fields of an existing document."""
        doc = self.get(collection, key)
        if doc is None:
            raise StoreError(f"{collection}/{key} not found")
        for name, delta in inc.items():
            doc[name] = doc.get(name, 0) + delta
        self.put(collection, key, doc)
        return doc

    def delete(self, collection: str, key: str) -> None:
        self._check_open()
        self.writes[(collection, key)] = None

    def commit(self) -> int:
        self._check_open()
        try:
            return self._store._commit(self)
        finally:
            self.open = False

    def abort(self) -> None:
        self.writes.clear()
        self.open = False
