"""
In-process document store.

Backs ``ENVAULT_STORE=memory`` for local development and the test suite.
Documents are deep-copied on the way in and out so callers never share state
with the store.
"""

from __future__ import annotations

import copy
import logging
import threading
from collections import defaultdict
from typing import Any

from envault.errors import DuplicateKeyError, StoreError
from envault.store.base import (
    DESCENDING,
    DocumentStore,
    Filter,
    Sort,
    check_collection,
    check_filter,
    check_sort,
    prepare_documents,
    utcnow_iso,
)

logger = logging.getLogger(__name__)

_MISSING = object()


def get_path(doc: Any, path: str) -> Any:
    """Resolve a dotted path, returning ``_MISSING`` when any segment is absent."""
    value = doc
    for part in path.split("."):
        if not isinstance(value, dict) or part not in value:
            return _MISSING
        value = value[part]
    return value


def _equals(value: Any, expected: Any) -> bool:
    if expected is None:
        return value is _MISSING or value is None
    if value is _MISSING:
        return False
    if value == expected:
        return True
    # Array fields match when any element equals the expected scalar.
    return isinstance(value, list) and not isinstance(expected, list) and expected in value


def matches(doc: dict, filter: Filter) -> bool:
    for path, cond in filter.items():
        value = get_path(doc, path)
        if isinstance(cond, dict):
            if not any(_equals(value, candidate) for candidate in cond["$in"]):
                return False
        elif not _equals(value, cond):
            return False
    return True


def _sort_key(path: str):
    def key(doc: dict):
        value = get_path(doc, path)
        if value is _MISSING or value is None:
            return (0, 0)
        return (1, value)

    return key


class MemoryDocumentStore(DocumentStore):
    """Thread-safe dict-of-lists document store."""

    backend = "memory"

    def __init__(self) -> None:
        self._collections: dict[str, list[dict]] = defaultdict(list)
        self._lock = threading.RLock()

    def _docs(self, collection: str) -> list[dict]:
        return self._collections[check_collection(collection)]

    def find(
        self,
        collection: str,
        filter: Filter | None = None,
        *,
        sort: Sort | None = None,
        skip: int = 0,
        limit: int | None = None,
    ) -> list[dict]:
        filter = check_filter(filter)
        sort = check_sort(sort)
        with self._lock:
            found = [d for d in self._docs(collection) if matches(d, filter)]
            # Stable sorts applied last-key-first give a multi-key ordering.
            for path, direction in reversed(sort):
                found.sort(key=_sort_key(path), reverse=direction == DESCENDING)
            if skip:
                found = found[skip:]
            if limit is not None:
                found = found[:limit]
            return copy.deepcopy(found)

    def count(self, collection: str, filter: Filter | None = None) -> int:
        filter = check_filter(filter)
        with self._lock:
            return sum(1 for d in self._docs(collection) if matches(d, filter))

    def insert_many(self, collection: str, docs: list[dict]) -> list[dict]:
        prepared = prepare_documents(docs)
        with self._lock:
            existing = {d["_id"] for d in self._docs(collection)}
            for d in prepared:
                if d["_id"] in existing:
                    raise DuplicateKeyError(collection, d["_id"])
                existing.add(d["_id"])
            self._docs(collection).extend(prepared)
        logger.debug("Inserted %d document(s) into %s", len(prepared), collection)
        return copy.deepcopy(prepared)

    def delete_many(self, collection: str, filter: Filter | None = None) -> int:
        filter = check_filter(filter)
        with self._lock:
            docs = self._docs(collection)
            kept = [d for d in docs if not matches(d, filter)]
            deleted = len(docs) - len(kept)
            docs[:] = kept
        logger.debug("Deleted %d document(s) from %s", deleted, collection)
        return deleted

    def delete_one(self, collection: str, filter: Filter) -> int:
        filter = check_filter(filter)
        with self._lock:
            docs = self._docs(collection)
            for i, d in enumerate(docs):
                if matches(d, filter):
                    del docs[i]
                    return 1
        return 0

    def update_many(self, collection: str, filter: Filter, values: dict) -> int:
        filter = check_filter(filter)
        if any("." in k or k == "_id" for k in values):
            raise StoreError("update_many only sets top-level fields other than _id")
        now = utcnow_iso()
        with self._lock:
            matched = 0
            for d in self._docs(collection):
                if matches(d, filter):
                    d.update(copy.deepcopy(values))
                    d["updatedAt"] = now
                    matched += 1
        return matched
