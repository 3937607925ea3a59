"""
Document store interface.

Documents are plain dicts keyed by a string ``_id``. Queries use a small
Mongo-style filter language shared by every backend:

    {"workspace": "ws1", "environment": "dev"}        # equality
    {"nodes.id": "root"}                              # dotted path
    {"secret": {"$in": ["a", "b"]}}                   # membership
    {"actionNames": {"$in": ["login"]}}               # array field intersects
    {"user": None}                                    # missing or null

Sort specs are lists of ``(path, direction)`` pairs with direction 1 or -1.
Ties always fall back to insertion order.
"""

from __future__ import annotations

import copy
import uuid
from abc import ABC, abstractmethod
from datetime import UTC, datetime
from typing import Any

from envault.errors import StoreError

SECRETS = "secrets"
SECRET_VERSIONS = "secret_versions"
FOLDERS = "folders"
FOLDER_VERSIONS = "folder_versions"
SECRET_SNAPSHOTS = "secret_snapshots"
LOGS = "logs"
ACTIONS = "actions"
USERS = "users"
SERVICE_ACCOUNTS = "service_accounts"
SERVICE_TOKEN_DATA = "service_token_data"
API_KEYS = "api_keys"

COLLECTIONS = (
    SECRETS,
    SECRET_VERSIONS,
    FOLDERS,
    FOLDER_VERSIONS,
    SECRET_SNAPSHOTS,
    LOGS,
    ACTIONS,
    USERS,
    SERVICE_ACCOUNTS,
    SERVICE_TOKEN_DATA,
    API_KEYS,
)

ASCENDING = 1
DESCENDING = -1

Filter = dict[str, Any]
Sort = list[tuple[str, int]]


def new_id() -> str:
    return str(uuid.uuid4())


def utcnow_iso() -> str:
    """Fixed-width ISO-8601 UTC timestamp, so string order is time order."""
    return datetime.now(UTC).isoformat(timespec="microseconds")


def check_collection(collection: str) -> str:
    if collection not in COLLECTIONS:
        raise StoreError(f"Unknown collection: {collection!r}")
    return collection


def check_filter(filter: Filter | None) -> Filter:
    """Reject operators the backends do not implement."""
    filter = filter or {}
    for path, cond in filter.items():
        if path.startswith("$"):
            raise StoreError(f"Unsupported top-level operator: {path}")
        if isinstance(cond, dict):
            ops = set(cond)
            if ops != {"$in"}:
                raise StoreError(f"Unsupported operator(s) for {path}: {sorted(ops)}")
            if not isinstance(cond["$in"], (list, tuple, set)):
                raise StoreError(f"$in for {path} must be a list")
    return filter


def check_sort(sort: Sort | None) -> Sort:
    sort = list(sort or [])
    for path, direction in sort:
        if direction not in (ASCENDING, DESCENDING):
            raise StoreError(f"Sort direction for {path} must be 1 or -1, got {direction!r}")
    return sort


def prepare_documents(docs: list[dict]) -> list[dict]:
    """Copy documents and stamp ``_id``/``createdAt``/``updatedAt`` where absent."""
    now = utcnow_iso()
    prepared = []
    for doc in docs:
        d = copy.deepcopy(doc)
        d.setdefault("_id", new_id())
        d["_id"] = str(d["_id"])
        if d.get("createdAt") is None:
            d["createdAt"] = now
        if d.get("updatedAt") is None:
            d["updatedAt"] = now
        prepared.append(d)
    return prepared


class DocumentStore(ABC):
    """Collections of JSON documents."""

    backend: str = ""

    @abstractmethod
    def find(
        self,
        collection: str,
        filter: Filter | None = None,
        *,
        sort: Sort | None = None,
        skip: int = 0,
        limit: int | None = None,
    ) -> list[dict]:
        """Return matching documents. ``limit=None`` means no limit."""

    @abstractmethod
    def count(self, collection: str, filter: Filter | None = None) -> int:
        """Count matching documents."""

    @abstractmethod
    def insert_many(self, collection: str, docs: list[dict]) -> list[dict]:
        """Insert documents in one batch and return them as stored.

        Raises DuplicateKeyError if any ``_id`` already exists.
        """

    @abstractmethod
    def delete_many(self, collection: str, filter: Filter | None = None) -> int:
        """Delete matching documents. Returns the number deleted."""

    @abstractmethod
    def delete_one(self, collection: str, filter: Filter) -> int:
        """Delete the first matching document (insertion order). Returns 0 or 1."""

    @abstractmethod
    def update_many(self, collection: str, filter: Filter, values: dict) -> int:
        """Set top-level ``values`` on matching documents. Returns the number matched."""

    def find_one(
        self,
        collection: str,
        filter: Filter | None = None,
        *,
        sort: Sort | None = None,
    ) -> dict | None:
        docs = self.find(collection, filter, sort=sort, limit=1)
        return docs[0] if docs else None

    def find_by_ids(self, collection: str, ids: list[str]) -> list[dict]:
        """Fetch documents by id, in the order of ``ids``; unknown ids are skipped."""
        if not ids:
            return []
        by_id = {d["_id"]: d for d in self.find(collection, {"_id": {"$in": list(ids)}})}
        return [by_id[i] for i in ids if i in by_id]

    def insert_one(self, collection: str, doc: dict) -> dict:
        return self.insert_many(collection, [doc])[0]

    def close(self) -> None:
        """Release backend resources."""
