"""
PostgreSQL document store — one JSONB table per collection.

Tables are created by ``envault/migrations/001_init.sql``:

    <collection> (id TEXT PRIMARY KEY, seq BIGSERIAL, doc JSONB NOT NULL)

Filters are translated to SQL by ``build_where``:
    - ``_id`` hits the ``id`` column directly
    - equality uses JSONB containment (``doc @> {...}``), which the GIN index serves
    - ``None`` matches a missing or JSON-null field
    - ``$in`` compares the value at the path, and for string candidates also
      matches arrays holding any of them (``?|``)

Each public method runs on its own pooled connection and commits on return.
There is no transaction spanning calls.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from contextlib import AbstractContextManager
from typing import Any

import psycopg2
import psycopg2.errors
from psycopg2.extras import Json, execute_values

from envault.db.connection import close_pool, get_connection
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

ConnectionFactory = Callable[[], AbstractContextManager]


def _nest(path: str, value: Any) -> dict:
    """Turn ``"nodes.id", "root"`` into ``{"nodes": {"id": "root"}}``."""
    parts = path.split(".")
    nested: Any = value
    for part in reversed(parts):
        nested = {part: nested}
    return nested


def build_where(filter: Filter | None) -> tuple[str, list]:
    """Translate a filter into a WHERE clause body and its parameters."""
    filter = check_filter(filter)
    clauses: list[str] = []
    params: list = []

    for path, cond in filter.items():
        if path == "_id":
            if isinstance(cond, dict):
                clauses.append("id = ANY(%s)")
                params.append([str(v) for v in cond["$in"]])
            else:
                clauses.append("id = %s")
                params.append(str(cond))
            continue

        keys = path.split(".")
        if isinstance(cond, dict):
            candidates = list(cond["$in"])
            if not candidates:
                clauses.append("FALSE")
                continue
            sub = "doc #> %s = ANY(%s::jsonb[])"
            sub_params: list = [keys, [Json(c) for c in candidates]]
            if all(isinstance(c, str) for c in candidates):
                sub += " OR doc #> %s ?| %s::text[]"
                sub_params += [keys, candidates]
            clauses.append(f"({sub})")
            params.extend(sub_params)
        elif cond is None:
            clauses.append("(doc #> %s IS NULL OR doc #> %s = 'null'::jsonb)")
            params.extend([keys, keys])
        else:
            clauses.append("doc @> %s::jsonb")
            params.append(Json(_nest(path, cond)))

    return (" AND ".join(clauses) or "TRUE"), params


def build_order_by(sort: Sort | None) -> tuple[str, list]:
    """Translate a sort spec; insertion order (``seq``) breaks ties."""
    sort = check_sort(sort)
    parts: list[str] = []
    params: list = []
    for path, direction in sort:
        if path == "_id":
            parts.append(f"id {'DESC' if direction == DESCENDING else 'ASC'}")
            continue
        parts.append(f"doc #> %s {'DESC NULLS LAST' if direction == DESCENDING else 'ASC NULLS FIRST'}")
        params.append(path.split("."))
    parts.append("seq ASC")
    return ", ".join(parts), params


class PostgresDocumentStore(DocumentStore):
    """Document store over psycopg2 using the shared connection pool."""

    backend = "postgres"

    def __init__(self, connect: ConnectionFactory = get_connection) -> None:
        self._connect = connect

    def find(
        self,
        collection: str,
        filter: Filter | None = None,
        *,
        sort: Sort | None = None,
        skip: int = 0,
        limit: int | None = None,
    ) -> list[dict]:
        table = check_collection(collection)
        where, params = build_where(filter)
        order_by, order_params = build_order_by(sort)
        query = f"SELECT doc FROM {table} WHERE {where} ORDER BY {order_by}"
        params = params + order_params
        if skip:
            query += " OFFSET %s"
            params.append(skip)
        if limit is not None:
            query += " LIMIT %s"
            params.append(limit)

        with self._connect() as conn:
            with conn.cursor() as cur:
                cur.execute(query, params)
                return [row[0] for row in cur.fetchall()]

    def count(self, collection: str, filter: Filter | None = None) -> int:
        table = check_collection(collection)
        where, params = build_where(filter)
        with self._connect() as conn:
            with conn.cursor() as cur:
                cur.execute(f"SELECT count(*) FROM {table} WHERE {where}", params)
                row = cur.fetchone()
                return row[0] if row else 0

    def insert_many(self, collection: str, docs: list[dict]) -> list[dict]:
        table = check_collection(collection)
        prepared = prepare_documents(docs)
        if not prepared:
            return []
        try:
            with self._connect() as conn:
                with conn.cursor() as cur:
                    execute_values(
                        cur,
                        f"INSERT INTO {table} (id, doc) VALUES %s",
                        [(d["_id"], Json(d)) for d in prepared],
                    )
        except psycopg2.errors.UniqueViolation as e:
            dup = next((d["_id"] for d in prepared if d["_id"] in str(e)), prepared[0]["_id"])
            raise DuplicateKeyError(collection, dup) from e
        except psycopg2.Error as e:
            raise StoreError(f"Insert into {collection} failed: {e}") from e
        logger.debug("Inserted %d document(s) into %s", len(prepared), collection)
        return prepared

    def delete_many(self, collection: str, filter: Filter | None = None) -> int:
        table = check_collection(collection)
        where, params = build_where(filter)
        with self._connect() as conn:
            with conn.cursor() as cur:
                cur.execute(f"DELETE FROM {table} WHERE {where}", params)
                deleted = cur.rowcount
        logger.debug("Deleted %d document(s) from %s", deleted, collection)
        return deleted

    def delete_one(self, collection: str, filter: Filter) -> int:
        table = check_collection(collection)
        where, params = build_where(filter)
        with self._connect() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    f"DELETE FROM {table} WHERE id IN "
                    f"(SELECT id FROM {table} WHERE {where} ORDER BY seq ASC LIMIT 1)",
                    params,
                )
                return cur.rowcount

    def update_many(self, collection: str, filter: Filter, values: dict) -> int:
        table = check_collection(collection)
        if any("." in k or k == "_id" for k in values):
            raise StoreError("update_many only sets top-level fields other than _id")
        where, params = build_where(filter)
        patch = {**values, "updatedAt": utcnow_iso()}
        with self._connect() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    f"UPDATE {table} SET doc = doc || %s::jsonb WHERE {where}",
                    [Json(patch)] + params,
                )
                return cur.rowcount

    def close(self) -> None:
        if self._connect is get_connection:
            close_pool()
