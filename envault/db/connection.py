"""
Pooled PostgreSQL connections for the document store.

Pool sizes and the per-statement timeout come from ``ENVAULT_DB_*`` (see
``envault.config.DatabaseConfig``). The pool is created lazily on first use
and shared by every thread in the process.

Usage:
    from envault.db import get_connection

    with get_connection() as conn:
        with conn.cursor() as cur:
            cur.execute("SELECT 1")
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterator
from contextlib import contextmanager

import psycopg2
import psycopg2.pool

from envault.config import DatabaseConfig, get_config

logger = logging.getLogger(__name__)

_pool: psycopg2.pool.ThreadedConnectionPool | None = None
_pool_lock = threading.Lock()


def _describe(db: DatabaseConfig) -> str:
    where = f"{db.host}:{db.port}" if db.host else f"socket:{db.port}"
    return f"{db.user}@{where}/{db.name}"


def _open_pool(db: DatabaseConfig) -> psycopg2.pool.ThreadedConnectionPool:
    logger.info(
        "Opening PostgreSQL pool %s (%d-%d connections)", _describe(db), db.pool_min, db.pool_max
    )
    try:
        return psycopg2.pool.ThreadedConnectionPool(db.pool_min, db.pool_max, **db.dict)
    except psycopg2.OperationalError as e:
        raise ConnectionError(
            f"PostgreSQL unavailable at {_describe(db)}: {e}. "
            "Set ENVAULT_DB_* or run with ENVAULT_STORE=memory."
        ) from e


def get_pool() -> psycopg2.pool.ThreadedConnectionPool:
    """Return the shared pool, opening it on first use."""
    global _pool
    pool = _pool
    if pool is not None and not pool.closed:
        return pool
    with _pool_lock:
        if _pool is None or _pool.closed:
            _pool = _open_pool(get_config().db)
        return _pool


@contextmanager
def get_connection() -> Iterator[psycopg2.extensions.connection]:
    """Borrow a pooled connection for one unit of work.

    The work is committed when the block exits cleanly and rolled back when
    it raises. A connection the server dropped is discarded instead of going
    back into the pool.
    """
    pool = get_pool()
    conn = pool.getconn()
    try:
        yield conn
        conn.commit()
    except Exception:
        if not conn.closed:
            conn.rollback()
        raise
    finally:
        pool.putconn(conn, close=bool(conn.closed))


def close_pool() -> None:
    """Close every pooled connection; the next borrow opens a fresh pool."""
    global _pool
    with _pool_lock:
        pool, _pool = _pool, None
    if pool is not None and not pool.closed:
        pool.closeall()
        logger.info("Closed PostgreSQL pool")
