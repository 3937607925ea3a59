"""Document store backends."""

from __future__ import annotations

from envault.config import Config, get_config
from envault.store.base import DocumentStore
from envault.store.memory import MemoryDocumentStore


def create_store(cfg: Config | None = None) -> DocumentStore:
    """Build the backend selected by ``ENVAULT_STORE``."""
    cfg = cfg or get_config()
    if cfg.store_backend == "memory":
        return MemoryDocumentStore()

    from envault.store.postgres import PostgresDocumentStore

    return PostgresDocumentStore()


__all__ = ["DocumentStore", "MemoryDocumentStore", "create_store"]
