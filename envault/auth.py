"""
API-key authentication.

Keys are shown once at creation and stored only as a SHA-256 hex digest.
Each key belongs to one principal: a user, a service account or a service
token.
"""

from __future__ import annotations

import hashlib
import logging
import secrets
from datetime import UTC, datetime

from envault.audit import PRINCIPAL_COLLECTIONS
from envault.store.base import API_KEYS, DocumentStore

logger = logging.getLogger(__name__)

KEY_PREFIX = "ev."


def hash_api_key(key: str) -> str:
    return hashlib.sha256(key.encode("utf-8")).hexdigest()


def create_api_key(
    store: DocumentStore,
    *,
    principal_type: str,
    principal_id: str,
    expires_at: str | None = None,
) -> tuple[str, dict]:
    """Issue a key for a principal. Returns ``(plaintext key, stored document)``."""
    if principal_type not in PRINCIPAL_COLLECTIONS:
        raise ValueError(f"Unknown principal type: {principal_type!r}")
    key = KEY_PREFIX + secrets.token_urlsafe(32)
    doc = store.insert_one(
        API_KEYS,
        {
            "keyHash": hash_api_key(key),
            "principalType": principal_type,
            "principal": principal_id,
            "expiresAt": expires_at,
        },
    )
    return key, doc


def _expired(expires_at: str | None) -> bool:
    """Whether a key's expiry has passed. An unreadable expiry counts as expired."""
    if not expires_at:
        return False
    try:
        expiry = datetime.fromisoformat(expires_at)
    except (TypeError, ValueError):
        logger.warning("API key has unreadable expiresAt %r; rejecting", expires_at)
        return True
    if expiry.tzinfo is None:
        expiry = expiry.replace(tzinfo=UTC)
    return expiry <= datetime.now(UTC)


def authenticate_api_key(store: DocumentStore, key: str | None) -> dict | None:
    """Resolve a presented key to ``{"type", "id", "email"}``, or None."""
    if not key:
        return None
    record = store.find_one(API_KEYS, {"keyHash": hash_api_key(key)})
    if record is None or _expired(record.get("expiresAt")):
        return None

    principal_type = record["principalType"]
    principal = store.find_one(PRINCIPAL_COLLECTIONS[principal_type], {"_id": record["principal"]})
    if principal is None:
        return None
    return {
        "type": principal_type,
        "id": principal["_id"],
        "email": principal.get("email"),
    }
