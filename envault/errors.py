"""
Error types and error reporting.

Route handlers catch everything, hand the exception to ``report_exception``
with the requesting principal's email, and answer with a generic 400. The
email travels as an explicit argument and is scoped to a single Sentry event.
"""

from __future__ import annotations

import logging

import sentry_sdk

from envault.config import SentryConfig

logger = logging.getLogger(__name__)


class EnvaultError(Exception):
    """Base class for envault errors."""


class StoreError(EnvaultError):
    """The document store rejected or failed an operation."""


class DuplicateKeyError(StoreError):
    """A document with the same _id already exists in the collection."""

    def __init__(self, collection: str, doc_id: str) -> None:
        super().__init__(f"Duplicate _id {doc_id!r} in collection {collection!r}")
        self.collection = collection
        self.doc_id = doc_id


class SnapshotNotFoundError(EnvaultError):
    """No secret snapshot matches the requested key."""


def init_error_tracking(cfg: SentryConfig) -> bool:
    """Initialise Sentry when a DSN is configured. Returns True if enabled."""
    if not cfg.enabled:
        logger.debug("Sentry DSN not set; error tracking disabled")
        return False
    sentry_sdk.init(
        dsn=cfg.dsn,
        environment=cfg.environment,
        traces_sample_rate=cfg.traces_sample_rate,
    )
    logger.info("Sentry initialized (environment=%s)", cfg.environment)
    return True


def report_exception(err: BaseException, *, user_email: str | None = None) -> None:
    """Log ``err`` and send it to Sentry tagged with the caller's email."""
    logger.warning("Request failed for %s: %s", user_email or "anonymous", err, exc_info=err)
    with sentry_sdk.new_scope() as scope:
        if user_email:
            scope.set_user({"email": user_email})
        scope.capture_exception(err)
