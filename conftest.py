"""
Root-level shared test fixtures.

Inherited by every suite that runs from the repo root.
"""

from __future__ import annotations

import pytest

from envault.config import reset_config


@pytest.fixture
def clean_env(monkeypatch):
    """Remove envault env vars that leak between tests."""
    for key in [
        "ENVAULT_STORE",
        "ENVAULT_DB_HOST",
        "ENVAULT_DB_PORT",
        "ENVAULT_DB_NAME",
        "ENVAULT_DB_USER",
        "ENVAULT_DB_PASSWORD",
        "ENVAULT_DB_POOL_MIN",
        "ENVAULT_DB_POOL_MAX",
        "ENVAULT_DB_STATEMENT_TIMEOUT_MS",
        "ENVAULT_SENTRY_DSN",
        "ENVAULT_SENTRY_ENVIRONMENT",
        "ENVAULT_SENTRY_TRACES_SAMPLE_RATE",
        "ENVAULT_HOST",
        "ENVAULT_PORT",
        "ENVAULT_LOG_LEVEL",
    ]:
        monkeypatch.delenv(key, raising=False)
    reset_config()
    yield
    reset_config()
