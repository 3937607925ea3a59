"""
Centralized configuration for envault.

All configuration is loaded from environment variables with sensible defaults.

Usage:
    from envault.config import get_config
    cfg = get_config()
    print(cfg.db.name)         # "envault"
    print(cfg.store_backend)   # "postgres" or $ENVAULT_STORE
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field

STORE_BACKENDS = ("postgres", "memory")


@dataclass(frozen=True)
class DatabaseConfig:
    """PostgreSQL connection and pool parameters."""

    host: str = ""  # empty = Unix socket (peer auth); set to 127.0.0.1 for TCP
    port: int = 5432
    name: str = "envault"
    user: str = "envault"
    password: str = ""
    pool_min: int = 1
    pool_max: int = 10
    # server-side cap per statement, in milliseconds; 0 disables it
    statement_timeout_ms: int = 30000

    @property
    def dict(self) -> dict[str, str | int]:
        """Return a psycopg2.connect() kwargs dict."""
        d: dict[str, str | int] = {
            "dbname": self.name,
            "port": self.port,
            "application_name": "envault",
        }
        if self.host:
            d["host"] = self.host
        if self.user:
            d["user"] = self.user
        if self.password:
            d["password"] = self.password
        if self.statement_timeout_ms:
            d["options"] = f"-c statement_timeout={self.statement_timeout_ms}"
        return d


@dataclass(frozen=True)
class SentryConfig:
    """Error-tracking parameters. An empty DSN disables Sentry."""

    dsn: str = ""
    environment: str = "development"
    traces_sample_rate: float = 0.0

    @property
    def enabled(self) -> bool:
        return bool(self.dsn)


@dataclass(frozen=True)
class Config:
    """Top-level envault configuration."""

    store_backend: str = "postgres"
    db: DatabaseConfig = field(default_factory=DatabaseConfig)
    sentry: SentryConfig = field(default_factory=SentryConfig)

    host: str = "127.0.0.1"
    port: int = 4000
    log_level: str = "INFO"


# Singleton
_config: Config | None = None


def get_config() -> Config:
    """Get or create the singleton config from environment variables."""
    global _config
    if _config is not None:
        return _config
    _config = _load_from_env()
    return _config


def _load_from_env() -> Config:
    """Load configuration from environment variables."""
    backend = os.environ.get("ENVAULT_STORE", "postgres").lower()
    if backend not in STORE_BACKENDS:
        raise ValueError(
            f"ENVAULT_STORE must be one of {', '.join(STORE_BACKENDS)}, got {backend!r}"
        )

    db = DatabaseConfig(
        host=os.environ.get("ENVAULT_DB_HOST", ""),
        port=int(os.environ.get("ENVAULT_DB_PORT", "5432")),
        name=os.environ.get("ENVAULT_DB_NAME", "envault"),
        user=os.environ.get("ENVAULT_DB_USER", os.environ.get("USER", "envault")),
        password=os.environ.get("ENVAULT_DB_PASSWORD", ""),
        pool_min=int(os.environ.get("ENVAULT_DB_POOL_MIN", "1")),
        pool_max=int(os.environ.get("ENVAULT_DB_POOL_MAX", "10")),
        statement_timeout_ms=int(os.environ.get("ENVAULT_DB_STATEMENT_TIMEOUT_MS", "30000")),
    )
    if not 0 <= db.pool_min <= db.pool_max or db.pool_max < 1:
        raise ValueError(
            f"ENVAULT_DB_POOL_MIN/ENVAULT_DB_POOL_MAX must satisfy 0 <= min <= max and max >= 1, "
            f"got {db.pool_min}/{db.pool_max}"
        )

    sentry = SentryConfig(
        dsn=os.environ.get("ENVAULT_SENTRY_DSN", ""),
        environment=os.environ.get("ENVAULT_SENTRY_ENVIRONMENT", "development"),
        traces_sample_rate=float(os.environ.get("ENVAULT_SENTRY_TRACES_SAMPLE_RATE", "0.0")),
    )

    return Config(
        store_backend=backend,
        db=db,
        sentry=sentry,
        host=os.environ.get("ENVAULT_HOST", "127.0.0.1"),
        port=int(os.environ.get("ENVAULT_PORT", "4000")),
        log_level=os.environ.get("ENVAULT_LOG_LEVEL", "INFO").upper(),
    )


def reset_config() -> None:
    """Reset the singleton config (for testing)."""
    global _config
    _config = None
