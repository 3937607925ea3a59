"""
Migration runner for ``envault/migrations/*.sql``.

Usage:
    envault migrate               # apply all pending
    envault migrate --status      # show applied vs pending
    envault migrate --dry-run

Applied files are tracked in ``schema_migrations`` with a SHA-256 checksum so
an edited migration shows up as DRIFT.
"""

from __future__ import annotations

import hashlib
import logging
import re
from pathlib import Path

from psycopg2.extras import RealDictCursor

from envault.db.connection import get_connection

logger = logging.getLogger(__name__)

MIGRATIONS_DIR = Path(__file__).resolve().parents[1] / "migrations"

# Pattern: 001_name.sql, 015b_name.sql, etc.
_MIGRATION_RE = re.compile(r"^(\d+[a-z]?)_.+\.sql$")


def discover(migrations_dir: Path | None = None) -> list[tuple[str, Path]]:
    """Return sorted list of (version, path) for all .sql files."""
    d = migrations_dir or MIGRATIONS_DIR
    results: list[tuple[str, Path]] = []
    for f in sorted(d.glob("*.sql")):
        m = _MIGRATION_RE.match(f.name)
        if m:
            results.append((m.group(1), f))
    return results


def _sha256(path: Path) -> str:
    return hashlib.sha256(path.read_bytes()).hexdigest()


def _ensure_table(conn) -> None:
    cur = conn.cursor()
    cur.execute("""
        CREATE TABLE IF NOT EXISTS schema_migrations (
            version     TEXT PRIMARY KEY,
            filename    TEXT NOT NULL,
            applied_at  TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            checksum    TEXT
        )
    """)
    conn.commit()


def _applied(conn) -> dict[str, dict]:
    """Return {version: {filename, applied_at, checksum}} for all applied migrations."""
    cur = conn.cursor(cursor_factory=RealDictCursor)
    cur.execute("SELECT version, filename, applied_at, checksum FROM schema_migrations ORDER BY version")
    return {r["version"]: dict(r) for r in cur.fetchall()}


def status(migrations_dir: Path | None = None) -> list[dict]:
    """Return list of dicts with version, filename, status and applied_at."""
    all_files = discover(migrations_dir)
    with get_connection() as conn:
        _ensure_table(conn)
        applied = _applied(conn)

    rows: list[dict] = []
    for version, path in all_files:
        if version in applied:
            db_checksum = applied[version].get("checksum")
            drift = db_checksum and db_checksum != _sha256(path)
            rows.append({
                "version": version,
                "filename": path.name,
                "status": "DRIFT" if drift else "applied",
                "applied_at": applied[version]["applied_at"],
            })
        else:
            rows.append({
                "version": version,
                "filename": path.name,
                "status": "pending",
                "applied_at": None,
            })
    return rows


def apply(
    version: str | None = None,
    dry_run: bool = False,
    migrations_dir: Path | None = None,
) -> list[str]:
    """Apply pending migrations. Returns list of applied version strings."""
    all_files = discover(migrations_dir)

    with get_connection() as conn:
        _ensure_table(conn)
        applied = _applied(conn)

        to_apply = [
            (v, path)
            for v, path in all_files
            if v not in applied and (version is None or v == version)
        ]
        if not to_apply:
            logger.info("No pending migrations")
            return []

        applied_versions: list[str] = []
        for v, path in to_apply:
            if dry_run:
                logger.info("[dry-run] Would apply %s (version %s)", path.name, v)
                applied_versions.append(v)
                continue

            cur = conn.cursor()
            try:
                cur.execute(path.read_text())
                cur.execute(
                    "INSERT INTO schema_migrations (version, filename, checksum) VALUES (%s, %s, %s) "
                    "ON CONFLICT (version) DO NOTHING",
                    (v, path.name, _sha256(path)),
                )
                conn.commit()
                logger.info("Applied %s (version %s)", path.name, v)
                applied_versions.append(v)
            except Exception:
                conn.rollback()
                logger.error("Migration %s failed", path.name, exc_info=True)
                raise

        return applied_versions
