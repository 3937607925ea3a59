"""
envault CLI.

Usage:
    envault serve           # Start the API server
    envault migrate         # Apply pending database migrations
    envault migrate --status
    envault version         # Show version
"""

from __future__ import annotations

import argparse
import logging


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="envault",
        description="envault — secrets backend with snapshots and rollback.",
    )
    parser.add_argument("--version", action="store_true", help="Show version and exit")

    subparsers = parser.add_subparsers(dest="command")

    # serve
    serve_parser = subparsers.add_parser("serve", help="Start the API server")
    serve_parser.add_argument("--host", default=None, help="Bind address (default: $ENVAULT_HOST)")
    serve_parser.add_argument("--port", type=int, default=None, help="Port (default: $ENVAULT_PORT)")

    # migrate
    migrate_parser = subparsers.add_parser("migrate", help="Run database migrations")
    migrate_parser.add_argument(
        "--dry-run", action="store_true", help="List pending migrations without applying them"
    )
    migrate_parser.add_argument(
        "--status", action="store_true", help="Show applied and pending migrations"
    )

    subparsers.add_parser("version", help="Show version")

    args = parser.parse_args(argv)

    if args.version or args.command == "version":
        return _cmd_version()
    _configure_logging()

    if args.command == "serve":
        return _cmd_serve(args)
    elif args.command == "migrate":
        return _cmd_migrate(args)
    else:
        parser.print_help()
        return 0


def _configure_logging() -> None:
    from envault.config import get_config

    logging.basicConfig(
        level=getattr(logging, get_config().log_level, logging.INFO),
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def _cmd_version() -> int:
    from envault import __version__

    print(f"envault {__version__}")
    return 0


def _cmd_serve(args: argparse.Namespace) -> int:
    import uvicorn

    from envault.config import get_config

    cfg = get_config()
    host = args.host or cfg.host
    port = args.port or cfg.port
    print(f"Starting envault API on {host}:{port} (store={cfg.store_backend})...")
    uvicorn.run("envault.api.app:app", host=host, port=port)
    return 0


def _cmd_migrate(args: argparse.Namespace) -> int:
    from envault.db import migrate

    try:
        if args.status:
            rows = migrate.status()
            if not rows:
                print("No migration files found.")
                return 0
            print(f"{'Version':<10} {'Filename':<45} {'Status':<10} {'Applied At'}")
            print("-" * 90)
            for r in rows:
                at = str(r["applied_at"])[:19] if r["applied_at"] else ""
                print(f"{r['version']:<10} {r['filename']:<45} {r['status']:<10} {at}")
            return 0

        applied = migrate.apply(dry_run=args.dry_run)
    except Exception as e:
        print(f"Error: Migration failed: {e}")
        print("Check ENVAULT_DB_* environment variables and ensure PostgreSQL is running.")
        return 1

    if applied:
        verb = "Would apply" if args.dry_run else "Applied"
        print(f"{verb}: {', '.join(applied)}")
    else:
        print("Nothing to apply.")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
