"""envault — secrets backend with point-in-time snapshots and rollback."""

__version__ = "0.1.0"
