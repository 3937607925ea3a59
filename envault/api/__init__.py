"""HTTP API for envault."""

from envault.api.app import create_app

__all__ = ["create_app"]
