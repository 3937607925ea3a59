"""Shared FastAPI dependencies."""

from __future__ import annotations

from fastapi import Depends, Header, HTTPException, Request

from envault.auth import authenticate_api_key
from envault.store.base import DocumentStore


def get_store(request: Request) -> DocumentStore:
    """The document store attached to the app at start-up."""
    return request.app.state.store


def get_principal(
    x_api_key: str | None = Header(None),
    store: DocumentStore = Depends(get_store),
) -> dict:
    """Authenticate the ``X-API-Key`` header; 401 when missing or unknown."""
    principal = authenticate_api_key(store, x_api_key)
    if principal is None:
        raise HTTPException(status_code=401, detail="Failed to authenticate API key")
    return principal
