"""
Shared fixtures for the envault test suite.

Every test runs against a fresh in-memory document store. The API client
wraps the FastAPI app via ASGITransport and authenticates as a seeded user.
"""

from __future__ import annotations

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport

from envault.api.app import create_app
from envault.auth import create_api_key
from envault.config import Config
from envault.models import (
    BLIND_INDEX_FIELD,
    SECRET_CRYPTO_FIELDS,
    SECRET_SCOPE_FIELDS,
)
from envault.store.base import FOLDERS, SECRET_SNAPSHOTS, SECRET_VERSIONS, SECRETS, USERS
from envault.store.memory import MemoryDocumentStore

WORKSPACE = "ws-test"
ENV = "dev"


def crypto_fields(label: str) -> dict:
    """Distinct fake ciphertext for every crypto field, tagged with ``label``."""
    return {f: f"{label}:{f}" for f in SECRET_CRYPTO_FIELDS}


def folder_node(node_id: str, name: str, *, version: int = 1, children: list[dict] | None = None) -> dict:
    """Build a folder tree node."""
    return {"id": node_id, "name": name, "version": version, "children": children or []}


class Seeder:
    """Insert realistic documents into a store."""

    def __init__(self, store):
        self.store = store

    def secret(
        self,
        label: str,
        *,
        workspace: str = WORKSPACE,
        environment: str = ENV,
        folder: str = "root",
        version: int = 1,
    ) -> dict:
        """A live secret plus its matching SecretVersion."""
        secret = self.store.insert_one(
            SECRETS,
            {
                "version": version,
                "workspace": workspace,
                "type": "shared",
                "user": None,
                "environment": environment,
                "folder": folder,
                BLIND_INDEX_FIELD: f"blind:{label}",
                "secretCommentCiphertext": f"comment:{label}",
                "secretCommentIV": "comment-iv",
                "secretCommentTag": "comment-tag",
                **crypto_fields(label),
            },
        )
        self.version(secret, version, label)
        return secret

    def version(self, secret: dict, version: int, label: str, *, is_deleted: bool = False) -> dict:
        """A SecretVersion of ``secret`` whose ciphertext is tagged ``label``."""
        doc = {"secret": secret["_id"], "version": version, "isDeleted": is_deleted}
        for field in SECRET_SCOPE_FIELDS:
            doc[field] = secret.get(field)
        doc[BLIND_INDEX_FIELD] = secret.get(BLIND_INDEX_FIELD)
        doc.update(crypto_fields(label))
        return self.store.insert_one(SECRET_VERSIONS, doc)

    def folder(self, nodes: dict, *, workspace: str = WORKSPACE, environment: str = ENV) -> dict:
        return self.store.insert_one(
            FOLDERS, {"workspace": workspace, "environment": environment, "nodes": nodes}
        )

    def snapshot(
        self,
        secret_versions: list[dict],
        *,
        version: int = 1,
        workspace: str = WORKSPACE,
        environment: str = ENV,
        folder_id: str = "root",
        folder_version: str | None = None,
        created_at: str | None = None,
    ) -> dict:
        """A SecretSnapshot pointing at existing SecretVersions."""
        doc = {
            "workspace": workspace,
            "environment": environment,
            "folderId": folder_id,
            "version": version,
            "secretVersions": [sv["_id"] for sv in secret_versions],
            "folderVersion": folder_version,
        }
        if created_at:
            doc["createdAt"] = created_at
        return self.store.insert_one(SECRET_SNAPSHOTS, doc)

    def user(self, email: str = "alice@example.com") -> dict:
        return self.store.insert_one(
            USERS,
            {"email": email, "firstName": "Alice", "lastName": "Liddell", "password": "bcrypt$x"},
        )


@pytest.fixture
def store():
    return MemoryDocumentStore()


@pytest.fixture
def seed(store):
    return Seeder(store)


@pytest.fixture
def node():
    """Folder tree node builder."""
    return folder_node


@pytest.fixture
def user(seed):
    return seed.user()


@pytest.fixture
def api_key(store, user):
    key, _ = create_api_key(store, principal_type="user", principal_id=user["_id"])
    return key


@pytest.fixture
def app(store):
    return create_app(store=store, cfg=Config(store_backend="memory"))


@pytest_asyncio.fixture
async def test_client(app, api_key):
    """Async HTTP client wrapping the envault app, authenticated as ``user``."""
    transport = ASGITransport(app=app)
    async with httpx.AsyncClient(
        transport=transport,
        base_url="http://test",
        headers={"X-API-Key": api_key},
    ) as client:
        yield client


@pytest_asyncio.fixture
async def anon_client(app):
    """Async HTTP client without credentials."""
    transport = ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
