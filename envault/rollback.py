"""
Roll a workspace environment back to a secret snapshot.

Restoring creates new history instead of rewinding it: every restored secret
gets ``latest version + 1``, a matching SecretVersion is written, the folder
node's version is bumped, and a fresh snapshot is taken at the end so the
rollback itself can be rolled back to.

The steps run one store call at a time and are not wrapped in a transaction.
A failure part-way (for example after the secrets were deleted but before
they were reinserted) leaves the earlier steps applied and surfaces as a
plain error. Two concurrent rollbacks of the same environment can interleave.
"""

from __future__ import annotations

import copy
import logging

from envault.errors import SnapshotNotFoundError
from envault.folders import (
    get_all_folder_ids,
    get_folder,
    get_latest_folder_version,
    search_by_folder_id,
)
from envault.models import (
    BLIND_INDEX_FIELD,
    ROOT_FOLDER_ID,
    SECRET_COMMENT_FIELDS,
    SECRET_CRYPTO_FIELDS,
    SECRET_SCOPE_FIELDS,
)
from envault.secret_versions import get_latest_secret_version_numbers
from envault.snapshots import find_secret_snapshot, take_secret_snapshot
from envault.store.base import (
    FOLDER_VERSIONS,
    FOLDERS,
    SECRET_VERSIONS,
    SECRETS,
    DocumentStore,
    new_id,
)

logger = logging.getLogger(__name__)


def _restored_secret(secret_version: dict, version: int) -> dict:
    """A live Secret rebuilt from a snapshot's SecretVersion. Comments are not restored."""
    secret = {
        "_id": secret_version["secret"],
        "version": version,
        "createdAt": secret_version.get("createdAt"),
    }
    for field in SECRET_SCOPE_FIELDS + SECRET_CRYPTO_FIELDS:
        secret[field] = secret_version.get(field)
    if secret_version.get(BLIND_INDEX_FIELD) is not None:
        secret[BLIND_INDEX_FIELD] = secret_version[BLIND_INDEX_FIELD]
    for field in SECRET_COMMENT_FIELDS:
        secret[field] = ""
    return secret


def _secret_version_of(secret: dict) -> dict:
    version = {
        "_id": new_id(),
        "secret": secret["_id"],
        "version": secret["version"],
        "isDeleted": False,
    }
    for field in SECRET_SCOPE_FIELDS + SECRET_CRYPTO_FIELDS:
        version[field] = secret.get(field)
    if secret.get(BLIND_INDEX_FIELD) is not None:
        version[BLIND_INDEX_FIELD] = secret[BLIND_INDEX_FIELD]
    return version


def rollback_secret_snapshot(
    store: DocumentStore,
    *,
    workspace_id: str,
    version: int,
    environment: str,
    folder_id: str | None = ROOT_FOLDER_ID,
) -> list[dict]:
    """Restore secrets and the folder subtree captured by snapshot ``version``.

    Returns the recreated Secret documents.

    Raises:
        SnapshotNotFoundError: no snapshot matches workspace/version/environment/folder.
    """
    snapshot = find_secret_snapshot(
        store,
        workspace_id=workspace_id,
        version=version,
        environment=environment,
        folder_id=folder_id,
    )
    if snapshot is None:
        raise SnapshotNotFoundError(
            f"Failed to find secret snapshot v{version} for {workspace_id}/{environment}/{folder_id}"
        )

    old_versions = {sv["secret"]: sv for sv in snapshot["secretVersions"]}
    secret_ids = list(old_versions)
    latest_versions = get_latest_secret_version_numbers(store, secret_ids)

    folder = get_folder(store, workspace_id, environment)
    latest_folder_version = get_latest_folder_version(store, workspace_id, environment, folder_id)

    folder_ids: list[str] = []
    if folder:
        node = search_by_folder_id(folder["nodes"], folder_id)
        if node is not None:
            folder_ids = [f["id"] for f in get_all_folder_ids(node)]
            snapshot_folder = snapshot.get("folderVersion")
            node["children"] = (
                copy.deepcopy(snapshot_folder["nodes"].get("children") or [])
                if snapshot_folder
                else []
            )
            previous = latest_folder_version["nodes"]["version"] if latest_folder_version else 0
            node["version"] = previous + 1

    delete_query = {"workspace": workspace_id, "environment": environment}
    if folder_id != ROOT_FOLDER_ID and folder_ids:
        delete_query["folder"] = {"$in": folder_ids}

    deleted = store.delete_many(SECRETS, delete_query)
    store.delete_one(FOLDERS, {"workspace": workspace_id, "environment": environment})
    logger.info(
        "Rollback %s/%s/%s to v%d: deleted %d secret(s)",
        workspace_id,
        environment,
        folder_id,
        version,
        deleted,
    )

    secrets = store.insert_many(
        SECRETS,
        [
            _restored_secret(sv, latest_versions.get(secret_id, sv["version"]) + 1)
            for secret_id, sv in old_versions.items()
        ],
    )
    store.insert_many(SECRET_VERSIONS, [_secret_version_of(s) for s in secrets])
    logger.debug("Recreated %d secret(s) with new versions", len(secrets))

    if folder:
        new_folder = {
            k: v for k, v in folder.items() if k not in ("_id", "createdAt", "updatedAt")
        }
        new_folder = store.insert_one(FOLDERS, new_folder)
        store.insert_one(
            FOLDER_VERSIONS,
            {
                "workspace": workspace_id,
                "environment": environment,
                "nodes": new_folder["nodes"],
            },
        )

    if secret_ids:
        store.update_many(SECRET_VERSIONS, {"secret": {"$in": secret_ids}}, {"isDeleted": False})

    take_secret_snapshot(
        store,
        workspace_id=workspace_id,
        environment=environment,
        folder_id=folder_id,
    )
    return secrets
