"""
Secret snapshots — point-in-time bundles of secret versions and a folder version.

A snapshot is scoped to workspace + environment + folderId. Its
``secretVersions`` reference the latest SecretVersion of every secret in the
folder's subtree (every secret of the environment for the root folder) and
its ``folderVersion`` references a copy of the folder subtree taken at the
same moment.
"""

from __future__ import annotations

import copy
import logging

from envault.folders import get_all_folder_ids, get_folder, search_by_folder_id
from envault.models import ROOT_FOLDER_ID, secret_to_dict
from envault.secret_versions import get_latest_secret_versions
from envault.store.base import (
    DESCENDING,
    FOLDER_VERSIONS,
    SECRET_SNAPSHOTS,
    SECRET_VERSIONS,
    SECRETS,
    DocumentStore,
    Filter,
)

logger = logging.getLogger(__name__)


def snapshot_filter(workspace_id: str, environment: str | None, folder_id: str | None) -> Filter:
    """Filter for one workspace/environment/folder snapshot series.

    A missing environment is left out of the filter rather than matched as null.
    """
    query: Filter = {"workspace": workspace_id}
    if environment is not None:
        query["environment"] = environment
    query["folderId"] = folder_id or ROOT_FOLDER_ID
    return query


def list_secret_snapshots(
    store: DocumentStore,
    workspace_id: str,
    *,
    environment: str | None,
    folder_id: str | None = None,
    skip: int = 0,
    limit: int | None = None,
) -> list[dict]:
    """Snapshots of a folder, newest first."""
    return store.find(
        SECRET_SNAPSHOTS,
        snapshot_filter(workspace_id, environment, folder_id),
        sort=[("createdAt", DESCENDING)],
        skip=skip,
        limit=limit,
    )


def count_secret_snapshots(
    store: DocumentStore,
    workspace_id: str,
    *,
    environment: str | None,
    folder_id: str | None = None,
) -> int:
    return store.count(SECRET_SNAPSHOTS, snapshot_filter(workspace_id, environment, folder_id))


def populate_snapshot(
    store: DocumentStore,
    snapshot: dict,
    *,
    include_blind_index: bool = False,
) -> dict:
    """Replace the snapshot's reference ids with the referenced documents."""
    populated = dict(snapshot)
    versions = store.find_by_ids(SECRET_VERSIONS, snapshot.get("secretVersions") or [])
    populated["secretVersions"] = [
        secret_to_dict(sv, include_blind_index=include_blind_index) for sv in versions
    ]
    folder_version_id = snapshot.get("folderVersion")
    populated["folderVersion"] = (
        store.find_one(FOLDER_VERSIONS, {"_id": folder_version_id}) if folder_version_id else None
    )
    return populated


def get_secret_snapshot(
    store: DocumentStore,
    snapshot_id: str,
    *,
    workspace_id: str | None = None,
) -> dict | None:
    """A single snapshot with its secret versions and folder version resolved."""
    query: Filter = {"_id": snapshot_id}
    if workspace_id is not None:
        query["workspace"] = workspace_id
    snapshot = store.find_one(SECRET_SNAPSHOTS, query)
    if snapshot is None:
        return None
    return populate_snapshot(store, snapshot)


def find_secret_snapshot(
    store: DocumentStore,
    *,
    workspace_id: str,
    version: int,
    environment: str,
    folder_id: str | None = ROOT_FOLDER_ID,
) -> dict | None:
    """Look up a snapshot by its composite key, resolved with blind indexes."""
    snapshot = store.find_one(
        SECRET_SNAPSHOTS,
        {
            "workspace": workspace_id,
            "version": version,
            "environment": environment,
            "folderId": folder_id,
        },
    )
    if snapshot is None:
        return None
    return populate_snapshot(store, snapshot, include_blind_index=True)


def take_secret_snapshot(
    store: DocumentStore,
    *,
    workspace_id: str,
    environment: str,
    folder_id: str = ROOT_FOLDER_ID,
) -> dict:
    """Capture the current secrets and folder subtree as a new snapshot."""
    secret_query: Filter = {"workspace": workspace_id, "environment": environment}
    folder_version_id = None

    folder = get_folder(store, workspace_id, environment)
    node = search_by_folder_id(folder["nodes"], folder_id) if folder else None

    if folder_id != ROOT_FOLDER_ID:
        if node is not None:
            secret_query["folder"] = {"$in": [f["id"] for f in get_all_folder_ids(node)]}
        else:
            secret_query["folder"] = folder_id

    if node is not None:
        folder_version = store.insert_one(
            FOLDER_VERSIONS,
            {
                "workspace": workspace_id,
                "environment": environment,
                "nodes": copy.deepcopy(node),
            },
        )
        folder_version_id = folder_version["_id"]

    secret_ids = [s["_id"] for s in store.find(SECRETS, secret_query)]
    latest = get_latest_secret_versions(store, secret_ids)

    previous = store.find_one(
        SECRET_SNAPSHOTS,
        {"workspace": workspace_id, "environment": environment, "folderId": folder_id},
        sort=[("version", DESCENDING)],
    )
    version = previous["version"] + 1 if previous else 1

    snapshot = store.insert_one(
        SECRET_SNAPSHOTS,
        {
            "workspace": workspace_id,
            "environment": environment,
            "folderId": folder_id,
            "version": version,
            "secretVersions": [latest[s]["_id"] for s in secret_ids if s in latest],
            "folderVersion": folder_version_id,
        },
    )
    logger.info(
        "Took snapshot v%d of %s/%s/%s (%d secrets)",
        version,
        workspace_id,
        environment,
        folder_id,
        len(snapshot["secretVersions"]),
    )
    return snapshot
