"""
Folder tree traversal and folder-version lookups.

A workspace environment has one Folder document whose ``nodes`` field is the
root node of a tree: ``{"id", "name", "version", "children": [...]}``.
FolderVersion documents hold a copy of some subtree; the id of their root
node says which folder they version.
"""

from __future__ import annotations

from envault.store.base import DESCENDING, FOLDER_VERSIONS, FOLDERS, DocumentStore


def search_by_folder_id(root: dict, folder_id: str) -> dict | None:
    """Return the node with ``folder_id`` in the tree under ``root`` (itself included)."""
    stack = [root]
    while stack:
        node = stack.pop()
        if node.get("id") == folder_id:
            return node
        stack.extend(node.get("children") or [])
    return None


def get_all_folder_ids(node: dict) -> list[dict]:
    """Return ``{"id", "name"}`` for ``node`` and every descendant."""
    found: list[dict] = []
    stack = [node]
    while stack:
        current = stack.pop()
        found.append({"id": current.get("id"), "name": current.get("name")})
        stack.extend(current.get("children") or [])
    return found


def get_folder(store: DocumentStore, workspace_id: str, environment: str) -> dict | None:
    """The live Folder document of a workspace environment."""
    return store.find_one(FOLDERS, {"workspace": workspace_id, "environment": environment})


def get_latest_folder_version(
    store: DocumentStore,
    workspace_id: str,
    environment: str,
    folder_id: str,
) -> dict | None:
    """Most recent FolderVersion rooted at ``folder_id``, by node version."""
    return store.find_one(
        FOLDER_VERSIONS,
        {"environment": environment, "workspace": workspace_id, "nodes.id": folder_id},
        sort=[("nodes.version", DESCENDING)],
    )
