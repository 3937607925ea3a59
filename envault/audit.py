"""
Workspace audit logs.

A Log records who did what in a workspace: it references one acting
principal (``user``, ``serviceAccount`` or ``serviceTokenData``), a list of
Action documents, and denormalises the action names into ``actionNames`` for
filtering.

Usage:
    from envault.audit import get_workspace_logs, record_log

    record_log(store, workspace_id="ws1", principal=principal, action_names=["readSecrets"])
    logs = get_workspace_logs(store, "ws1", action_names="readSecrets", sort_by="recent")
"""

from __future__ import annotations

import logging

from envault.models import principal_to_dict
from envault.store.base import (
    ACTIONS,
    ASCENDING,
    DESCENDING,
    LOGS,
    SERVICE_ACCOUNTS,
    SERVICE_TOKEN_DATA,
    USERS,
    DocumentStore,
    Filter,
)

logger = logging.getLogger(__name__)

# Log field -> collection holding that principal kind
PRINCIPAL_COLLECTIONS = {
    "user": USERS,
    "serviceAccount": SERVICE_ACCOUNTS,
    "serviceTokenData": SERVICE_TOKEN_DATA,
}

SORT_RECENT = "recent"


def log_filter(workspace_id: str, *, user_id: str | None = None, action_names: str | None = None) -> Filter:
    """Filter logs by workspace, acting user and comma-separated action names."""
    query: Filter = {"workspace": workspace_id}
    if user_id:
        query["user"] = user_id
    if action_names:
        query["actionNames"] = {"$in": action_names.split(",")}
    return query


def _populate_log(store: DocumentStore, log: dict) -> dict:
    populated = dict(log)
    populated["actions"] = store.find_by_ids(ACTIONS, log.get("actions") or [])
    for field, collection in PRINCIPAL_COLLECTIONS.items():
        ref = log.get(field)
        if ref:
            populated[field] = principal_to_dict(store.find_one(collection, {"_id": ref}))
    return populated


def get_workspace_logs(
    store: DocumentStore,
    workspace_id: str,
    *,
    user_id: str | None = None,
    action_names: str | None = None,
    sort_by: str | None = None,
    skip: int = 0,
    limit: int | None = None,
) -> list[dict]:
    """Logs for a workspace, oldest first unless ``sort_by == "recent"``."""
    direction = DESCENDING if sort_by == SORT_RECENT else ASCENDING
    logs = store.find(
        LOGS,
        log_filter(workspace_id, user_id=user_id, action_names=action_names),
        sort=[("createdAt", direction)],
        skip=skip,
        limit=limit,
    )
    return [_populate_log(store, log) for log in logs]


def record_log(
    store: DocumentStore,
    *,
    workspace_id: str,
    principal: dict,
    action_names: list[str],
    payloads: list[dict] | None = None,
    channel: str = "api",
    ip_address: str | None = None,
) -> dict:
    """Write one Action per name and a Log referencing them.

    ``principal`` is ``{"type": <Log principal field>, "id": ...}``.
    """
    field = principal["type"]
    if field not in PRINCIPAL_COLLECTIONS:
        raise ValueError(f"Unknown principal type: {field!r}")

    payloads = payloads or [{} for _ in action_names]
    actions = store.insert_many(
        ACTIONS,
        [
            {
                "name": name,
                "workspace": workspace_id,
                field: principal["id"],
                "payload": payload,
            }
            for name, payload in zip(action_names, payloads, strict=True)
        ],
    )
    log = store.insert_one(
        LOGS,
        {
            "workspace": workspace_id,
            field: principal["id"],
            "actions": [a["_id"] for a in actions],
            "actionNames": list(action_names),
            "channel": channel,
            "ipAddress": ip_address,
        },
    )
    logger.debug("Recorded %s for %s:%s in %s", action_names, field, principal["id"], workspace_id)
    return log
