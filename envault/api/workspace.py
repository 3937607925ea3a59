"""Workspace routes — secret snapshots, rollback and audit logs.

Every handler answers 400 with a fixed message on any failure; the
underlying exception goes to ``report_exception`` with the caller's email.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse

from envault.api.deps import get_principal, get_store
from envault.api.models import RollbackRequest
from envault.audit import get_workspace_logs, record_log
from envault.errors import SnapshotNotFoundError, report_exception
from envault.models import secret_to_dict
from envault.pagination import to_limit, to_skip
from envault.rollback import rollback_secret_snapshot
from envault.snapshots import count_secret_snapshots, get_secret_snapshot, list_secret_snapshots
from envault.store.base import DocumentStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/workspace", tags=["workspace"])

ROLLBACK_ACTION = "rollbackSecrets"


def _failure(err: Exception, principal: dict, message: str) -> JSONResponse:
    report_exception(err, user_email=principal.get("email"))
    return JSONResponse({"message": message}, status_code=400)


def _safe_record_rollback(
    store: DocumentStore,
    request: Request,
    workspace_id: str,
    principal: dict,
    body: RollbackRequest,
) -> None:
    """Audit the rollback without letting an audit failure fail the request."""
    try:
        record_log(
            store,
            workspace_id=workspace_id,
            principal=principal,
            action_names=[ROLLBACK_ACTION],
            payloads=[body.model_dump()],
            ip_address=request.client.host if request.client else None,
        )
    except Exception as e:
        logger.warning("Audit of rollback failed (non-fatal): %s", e)


@router.get("/{workspace_id}/secret-snapshots")
async def api_list_secret_snapshots(
    workspace_id: str,
    environment: str | None = Query(None),
    folderId: str | None = Query(None),
    offset: str | None = Query(None),
    limit: str | None = Query(None),
    principal: dict = Depends(get_principal),
    store: DocumentStore = Depends(get_store),
):
    try:
        snapshots = list_secret_snapshots(
            store,
            workspace_id,
            environment=environment,
            folder_id=folderId,
            skip=to_skip(offset),
            limit=to_limit(limit),
        )
    except Exception as e:
        return _failure(e, principal, "Failed to get secret snapshots")
    return {"secretSnapshots": snapshots}


@router.get("/{workspace_id}/secret-snapshots/count")
async def api_count_secret_snapshots(
    workspace_id: str,
    environment: str | None = Query(None),
    folderId: str | None = Query(None),
    principal: dict = Depends(get_principal),
    store: DocumentStore = Depends(get_store),
):
    try:
        count = count_secret_snapshots(
            store, workspace_id, environment=environment, folder_id=folderId
        )
    except Exception as e:
        return _failure(e, principal, "Failed to count number of secret snapshots")
    return {"count": count}


@router.post("/{workspace_id}/secret-snapshots/rollback")
async def api_rollback_secret_snapshot(
    workspace_id: str,
    request: Request,
    principal: dict = Depends(get_principal),
    store: DocumentStore = Depends(get_store),
):
    try:
        body = RollbackRequest.model_validate(await request.json())
        secrets = rollback_secret_snapshot(
            store,
            workspace_id=workspace_id,
            version=body.version,
            environment=body.environment,
            folder_id=body.folderId,
        )
    except Exception as e:
        return _failure(e, principal, "Failed to roll back secret snapshot")

    _safe_record_rollback(store, request, workspace_id, principal, body)
    return {"secrets": [secret_to_dict(s) for s in secrets]}


@router.get("/{workspace_id}/secret-snapshots/{snapshot_id}")
async def api_get_secret_snapshot(
    workspace_id: str,
    snapshot_id: str,
    principal: dict = Depends(get_principal),
    store: DocumentStore = Depends(get_store),
):
    try:
        snapshot = get_secret_snapshot(store, snapshot_id, workspace_id=workspace_id)
        if snapshot is None:
            raise SnapshotNotFoundError(f"Failed to find secret snapshot {snapshot_id}")
    except Exception as e:
        return _failure(e, principal, "Failed to get secret snapshot")
    return {"secretSnapshot": snapshot}


@router.get("/{workspace_id}/logs")
async def api_get_workspace_logs(
    workspace_id: str,
    userId: str | None = Query(None),
    offset: str | None = Query(None),
    limit: str | None = Query(None),
    sortBy: str | None = Query(None),
    actionNames: str | None = Query(None),
    principal: dict = Depends(get_principal),
    store: DocumentStore = Depends(get_store),
):
    try:
        logs = get_workspace_logs(
            store,
            workspace_id,
            user_id=userId,
            action_names=actionNames,
            sort_by=sortBy,
            skip=to_skip(offset),
            limit=to_limit(limit),
        )
    except Exception as e:
        return _failure(e, principal, "Failed to get workspace logs")
    return {"logs": logs}
