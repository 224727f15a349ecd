"""
Sync API Router

Push queued offline mutations, pull changes since a watermark, or both in
one round trip. Push batches report per-mutation results; a failing
mutation never fails the request.
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import Any, Dict, List, Optional

from core.config import settings
from core.database import get_db
from core.auth import get_current_user
from core.exceptions import RateLimitedError
from models import User
from routers.documents import serialize_document
from schemas import SyncFullRequest, SyncMutation, SyncPushRequest
from services.sync_service import (
    SyncMutationResult,
    SyncPullResult,
    get_changed_documents,
    parse_doc_types,
    process_push_mutations,
    sync_full,
)

router = APIRouter(prefix="/v1/sync", tags=["Sync"])


def _check_batch_size(mutations: List[SyncMutation]) -> None:
    if len(mutations) > settings.SYNC_MAX_PUSH_MUTATIONS:
        raise RateLimitedError(
            f"Push batch of {len(mutations)} exceeds limit of {settings.SYNC_MAX_PUSH_MUTATIONS}"
        )


def _serialize_result(result: SyncMutationResult) -> Dict[str, Any]:
    payload: Dict[str, Any] = {"id": result.id, "success": result.success}
    if result.winner is not None:
        resolution: Dict[str, Any] = {"winner": result.winner}
        if result.document is not None:
            resolution["document"] = serialize_document(result.document)
        payload["conflictResolution"] = resolution
    if result.error is not None:
        payload["error"] = result.error
    return payload


def _serialize_pull(pull: SyncPullResult) -> Dict[str, Any]:
    return {
        "documents": [serialize_document(d) for d in pull.documents],
        "serverTime": pull.server_time.isoformat(),
    }


@router.post("/push")
def push(
    request: SyncPushRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    _check_batch_size(request.mutations)
    results = process_push_mutations(db, current_user.id, request.mutations)
    db.commit()
    return {"success": True, "data": {"results": [_serialize_result(r) for r in results]}}


@router.get("/pull")
def pull(
    since: str = Query(...),
    doc_types: Optional[str] = Query(None, alias="docTypes"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """
    Documents received at or after `since`, oldest first.

    Use the returned serverTime as the next `since`.
    """
    result = get_changed_documents(
        db,
        current_user.id,
        since,
        doc_types=parse_doc_types(doc_types),
        limit=settings.SYNC_MAX_PULL_DOCUMENTS,
    )
    return {"success": True, "data": _serialize_pull(result)}


@router.post("/full")
def full_sync(
    request: SyncFullRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    _check_batch_size(request.push.mutations)
    result = sync_full(
        db,
        current_user.id,
        request.push.mutations,
        request.pull_since,
        limit=settings.SYNC_MAX_PULL_DOCUMENTS,
    )
    db.commit()
    return {
        "success": True,
        "data": {
            "push": {"results": [_serialize_result(r) for r in result.results]},
            "pull": _serialize_pull(result.pull),
        },
    }
