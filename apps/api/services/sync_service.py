"""
Sync Service

Batch push / pull between offline-capable clients and the document store.

Push applies each queued client mutation independently, in order, each in
its own savepoint. A failing mutation is encoded into its own result and
never aborts the rest of the batch, so a client with some stale or
now-invalid mutations still makes maximal forward progress.

Pull returns everything received at or after the caller's watermark,
oldest first, plus the server time the pull ran at. Clients must use that
server time (not their own clock) as their next watermark.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Union
from uuid import UUID
import logging

from sqlalchemy.orm import Session

from core.exceptions import APIException, ValidationError, to_api_error
from models import JournalDocument
from services.conflict_resolution import to_instant
from services.day_availability import utc_now
from services.document_repository import DocumentRepository
from services.document_service import save_document
from services.document_validation import DOC_TYPES

logger = logging.getLogger(__name__)

OPERATION_UPSERT = "upsert"
OPERATION_DELETE = "delete"


@dataclass
class SyncMutationResult:
    id: str
    success: bool
    winner: Optional[str] = None
    document: Optional[JournalDocument] = None
    error: Optional[Dict[str, Any]] = None


@dataclass
class SyncPullResult:
    documents: List[JournalDocument] = field(default_factory=list)
    server_time: Optional[datetime] = None


@dataclass
class SyncFullResult:
    results: List[SyncMutationResult]
    pull: SyncPullResult


def parse_doc_types(value: Optional[str]) -> Optional[List[str]]:
    """Parse a comma-separated docType filter. Unknown types are a ValidationError."""
    if not value:
        return None
    requested = [entry.strip() for entry in value.split(",") if entry.strip()]
    for entry in requested:
        if entry not in DOC_TYPES:
            raise ValidationError("Invalid doc type filter", {"docType": entry})
    return requested or None


def _parse_since(since: Union[str, datetime]) -> datetime:
    try:
        return to_instant(since)
    except (TypeError, ValueError):
        raise ValidationError("Invalid since watermark", {"since": str(since)})


def _apply_mutation(db: Session, user_id: UUID, mutation, now: Optional[datetime]) -> SyncMutationResult:
    if mutation.operation == OPERATION_DELETE:
        # Deletes bypass conflict resolution and the clock-skew check.
        DocumentRepository(db).delete_by_key(user_id, mutation.doc_type, mutation.doc_key)
        return SyncMutationResult(id=mutation.id, success=True)

    save_result = save_document(
        db,
        user_id,
        mutation.doc_type,
        mutation.doc_key,
        mutation.content,
        mutation.client_updated_at,
        mutation.device_id,
        now=now,
    )
    if save_result.conflict_resolution is None:
        return SyncMutationResult(id=mutation.id, success=True)
    return SyncMutationResult(
        id=mutation.id,
        success=True,
        winner=save_result.conflict_resolution.winner,
        document=save_result.document,
    )


def process_push_mutations(
    db: Session,
    user_id: UUID,
    mutations: Iterable,
    now: Optional[datetime] = None,
) -> List[SyncMutationResult]:
    results: List[SyncMutationResult] = []

    for mutation in mutations:
        try:
            with db.begin_nested():
                result = _apply_mutation(db, user_id, mutation, now)
            results.append(result)
        except Exception as e:
            if isinstance(e, APIException):
                logger.info(f"Sync mutation {mutation.id} rejected: {e.error_code.value}")
            else:
                logger.error(f"Sync mutation {mutation.id} failed: {e}", exc_info=True)
            results.append(SyncMutationResult(id=mutation.id, success=False, error=to_api_error(e)))

    failed = sum(1 for r in results if not r.success)
    logger.info(
        f"Processed {len(results)} sync mutations for user {user_id} ({failed} failed)",
        extra={"extra_fields": {"user_id": str(user_id), "mutations": len(results), "failed": failed}},
    )
    return results


def get_changed_documents(
    db: Session,
    user_id: UUID,
    since: Union[str, datetime],
    doc_types: Optional[List[str]] = None,
    limit: Optional[int] = None,
    now: Optional[datetime] = None,
) -> SyncPullResult:
    # Read before querying: a write landing mid-pull is re-sent next time rather than skipped.
    server_time = now or utc_now()
    since_instant = _parse_since(since)

    documents = DocumentRepository(db).find_by_user(
        user_id,
        doc_types=doc_types,
        since=since_instant,
        order="asc",
        limit=limit,
    )
    return SyncPullResult(documents=documents, server_time=server_time)


def sync_full(
    db: Session,
    user_id: UUID,
    mutations: Iterable,
    pull_since: Union[str, datetime],
    limit: Optional[int] = None,
    now: Optional[datetime] = None,
) -> SyncFullResult:
    """Push then pull. The pull uses the caller's `pull_since`, not the push completion time."""
    _parse_since(pull_since)
    results = process_push_mutations(db, user_id, mutations, now=now)
    pull = get_changed_documents(db, user_id, pull_since, limit=limit, now=now)
    return SyncFullResult(results=results, pull=pull)
