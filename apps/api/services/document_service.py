"""
Document Service

Orchestrates get / save / close for a single planning document:

    get    day documents must be available; missing rows are created lazily
           with empty content
    save   day documents must be editable and not terminal; content is
           schema-validated, the client clock is checked against the
           server's, then whole-document LWW decides whether the incoming
           version replaces the stored one
    close  the only path to `closed`; requires a complete reflection and
           refreshes the partner-visible status summary

Each operation reads "now" exactly once and threads it through the
availability check, the skew check, and the persisted receive time.

Errors (ValidationError, DocLockedError, DocNotYetAvailableError,
ClockSkewRejectedError, InternalError) propagate to the caller.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional, Union
from uuid import UUID
import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from core.exceptions import DocLockedError, DocNotYetAvailableError, InternalError, ValidationError
from models import JournalDocument
from services.conflict_resolution import (
    WINNER_EXISTING,
    ConflictResolution,
    DocumentVersion,
    resolve_conflict,
    to_instant,
    validate_clock_skew,
)
from services.day_availability import (
    DAY_STATUS_AUTO_CLOSED,
    DAY_STATUS_CLOSED,
    DAY_STATUS_OPEN,
    get_day_status,
    is_day_available,
    is_day_editable,
    is_day_locked,
    parse_date_key,
    should_auto_close,
    utc_now,
)
from services.day_content import build_empty_content, has_complete_reflection, merge_day_content
from services.document_repository import DocumentRepository
from services.document_validation import DOC_TYPE_DAY, REFLECTION_FIELDS, validate_document
from services.status_summary import update_summary
from services.user_settings import get_user_settings

logger = logging.getLogger(__name__)

DOC_STATUS_ACTIVE = "active"
TERMINAL_DAY_STATUSES = (DAY_STATUS_CLOSED, DAY_STATUS_AUTO_CLOSED)


@dataclass
class SaveResult:
    document: JournalDocument
    conflict_resolution: Optional[ConflictResolution] = None


def get_default_status(doc_type: str) -> str:
    return DAY_STATUS_OPEN if doc_type == DOC_TYPE_DAY else DOC_STATUS_ACTIVE


def _require_date_key(date_key: str) -> None:
    try:
        parse_date_key(date_key)
    except (TypeError, ValueError):
        raise ValidationError("Invalid date key", {"docKey": date_key})


def _ensure_document(
    repo: DocumentRepository,
    user_id: UUID,
    doc_type: str,
    doc_key: str,
    now: datetime,
) -> JournalDocument:
    existing = repo.find_by_key(user_id, doc_type, doc_key)
    if existing:
        return existing
    logger.debug(f"Creating empty {doc_type} document {doc_key} for user {user_id}")
    return repo.create(
        user_id=user_id,
        doc_type=doc_type,
        doc_key=doc_key,
        status=get_default_status(doc_type),
        content=build_empty_content(doc_type),
        client_updated_at=now,
        now=now,
    )


def get_document(
    db: Session,
    user_id: UUID,
    doc_type: str,
    doc_key: str,
    now: Optional[datetime] = None,
) -> JournalDocument:
    now = now or utc_now()
    if doc_type == DOC_TYPE_DAY:
        _require_date_key(doc_key)
        user_settings = get_user_settings(db, user_id)
        if not is_day_available(doc_key, user_settings.timezone, user_settings.account_start_date, now=now):
            raise DocNotYetAvailableError(doc_key)
    return _ensure_document(DocumentRepository(db), user_id, doc_type, doc_key, now)


def save_document(
    db: Session,
    user_id: UUID,
    doc_type: str,
    doc_key: str,
    content: Dict[str, Any],
    client_updated_at: Union[str, datetime],
    device_id: Optional[str] = None,
    now: Optional[datetime] = None,
) -> SaveResult:
    now = now or utc_now()
    repo = DocumentRepository(db)

    if doc_type == DOC_TYPE_DAY:
        _require_date_key(doc_key)
        user_settings = get_user_settings(db, user_id)
        if not is_day_editable(doc_key, user_settings.timezone, user_settings.account_start_date, now=now):
            raise DocLockedError(doc_key)

    existing = repo.find_by_key(user_id, doc_type, doc_key)
    if existing and doc_type == DOC_TYPE_DAY and existing.status in TERMINAL_DAY_STATUSES:
        raise DocLockedError(doc_key)

    validate_document(doc_type, content)

    try:
        client_instant = to_instant(client_updated_at)
    except (TypeError, ValueError):
        raise ValidationError("Invalid clientUpdatedAt", {"clientUpdatedAt": str(client_updated_at)})

    server_received_at = now
    validate_clock_skew(client_updated_at, server_received_at)

    if not existing:
        created = repo.create(
            user_id=user_id,
            doc_type=doc_type,
            doc_key=doc_key,
            status=get_default_status(doc_type),
            content=content,
            client_updated_at=client_instant,
            device_id=device_id,
            now=server_received_at,
        )
        return SaveResult(document=created)

    incoming = DocumentVersion(client_updated_at=client_instant, device_id=device_id)
    resolution = resolve_conflict(existing, incoming)
    if resolution.winner == WINNER_EXISTING:
        logger.info(
            f"Discarded stale {doc_type} {doc_key} for user {user_id}",
            extra={"extra_fields": {"device_id": device_id, "winner": resolution.winner}},
        )
        return SaveResult(document=existing, conflict_resolution=resolution)

    updated = repo.update(
        existing,
        now=server_received_at,
        content=content,
        client_updated_at=client_instant,
        device_id=device_id,
    )
    return SaveResult(document=updated, conflict_resolution=resolution)


def close_day(
    db: Session,
    user_id: UUID,
    date_key: str,
    reflection: Dict[str, Any],
    now: Optional[datetime] = None,
) -> JournalDocument:
    now = now or utc_now()
    _require_date_key(date_key)
    repo = DocumentRepository(db)
    user_settings = get_user_settings(db, user_id)

    if not is_day_editable(date_key, user_settings.timezone, user_settings.account_start_date, now=now):
        raise DocLockedError(date_key)

    document = get_document(db, user_id, DOC_TYPE_DAY, date_key, now=now)
    if document.status in TERMINAL_DAY_STATUSES:
        raise DocLockedError(date_key)

    merged = merge_day_content(document.content)
    merged["dayClose"]["reflection"] = {
        **{field: "" for field in REFLECTION_FIELDS},
        **(reflection or {}),
    }

    if not has_complete_reflection(merged["dayClose"]["reflection"]):
        missing = [
            field for field in REFLECTION_FIELDS
            if not merged["dayClose"]["reflection"].get(field)
        ]
        raise ValidationError("Reflection is incomplete", {"dateKey": date_key, "missingFields": missing})

    updated = repo.update(
        document,
        now=now,
        content=merged,
        status=DAY_STATUS_CLOSED,
        client_updated_at=now,
    )
    update_summary(db, user_id, date_key, updated, now=now)

    logger.info(f"Closed day {date_key} for user {user_id}")
    return updated


def auto_close_pending_days(db: Session, user_id: UUID, now: Optional[datetime] = None) -> int:
    """
    Move every lock-expired open day of the user to `auto_closed`.

    Each day is closed together with its summary inside one savepoint, so a
    storage failure leaves that day open with its old summary and is not
    counted. Reruns only touch days that are still open.
    """
    now = now or utc_now()
    repo = DocumentRepository(db)
    user_settings = get_user_settings(db, user_id)
    documents = repo.find_by_user(user_id, doc_type=DOC_TYPE_DAY)

    closed_count = 0
    for document in documents:
        if not should_auto_close(document, document.doc_key, user_settings.timezone, now=now):
            continue
        try:
            with db.begin_nested():
                updated = repo.update(
                    document,
                    now=now,
                    status=DAY_STATUS_AUTO_CLOSED,
                    client_updated_at=now,
                )
                update_summary(db, user_id, document.doc_key, updated, now=now)
            closed_count += 1
        except (InternalError, SQLAlchemyError) as e:
            logger.error(
                f"Auto-close failed for day {document.doc_key} of user {user_id}: {e}",
                extra={"extra_fields": {"user_id": str(user_id), "doc_key": document.doc_key}},
            )

    if closed_count:
        logger.info(f"Auto-closed {closed_count} days for user {user_id}")
    return closed_count


def list_documents(
    db: Session,
    user_id: UUID,
    doc_type: Optional[str] = None,
    since: Optional[Union[str, datetime]] = None,
) -> List[JournalDocument]:
    since_instant = None
    if since is not None:
        try:
            since_instant = to_instant(since)
        except (TypeError, ValueError):
            raise ValidationError("Invalid since watermark", {"since": str(since)})
    return DocumentRepository(db).find_by_user(user_id, doc_type=doc_type, since=since_instant)


def get_day_state(db: Session, user_id: UUID, date_key: str, now: Optional[datetime] = None) -> Dict[str, Any]:
    """Read-only view of where a day sits in its lifecycle. Never creates the document."""
    now = now or utc_now()
    _require_date_key(date_key)
    user_settings = get_user_settings(db, user_id)
    document = DocumentRepository(db).find_by_key(user_id, DOC_TYPE_DAY, date_key)
    tz = user_settings.timezone
    return {
        "dateKey": date_key,
        "status": get_day_status(document, date_key, tz, now=now),
        "exists": document is not None,
        "available": is_day_available(date_key, tz, user_settings.account_start_date, now=now),
        "editable": is_day_editable(date_key, tz, user_settings.account_start_date, now=now),
        "locked": is_day_locked(date_key, tz, now=now),
    }
