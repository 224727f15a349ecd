"""
Documents API Router

Read, write and close planning documents (day / week / month / quarter).
All routes are scoped to the authenticated user.
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import Any, Dict, Optional

from core.database import get_db
from core.auth import get_current_user
from core.exceptions import ValidationError
from models import JournalDocument, User
from schemas import CloseDayRequest, DayStateResponse, DocumentResponse, DocumentUpdate
from services.document_service import (
    close_day,
    get_day_state,
    get_document,
    list_documents,
    save_document,
)
from services.document_validation import DOC_TYPE_DAY, DOC_TYPES

router = APIRouter(prefix="/v1", tags=["Documents"])


def serialize_document(document: JournalDocument) -> Dict[str, Any]:
    return DocumentResponse.model_validate(document).model_dump(by_alias=True, mode="json", exclude_none=True)


def _check_doc_type(doc_type: str) -> None:
    if doc_type not in DOC_TYPES:
        raise ValidationError("Unsupported document type", {"docType": doc_type})


@router.get("/documents")
def get_documents(
    doc_type: Optional[str] = Query(None, alias="docType"),
    since: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """List the user's documents, optionally filtered by type and receive time."""
    if doc_type is not None:
        _check_doc_type(doc_type)
    documents = list_documents(db, current_user.id, doc_type=doc_type, since=since)
    return {"success": True, "data": {"documents": [serialize_document(d) for d in documents]}}


@router.get("/documents/{doc_type}/{doc_key}")
def read_document(
    doc_type: str,
    doc_key: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """
    Get a document, creating it with empty content on first access.

    Day documents outside their availability window return DOC_NOT_YET_AVAILABLE.
    """
    _check_doc_type(doc_type)
    document = get_document(db, current_user.id, doc_type, doc_key)
    db.commit()
    return {"success": True, "data": {"document": serialize_document(document)}}


@router.put("/documents/{doc_type}/{doc_key}")
def write_document(
    doc_type: str,
    doc_key: str,
    payload: DocumentUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    _check_doc_type(doc_type)
    result = save_document(
        db,
        current_user.id,
        doc_type,
        doc_key,
        payload.content,
        payload.client_updated_at,
        payload.device_id,
    )
    db.commit()

    data: Dict[str, Any] = {"document": serialize_document(result.document)}
    if result.conflict_resolution is not None:
        data["conflictResolution"] = {"winner": result.conflict_resolution.winner}
    return {"success": True, "data": data}


@router.post("/documents/{doc_type}/{doc_key}/close")
def close_document(
    doc_type: str,
    doc_key: str,
    payload: CloseDayRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Close a day with its reflection. Only day documents can be closed."""
    if doc_type != DOC_TYPE_DAY:
        raise ValidationError("Only day documents can be closed", {"docType": doc_type})
    document = close_day(db, current_user.id, doc_key, payload.reflection.model_dump(by_alias=True))
    db.commit()
    return {"success": True, "data": {"document": serialize_document(document)}}


@router.get("/days/{date_key}/status")
def read_day_status(
    date_key: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    state = get_day_state(db, current_user.id, date_key)
    return {"success": True, "data": DayStateResponse.model_validate(state).model_dump(by_alias=True)}
