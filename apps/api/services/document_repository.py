"""
Document Store

Per-user keyed persistence for journal documents. Every write stamps
`server_received_at` with the caller's "now" so one operation's
availability check, skew check, and persisted receive time agree.

The repository flushes but never commits: the request (or task) that
owns the session owns the transaction.
"""

from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional
from uuid import UUID
import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from core.exceptions import InternalError
from models import JournalDocument
from services.day_availability import utc_now

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = ("schema_version", "status", "content", "client_updated_at", "device_id")


class DocumentRepository:

    def __init__(self, db: Session):
        self.db = db

    def _fail(self, action: str, e: Exception) -> InternalError:
        logger.error(f"Document store {action} failed: {e}")
        return InternalError(f"Failed to {action} document")

    def find_by_key(self, user_id: UUID, doc_type: str, doc_key: str) -> Optional[JournalDocument]:
        try:
            return (
                self.db.query(JournalDocument)
                .filter(
                    JournalDocument.user_id == user_id,
                    JournalDocument.doc_type == doc_type,
                    JournalDocument.doc_key == doc_key,
                )
                .first()
            )
        except SQLAlchemyError as e:
            raise self._fail("load", e)

    def find_by_user(
        self,
        user_id: UUID,
        doc_type: Optional[str] = None,
        doc_types: Optional[Iterable[str]] = None,
        since: Optional[datetime] = None,
        order: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[JournalDocument]:
        query = self.db.query(JournalDocument).filter(JournalDocument.user_id == user_id)

        if doc_type:
            query = query.filter(JournalDocument.doc_type == doc_type)
        if doc_types:
            query = query.filter(JournalDocument.doc_type.in_(list(doc_types)))
        if since is not None:
            query = query.filter(JournalDocument.server_received_at >= since)
        if order == "asc":
            query = query.order_by(JournalDocument.server_received_at.asc(), JournalDocument.id.asc())
        if limit is not None:
            query = query.limit(limit)

        try:
            return query.all()
        except SQLAlchemyError as e:
            raise self._fail("list", e)

    def create(
        self,
        user_id: UUID,
        doc_type: str,
        doc_key: str,
        status: str,
        content: Dict[str, Any],
        client_updated_at: datetime,
        device_id: Optional[str] = None,
        schema_version: int = 1,
        now: Optional[datetime] = None,
    ) -> JournalDocument:
        document = JournalDocument(
            user_id=user_id,
            doc_type=doc_type,
            doc_key=doc_key,
            schema_version=schema_version,
            status=status,
            content=content,
            client_updated_at=client_updated_at,
            server_received_at=now or utc_now(),
            device_id=device_id,
        )
        try:
            self.db.add(document)
            self.db.flush()
        except SQLAlchemyError as e:
            raise self._fail("create", e)
        return document

    def update(self, document: JournalDocument, now: Optional[datetime] = None, **changes: Any) -> JournalDocument:
        for field, value in changes.items():
            if field not in UPDATABLE_FIELDS:
                raise ValueError(f"Field '{field}' is not updatable")
            setattr(document, field, value)
        document.server_received_at = now or utc_now()
        try:
            self.db.flush()
        except SQLAlchemyError as e:
            raise self._fail("update", e)
        return document

    def delete_by_key(self, user_id: UUID, doc_type: str, doc_key: str) -> int:
        try:
            deleted = (
                self.db.query(JournalDocument)
                .filter(
                    JournalDocument.user_id == user_id,
                    JournalDocument.doc_type == doc_type,
                    JournalDocument.doc_key == doc_key,
                )
                .delete(synchronize_session="fetch")
            )
            self.db.flush()
        except SQLAlchemyError as e:
            raise self._fail("delete", e)
        return deleted
