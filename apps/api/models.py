from sqlalchemy import Column, Integer, Boolean, Date, DateTime, ForeignKey, Text, Index, UniqueConstraint, JSON, Uuid
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.types import TypeDecorator
from core.database import Base
import uuid
from datetime import datetime, timezone


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UTCDateTime(TypeDecorator):
    """
    Timestamp stored as UTC and always loaded as an aware UTC datetime.

    SQLite drops tzinfo on the way back; Postgres keeps it. Normalizing here
    means instant comparisons (conflict resolution, watermarks) never mix
    naive and aware values.
    """
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        value = value.astimezone(timezone.utc)
        if dialect.name == "sqlite":
            return value.replace(tzinfo=None)
        return value

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


JSONDocument = JSON().with_variant(JSONB(), "postgresql")


class User(Base):
    __tablename__ = "app_user"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    created_at = Column(UTCDateTime, default=_utcnow, nullable=False)
    email = Column(Text, unique=True, nullable=True)
    display_name = Column(Text, nullable=True)

    # --- USER SETTINGS (read by the day lifecycle) ---
    timezone = Column(Text, nullable=True)  # IANA name; NULL means UTC
    account_start_date = Column(Date, nullable=True)  # Days before this are never available


class JournalDocument(Base):
    """
    One versioned planning record per (user, doc_type, doc_key).

    Mutated in place: saves replace `content` wholesale (LWW), the id is
    preserved for the life of the row. Day documents move open -> closed or
    open -> auto_closed and never leave those terminal states.
    """
    __tablename__ = "journal_document"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("app_user.id"), nullable=False, index=True)
    doc_type = Column(Text, nullable=False)  # 'day', 'week', 'month', 'quarter'
    doc_key = Column(Text, nullable=False)  # '2026-02-07', '2026-W02', '2026-01', '2026-Q1'
    schema_version = Column(Integer, default=1, nullable=False)
    status = Column(Text, nullable=False)  # day: open|closed|auto_closed, others: active
    content = Column(JSONDocument, nullable=False, default=dict)
    client_updated_at = Column(UTCDateTime, nullable=False)  # Client-asserted edit instant
    server_received_at = Column(UTCDateTime, nullable=False, default=_utcnow)  # Set on every write
    device_id = Column(Text, nullable=True)

    __table_args__ = (
        UniqueConstraint("user_id", "doc_type", "doc_key", name="uq_journal_document_user_type_key"),
        Index("ix_journal_document_user_received", "user_id", "server_received_at"),
    )


class DailyStatusSummary(Base):
    """
    Partner-visible projection of a day document.

    Derived only: written by the status summary projector after a close,
    an auto-close, or a backfill. Never written from client input.
    """
    __tablename__ = "daily_status_summary"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("app_user.id"), nullable=False, index=True)
    date = Column(Date, nullable=False)
    day_closed = Column(Boolean, default=False, nullable=False)
    one_thing_done = Column(Boolean, default=False, nullable=False)
    reflection_present = Column(Boolean, default=False, nullable=False)
    updated_at = Column(UTCDateTime, default=_utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint("user_id", "date", name="uq_daily_status_summary_user_date"),
    )


class AccountabilityPair(Base):
    """Accepted accountability pairing. Managed elsewhere; read-only here."""
    __tablename__ = "accountability_pair"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("app_user.id"), nullable=False, index=True)
    partner_id = Column(Uuid(as_uuid=True), ForeignKey("app_user.id"), nullable=False, index=True)
    created_at = Column(UTCDateTime, default=_utcnow, nullable=False)
