"""
Conflict Resolver and Clock Skew Validator

Whole-document last-writer-wins. The incoming version replaces the
existing one only if its client timestamp is strictly newer, or on an
exact tie if its device id sorts strictly after the existing one. For a
fixed set of (timestamp, device) versions every replay order converges on
the same winner.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional, Union

from core.exceptions import ClockSkewRejectedError

CLOCK_SKEW_MAX_MINUTES = 10

WINNER_INCOMING = "incoming"
WINNER_EXISTING = "existing"

Instant = Union[str, datetime]


@dataclass(frozen=True)
class DocumentVersion:
    """The parts of a document version that take part in conflict resolution."""
    client_updated_at: Instant
    device_id: Optional[str] = None


@dataclass(frozen=True)
class ConflictResolution:
    winner: str


def to_instant(value: Instant) -> datetime:
    """Parse an ISO-8601 string (a trailing 'Z' included) or datetime into an aware UTC datetime."""
    if isinstance(value, str):
        text = value.strip()
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        value = datetime.fromisoformat(text)
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def to_iso(value: Instant) -> str:
    if isinstance(value, str):
        return value
    return to_instant(value).isoformat()


def resolve_conflict(existing, incoming) -> ConflictResolution:
    """
    Pick the winner between two versions of the same document.

    Accepts anything with `client_updated_at` and `device_id` attributes
    (ORM rows or DocumentVersion). Never raises for well-formed timestamps.
    """
    existing_time = to_instant(existing.client_updated_at)
    incoming_time = to_instant(incoming.client_updated_at)

    if incoming_time > existing_time:
        return ConflictResolution(winner=WINNER_INCOMING)
    if incoming_time < existing_time:
        return ConflictResolution(winner=WINNER_EXISTING)

    existing_device = existing.device_id or ""
    incoming_device = incoming.device_id or ""
    if incoming_device > existing_device:
        return ConflictResolution(winner=WINNER_INCOMING)
    return ConflictResolution(winner=WINNER_EXISTING)


def validate_clock_skew(client_updated_at: Instant, server_received_at: Instant) -> None:
    """
    Reject client timestamps more than CLOCK_SKEW_MAX_MINUTES ahead of the server.

    There is no lower bound: old timestamps are accepted and simply tend to
    lose conflicts. The error carries both inputs verbatim.
    """
    client_time = to_instant(client_updated_at)
    server_time = to_instant(server_received_at)
    if client_time > server_time + timedelta(minutes=CLOCK_SKEW_MAX_MINUTES):
        raise ClockSkewRejectedError(to_iso(client_updated_at), to_iso(server_received_at))
