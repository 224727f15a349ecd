"""
Conflict resolution and clock skew tests.
"""

import itertools
from datetime import datetime, timedelta, timezone

import pytest

from core.exceptions import ClockSkewRejectedError, ErrorCode
from services.conflict_resolution import (
    WINNER_EXISTING,
    WINNER_INCOMING,
    DocumentVersion,
    resolve_conflict,
    to_instant,
    validate_clock_skew,
)

T0 = "2026-02-07T10:00:00.000Z"
T1 = "2026-02-07T10:00:01.000Z"


class TestResolveConflict:

    def test_newer_incoming_wins(self):
        result = resolve_conflict(DocumentVersion(T0, "A"), DocumentVersion(T1, "A"))
        assert result.winner == WINNER_INCOMING

    def test_older_incoming_loses(self):
        result = resolve_conflict(DocumentVersion(T1, "A"), DocumentVersion(T0, "Z"))
        assert result.winner == WINNER_EXISTING

    def test_tie_broken_by_device_id(self):
        assert resolve_conflict(DocumentVersion(T0, "A"), DocumentVersion(T0, "B")).winner == WINNER_INCOMING
        assert resolve_conflict(DocumentVersion(T0, "B"), DocumentVersion(T0, "A")).winner == WINNER_EXISTING

    def test_identical_versions_keep_existing(self):
        assert resolve_conflict(DocumentVersion(T0, "A"), DocumentVersion(T0, "A")).winner == WINNER_EXISTING

    def test_missing_device_sorts_first(self):
        assert resolve_conflict(DocumentVersion(T0, None), DocumentVersion(T0, "A")).winner == WINNER_INCOMING
        assert resolve_conflict(DocumentVersion(T0, "A"), DocumentVersion(T0, None)).winner == WINNER_EXISTING

    def test_compares_instants_not_strings(self):
        """Same instant in different offsets is a tie."""
        existing = DocumentVersion("2026-02-07T11:00:00+01:00", "B")
        incoming = DocumentVersion(T0, "A")
        assert resolve_conflict(existing, incoming).winner == WINNER_EXISTING

    def test_accepts_datetimes(self):
        existing = DocumentVersion(datetime(2026, 2, 7, 10, tzinfo=timezone.utc), "A")
        incoming = DocumentVersion(T1, "A")
        assert resolve_conflict(existing, incoming).winner == WINNER_INCOMING

    def test_every_replay_order_converges(self):
        versions = [
            DocumentVersion(T0, "A"),
            DocumentVersion(T1, "A"),
            DocumentVersion(T1, "C"),
            DocumentVersion(T0, "Z"),
        ]
        winners = set()
        for order in itertools.permutations(versions):
            current = order[0]
            for incoming in order[1:]:
                if resolve_conflict(current, incoming).winner == WINNER_INCOMING:
                    current = incoming
            winners.add(current)
        assert winners == {DocumentVersion(T1, "C")}


class TestClockSkew:
    SERVER = datetime(2026, 2, 7, 12, 0, tzinfo=timezone.utc)

    def test_exactly_ten_minutes_ahead_accepted(self):
        validate_clock_skew(self.SERVER + timedelta(minutes=10), self.SERVER)

    def test_just_over_ten_minutes_rejected(self):
        with pytest.raises(ClockSkewRejectedError) as exc_info:
            validate_clock_skew(self.SERVER + timedelta(minutes=10, milliseconds=1), self.SERVER)
        assert exc_info.value.error_code == ErrorCode.CLOCK_SKEW_REJECTED

    def test_old_timestamps_accepted(self):
        validate_clock_skew(self.SERVER - timedelta(days=30), self.SERVER)

    def test_details_echo_inputs(self):
        client = "2026-02-07T12:11:00.000Z"
        with pytest.raises(ClockSkewRejectedError) as exc_info:
            validate_clock_skew(client, self.SERVER)
        details = exc_info.value.details
        assert details["clientTime"] == client
        assert details["serverTime"] == self.SERVER.isoformat()


class TestToInstant:

    def test_z_suffix(self):
        assert to_instant("2026-02-07T10:00:00Z") == datetime(2026, 2, 7, 10, tzinfo=timezone.utc)

    def test_naive_treated_as_utc(self):
        assert to_instant(datetime(2026, 2, 7, 10)).tzinfo is not None

    def test_garbage_raises_value_error(self):
        with pytest.raises(ValueError):
            to_instant("yesterday")
