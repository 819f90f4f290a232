"""Tests for SyncCursorRepository."""

from datetime import datetime, timedelta, timezone

from erp_sync_core.constants import ObjectType
from erp_sync_core.repositories.cursor_repository import SyncCursorRepository


class TestSyncCursor:
    def test_missing_cursor(self, cursor_repository):
        assert cursor_repository.get(ObjectType.ORDER) is None
        assert cursor_repository.get_all() == {"order": None, "invoice": None}

    def test_first_advance_creates_cursor(self, cursor_repository, utc_clock):
        assert cursor_repository.advance(ObjectType.ORDER, utc_clock()) is True
        assert cursor_repository.get(ObjectType.ORDER) == utc_clock()

    def test_cursor_only_moves_forward(self, cursor_repository, utc_clock):
        now = utc_clock()
        cursor_repository.advance(ObjectType.ORDER, now)

        assert cursor_repository.advance(ObjectType.ORDER, now - timedelta(minutes=5)) is False
        assert cursor_repository.advance(ObjectType.ORDER, now) is False
        assert cursor_repository.get(ObjectType.ORDER) == now

        later = now + timedelta(minutes=15)
        assert cursor_repository.advance(ObjectType.ORDER, later) is True
        assert cursor_repository.get(ObjectType.ORDER) == later

    def test_naive_timestamps_are_treated_as_utc(self, cursor_repository):
        cursor_repository.advance(ObjectType.INVOICE, datetime(2024, 3, 1, 12, 0))

        assert cursor_repository.get(ObjectType.INVOICE) == datetime(
            2024, 3, 1, 12, 0, tzinfo=timezone.utc
        )

    def test_cursors_are_per_type_and_integration(self, cursor_repository, session_factory, utc_clock):
        cursor_repository.advance(ObjectType.ORDER, utc_clock())
        other = SyncCursorRepository(session_factory, "other-erp")

        assert cursor_repository.get(ObjectType.INVOICE) is None
        assert other.get(ObjectType.ORDER) is None
        assert cursor_repository.get_all()["order"] == utc_clock()
