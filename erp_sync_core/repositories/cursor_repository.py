"""
Sync cursor persistence.

A cursor only ever moves forward: advancing to a timestamp at or before the
stored one is a no-op.
"""

from datetime import datetime
from typing import Dict, Optional

from sqlalchemy.exc import IntegrityError

from ..constants import ObjectType
from ..db.db_base import ensure_utc
from ..db.db_sync_models import SyncCursor
from ..exceptions import RepositoryError
from .base_repository import BaseRepository


class SyncCursorRepository(BaseRepository):
    """Last-successful-sync timestamps per object type."""

    def _query(self, session, object_type: ObjectType):
        return session.query(SyncCursor).filter(
            SyncCursor.integration == self.integration,
            SyncCursor.object_type == ObjectType(object_type).value,
        )

    def get(self, object_type: ObjectType) -> Optional[datetime]:
        with self.session_scope("get_sync_cursor") as session:
            row = self._query(session, object_type).one_or_none()
            return row.last_synced_at if row else None

    def get_all(self) -> Dict[str, Optional[datetime]]:
        """Cursor per object type; None for types never synced."""
        with self.session_scope("get_all_sync_cursors") as session:
            rows = session.query(SyncCursor).filter(SyncCursor.integration == self.integration).all()
            stored = {row.object_type: row.last_synced_at for row in rows}
        return {object_type.value: stored.get(object_type.value) for object_type in ObjectType}

    def advance(self, object_type: ObjectType, to: datetime) -> bool:
        """
        Move the cursor forward.

        Args:
            object_type: Cursor to move
            to: New last-successful-sync timestamp

        Returns:
            True if the cursor moved, False if ``to`` was not later than the stored value
        """
        to = ensure_utc(to)
        try:
            return self._advance(object_type, to)
        except RepositoryError as e:
            # Another run created the cursor row first; the update path handles it
            if isinstance(e.cause, IntegrityError):
                return self._advance(object_type, to)
            raise

    def _advance(self, object_type: ObjectType, to: datetime) -> bool:
        with self.session_scope("advance_sync_cursor") as session:
            row = self._query(session, object_type).with_for_update().one_or_none()

            if row is None:
                session.add(
                    SyncCursor(
                        integration=self.integration,
                        object_type=ObjectType(object_type).value,
                        last_synced_at=to,
                    )
                )
                session.flush()
                previous = None
            elif to <= row.last_synced_at:
                self.logger.debug(
                    "Sync cursor not moved backwards",
                    extra={
                        "object_type": ObjectType(object_type).value,
                        "cursor": row.last_synced_at.isoformat(),
                        "requested": to.isoformat(),
                    },
                )
                return False
            else:
                previous = row.last_synced_at
                row.last_synced_at = to

        self.logger.info(
            "Sync cursor advanced",
            extra={
                "object_type": ObjectType(object_type).value,
                "previous": previous.isoformat() if previous else None,
                "cursor": to.isoformat(),
            },
        )
        return True
