"""
Append-only audit log of sync activity.

Audit writes are best effort: a failure is logged and the sync carries on.
"""

from typing import Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError

from ..constants import ObjectType, OperationStatus, SyncTrigger
from ..db.db_sync_models import SyncLog
from ..exceptions import get_correlation_id
from .base_repository import BaseRepository


class SyncLogRepository(BaseRepository):
    def record(
        self,
        trigger: SyncTrigger,
        object_type: ObjectType,
        action: str,
        status: OperationStatus,
        external_id: Optional[str] = None,
        error_message: Optional[str] = None,
        payload: Optional[Dict[str, Any]] = None,
    ) -> Optional[str]:
        """
        Append one audit row.

        Returns:
            Id of the new row, or None if it could not be written
        """
        session = self.session_factory()
        try:
            entry = SyncLog(
                integration=self.integration,
                trigger=SyncTrigger(trigger).value,
                object_type=ObjectType(object_type).value,
                external_id=external_id,
                action=action,
                status=OperationStatus(status).value,
                error_message=error_message,
                payload=payload,
                correlation_id=get_correlation_id(),
            )
            session.add(entry)
            session.commit()
            return entry.id
        except SQLAlchemyError as e:
            session.rollback()
            self.logger.error(
                f"Failed to write sync log entry: {e}",
                extra={
                    "trigger": SyncTrigger(trigger).value,
                    "object_type": ObjectType(object_type).value,
                    "external_id": external_id,
                    "sync_action": action,
                },
            )
            return None
        finally:
            session.close()

    def recent(
        self,
        limit: int = 20,
        object_type: Optional[ObjectType] = None,
        status: Optional[OperationStatus] = None,
    ) -> List[SyncLog]:
        """Most recent entries first."""
        with self.session_scope("recent_sync_log") as session:
            query = session.query(SyncLog).filter(SyncLog.integration == self.integration)
            if object_type is not None:
                query = query.filter(SyncLog.object_type == ObjectType(object_type).value)
            if status is not None:
                query = query.filter(SyncLog.status == OperationStatus(status).value)
            rows = query.order_by(SyncLog.created_at.desc()).limit(limit).all()
            session.expunge_all()
            return rows
