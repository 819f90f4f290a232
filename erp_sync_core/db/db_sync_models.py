"""
Sync bookkeeping tables: per-object-type cursors and the audit log.
"""

from sqlalchemy import Column, Index, String, Text, UniqueConstraint

from .db_base import JSON, TimestampMixin, UTCDateTime, UUIDMixin, utc_now
from .db_config import Base


class SyncCursor(Base, UUIDMixin, TimestampMixin):
    """Last successful incremental sync for one (integration, object type)."""

    __tablename__ = "sync_cursors"

    integration = Column(String(100), nullable=False)
    object_type = Column(String(50), nullable=False)
    last_synced_at = Column(UTCDateTime, nullable=False)

    __table_args__ = (
        UniqueConstraint("integration", "object_type", name="uq_sync_cursor_integration_type"),
    )


class SyncLog(Base, UUIDMixin):
    """Append-only audit row per reconciled (or failed) record."""

    __tablename__ = "sync_log"

    integration = Column(String(100), nullable=False)
    trigger = Column(String(20), nullable=False)
    object_type = Column(String(50), nullable=False)
    external_id = Column(String(100), nullable=True)
    action = Column(String(50), nullable=False)
    status = Column(String(20), nullable=False)
    error_message = Column(Text, nullable=True)
    payload = Column(JSON, nullable=True)
    correlation_id = Column(String(36), nullable=True)
    created_at = Column(UTCDateTime, default=utc_now, nullable=False)

    __table_args__ = (
        Index("ix_sync_log_type_created", "object_type", "created_at"),
        Index("ix_sync_log_external_id", "external_id"),
    )
