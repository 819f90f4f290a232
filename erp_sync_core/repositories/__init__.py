from .base_repository import BaseRepository
from .credential_repository import CredentialRepository, CredentialStore
from .cursor_repository import SyncCursorRepository
from .sync_log_repository import SyncLogRepository
from .synced_record_repository import SyncedRecordRepository

__all__ = [
    "BaseRepository",
    "CredentialRepository",
    "CredentialStore",
    "SyncCursorRepository",
    "SyncLogRepository",
    "SyncedRecordRepository",
]
