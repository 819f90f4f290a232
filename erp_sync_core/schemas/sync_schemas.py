"""
Result and status models returned by the orchestrator and the status service.
"""

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..constants import ObjectType, SyncTrigger


class RecordError(BaseModel):
    """A record (or page) that failed during a run."""

    external_id: Optional[str] = None
    page: Optional[int] = None
    error_code: str
    message: str


class SyncResult(BaseModel):
    """Outcome of one webhook, poll or backfill run."""

    trigger: SyncTrigger
    object_type: ObjectType
    correlation_id: str
    inserted: int = 0
    updated: int = 0
    pages: int = 0
    errors: List[RecordError] = Field(default_factory=list)
    cursor_advanced: bool = False
    window_start: Optional[datetime] = None
    window_end: Optional[datetime] = None

    @property
    def upserts(self) -> int:
        return self.inserted + self.updated

    @property
    def succeeded(self) -> bool:
        return not self.errors


class ConnectionStatus(BaseModel):
    """Operator-facing integration status. Contains no secrets."""

    integration: str
    connected: bool
    credential_active: bool
    token_expires_at: Optional[datetime] = None
    last_sync: Dict[str, Optional[datetime]] = Field(default_factory=dict)
    record_counts: Dict[str, int] = Field(default_factory=dict)
    requests_today: Optional[int] = None
    api_reachable: Optional[bool] = None
    detail: Optional[str] = None


class SyncLogEntry(BaseModel):
    """One audit row as shown to operators."""

    model_config = ConfigDict(from_attributes=True)

    created_at: datetime
    trigger: str
    object_type: str
    external_id: Optional[str] = None
    action: str
    status: str
    error_message: Optional[str] = None
    correlation_id: Optional[str] = None
