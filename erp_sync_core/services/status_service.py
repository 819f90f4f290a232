"""
Read-only integration status for operators.
"""

from ..constants import ObjectType
from ..exceptions import AuthNotConfiguredError, BaseError, RefreshFailedError
from ..schemas.sync_schemas import ConnectionStatus
from ..utils.logger import get_logger


class StatusService:
    def __init__(
        self, integration: str, token_manager, cursors, records, api_client=None, pacing_gate=None
    ):
        self.integration = integration
        self.token_manager = token_manager
        self.cursors = cursors
        self.records = records
        self.api_client = api_client
        self.pacing_gate = pacing_gate
        self.logger = get_logger()

    def get_status(self, probe: bool = False) -> ConnectionStatus:
        """
        Report connection state, token expiry, last syncs, row counts and
        the requests sent today.

        ``connected`` means a valid token can be obtained right now (which
        may refresh it). With ``probe`` the API is also called once.
        """
        snapshot = self.token_manager.credential_snapshot()
        credential_active = bool(snapshot and snapshot.is_active)

        connected = False
        detail = None
        try:
            self.token_manager.get_valid_token()
            connected = True
        except (AuthNotConfiguredError, RefreshFailedError) as e:
            detail = e.message

        if connected:
            # Re-read: obtaining the token may have refreshed it
            snapshot = self.token_manager.credential_snapshot()

        api_reachable = None
        if probe and connected and self.api_client is not None:
            try:
                api_reachable = self.api_client.ping()
            except BaseError as e:
                api_reachable = False
                detail = e.message

        return ConnectionStatus(
            integration=self.integration,
            connected=connected,
            credential_active=credential_active,
            token_expires_at=snapshot.expires_at if snapshot and snapshot.is_active else None,
            last_sync=self.cursors.get_all(),
            record_counts={
                object_type.value: self.records.count(object_type) for object_type in ObjectType
            },
            requests_today=self.pacing_gate.requests_today if self.pacing_gate is not None else None,
            api_reachable=api_reachable,
            detail=detail,
        )
