"""
Object graph for one process.

One ``PacingGate`` and one ``TokenManager`` are built per runtime and
shared by every component that talks to the external API.
"""

from dataclasses import dataclass
from typing import Optional

import requests

from .client.api_client import ExternalApiClient
from .client.oauth_client import OAuthClient
from .client.transport import PacingGate, RateLimitedTransport
from .config import AppConfig, get_config
from .db.db_config import DatabaseManager, get_db_manager
from .processing.upsert_engine import UpsertEngine
from .repositories.credential_repository import CredentialRepository
from .repositories.cursor_repository import SyncCursorRepository
from .repositories.sync_log_repository import SyncLogRepository
from .repositories.synced_record_repository import SyncedRecordRepository
from .services.status_service import StatusService
from .services.sync_orchestrator import SyncOrchestrator
from .services.token_manager import TokenManager


@dataclass
class Runtime:
    config: AppConfig
    db_manager: DatabaseManager
    pacing_gate: PacingGate
    transport: RateLimitedTransport
    token_manager: TokenManager
    api_client: ExternalApiClient
    orchestrator: SyncOrchestrator
    status_service: StatusService
    sync_log: Optional[SyncLogRepository] = None


def build_runtime(
    config: Optional[AppConfig] = None,
    db_manager: Optional[DatabaseManager] = None,
    http_session: Optional[requests.Session] = None,
) -> Runtime:
    """
    Wire every component from configuration.

    Args:
        config: Application config (default: global config)
        db_manager: Database manager (default: the initialized global one)
        http_session: ``requests`` session for outbound calls (tests inject fakes)
    """
    config = config or get_config()
    db_manager = db_manager or get_db_manager()
    session_factory = db_manager.session_factory
    integration = config.oauth.integration

    pacing_gate = PacingGate(
        min_interval_seconds=config.rate_limit.min_interval_seconds,
        daily_limit=config.rate_limit.daily_limit,
    )
    transport = RateLimitedTransport.from_config(config, pacing_gate, session=http_session)

    credentials = CredentialRepository(
        session_factory, integration, encryption_key=config.security.encryption_key
    )
    token_manager = TokenManager(
        store=credentials,
        oauth_client=OAuthClient(config.oauth, transport),
        integration=integration,
        safety_margin_seconds=config.sync.safety_margin_seconds,
    )
    api_client = ExternalApiClient(config.api, token_manager, transport)

    cursors = SyncCursorRepository(session_factory, integration)
    records = SyncedRecordRepository(session_factory, integration)
    sync_log = (
        SyncLogRepository(session_factory, integration) if config.features.enable_sync_log else None
    )

    orchestrator = SyncOrchestrator(
        api_client=api_client,
        upsert_engine=UpsertEngine(session_factory, records),
        cursors=cursors,
        sync_log=sync_log,
        initial_lookback_hours=config.sync.initial_lookback_hours,
        fetch_detail=config.sync.fetch_detail,
    )
    status_service = StatusService(
        integration=integration,
        token_manager=token_manager,
        cursors=cursors,
        records=records,
        api_client=api_client,
        pacing_gate=pacing_gate,
    )

    return Runtime(
        config=config,
        db_manager=db_manager,
        pacing_gate=pacing_gate,
        transport=transport,
        token_manager=token_manager,
        api_client=api_client,
        orchestrator=orchestrator,
        status_service=status_service,
        sync_log=sync_log,
    )
