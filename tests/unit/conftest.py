"""
Unit test fixtures for the outer surfaces (HTTP handlers and CLI).

``fake_runtime`` wires the real orchestrator, upsert engine and
repositories to a fake external API and an in-memory credential store.
"""

import pytest

from erp_sync_core.config import AppConfig, FeatureFlags, SyncConfig
from erp_sync_core.processing.upsert_engine import UpsertEngine
from erp_sync_core.runtime import Runtime
from erp_sync_core.services.status_service import StatusService
from erp_sync_core.services.sync_orchestrator import SyncOrchestrator
from erp_sync_core.services.token_manager import TokenManager
from tests.fixtures.fakes import (
    WEBHOOK_SECRET,
    FakeApiClient,
    FakeOAuthClient,
    InMemoryCredentialStore,
)


@pytest.fixture
def fake_api() -> FakeApiClient:
    return FakeApiClient()


@pytest.fixture
def credential_store() -> InMemoryCredentialStore:
    return InMemoryCredentialStore()


@pytest.fixture
def fake_oauth() -> FakeOAuthClient:
    return FakeOAuthClient()


@pytest.fixture
def fake_runtime(
    db_manager,
    session_factory,
    integration,
    fake_api,
    credential_store,
    fake_oauth,
    cursor_repository,
    sync_log_repository,
    record_repository,
    utc_clock,
) -> Runtime:
    config = AppConfig(
        sync=SyncConfig(webhook_secret=WEBHOOK_SECRET),
        features=FeatureFlags(enable_logs_queue=False),
    )
    token_manager = TokenManager(credential_store, fake_oauth, integration, clock=utc_clock)
    orchestrator = SyncOrchestrator(
        api_client=fake_api,
        upsert_engine=UpsertEngine(session_factory, record_repository, clock=utc_clock),
        cursors=cursor_repository,
        sync_log=sync_log_repository,
        clock=utc_clock,
    )
    return Runtime(
        config=config,
        db_manager=db_manager,
        pacing_gate=None,
        transport=None,
        token_manager=token_manager,
        api_client=fake_api,
        orchestrator=orchestrator,
        status_service=StatusService(
            integration, token_manager, cursor_repository, record_repository, fake_api
        ),
        sync_log=sync_log_repository,
    )
