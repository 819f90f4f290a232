"""Tests for the operator status report."""

from datetime import timedelta

import pytest

from erp_sync_core.client.transport import PacingGate
from erp_sync_core.constants import ObjectType
from erp_sync_core.exceptions import RefreshFailedError, UnreachableError
from erp_sync_core.processing.upsert_engine import UpsertEngine
from erp_sync_core.services.status_service import StatusService
from erp_sync_core.services.token_manager import TokenManager
from tests.fixtures.fakes import (
    FakeApiClient,
    FakeClock,
    FakeOAuthClient,
    InMemoryCredentialStore,
    RecordingSleep,
    order_envelope,
)


@pytest.fixture
def store():
    return InMemoryCredentialStore()


@pytest.fixture
def oauth():
    return FakeOAuthClient()


@pytest.fixture
def api():
    return FakeApiClient()


@pytest.fixture
def status_service(store, oauth, api, cursor_repository, record_repository, utc_clock):
    token_manager = TokenManager(store, oauth, "bling", clock=utc_clock)
    return StatusService("bling", token_manager, cursor_repository, record_repository, api)


class TestGetStatus:
    def test_not_authorized(self, status_service):
        status = status_service.get_status()

        assert status.connected is False
        assert status.credential_active is False
        assert status.token_expires_at is None
        assert status.detail
        assert status.last_sync == {"order": None, "invoice": None}
        assert status.record_counts == {"order": 0, "invoice": 0}
        assert status.requests_today is None

    def test_connected_with_counts_and_cursors(
        self,
        status_service,
        store,
        cursor_repository,
        session_factory,
        record_repository,
        utc_clock,
    ):
        expires_at = utc_clock() + timedelta(hours=2)
        store.seed("access-1", "refresh-1", expires_at)
        cursor_repository.advance(ObjectType.ORDER, utc_clock())
        UpsertEngine(session_factory, record_repository).reconcile(order_envelope("EXT-001"))

        status = status_service.get_status()

        assert status.connected is True
        assert status.credential_active is True
        assert status.token_expires_at == expires_at
        assert status.last_sync["order"] == utc_clock()
        assert status.last_sync["invoice"] is None
        assert status.record_counts == {"order": 1, "invoice": 0}
        assert status.api_reachable is None

    def test_reports_refreshed_expiry(self, status_service, store, oauth, utc_clock):
        store.seed("access-1", "refresh-1", utc_clock() + timedelta(seconds=30))

        status = status_service.get_status()

        assert oauth.refresh_calls == ["refresh-1"]
        assert status.token_expires_at == utc_clock() + timedelta(seconds=oauth.expires_in)

    def test_refresh_failure_means_disconnected(self, status_service, store, oauth, utc_clock):
        store.seed("access-1", "refresh-1", utc_clock())
        oauth.error = RefreshFailedError("invalid_grant")

        status = status_service.get_status()

        assert status.connected is False
        assert status.credential_active is True
        assert status.detail == "invalid_grant"

    def test_api_reachability_check(self, status_service, store, api, utc_clock):
        store.seed("access-1", "refresh-1", utc_clock() + timedelta(hours=1))

        assert status_service.get_status(probe=True).api_reachable is True

        api.ping_error = UnreachableError()
        status = status_service.get_status(probe=True)
        assert status.api_reachable is False
        assert status.connected is True

    def test_reports_requests_sent_today(
        self, store, oauth, api, cursor_repository, record_repository, utc_clock
    ):
        clock = FakeClock()
        gate = PacingGate(0, daily_limit=100, clock=clock, sleep=RecordingSleep(clock))
        token_manager = TokenManager(store, oauth, "bling", clock=utc_clock)
        service = StatusService(
            "bling", token_manager, cursor_repository, record_repository, api, pacing_gate=gate
        )
        gate.acquire()
        gate.acquire()

        assert service.get_status().requests_today == 2

    def test_status_has_no_secrets(self, status_service, store, utc_clock):
        store.seed("access-secret", "refresh-secret", utc_clock() + timedelta(hours=1))

        dumped = status_service.get_status().model_dump_json()

        assert "access-secret" not in dumped
        assert "refresh-secret" not in dumped
