"""
Shared test fixtures.

Database tests run against SQLite in memory; every test function gets
freshly created tables. HTTP and OAuth collaborators are replaced with
the fakes in ``tests.fixtures.fakes``, never with mocks.
"""

from datetime import datetime, timezone

import pytest

from erp_sync_core.db.db_config import (
    Base,
    DatabaseConfig,
    DatabaseManager,
    close_db,
    initialize_db,
)
from erp_sync_core.exceptions import clear_correlation_id
from erp_sync_core.repositories import (
    CredentialRepository,
    SyncCursorRepository,
    SyncedRecordRepository,
    SyncLogRepository,
)
from tests.fixtures.fakes import FakeUtcClock

TEST_INTEGRATION = "bling"


@pytest.fixture(scope="session")
def db_config() -> DatabaseConfig:
    """Create SQLite in-memory database configuration for testing."""
    return DatabaseConfig(
        db_type="sqlite",
        database=":memory:",
        echo=False,
        create_tables=True,
    )


@pytest.fixture(scope="session")
def db_manager(db_config: DatabaseConfig) -> DatabaseManager:
    """Create and initialize the database manager with all models."""
    manager = initialize_db(db_config)
    yield manager
    close_db()


@pytest.fixture(scope="function")
def session_factory(db_manager: DatabaseManager):
    """
    Session factory over empty tables.

    Tables are created before and dropped after each test so no rows leak
    between tests.
    """
    Base.metadata.create_all(db_manager.engine)
    yield db_manager.session_factory
    Base.metadata.drop_all(db_manager.engine)


@pytest.fixture(autouse=True)
def _reset_correlation_id():
    yield
    clear_correlation_id()


@pytest.fixture
def integration() -> str:
    return TEST_INTEGRATION


@pytest.fixture
def utc_clock() -> FakeUtcClock:
    """Controllable UTC clock starting at 2024-03-01 12:00."""
    return FakeUtcClock(datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def credential_repository(session_factory, integration) -> CredentialRepository:
    return CredentialRepository(session_factory, integration)


@pytest.fixture
def cursor_repository(session_factory, integration) -> SyncCursorRepository:
    return SyncCursorRepository(session_factory, integration)


@pytest.fixture
def sync_log_repository(session_factory, integration) -> SyncLogRepository:
    return SyncLogRepository(session_factory, integration)


@pytest.fixture
def record_repository(session_factory, integration) -> SyncedRecordRepository:
    return SyncedRecordRepository(session_factory, integration)
