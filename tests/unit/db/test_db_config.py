"""Tests for database connection settings."""

import pytest
from sqlalchemy import inspect

from erp_sync_core.db.db_config import (
    DatabaseConfig,
    DatabaseManager,
    get_config_from_env,
    init_db,
)
from erp_sync_core.exceptions import ValidationError

DB_VARIABLES = ("DATABASE_URL", "DB_HOST", "DB_PASSWORD", "DB_CREATE_TABLES", "DEV_DB_PATH")


@pytest.fixture
def clean_env(monkeypatch):
    for name in DB_VARIABLES:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class TestConnectionString:
    def test_postgres_from_parts(self):
        config = DatabaseConfig(
            host="db.local", database="erp", username="sync", password="pw", port="6543"
        )

        assert config.get_connection_string() == "postgresql+psycopg://sync:pw@db.local:6543/erp"

    def test_missing_postgres_parts(self):
        with pytest.raises(ValidationError):
            DatabaseConfig(host="db.local").get_connection_string()

    @pytest.mark.parametrize(
        "url",
        ["postgres://sync:pw@db.local/erp", "postgresql://sync:pw@db.local/erp"],
    )
    def test_url_gets_driver(self, url):
        config = DatabaseConfig(url=url)

        assert config.get_connection_string() == "postgresql+psycopg://sync:pw@db.local/erp"
        assert not config.is_sqlite

    def test_url_hides_credentials_in_repr(self):
        config = DatabaseConfig(url="postgres://sync:pw@db.local/erp")

        assert "pw" not in repr(config)

    def test_sqlite_memory(self):
        config = DatabaseConfig(db_type="sqlite")

        assert config.get_connection_string() == "sqlite:///:memory:"
        assert config.is_in_memory

    def test_unsupported_type(self):
        with pytest.raises(ValidationError):
            DatabaseConfig(db_type="oracle", database="x").get_connection_string()


class TestConfigFromEnv:
    def test_sqlite_by_default(self, clean_env):
        config = get_config_from_env()

        assert config.is_sqlite
        assert config.create_tables

    def test_database_url_selects_postgres(self, clean_env):
        clean_env.setenv("DATABASE_URL", "postgres://sync:pw@db.local/erp")

        config = get_config_from_env()

        assert not config.is_sqlite
        assert not config.create_tables
        assert config.get_connection_string().startswith("postgresql+psycopg://")

    def test_db_host_selects_postgres(self, clean_env):
        clean_env.setenv("DB_HOST", "db.local")
        clean_env.setenv("DB_PASSWORD", "pw")
        clean_env.setenv("DB_CREATE_TABLES", "true")

        config = get_config_from_env()

        assert config.host == "db.local"
        assert config.create_tables


class TestInitDb:
    def test_creates_tables_only_when_asked(self):
        manager = DatabaseManager(DatabaseConfig(db_type="sqlite"))
        try:
            init_db(manager)
            assert inspect(manager.engine).get_table_names() == []

            manager.config = manager.config.model_copy(update={"create_tables": True})
            init_db(manager)
            tables = set(inspect(manager.engine).get_table_names())
        finally:
            manager.close()

        assert {"integration_credentials", "sync_cursors", "sync_log", "synced_orders"} <= tables
