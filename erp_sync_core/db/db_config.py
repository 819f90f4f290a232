"""
Connection settings and engine/session setup for the sync store.

PostgreSQL in production (schema owned by Alembic), SQLite for local runs
and tests (tables created on startup).
"""

import os
from typing import Any, Optional

from pydantic import BaseModel
from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from ..exceptions import ErrorCode, ServiceError, ValidationError
from ..utils.logger import get_logger

Base: Any = declarative_base()

POSTGRES_DRIVER = "postgresql+psycopg"


class DatabaseConfig(BaseModel):
    db_type: str = "postgres"
    database: str = ""
    url: Optional[str] = None
    host: str = ""
    port: str = "5432"
    username: str = ""
    password: str = ""
    pool_size: int = 5
    max_overflow: int = 10
    pool_timeout: int = 30
    echo: bool = False
    create_tables: bool = False

    def get_connection_string(self) -> str:
        if self.url:
            # Hosting platforms hand out postgres:// URLs without a driver
            for prefix in ("postgres://", "postgresql://"):
                if self.url.startswith(prefix):
                    return f"{POSTGRES_DRIVER}://{self.url[len(prefix):]}"
            return self.url

        if self.db_type.lower() == "postgres":
            if not all([self.host, self.database, self.username, self.password]):
                raise ValidationError(
                    "Missing required Postgres configuration parameters",
                    error_code=ErrorCode.MISSING_REQUIRED,
                    field="database_config",
                    value={"host": self.host, "database": self.database, "username": self.username},
                )
            return (
                f"{POSTGRES_DRIVER}://{self.username}:{self.password}@"
                f"{self.host}:{self.port}/{self.database}"
            )
        elif self.db_type.lower() == "sqlite":
            return f"sqlite:///{self.database or ':memory:'}"
        raise ValidationError(
            f"Unsupported database type: {self.db_type}",
            error_code=ErrorCode.INVALID_FORMAT,
            field="db_type",
            value=self.db_type,
        )

    @property
    def is_sqlite(self) -> bool:
        if self.url:
            return self.url.startswith("sqlite")
        return self.db_type.lower() == "sqlite"

    @property
    def is_in_memory(self) -> bool:
        return self.is_sqlite and self.get_connection_string() in ("sqlite://", "sqlite:///:memory:")

    def __repr__(self) -> str:
        if self.url:
            return f"DatabaseConfig(url='{self.url.split('@')[-1]}')"
        return (
            f"DatabaseConfig("
            f"db_type='{self.db_type}', "
            f"host='{self.host}', "
            f"database='{self.database}', "
            f"username='{self.username}', "
            f"password='***')"
        )


class DatabaseManager:
    """
    Database connection manager that uses a Pydantic DatabaseConfig.

    ``session_factory`` is what repositories are handed: every call opens an
    independent session, so one reconciliation never shares a transaction
    with another.
    """

    def __init__(self, config: DatabaseConfig):
        self.config = config
        self.engine = self._create_engine()
        self.session_factory = sessionmaker(bind=self.engine, expire_on_commit=False)

    def _create_engine(self):
        connection_string = self.config.get_connection_string()
        if self.config.is_sqlite:
            connect_args = {"check_same_thread": False}
            if self.config.is_in_memory:
                # One shared connection, otherwise each thread sees an empty database
                return create_engine(
                    connection_string,
                    echo=self.config.echo,
                    connect_args=connect_args,
                    poolclass=StaticPool,
                )
            return create_engine(
                connection_string, echo=self.config.echo, connect_args=connect_args
            )
        return create_engine(
            connection_string,
            echo=self.config.echo,
            pool_size=self.config.pool_size,
            max_overflow=self.config.max_overflow,
            pool_timeout=self.config.pool_timeout,
            pool_pre_ping=True,
        )

    def create_tables(self) -> None:
        Base.metadata.create_all(self.engine)

    def close(self) -> None:
        self.engine.dispose()


def get_development_config() -> DatabaseConfig:
    """SQLite for local runs; tables are created on startup."""
    return DatabaseConfig(
        db_type="sqlite",
        database=os.environ.get("DEV_DB_PATH", ":memory:"),
        echo=os.environ.get("DB_ECHO", "False").lower() == "true",
        create_tables=True,
    )


def get_production_config() -> DatabaseConfig:
    """
    Get Postgres configuration from environment variables.

    ``DATABASE_URL`` wins over the individual ``DB_*`` settings.
    """
    return DatabaseConfig(
        db_type="postgres",
        url=os.environ.get("DATABASE_URL") or None,
        host=os.environ.get("DB_HOST", "localhost"),
        port=os.environ.get("DB_PORT", "5432"),
        database=os.environ.get("DB_NAME", "erp_sync"),
        username=os.environ.get("DB_USER", "postgres"),
        password=os.environ.get("DB_PASSWORD", ""),
        pool_size=int(os.environ.get("DB_POOL_SIZE", "5")),
        max_overflow=int(os.environ.get("DB_MAX_OVERFLOW", "10")),
        pool_timeout=int(os.environ.get("DB_POOL_TIMEOUT", "30")),
        echo=os.environ.get("DB_ECHO", "False").lower() == "true",
        create_tables=os.environ.get("DB_CREATE_TABLES", "False").lower() == "true",
    )


def get_config_from_env() -> DatabaseConfig:
    """Postgres when DATABASE_URL or DB_HOST is set, SQLite otherwise."""
    if os.environ.get("DATABASE_URL") or os.environ.get("DB_HOST"):
        return get_production_config()
    return get_development_config()


def import_all_models():
    """Import all models to ensure they're registered with SQLAlchemy metadata."""
    from sqlalchemy.orm import configure_mappers

    from .db_credential_models import IntegrationCredential  # noqa
    from .db_invoice_models import SyncedInvoice, SyncedInvoiceItem  # noqa
    from .db_order_models import SyncedOrder, SyncedOrderItem  # noqa
    from .db_sync_models import SyncCursor, SyncLog  # noqa

    configure_mappers()


def init_db(db_manager: DatabaseManager) -> None:
    """
    Register every model and, when configured to, create missing tables.

    Args:
        db_manager: DatabaseManager whose engine is used
    """
    import_all_models()
    config = db_manager.config
    get_logger().info(
        "Initializing database",
        extra={"sqlite": config.is_sqlite, "create_tables": config.create_tables},
    )
    if config.create_tables:
        db_manager.create_tables()


# Global database manager instance
_db_manager: Optional[DatabaseManager] = None


def get_db_manager() -> DatabaseManager:
    """
    Get the global database manager instance.

    Raises:
        ServiceError: If no database manager has been initialized
    """
    if _db_manager is None:
        raise ServiceError(
            "Database manager not initialized. Call initialize_db() first.",
            error_code=ErrorCode.CONFIGURATION_ERROR,
            operation="get_db_manager",
        )
    return _db_manager


def initialize_db(config: Optional[DatabaseConfig] = None) -> DatabaseManager:
    """
    Initialize the global database manager with the given config.

    Args:
        config: Optional DatabaseConfig. If None, chosen from the environment.

    Returns:
        DatabaseManager: The initialized database manager
    """
    global _db_manager

    if config is None:
        config = get_config_from_env()

    _db_manager = DatabaseManager(config)
    init_db(_db_manager)
    return _db_manager


def close_db() -> None:
    """
    Close the database connections and dispose of the engine.
    """
    global _db_manager
    if _db_manager:
        _db_manager.close()
        _db_manager = None
