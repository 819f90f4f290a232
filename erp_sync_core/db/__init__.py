"""
SQLAlchemy models and database setup for the sync store.
"""

from .db_base import JSON, EncryptedBinary, TimestampMixin, UTCDateTime, UUIDMixin, utc_now
from .db_config import (
    Base,
    DatabaseConfig,
    DatabaseManager,
    get_development_config,
    get_production_config,
    import_all_models,
    init_db,
)
from .db_credential_models import IntegrationCredential
from .db_invoice_models import SyncedInvoice, SyncedInvoiceItem
from .db_order_models import SyncedOrder, SyncedOrderItem
from .db_sync_models import SyncCursor, SyncLog

__all__ = [
    # Base definitions
    "Base",
    "JSON",
    "EncryptedBinary",
    "TimestampMixin",
    "UTCDateTime",
    "UUIDMixin",
    "utc_now",
    # Configuration
    "DatabaseConfig",
    "DatabaseManager",
    "import_all_models",
    "init_db",
    "get_production_config",
    "get_development_config",
    # Models
    "IntegrationCredential",
    "SyncCursor",
    "SyncLog",
    "SyncedOrder",
    "SyncedOrderItem",
    "SyncedInvoice",
    "SyncedInvoiceItem",
]
