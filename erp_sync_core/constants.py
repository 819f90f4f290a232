"""
Constants and enums for the ERP sync core.

Centralizes the magic strings shared by the client, the persistence layer
and the function endpoints.
"""

from enum import Enum


class ObjectType(str, Enum):
    """External business objects that are synchronized."""

    ORDER = "order"
    INVOICE = "invoice"


class SyncTrigger(str, Enum):
    """Which trigger path produced a reconciliation."""

    WEBHOOK = "webhook"
    POLL = "poll"
    BACKFILL = "backfill"


class ReconcileOutcome(str, Enum):
    """Result of reconciling one envelope."""

    INSERTED = "inserted"
    UPDATED = "updated"


class OperationStatus(str, Enum):
    """Status values for sync log entries."""

    SUCCESS = "success"
    ERROR = "error"


class LogLevel(str, Enum):
    """Standard logging levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class EnvironmentVariable(str, Enum):
    """Standard environment variable names."""

    AZURE_STORAGE_CONNECTION = "AzureWebJobsStorage"
    APP_ENV = "APP_ENV"
    LOG_LEVEL = "LOG_LEVEL"
    ENABLE_LOGS_QUEUE = "ENABLE_LOGS_QUEUE"
    ERP_INTEGRATION = "ERP_INTEGRATION"
    ERP_CLIENT_ID = "ERP_CLIENT_ID"
    ERP_CLIENT_SECRET = "ERP_CLIENT_SECRET"
    ERP_TOKEN_URL = "ERP_TOKEN_URL"
    ERP_API_BASE_URL = "ERP_API_BASE_URL"
    ERP_TIMEOUT_SECONDS = "ERP_TIMEOUT_SECONDS"
    ERP_WEBHOOK_SECRET = "ERP_WEBHOOK_SECRET"
    ERP_ENCRYPTION_KEY = "ERP_ENCRYPTION_KEY"


# Default provider: Bling API v3
DEFAULT_INTEGRATION = "bling"
DEFAULT_TOKEN_URL = "https://www.bling.com.br/Api/v3/oauth/token"
DEFAULT_API_BASE_URL = "https://api.bling.com.br/Api/v3"

# 3 requests/second and 120,000 requests/day
DEFAULT_MIN_REQUEST_INTERVAL_SECONDS = 0.334
DEFAULT_DAILY_REQUEST_LIMIT = 120_000

DEFAULT_PAGE_SIZE = 100
TOKEN_SAFETY_MARGIN_SECONDS = 300

WEBHOOK_SIGNATURE_HEADER = "X-Bling-Signature-256"

# Event resource names the provider uses in webhook payloads
WEBHOOK_RESOURCES = {
    "order": ObjectType.ORDER,
    "pedido_venda": ObjectType.ORDER,
    "pedidos_vendas": ObjectType.ORDER,
    "invoice": ObjectType.INVOICE,
    "nfe": ObjectType.INVOICE,
    "nota_fiscal": ObjectType.INVOICE,
}

INVOICE_STATUS_NAMES = {
    1: "Pendente",
    2: "Cancelada",
    3: "Aguardando Recebimento",
    4: "Rejeitada",
    5: "Autorizada",
    6: "DANFE Emitida",
    7: "Registrada",
    8: "Aguardando Protocolo",
    9: "Denegada",
    10: "Consultar Situação",
    11: "Bloqueada",
}
