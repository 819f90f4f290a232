from .credential_schemas import CredentialRecord, CredentialSnapshot, TokenResponse
from .envelope_schemas import Envelope, EnvelopePage, InvoicePayload, OrderPayload
from .sync_schemas import ConnectionStatus, RecordError, SyncResult

__all__ = [
    "CredentialRecord",
    "CredentialSnapshot",
    "TokenResponse",
    "Envelope",
    "EnvelopePage",
    "InvoicePayload",
    "OrderPayload",
    "ConnectionStatus",
    "RecordError",
    "SyncResult",
]
