from .http_handlers import (
    handle_callback,
    handle_disconnect,
    handle_status,
    handle_sync,
    handle_webhook,
    run_scheduled_poll,
)
from .webhook_events import WebhookEvent, compute_signature, parse_webhook_event, verify_signature

__all__ = [
    "handle_callback",
    "handle_disconnect",
    "handle_status",
    "handle_sync",
    "handle_webhook",
    "run_scheduled_poll",
    "WebhookEvent",
    "compute_signature",
    "parse_webhook_event",
    "verify_signature",
]
