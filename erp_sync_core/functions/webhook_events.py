"""
Webhook signature verification and event parsing.
"""

import hashlib
import hmac
import json
from typing import Any, Dict, Optional

from pydantic import BaseModel

from ..constants import WEBHOOK_RESOURCES, ObjectType
from ..exceptions import ErrorCode, InvalidSignatureError, ValidationError

SIGNATURE_PREFIX = "sha256="

# Actions that do not correspond to a fetchable record
IGNORED_ACTIONS = {"deleted"}


class WebhookEvent(BaseModel):
    object_type: ObjectType
    external_id: str
    action: Optional[str] = None


def compute_signature(body: bytes, secret: str) -> str:
    digest = hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()
    return f"{SIGNATURE_PREFIX}{digest}"


def verify_signature(body: bytes, signature: Optional[str], secret: str) -> None:
    """
    Check ``sha256=<hex HMAC-SHA256(body, secret)>``.

    Raises:
        InvalidSignatureError: Missing or mismatching signature
    """
    if not signature:
        raise InvalidSignatureError("Missing webhook signature")

    expected = compute_signature(body, secret)
    if not hmac.compare_digest(expected, signature.strip().lower()):
        raise InvalidSignatureError()


def _require_id(data: Any) -> str:
    external_id = data.get("id") if isinstance(data, dict) else None
    if external_id is None or str(external_id).strip() == "":
        raise ValidationError("Webhook payload has no record id", field="data.id")
    return str(external_id)


def parse_webhook_event(body: bytes) -> Optional[WebhookEvent]:
    """
    Parse a webhook body.

    Accepts the provider shape ``{"event": "<resource>.<action>", "data": {"id": ...}}``
    and the direct shape ``{"object_type": ..., "external_id": ...}``.

    Returns:
        The event, or None for resources and actions that are not synced

    Raises:
        ValidationError: Body is not JSON or lacks the required fields
    """
    try:
        payload: Dict[str, Any] = json.loads(body or b"")
    except ValueError as e:
        raise ValidationError(
            "Webhook body is not valid JSON", error_code=ErrorCode.INVALID_FORMAT, cause=e
        ) from e

    if not isinstance(payload, dict):
        raise ValidationError("Webhook body must be a JSON object", error_code=ErrorCode.INVALID_FORMAT)

    if "event" in payload:
        resource, _, action = str(payload["event"]).partition(".")
        object_type = WEBHOOK_RESOURCES.get(resource.strip().lower())
        if object_type is None or action.lower() in IGNORED_ACTIONS:
            return None
        return WebhookEvent(
            object_type=object_type,
            external_id=_require_id(payload.get("data")),
            action=action or None,
        )

    if "object_type" in payload:
        raw_type = str(payload["object_type"]).strip().lower()
        object_type = WEBHOOK_RESOURCES.get(raw_type)
        if object_type is None:
            raise ValidationError(
                f"Unknown object type: {payload['object_type']}", field="object_type"
            )
        external_id = payload.get("external_id")
        if external_id is None or str(external_id).strip() == "":
            raise ValidationError("Webhook payload has no external_id", field="external_id")
        return WebhookEvent(object_type=object_type, external_id=str(external_id))

    raise ValidationError(
        "Webhook payload has neither 'event' nor 'object_type'",
        error_code=ErrorCode.MISSING_REQUIRED,
    )
