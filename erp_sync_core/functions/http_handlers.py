"""
Azure Functions HTTP handlers.

Handlers are plain functions of ``(runtime, request)`` so they can be
exercised without the Functions host; ``function_app.py`` binds them to
routes. Errors are answered with ``BaseError.to_dict()`` and the error's
status code, so the webhook sender sees a non-2xx and re-delivers.
"""

from datetime import date
from typing import Any, List, Optional

import azure.functions as func

from ..constants import WEBHOOK_SIGNATURE_HEADER, ObjectType
from ..exceptions import BaseError, ErrorCode, ValidationError
from ..runtime import Runtime
from ..utils.json_utils import dumps
from ..utils.logger import get_logger
from .webhook_events import parse_webhook_event, verify_signature


def json_response(body: Any, status_code: int = 200) -> func.HttpResponse:
    return func.HttpResponse(dumps(body), status_code=status_code, mimetype="application/json")


def error_response(error: BaseError) -> func.HttpResponse:
    return json_response(error.to_dict(), status_code=error.status_code)


def _request_data(req: func.HttpRequest) -> dict:
    """Query parameters overlaid with a JSON body, if any."""
    data = dict(req.params)
    if req.get_body():
        try:
            body = req.get_json()
        except ValueError as e:
            raise ValidationError(
                "Request body is not valid JSON", error_code=ErrorCode.INVALID_FORMAT, cause=e
            ) from e
        if isinstance(body, dict):
            data.update(body)
    return data


def _parse_date(value: Optional[str], field: str) -> Optional[date]:
    if value in (None, ""):
        return None
    try:
        return date.fromisoformat(str(value))
    except ValueError as e:
        raise ValidationError(
            f"Invalid date for {field}: {value}",
            field=field,
            error_code=ErrorCode.INVALID_FORMAT,
            cause=e,
        ) from e


def _object_types(value: Optional[str]) -> List[ObjectType]:
    if value in (None, "", "all"):
        return list(ObjectType)
    try:
        return [ObjectType(str(value).lower())]
    except ValueError as e:
        raise ValidationError(
            f"Unknown object type: {value}", field="object_type", cause=e
        ) from e


def handle_webhook(runtime: Runtime, req: func.HttpRequest) -> func.HttpResponse:
    """
    Receive a provider webhook and sync the record it announces.

    Returns 200 when the record was reconciled, 202 for events that are not
    synced, 400 for malformed bodies, 401 for bad signatures, and the
    error's status (502/503/500) when the sync failed.
    """
    logger = get_logger()
    body = req.get_body()

    secret = runtime.config.sync.webhook_secret
    try:
        if runtime.config.features.verify_webhook_signature and secret:
            verify_signature(body, req.headers.get(WEBHOOK_SIGNATURE_HEADER), secret)

        event = parse_webhook_event(body)
        if event is None:
            logger.info("Webhook event ignored", extra={"body_size": len(body)})
            return json_response({"status": "ignored"}, status_code=202)

        result = runtime.orchestrator.handle_webhook(event.object_type, event.external_id)
    except BaseError as e:
        return error_response(e)

    return json_response(
        {
            "status": "success",
            "object_type": event.object_type.value,
            "external_id": event.external_id,
            "inserted": result.inserted,
            "updated": result.updated,
            "correlation_id": result.correlation_id,
        }
    )


def handle_status(runtime: Runtime, req: func.HttpRequest) -> func.HttpResponse:
    probe = req.params.get("probe", "").lower() in ("1", "true", "yes")
    try:
        status = runtime.status_service.get_status(probe=probe)
    except BaseError as e:
        return error_response(e)
    return json_response(status.model_dump(mode="json"))


def handle_sync(runtime: Runtime, req: func.HttpRequest) -> func.HttpResponse:
    """
    Manual sync: incremental poll, or a backfill when ``start`` is given.

    Parameters (query or JSON body): ``object_type`` (order, invoice or
    all), ``start`` and ``end`` as ISO dates. ``end`` defaults to today.
    """
    try:
        data = _request_data(req)
        object_types = _object_types(data.get("object_type"))
        start = _parse_date(data.get("start"), "start")
        end = _parse_date(data.get("end"), "end")

        if start is None and end is not None:
            raise ValidationError("'end' given without 'start'", field="start")

        if start is not None:
            end = end or date.today()
            results = [runtime.orchestrator.backfill(t, start, end) for t in object_types]
        else:
            results = [runtime.orchestrator.poll(t) for t in object_types]
    except BaseError as e:
        return error_response(e)

    status_code = 200 if all(r.succeeded for r in results) else 207
    return json_response(
        {"results": [r.model_dump(mode="json") for r in results]}, status_code=status_code
    )


def handle_callback(runtime: Runtime, req: func.HttpRequest) -> func.HttpResponse:
    """OAuth redirect target: exchanges ``code`` for the first token pair."""
    try:
        if req.params.get("error"):
            raise ValidationError(
                f"Authorization denied: {req.params.get('error')}", field="error"
            )
        code = req.params.get("code")
        if not code:
            raise ValidationError(
                "Missing authorization code", field="code", error_code=ErrorCode.MISSING_REQUIRED
            )
        snapshot = runtime.token_manager.authorize(code)
    except BaseError as e:
        return error_response(e)

    return json_response({"status": "connected", **snapshot.model_dump(mode="json")})


def handle_disconnect(runtime: Runtime, req: func.HttpRequest) -> func.HttpResponse:
    try:
        disconnected = runtime.token_manager.disconnect()
    except BaseError as e:
        return error_response(e)
    return json_response({"status": "disconnected", "was_active": disconnected})


def run_scheduled_poll(runtime: Runtime) -> List[Any]:
    """Timer-trigger body: poll every object type."""
    try:
        return runtime.orchestrator.poll_all()
    except BaseError as e:
        # Already logged by the error itself; the next tick retries
        get_logger().warning(
            "Scheduled poll aborted", extra={"error_code": e.error_code.value}
        )
        return []
