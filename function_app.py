"""
ERP Sync Azure Functions App

HTTP:
    POST /api/erp/webhook     provider webhook receiver
    GET  /api/erp/status      integration status (``?probe=true`` calls the API)
    POST /api/erp/sync        manual poll, or backfill with ``start``/``end``
    GET  /api/erp/callback    OAuth redirect target (``?code=``)
    POST /api/erp/disconnect  deactivate the stored credential

Timer:
    ErpScheduledPoll          incremental poll of every object type

Run with: func start
"""

from typing import Optional

import azure.functions as func

from erp_sync_core.db.db_config import initialize_db
from erp_sync_core.functions import http_handlers
from erp_sync_core.runtime import Runtime, build_runtime
from erp_sync_core.utils.logger import configure_logging

app = func.FunctionApp()

_runtime: Optional[Runtime] = None


def get_runtime() -> Runtime:
    """Build the object graph on first use and keep it for the worker's lifetime."""
    global _runtime
    if _runtime is None:
        configure_logging("erp_sync")
        _runtime = build_runtime(db_manager=initialize_db())
    return _runtime


@app.function_name(name="ErpWebhook")
@app.route(route="erp/webhook", methods=["POST"], auth_level=func.AuthLevel.ANONYMOUS)
def erp_webhook(req: func.HttpRequest) -> func.HttpResponse:
    return http_handlers.handle_webhook(get_runtime(), req)


@app.function_name(name="ErpStatus")
@app.route(route="erp/status", methods=["GET"], auth_level=func.AuthLevel.FUNCTION)
def erp_status(req: func.HttpRequest) -> func.HttpResponse:
    return http_handlers.handle_status(get_runtime(), req)


@app.function_name(name="ErpSync")
@app.route(route="erp/sync", methods=["POST"], auth_level=func.AuthLevel.FUNCTION)
def erp_sync(req: func.HttpRequest) -> func.HttpResponse:
    return http_handlers.handle_sync(get_runtime(), req)


@app.function_name(name="ErpCallback")
@app.route(route="erp/callback", methods=["GET"], auth_level=func.AuthLevel.ANONYMOUS)
def erp_callback(req: func.HttpRequest) -> func.HttpResponse:
    return http_handlers.handle_callback(get_runtime(), req)


@app.function_name(name="ErpDisconnect")
@app.route(route="erp/disconnect", methods=["POST"], auth_level=func.AuthLevel.FUNCTION)
def erp_disconnect(req: func.HttpRequest) -> func.HttpResponse:
    return http_handlers.handle_disconnect(get_runtime(), req)


@app.function_name(name="ErpScheduledPoll")
@app.timer_trigger(schedule="0 */15 * * * *", arg_name="timer", run_on_startup=False)
def erp_scheduled_poll(timer: func.TimerRequest) -> None:
    http_handlers.run_scheduled_poll(get_runtime())
