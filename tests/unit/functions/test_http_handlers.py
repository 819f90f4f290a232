"""Tests for the Azure Functions HTTP handlers."""

import json
from datetime import date, timedelta

import azure.functions as func
import pytest

from erp_sync_core.constants import WEBHOOK_SIGNATURE_HEADER, ObjectType
from erp_sync_core.exceptions import AuthNotConfiguredError, ServerError
from erp_sync_core.functions.http_handlers import (
    handle_callback,
    handle_disconnect,
    handle_status,
    handle_sync,
    handle_webhook,
    run_scheduled_poll,
)
from erp_sync_core.functions.webhook_events import compute_signature
from tests.fixtures.fakes import WEBHOOK_SECRET, invoice_raw, order_raw


def http_request(method="POST", url="/api/erp/webhook", body=b"", params=None, headers=None):
    return func.HttpRequest(
        method=method,
        url=url,
        headers=headers or {},
        params=params or {},
        body=body,
    )


def signed_webhook(payload, secret=WEBHOOK_SECRET):
    body = json.dumps(payload).encode()
    return http_request(body=body, headers={WEBHOOK_SIGNATURE_HEADER: compute_signature(body, secret)})


def json_body(response: func.HttpResponse):
    return json.loads(response.get_body())


class TestWebhookHandler:
    def test_signed_event_is_synced(self, fake_runtime, fake_api, record_repository):
        fake_api.set_detail(ObjectType.ORDER, order_raw("EXT-001"))

        response = handle_webhook(
            fake_runtime, signed_webhook({"event": "order.updated", "data": {"id": "EXT-001"}})
        )

        assert response.status_code == 200
        body = json_body(response)
        assert body["status"] == "success"
        assert body["inserted"] == 1
        assert record_repository.count(ObjectType.ORDER) == 1

    def test_bad_signature_rejected(self, fake_runtime, fake_api):
        response = handle_webhook(
            fake_runtime,
            signed_webhook({"event": "order.updated", "data": {"id": "EXT-001"}}, secret="wrong"),
        )

        assert response.status_code == 401
        assert fake_api.detail_calls == []

    def test_unsigned_rejected(self, fake_runtime):
        body = json.dumps({"event": "order.updated", "data": {"id": "1"}}).encode()

        assert handle_webhook(fake_runtime, http_request(body=body)).status_code == 401

    def test_unsigned_accepted_when_verification_disabled(self, fake_runtime, fake_api):
        fake_runtime.config.features.verify_webhook_signature = False
        fake_api.set_detail(ObjectType.INVOICE, invoice_raw("NF-1"))
        body = json.dumps({"object_type": "invoice", "external_id": "NF-1"}).encode()

        assert handle_webhook(fake_runtime, http_request(body=body)).status_code == 200

    def test_ignored_event(self, fake_runtime, fake_api):
        response = handle_webhook(
            fake_runtime, signed_webhook({"event": "order.deleted", "data": {"id": "EXT-001"}})
        )

        assert response.status_code == 202
        assert json_body(response) == {"status": "ignored"}
        assert fake_api.detail_calls == []

    def test_malformed_body(self, fake_runtime):
        body = b"{not json"
        request = http_request(body=body, headers={WEBHOOK_SIGNATURE_HEADER: compute_signature(body, WEBHOOK_SECRET)})

        response = handle_webhook(fake_runtime, request)

        assert response.status_code == 400
        assert json_body(response)["error"]["code"] == "2001"

    def test_fetch_failure_is_non_2xx(self, fake_runtime, fake_api):
        fake_api.set_detail(ObjectType.ORDER, order_raw("EXT-001"))
        fake_api.record_errors[(ObjectType.ORDER, "EXT-001")] = ServerError(503)

        response = handle_webhook(
            fake_runtime, signed_webhook({"event": "order.updated", "data": {"id": "EXT-001"}})
        )

        assert response.status_code == 502
        assert json_body(response)["error"]["code"] == "5007"


class TestSyncHandler:
    def test_poll_every_type(self, fake_runtime, fake_api):
        fake_api.set_pages(ObjectType.ORDER, [[order_raw("EXT-001")]])

        response = handle_sync(fake_runtime, http_request(url="/api/erp/sync"))

        assert response.status_code == 200
        results = json_body(response)["results"]
        assert [r["object_type"] for r in results] == ["order", "invoice"]
        assert results[0]["inserted"] == 1
        assert results[0]["cursor_advanced"] is True

    def test_backfill_from_json_body(self, fake_runtime, fake_api):
        body = json.dumps({"object_type": "order", "start": "2024-01-01", "end": "2024-01-31"}).encode()

        response = handle_sync(fake_runtime, http_request(url="/api/erp/sync", body=body))

        assert response.status_code == 200
        assert fake_api.list_calls[0]["kind"] == "range"
        assert fake_api.list_calls[0]["start"] == date(2024, 1, 1)
        assert fake_api.list_calls[0]["end"] == date(2024, 1, 31)

    def test_backfill_end_defaults_to_today(self, fake_runtime, fake_api):
        response = handle_sync(
            fake_runtime,
            http_request(url="/api/erp/sync", params={"object_type": "invoice", "start": "2024-01-01"}),
        )

        assert response.status_code == 200
        assert fake_api.list_calls[0]["end"] == date.today()

    @pytest.mark.parametrize(
        "params",
        [
            {"end": "2024-01-31"},
            {"start": "31/01/2024"},
            {"start": "2024-02-01", "end": "2024-01-01"},
            {"object_type": "customer"},
        ],
    )
    def test_invalid_parameters(self, fake_runtime, fake_api, params):
        response = handle_sync(fake_runtime, http_request(url="/api/erp/sync", params=params))

        assert response.status_code == 400
        assert fake_api.list_calls == []

    def test_partial_failure_is_207(self, fake_runtime, fake_api):
        fake_api.set_pages(ObjectType.ORDER, [[order_raw("EXT-001"), order_raw("EXT-002")]])
        fake_api.record_errors[(ObjectType.ORDER, "EXT-002")] = ServerError(500)

        response = handle_sync(fake_runtime, http_request(url="/api/erp/sync", params={"object_type": "order"}))

        assert response.status_code == 207
        result = json_body(response)["results"][0]
        assert result["inserted"] == 1
        assert result["errors"][0]["external_id"] == "EXT-002"

    def test_auth_failure_is_401(self, fake_runtime, fake_api):
        fake_api.page_errors[(ObjectType.ORDER, 1)] = AuthNotConfiguredError()

        response = handle_sync(fake_runtime, http_request(url="/api/erp/sync"))

        assert response.status_code == 401


class TestCallbackAndDisconnect:
    def test_callback_exchanges_code(self, fake_runtime, fake_oauth, credential_store):
        response = handle_callback(
            fake_runtime, http_request(method="GET", url="/api/erp/callback", params={"code": "abc"})
        )

        assert response.status_code == 200
        body = json_body(response)
        assert body["status"] == "connected"
        assert "access_token" not in body
        assert fake_oauth.exchanged_codes == ["abc"]
        assert credential_store.get_active() is not None

    def test_callback_without_code(self, fake_runtime):
        response = handle_callback(fake_runtime, http_request(method="GET", url="/api/erp/callback"))

        assert response.status_code == 400

    def test_callback_with_provider_error(self, fake_runtime, fake_oauth):
        response = handle_callback(
            fake_runtime,
            http_request(method="GET", url="/api/erp/callback", params={"error": "access_denied"}),
        )

        assert response.status_code == 400
        assert fake_oauth.exchanged_codes == []

    def test_disconnect(self, fake_runtime, credential_store, utc_clock):
        credential_store.seed("access-1", "refresh-1", utc_clock() + timedelta(hours=1))

        response = handle_disconnect(fake_runtime, http_request(url="/api/erp/disconnect"))

        assert json_body(response) == {"status": "disconnected", "was_active": True}
        assert credential_store.get_active() is None


class TestStatusAndTimer:
    def test_status(self, fake_runtime, credential_store, utc_clock):
        credential_store.seed("access-1", "refresh-1", utc_clock() + timedelta(hours=1))

        response = handle_status(
            fake_runtime, http_request(method="GET", url="/api/erp/status", params={"probe": "true"})
        )

        body = json_body(response)
        assert response.status_code == 200
        assert body["connected"] is True
        assert body["api_reachable"] is True
        assert "access-1" not in response.get_body().decode()

    def test_scheduled_poll_survives_auth_failure(self, fake_runtime, fake_api):
        fake_api.page_errors[(ObjectType.ORDER, 1)] = AuthNotConfiguredError()

        assert run_scheduled_poll(fake_runtime) == []

    def test_scheduled_poll_runs_every_type(self, fake_runtime):
        results = run_scheduled_poll(fake_runtime)

        assert [r.object_type for r in results] == [ObjectType.ORDER, ObjectType.INVOICE]
