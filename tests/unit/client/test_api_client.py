"""Tests for the external resource API client."""

from datetime import date, datetime, timezone

import pytest

from erp_sync_core.client.api_client import ExternalApiClient, format_date, format_timestamp
from erp_sync_core.client.transport import PacingGate, RateLimitedTransport
from erp_sync_core.config import ApiConfig
from erp_sync_core.constants import ObjectType
from erp_sync_core.exceptions import AuthNotConfiguredError, MalformedResponseError
from erp_sync_core.schemas.envelope_schemas import InvoicePayload, OrderPayload
from tests.fixtures.fakes import (
    FakeClock,
    RecordingSleep,
    ScriptedSession,
    StaticTokenManager,
    invoice_raw,
    make_response,
    order_raw,
)

BASE_URL = "https://erp.example.com/Api/v3"


def build_client(*outcomes, page_size=2, token_manager=None):
    clock = FakeClock()
    session = ScriptedSession(*outcomes)
    transport = RateLimitedTransport(
        PacingGate(0, clock=clock, sleep=RecordingSleep(clock)),
        session=session,
        sleep=RecordingSleep(),
    )
    client = ExternalApiClient(
        ApiConfig(base_url=BASE_URL, page_size=page_size),
        token_manager or StaticTokenManager("token-abc"),
        transport,
    )
    return client, session


class TestFormatting:
    def test_timestamp_converted_to_utc(self):
        value = datetime(2024, 3, 1, 9, 30, tzinfo=timezone.utc)
        assert format_timestamp(value) == "2024-03-01 09:30:00"

    def test_date_from_datetime(self):
        assert format_date(datetime(2024, 3, 1, 23, 0, tzinfo=timezone.utc)) == "2024-03-01"
        assert format_date(date(2024, 2, 29)) == "2024-02-29"


class TestListing:
    def test_full_page_has_next_page(self):
        client, session = build_client(
            make_response(200, {"data": [order_raw("1"), order_raw("2")]})
        )

        page = client.list_orders(datetime(2024, 3, 1, tzinfo=timezone.utc), page=1)

        assert [e.external_id for e in page.items] == ["1", "2"]
        assert page.next_page == 2
        assert isinstance(page.items[0].payload, OrderPayload)

    def test_short_page_is_last(self):
        client, _ = build_client(make_response(200, {"data": [order_raw("3")]}))

        page = client.list_orders(datetime(2024, 3, 1, tzinfo=timezone.utc), page=2)

        assert page.is_last
        assert page.page == 2

    def test_empty_page_is_last(self):
        client, _ = build_client(make_response(200, {"data": []}))

        page = client.list_invoices(datetime(2024, 3, 1, tzinfo=timezone.utc))

        assert page.items == []
        assert page.is_last

    def test_order_modification_window_params(self):
        client, session = build_client(make_response(200, {"data": []}))

        client.list_changed(
            ObjectType.ORDER,
            since=datetime(2024, 3, 1, 8, 0, tzinfo=timezone.utc),
            page=3,
            until=datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc),
        )

        call = session.calls[0]
        assert call["url"] == f"{BASE_URL}/pedidos/vendas"
        assert call["params"] == {
            "pagina": 3,
            "limite": 2,
            "dataAlteracaoInicial": "2024-03-01 08:00:00",
            "dataAlteracaoFinal": "2024-03-01 12:00:00",
        }
        assert call["headers"]["Authorization"] == "Bearer token-abc"

    def test_invoice_window_uses_issue_dates(self):
        client, session = build_client(make_response(200, {"data": []}))

        client.list_changed(
            ObjectType.INVOICE,
            since=datetime(2024, 3, 1, 8, 0, tzinfo=timezone.utc),
            until=datetime(2024, 3, 2, 1, 0, tzinfo=timezone.utc),
        )

        params = session.calls[0]["params"]
        assert session.calls[0]["url"] == f"{BASE_URL}/nfe"
        assert params["dataEmissaoInicial"] == "2024-03-01"
        assert params["dataEmissaoFinal"] == "2024-03-02"

    def test_backfill_range_for_orders(self):
        client, session = build_client(make_response(200, {"data": []}))

        client.list_range(ObjectType.ORDER, date(2024, 1, 1), date(2024, 1, 31))

        params = session.calls[0]["params"]
        assert params["dataInicial"] == "2024-01-01"
        assert params["dataFinal"] == "2024-01-31"


class TestDetail:
    def test_get_invoice(self):
        client, session = build_client(make_response(200, {"data": invoice_raw("NF-9")}))

        envelope = client.get_record(ObjectType.INVOICE, "NF-9")

        assert envelope.external_id == "NF-9"
        assert isinstance(envelope.payload, InvoicePayload)
        assert envelope.raw["numero"] == "5501"
        assert session.calls[0]["url"] == f"{BASE_URL}/nfe/NF-9"

    def test_get_order_keeps_modified_at(self):
        client, _ = build_client(make_response(200, {"data": order_raw("EXT-001")}))

        envelope = client.get_order("EXT-001")

        assert envelope.modified_at == datetime(2024, 3, 1, 10, 15)


class TestMalformedResponses:
    def test_non_json_body(self):
        client, _ = build_client(make_response(200, text="<html>oops</html>"))

        with pytest.raises(MalformedResponseError):
            client.get_order("1")

    def test_listing_without_data_list(self):
        client, _ = build_client(make_response(200, {"data": {"id": 1}}))

        with pytest.raises(MalformedResponseError):
            client.list_orders(datetime(2024, 3, 1, tzinfo=timezone.utc))

    def test_unparseable_records_are_rejected_individually(self):
        client, _ = build_client(
            make_response(
                200,
                {
                    "data": [
                        {"numero": "1"},
                        order_raw("2", total=None),
                        "not-a-record",
                        order_raw("3", data="ontem"),
                    ]
                },
            ),
            page_size=5,
        )

        page = client.list_orders(datetime(2024, 3, 1, tzinfo=timezone.utc))

        assert [e.external_id for e in page.items] == ["2"]
        assert page.items[0].payload.total == 0
        assert [r.external_id for r in page.rejected] == [None, None, "3"]
        assert all(r.page == 1 for r in page.rejected)
        assert all(r.error_code == "5009" for r in page.rejected)
        assert page.is_last

    def test_detail_not_an_object(self):
        client, _ = build_client(make_response(200, {"data": []}))

        with pytest.raises(MalformedResponseError):
            client.get_invoice("1")


class TestAuthentication:
    def test_missing_credential_sends_nothing(self):
        client, session = build_client(token_manager=StaticTokenManager(error=AuthNotConfiguredError()))

        with pytest.raises(AuthNotConfiguredError):
            client.get_order("1")

        assert session.calls == []

    def test_ping(self):
        client, session = build_client(make_response(200, {"data": []}))

        assert client.ping() is True
        assert session.calls[0]["url"] == f"{BASE_URL}/contatos"
        assert session.calls[0]["params"] == {"pagina": 1, "limite": 1}
