"""
Typed client for the external ERP resource API.

Every call asks the token manager for a currently valid token and sends
the request through the shared rate-limited transport. Listings are paged
explicitly: callers loop on ``EnvelopePage.next_page`` until it is None.
"""

from datetime import date, datetime, timezone
from typing import Any, Dict, Optional

from pydantic import ValidationError as PydanticValidationError

from ..config import ApiConfig
from ..constants import ObjectType
from ..exceptions import ErrorCode, MalformedResponseError
from ..schemas.envelope_schemas import Envelope, EnvelopePage
from ..schemas.sync_schemas import RecordError
from ..utils.logger import get_logger
from .transport import ApiRequest, RateLimitedTransport

ORDERS_PATH = "/pedidos/vendas"
INVOICES_PATH = "/nfe"
CONTACTS_PATH = "/contatos"


def format_timestamp(value: datetime) -> str:
    """``YYYY-MM-DD HH:MM:SS`` in UTC, the format of the modification filters."""
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
    return value.strftime("%Y-%m-%d %H:%M:%S")


def format_date(value) -> str:
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        value = value.date()
    return value.strftime("%Y-%m-%d")


class ExternalApiClient:
    """Orders and invoices from the external ERP."""

    def __init__(self, config: ApiConfig, token_manager, transport: RateLimitedTransport):
        self.config = config
        self.token_manager = token_manager
        self.transport = transport
        self.logger = get_logger()

    # ==================== ORDERS ====================

    def list_orders(
        self, since: datetime, page: int = 1, until: Optional[datetime] = None
    ) -> EnvelopePage:
        """
        List orders modified since ``since``.

        Args:
            since: Lower bound of the modification window
            page: 1-based page number
            until: Optional upper bound of the modification window

        Returns:
            One page of order envelopes
        """
        params: Dict[str, Any] = {"dataAlteracaoInicial": format_timestamp(since)}
        if until is not None:
            params["dataAlteracaoFinal"] = format_timestamp(until)
        return self._list(ObjectType.ORDER, ORDERS_PATH, params, page, "list_orders")

    def list_orders_by_date(self, start: date, end: date, page: int = 1) -> EnvelopePage:
        """List orders whose order date falls in ``[start, end]``."""
        params = {"dataInicial": format_date(start), "dataFinal": format_date(end)}
        return self._list(ObjectType.ORDER, ORDERS_PATH, params, page, "list_orders_by_date")

    def get_order(self, external_id: str) -> Envelope:
        return self._get(ObjectType.ORDER, f"{ORDERS_PATH}/{external_id}", "get_order")

    # ==================== INVOICES ====================

    def list_invoices(
        self, since: datetime, page: int = 1, until: Optional[datetime] = None
    ) -> EnvelopePage:
        """
        List invoices issued since ``since``.

        The invoice listing only filters by issue date, so the window is
        widened to whole days.
        """
        params: Dict[str, Any] = {"dataEmissaoInicial": format_date(since)}
        if until is not None:
            params["dataEmissaoFinal"] = format_date(until)
        return self._list(ObjectType.INVOICE, INVOICES_PATH, params, page, "list_invoices")

    def get_invoice(self, external_id: str) -> Envelope:
        return self._get(ObjectType.INVOICE, f"{INVOICES_PATH}/{external_id}", "get_invoice")

    # ==================== GENERIC ====================

    def list_changed(
        self, object_type: ObjectType, since: datetime, page: int = 1, until: Optional[datetime] = None
    ) -> EnvelopePage:
        if ObjectType(object_type) == ObjectType.ORDER:
            return self.list_orders(since, page, until)
        return self.list_invoices(since, page, until)

    def list_range(self, object_type: ObjectType, start: date, end: date, page: int = 1) -> EnvelopePage:
        """Backfill listing: orders by order date, invoices by issue date."""
        if ObjectType(object_type) == ObjectType.ORDER:
            return self.list_orders_by_date(start, end, page)
        return self.list_invoices(start, page, end)

    def get_record(self, object_type: ObjectType, external_id: str) -> Envelope:
        if ObjectType(object_type) == ObjectType.ORDER:
            return self.get_order(external_id)
        return self.get_invoice(external_id)

    def ping(self) -> bool:
        """Minimal authenticated request; True when the API answers 2xx."""
        self._send(CONTACTS_PATH, {"pagina": 1, "limite": 1}, "ping")
        return True

    def _send(self, path: str, params: Optional[Dict[str, Any]], operation: str) -> Any:
        token = self.token_manager.get_valid_token()
        request = ApiRequest(
            method="GET",
            url=f"{self.config.base_url}{path}",
            params=params,
            headers={"Authorization": f"Bearer {token}", "Accept": "application/json"},
            operation=operation,
        )
        response = self.transport.execute(request)
        try:
            return response.json()
        except ValueError as e:
            raise MalformedResponseError(
                f"Response to {operation} is not JSON",
                cause=e,
                operation=operation,
                response_body=(response.text or "")[:500],
            ) from e

    def _list(
        self,
        object_type: ObjectType,
        path: str,
        filters: Dict[str, Any],
        page: int,
        operation: str,
    ) -> EnvelopePage:
        params = {"pagina": page, "limite": self.config.page_size, **filters}
        body = self._send(path, params, operation)

        data = body.get("data") if isinstance(body, dict) else None
        if not isinstance(data, list):
            raise MalformedResponseError(
                f"Response to {operation} has no 'data' list",
                operation=operation,
                page=page,
            )

        items = []
        rejected = []
        for record in data:
            try:
                items.append(Envelope.from_payload(object_type, record))
            except PydanticValidationError as e:
                external_id = record.get("id") if isinstance(record, dict) else None
                rejected.append(
                    RecordError(
                        external_id=str(external_id) if external_id not in (None, "") else None,
                        page=page,
                        error_code=ErrorCode.MALFORMED_RESPONSE.value,
                        message=f"Could not parse {object_type.value} summary: {e}",
                    )
                )
        if rejected:
            self.logger.warning(
                f"Skipped {len(rejected)} unparseable {object_type.value} record(s) on page {page}",
                extra={"operation": operation, "page": page, "external_ids": [r.external_id for r in rejected]},
            )

        next_page = page + 1 if len(data) >= self.config.page_size else None
        self.logger.debug(
            f"Fetched {object_type.value} page {page}",
            extra={"operation": operation, "page": page, "count": len(items), "next_page": next_page},
        )
        return EnvelopePage(items=items, rejected=rejected, page=page, next_page=next_page)

    def _get(self, object_type: ObjectType, path: str, operation: str) -> Envelope:
        body = self._send(path, None, operation)

        data = body.get("data") if isinstance(body, dict) else None
        if not isinstance(data, dict):
            raise MalformedResponseError(
                f"Response to {operation} has no 'data' object",
                operation=operation,
            )

        try:
            return Envelope.from_payload(object_type, data)
        except PydanticValidationError as e:
            raise MalformedResponseError(
                f"Could not parse {object_type.value} record",
                cause=e,
                operation=operation,
            ) from e
