"""
Projection of external payloads onto local row columns.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from ..constants import INVOICE_STATUS_NAMES
from ..schemas.envelope_schemas import Envelope, InvoicePayload, OrderPayload
from .marketplace import detect_marketplace


def _ref_id(ref) -> Optional[str]:
    if ref is None or ref.id is None:
        return None
    return str(ref.id)


def _dump(model) -> Optional[Dict[str, Any]]:
    if model is None:
        return None
    return model.model_dump(mode="json", exclude_none=True)


def order_fields(envelope: Envelope, synced_at: datetime) -> Dict[str, Any]:
    """Column values for ``synced_orders``."""
    order: OrderPayload = envelope.payload
    contact = order.contato
    intermediary = order.intermediador
    fees = order.taxas
    shipping = order.transporte

    payment_method = None
    if order.parcelas and order.parcelas[0].formaPagamento:
        payment_method = order.parcelas[0].formaPagamento.descricao

    return {
        "external_id": envelope.external_id,
        "number": order.numero,
        "store_order_number": order.numeroLoja,
        "order_date": order.data,
        "ship_date": order.dataSaida,
        "contact_external_id": _ref_id(contact),
        "contact_name": contact.nome if contact else None,
        "contact_document": contact.numeroDocumento if contact else None,
        "marketplace": detect_marketplace(order),
        "total_products": order.totalProdutos,
        "discount_total": order.desconto.valor if order.desconto else Decimal("0"),
        "freight_total": shipping.frete if shipping else Decimal("0"),
        "other_expenses": order.outrasDespesas,
        "total_amount": order.total,
        "payment_method": payment_method,
        "status_id": order.situacao.id if order.situacao else None,
        "status_name": order.situacao.nome if order.situacao else None,
        "seller_external_id": _ref_id(order.vendedor),
        "intermediary_cnpj": intermediary.cnpj if intermediary else None,
        "intermediary_user": intermediary.nomeUsuario if intermediary else None,
        "commission_fee": fees.taxaComissao if fees else None,
        "marketplace_freight_cost": fees.custoFrete if fees else None,
        "notes": order.observacoes,
        "internal_notes": order.observacoesInternas,
        "shipping": _dump(shipping),
        "invoice_external_id": _ref_id(order.notaFiscal),
        "raw_data": envelope.raw,
        "synced_at": synced_at,
    }


def order_items(envelope: Envelope) -> List[Dict[str, Any]]:
    """Line item rows for ``synced_order_items``."""
    order: OrderPayload = envelope.payload
    return [
        {
            "product_external_id": _ref_id(item.produto),
            "product_code": item.codigo,
            "description": item.descricao,
            "quantity": item.quantidade,
            "unit_price": item.valor,
            "discount": item.desconto,
            "total": item.quantidade * item.valor,
        }
        for item in order.itens
    ]


def invoice_fields(envelope: Envelope, synced_at: datetime) -> Dict[str, Any]:
    """Column values for ``synced_invoices`` (``order_id`` is linked separately)."""
    invoice: InvoicePayload = envelope.payload
    contact = invoice.contato

    return {
        "external_id": envelope.external_id,
        "number": invoice.numero,
        "series": invoice.serie,
        "access_key": invoice.chaveAcesso,
        "invoice_type": invoice.tipo,
        "purpose": invoice.finalidade,
        "status": invoice.situacao,
        "status_name": INVOICE_STATUS_NAMES.get(invoice.situacao) if invoice.situacao else None,
        "issued_on": invoice.dataEmissao,
        "operation_date": invoice.dataOperacao,
        "contact_external_id": _ref_id(contact),
        "contact_name": contact.nome if contact else None,
        "contact_document": contact.numeroDocumento if contact else None,
        "contact_address": contact.endereco if contact else None,
        "freight_total": invoice.valorFrete,
        "total_amount": invoice.valorNota,
        "xml_url": invoice.xml,
        "danfe_url": invoice.linkDanfe,
        "pdf_url": invoice.linkPDF,
        "store_order_number": invoice.numeroPedidoLoja,
        "raw_data": envelope.raw,
        "synced_at": synced_at,
    }


def invoice_items(envelope: Envelope) -> List[Dict[str, Any]]:
    """Line item rows for ``synced_invoice_items``."""
    invoice: InvoicePayload = envelope.payload
    return [
        {
            "code": item.codigo,
            "description": item.descricao,
            "unit": item.unidade,
            "quantity": item.quantidade,
            "unit_price": item.valor,
            "total": item.valorTotal,
            "item_type": item.tipo,
            "ncm": item.classificacaoFiscal,
            "cfop": item.cfop,
            "origin": item.origem,
            "gtin": item.gtin,
            "taxes": item.impostos,
        }
        for item in invoice.itens
    ]
