"""
Pydantic schemas for records fetched from the external ERP.

Payload models are deliberately lenient: list endpoints return summaries
and detail endpoints return full records, so everything but ``id`` is
optional and unknown fields are kept. The untouched JSON travels alongside
in ``Envelope.raw``.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ..constants import ObjectType
from .sync_schemas import RecordError

# Dates the provider uses to mean "not set"
_EMPTY_DATES = {"", "0000-00-00", "0000-00-00 00:00:00"}


def _blank_to_none(value):
    if isinstance(value, str) and value.strip() in _EMPTY_DATES:
        return None
    return value


def _date_part(value):
    value = _blank_to_none(value)
    # "YYYY-MM-DD HH:MM:SS" -> date
    if isinstance(value, str) and len(value) > 10:
        return value[:10]
    return value


class PayloadModel(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    @model_validator(mode="before")
    @classmethod
    def null_to_default(cls, data):
        """A JSON null on a field with a default means the default (0, "" or [])."""
        if not isinstance(data, dict):
            return data
        return {
            key: value
            for key, value in data.items()
            if value is not None
            or key not in cls.model_fields
            or cls.model_fields[key].is_required()
        }


class IdRef(PayloadModel):
    id: Optional[int] = None


class ContactPayload(PayloadModel):
    id: Optional[int] = None
    nome: Optional[str] = None
    numeroDocumento: Optional[str] = None
    endereco: Optional[Dict[str, Any]] = None


class StatusRef(PayloadModel):
    id: Optional[int] = None
    valor: Optional[int] = None
    nome: Optional[str] = None


class DiscountPayload(PayloadModel):
    valor: Decimal = Decimal("0")


class IntermediaryPayload(PayloadModel):
    cnpj: Optional[str] = None
    nomeUsuario: Optional[str] = None


class FeesPayload(PayloadModel):
    taxaComissao: Optional[Decimal] = None
    custoFrete: Optional[Decimal] = None


class ShippingPayload(PayloadModel):
    frete: Decimal = Decimal("0")
    etiqueta: Optional[Dict[str, Any]] = None


class PaymentMethodPayload(PayloadModel):
    id: Optional[int] = None
    descricao: Optional[str] = None


class InstallmentPayload(PayloadModel):
    formaPagamento: Optional[PaymentMethodPayload] = None


class OrderItemPayload(PayloadModel):
    codigo: Optional[str] = None
    descricao: str = ""
    quantidade: Decimal = Decimal("0")
    valor: Decimal = Decimal("0")
    desconto: Decimal = Decimal("0")
    produto: Optional[IdRef] = None


class OrderPayload(PayloadModel):
    """Sales order (``/pedidos/vendas``)."""

    id: str = Field(..., min_length=1)
    numero: Optional[str] = None
    numeroLoja: Optional[str] = None
    data: Optional[date] = None
    dataSaida: Optional[date] = None
    contato: Optional[ContactPayload] = None
    total: Decimal = Decimal("0")
    totalProdutos: Decimal = Decimal("0")
    outrasDespesas: Decimal = Decimal("0")
    desconto: Optional[DiscountPayload] = None
    transporte: Optional[ShippingPayload] = None
    situacao: Optional[StatusRef] = None
    vendedor: Optional[IdRef] = None
    intermediador: Optional[IntermediaryPayload] = None
    taxas: Optional[FeesPayload] = None
    parcelas: List[InstallmentPayload] = Field(default_factory=list)
    observacoes: Optional[str] = None
    observacoesInternas: Optional[str] = None
    notaFiscal: Optional[IdRef] = None
    itens: List[OrderItemPayload] = Field(default_factory=list)

    @field_validator("id", "numero", "numeroLoja", mode="before")
    @classmethod
    def coerce_number_to_str(cls, v):
        if v is None or v == "":
            return None
        return str(v)

    @field_validator("data", "dataSaida", mode="before")
    @classmethod
    def parse_dates(cls, v):
        return _date_part(v)


class InvoiceItemPayload(PayloadModel):
    codigo: Optional[str] = None
    descricao: str = ""
    unidade: Optional[str] = None
    quantidade: Decimal = Decimal("0")
    valor: Decimal = Decimal("0")
    valorTotal: Decimal = Decimal("0")
    tipo: Optional[str] = None
    classificacaoFiscal: Optional[str] = None
    cfop: Optional[str] = None
    origem: Optional[int] = None
    gtin: Optional[str] = None
    impostos: Optional[Dict[str, Any]] = None

    @field_validator("codigo", "cfop", "gtin", "classificacaoFiscal", "tipo", mode="before")
    @classmethod
    def coerce_to_str(cls, v):
        if v is None or v == "":
            return None
        return str(v)


class InvoicePayload(PayloadModel):
    """Invoice (``/nfe``)."""

    id: str = Field(..., min_length=1)
    numero: Optional[int] = None
    serie: Optional[str] = None
    chaveAcesso: Optional[str] = None
    tipo: Optional[int] = None
    situacao: Optional[int] = None
    finalidade: Optional[int] = None
    dataEmissao: Optional[date] = None
    dataOperacao: Optional[date] = None
    contato: Optional[ContactPayload] = None
    valorFrete: Decimal = Decimal("0")
    valorNota: Decimal = Decimal("0")
    xml: Optional[str] = None
    linkDanfe: Optional[str] = None
    linkPDF: Optional[str] = None
    numeroPedidoLoja: Optional[str] = None
    itens: List[InvoiceItemPayload] = Field(default_factory=list)

    @field_validator("numero", mode="before")
    @classmethod
    def parse_number(cls, v):
        if v is None or v == "":
            return None
        return int(v)

    @field_validator("id", "serie", "numeroPedidoLoja", mode="before")
    @classmethod
    def coerce_to_str(cls, v):
        if v is None or v == "":
            return None
        return str(v)

    @field_validator("dataEmissao", "dataOperacao", mode="before")
    @classmethod
    def parse_dates(cls, v):
        return _date_part(v)


_PAYLOAD_MODELS = {
    ObjectType.ORDER: OrderPayload,
    ObjectType.INVOICE: InvoicePayload,
}


class Envelope(BaseModel):
    """One external record as fetched, before reconciliation."""

    model_config = ConfigDict(frozen=True)

    object_type: ObjectType
    external_id: str = Field(..., min_length=1)
    modified_at: Optional[datetime] = None
    payload: Union[OrderPayload, InvoicePayload]
    raw: Dict[str, Any]

    @classmethod
    def from_payload(cls, object_type: ObjectType, raw: Dict[str, Any]) -> "Envelope":
        """
        Parse a raw API record.

        Raises:
            pydantic.ValidationError: If the record does not fit the payload model
        """
        payload = _PAYLOAD_MODELS[object_type].model_validate(raw)
        modified = _blank_to_none(raw.get("dataAlteracao"))
        return cls(
            object_type=object_type,
            external_id=str(payload.id),
            modified_at=modified,
            payload=payload,
            raw=raw,
        )


class EnvelopePage(BaseModel):
    """
    One page of a listing; ``next_page`` is None on the last page.

    ``rejected`` holds the records on the page that could not be parsed.
    """

    items: List[Envelope] = Field(default_factory=list)
    rejected: List[RecordError] = Field(default_factory=list)
    page: int = Field(..., ge=1)
    next_page: Optional[int] = None

    @property
    def is_last(self) -> bool:
        return self.next_page is None
