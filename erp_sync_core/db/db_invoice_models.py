"""
Local copies of external invoices (NF-e) and their line items.
"""

from sqlalchemy import Column, Date, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import relationship

from .db_base import JSON, TimestampMixin, UTCDateTime, UUIDMixin, utc_now
from .db_config import Base


class SyncedInvoice(Base, UUIDMixin, TimestampMixin):
    """One external invoice; ``external_id`` is the reconciliation key."""

    __tablename__ = "synced_invoices"

    external_id = Column(String(100), nullable=False, unique=True)

    number = Column(Integer, nullable=True)
    series = Column(String(10), nullable=True)
    access_key = Column(String(60), nullable=True)
    invoice_type = Column(Integer, nullable=True)
    purpose = Column(Integer, nullable=True)

    status = Column(Integer, nullable=True)
    status_name = Column(String(100), nullable=True)

    issued_on = Column(Date, nullable=True)
    operation_date = Column(Date, nullable=True)

    contact_external_id = Column(String(100), nullable=True)
    contact_name = Column(String(255), nullable=True)
    contact_document = Column(String(50), nullable=True)
    contact_address = Column(JSON, nullable=True)

    freight_total = Column(Numeric(14, 2), nullable=False, default=0)
    total_amount = Column(Numeric(14, 2), nullable=False, default=0)

    xml_url = Column(String(1000), nullable=True)
    danfe_url = Column(String(1000), nullable=True)
    pdf_url = Column(String(1000), nullable=True)

    store_order_number = Column(String(100), nullable=True, index=True)
    order_id = Column(
        String(36), ForeignKey("synced_orders.id", ondelete="SET NULL"), nullable=True
    )

    raw_data = Column(JSON, nullable=False)
    synced_at = Column(UTCDateTime, default=utc_now, nullable=False)

    items = relationship(
        "SyncedInvoiceItem",
        back_populates="invoice",
        cascade="all, delete-orphan",
        order_by="SyncedInvoiceItem.position",
    )
    order = relationship("SyncedOrder")


class SyncedInvoiceItem(Base, UUIDMixin):
    """Line item of a synced invoice."""

    __tablename__ = "synced_invoice_items"

    invoice_id = Column(
        String(36), ForeignKey("synced_invoices.id", ondelete="CASCADE"), nullable=False, index=True
    )
    position = Column(Integer, nullable=False, default=0)

    code = Column(String(100), nullable=True)
    description = Column(String(500), nullable=False, default="")
    unit = Column(String(20), nullable=True)
    quantity = Column(Numeric(14, 4), nullable=False, default=0)
    unit_price = Column(Numeric(14, 4), nullable=False, default=0)
    total = Column(Numeric(14, 2), nullable=False, default=0)
    item_type = Column(String(10), nullable=True)
    ncm = Column(String(20), nullable=True)
    cfop = Column(String(10), nullable=True)
    origin = Column(Integer, nullable=True)
    gtin = Column(String(20), nullable=True)
    taxes = Column(JSON, nullable=True)

    invoice = relationship("SyncedInvoice", back_populates="items")
