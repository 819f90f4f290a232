"""
Local copies of external sales orders and their line items.
"""

from sqlalchemy import Column, Date, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import relationship

from .db_base import JSON, TimestampMixin, UTCDateTime, UUIDMixin, utc_now
from .db_config import Base


class SyncedOrder(Base, UUIDMixin, TimestampMixin):
    """One external sales order; ``external_id`` is the reconciliation key."""

    __tablename__ = "synced_orders"

    external_id = Column(String(100), nullable=False, unique=True)

    number = Column(String(50), nullable=True)
    store_order_number = Column(String(100), nullable=True, index=True)
    order_date = Column(Date, nullable=True)
    ship_date = Column(Date, nullable=True)

    contact_external_id = Column(String(100), nullable=True)
    contact_name = Column(String(255), nullable=True)
    contact_document = Column(String(50), nullable=True)

    marketplace = Column(String(100), nullable=True)
    total_products = Column(Numeric(14, 2), nullable=False, default=0)
    discount_total = Column(Numeric(14, 2), nullable=False, default=0)
    freight_total = Column(Numeric(14, 2), nullable=False, default=0)
    other_expenses = Column(Numeric(14, 2), nullable=False, default=0)
    total_amount = Column(Numeric(14, 2), nullable=False, default=0)
    payment_method = Column(String(255), nullable=True)

    status_id = Column(Integer, nullable=True)
    status_name = Column(String(100), nullable=True)
    seller_external_id = Column(String(100), nullable=True)

    intermediary_cnpj = Column(String(20), nullable=True)
    intermediary_user = Column(String(255), nullable=True)
    commission_fee = Column(Numeric(14, 2), nullable=True)
    marketplace_freight_cost = Column(Numeric(14, 2), nullable=True)

    notes = Column(Text, nullable=True)
    internal_notes = Column(Text, nullable=True)
    shipping = Column(JSON, nullable=True)
    invoice_external_id = Column(String(100), nullable=True)

    raw_data = Column(JSON, nullable=False)
    synced_at = Column(UTCDateTime, default=utc_now, nullable=False)

    items = relationship(
        "SyncedOrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="SyncedOrderItem.position",
    )


class SyncedOrderItem(Base, UUIDMixin):
    """Line item of a synced order; replaced as a whole on every sync."""

    __tablename__ = "synced_order_items"

    order_id = Column(
        String(36), ForeignKey("synced_orders.id", ondelete="CASCADE"), nullable=False, index=True
    )
    position = Column(Integer, nullable=False, default=0)

    product_external_id = Column(String(100), nullable=True)
    product_code = Column(String(100), nullable=True)
    description = Column(String(500), nullable=False, default="")
    quantity = Column(Numeric(14, 4), nullable=False, default=0)
    unit_price = Column(Numeric(14, 4), nullable=False, default=0)
    discount = Column(Numeric(14, 2), nullable=False, default=0)
    total = Column(Numeric(14, 2), nullable=False, default=0)

    order = relationship("SyncedOrder", back_populates="items")
