"""
Row-level operations on synced orders and invoices.

These helpers work inside a session the caller controls, so the upsert
engine can put the parent row and its line items in one transaction.
"""

from typing import Any, Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from ..constants import ObjectType
from ..db.db_invoice_models import SyncedInvoice, SyncedInvoiceItem
from ..db.db_order_models import SyncedOrder, SyncedOrderItem
from .base_repository import BaseRepository

MODELS_BY_TYPE = {
    ObjectType.ORDER: (SyncedOrder, SyncedOrderItem),
    ObjectType.INVOICE: (SyncedInvoice, SyncedInvoiceItem),
}


class SyncedRecordRepository(BaseRepository):
    """Generic insert/update/item-replacement for the synced tables."""

    @staticmethod
    def models_for(object_type: ObjectType):
        return MODELS_BY_TYPE[ObjectType(object_type)]

    def get_by_external_id(
        self, session: Session, object_type: ObjectType, external_id: str
    ) -> Optional[Any]:
        model, _ = self.models_for(object_type)
        return session.query(model).filter(model.external_id == external_id).one_or_none()

    def insert(self, session: Session, object_type: ObjectType, fields: Dict[str, Any]) -> Any:
        model, _ = self.models_for(object_type)
        row = model(**fields)
        session.add(row)
        session.flush()
        return row

    @staticmethod
    def update(row: Any, fields: Dict[str, Any]) -> Any:
        for key, value in fields.items():
            setattr(row, key, value)
        return row

    def replace_items(
        self, session: Session, object_type: ObjectType, row: Any, items: List[Dict[str, Any]]
    ) -> int:
        """Delete every line item of ``row`` and insert ``items`` in order."""
        _, item_model = self.models_for(object_type)
        row.items.clear()
        session.flush()
        for position, item in enumerate(items):
            row.items.append(item_model(position=position, **item))
        session.flush()
        return len(items)

    @staticmethod
    def find_order_by_store_number(session: Session, store_order_number: str) -> Optional[SyncedOrder]:
        return (
            session.query(SyncedOrder)
            .filter(SyncedOrder.store_order_number == store_order_number)
            .order_by(SyncedOrder.synced_at.desc())
            .first()
        )

    def count(self, object_type: ObjectType) -> int:
        model, _ = self.models_for(object_type)
        with self.session_scope("count_synced_records") as session:
            return session.query(func.count(model.id)).scalar() or 0
