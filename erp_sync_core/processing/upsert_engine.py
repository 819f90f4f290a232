"""
Idempotent reconciliation of external records into the local store.

The external id is the only reconciliation key. Each envelope is written
in its own transaction: the parent row and its line items commit or roll
back together.
"""

from datetime import datetime
from typing import Callable, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..constants import ObjectType, ReconcileOutcome
from ..db.db_base import utc_now
from ..exceptions import PersistenceError
from ..repositories.synced_record_repository import SyncedRecordRepository
from ..schemas.envelope_schemas import Envelope
from ..utils.logger import get_logger
from . import mappers


class UpsertEngine:
    """Insert-or-update of orders and invoices keyed by external id."""

    def __init__(
        self,
        session_factory: Callable[[], Session],
        records: SyncedRecordRepository,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.session_factory = session_factory
        self.records = records
        self.clock = clock or utc_now
        self.logger = get_logger()

    def reconcile(self, envelope: Envelope) -> ReconcileOutcome:
        """
        Write one envelope.

        Last write wins: an existing row has its fields, raw copy and line
        items overwritten. When a concurrent writer inserts the same external
        id first, the unique constraint rejects this insert and the envelope
        is applied once more as an update.

        Returns:
            ReconcileOutcome.INSERTED or ReconcileOutcome.UPDATED

        Raises:
            PersistenceError: The store rejected the write; nothing was committed
        """
        try:
            return self._reconcile_once(envelope)
        except IntegrityError as e:
            self.logger.warning(
                "Concurrent insert detected, retrying as update",
                extra={
                    "object_type": envelope.object_type.value,
                    "external_id": envelope.external_id,
                    "db_error": str(e.orig),
                },
            )

        try:
            return self._reconcile_once(envelope)
        except IntegrityError as e:
            raise PersistenceError(
                f"Could not reconcile {envelope.object_type.value} {envelope.external_id}: {e.orig}",
                cause=e,
                object_type=envelope.object_type.value,
                external_id=envelope.external_id,
            ) from e

    def _reconcile_once(self, envelope: Envelope) -> ReconcileOutcome:
        object_type = envelope.object_type
        synced_at = self.clock()

        if object_type == ObjectType.ORDER:
            fields = mappers.order_fields(envelope, synced_at)
            items = mappers.order_items(envelope)
        else:
            fields = mappers.invoice_fields(envelope, synced_at)
            items = mappers.invoice_items(envelope)

        session = self.session_factory()
        try:
            row = self.records.get_by_external_id(session, object_type, envelope.external_id)
            if row is None:
                row = self.records.insert(session, object_type, fields)
                outcome = ReconcileOutcome.INSERTED
            else:
                self.records.update(row, fields)
                outcome = ReconcileOutcome.UPDATED

            self.records.replace_items(session, object_type, row, items)

            if object_type == ObjectType.INVOICE:
                self._link_order(session, row)

            session.commit()
        except IntegrityError:
            session.rollback()
            raise
        except SQLAlchemyError as e:
            session.rollback()
            raise PersistenceError(
                f"Failed to persist {object_type.value} {envelope.external_id}: {e}",
                cause=e,
                object_type=object_type.value,
                external_id=envelope.external_id,
            ) from e
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

        self.logger.info(
            f"{object_type.value.capitalize()} {outcome.value}",
            extra={
                "object_type": object_type.value,
                "external_id": envelope.external_id,
                "outcome": outcome.value,
                "item_count": len(items),
            },
        )
        return outcome

    def _link_order(self, session: Session, invoice) -> None:
        """Attach an invoice to the synced order with the same store order number."""
        if not invoice.store_order_number:
            return

        order = self.records.find_order_by_store_number(session, invoice.store_order_number)
        if order is not None and invoice.order_id != order.id:
            invoice.order_id = order.id
            self.logger.debug(
                "Invoice linked to order",
                extra={"invoice_external_id": invoice.external_id, "order_external_id": order.external_id},
            )
