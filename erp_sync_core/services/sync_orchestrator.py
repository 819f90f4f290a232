"""
Sync orchestrator: the three trigger paths that feed the upsert engine.

- Webhook: one record, pushed by the provider. Failures propagate so the
  sender re-delivers.
- Incremental poll: everything changed since the cursor. The cursor moves
  to the run's start time only when every page was fetched and every
  record reconciled.
- Historical backfill: an operator-chosen date range, exhaustively paged.
  Never touches the cursor.
"""

import uuid
from contextlib import contextmanager
from datetime import date, datetime, timedelta, timezone
from typing import Callable, Iterator, List, Optional

from ..constants import ObjectType, OperationStatus, ReconcileOutcome, SyncTrigger
from ..db.db_base import utc_now
from ..exceptions import (
    AuthNotConfiguredError,
    BaseError,
    ErrorCode,
    RefreshFailedError,
    ValidationError,
    clear_correlation_id,
    get_correlation_id,
    set_correlation_id,
)
from ..repositories.cursor_repository import SyncCursorRepository
from ..repositories.sync_log_repository import SyncLogRepository
from ..schemas.envelope_schemas import Envelope, EnvelopePage
from ..schemas.sync_schemas import RecordError, SyncResult
from ..utils.logger import get_logger

# Failures that make every further request pointless
FATAL_ERRORS = (AuthNotConfiguredError, RefreshFailedError)


class SyncOrchestrator:
    def __init__(
        self,
        api_client,
        upsert_engine,
        cursors: SyncCursorRepository,
        sync_log: Optional[SyncLogRepository] = None,
        initial_lookback_hours: int = 24,
        fetch_detail: bool = True,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """
        Args:
            api_client: ExternalApiClient (or anything with the same methods)
            upsert_engine: UpsertEngine
            cursors: Cursor persistence
            sync_log: Audit log; None disables audit rows
            initial_lookback_hours: Poll window when no cursor exists yet
            fetch_detail: Re-fetch each listed record before reconciling it
            clock: Returns the current UTC datetime
        """
        self.api_client = api_client
        self.upsert_engine = upsert_engine
        self.cursors = cursors
        self.sync_log = sync_log
        self.initial_lookback = timedelta(hours=initial_lookback_hours)
        self.fetch_detail = fetch_detail
        self.clock = clock or utc_now
        self.logger = get_logger()

    # ==================== TRIGGERS ====================

    def handle_webhook(self, object_type: ObjectType, external_id: str) -> SyncResult:
        """
        Fetch and reconcile one record announced by a webhook.

        Raises:
            BaseError: Any fetch or persistence failure, unchanged
        """
        object_type = ObjectType(object_type)
        with self._run(SyncTrigger.WEBHOOK, object_type) as result:
            try:
                envelope = self.api_client.get_record(object_type, external_id)
                outcome = self.upsert_engine.reconcile(envelope)
            except BaseError as e:
                self._audit(
                    SyncTrigger.WEBHOOK,
                    object_type,
                    "reconcile",
                    OperationStatus.ERROR,
                    external_id=external_id,
                    error_message=e.message,
                )
                raise

            self._count(result, outcome)
            self._audit(
                SyncTrigger.WEBHOOK, object_type, outcome.value, OperationStatus.SUCCESS, external_id
            )
        return result

    def poll(self, object_type: ObjectType) -> SyncResult:
        """
        Incremental sync of records changed since the cursor.

        Per-record failures are collected and the run continues; a page
        failure ends the run. Either way the cursor stays where it was.

        Raises:
            AuthNotConfiguredError, RefreshFailedError: Immediately
        """
        object_type = ObjectType(object_type)
        started_at = self.clock()
        since = self.cursors.get(object_type) or started_at - self.initial_lookback

        with self._run(SyncTrigger.POLL, object_type) as result:
            result.window_start = since
            result.window_end = started_at

            completed = self._sync_pages(
                result,
                SyncTrigger.POLL,
                object_type,
                lambda page: self.api_client.list_changed(object_type, since, page, started_at),
            )

            if completed and not result.errors:
                result.cursor_advanced = self.cursors.advance(object_type, started_at)
            else:
                self.logger.warning(
                    "Sync cursor left unchanged",
                    extra={
                        "object_type": object_type.value,
                        "completed": completed,
                        "error_count": len(result.errors),
                    },
                )
        return result

    def poll_all(self) -> List[SyncResult]:
        """Incremental sync of every object type, orders first."""
        return [self.poll(object_type) for object_type in ObjectType]

    def backfill(self, object_type: ObjectType, start: date, end: date) -> SyncResult:
        """
        Historical import of ``[start, end]``. Does not read or move the cursor.

        Raises:
            ValidationError: If ``start`` is after ``end``
        """
        object_type = ObjectType(object_type)
        if start > end:
            raise ValidationError(
                f"Backfill start {start} is after end {end}",
                field="start",
                error_code=ErrorCode.INVALID_FORMAT,
            )

        with self._run(SyncTrigger.BACKFILL, object_type) as result:
            result.window_start = datetime(start.year, start.month, start.day, tzinfo=timezone.utc)
            result.window_end = datetime(end.year, end.month, end.day, tzinfo=timezone.utc)
            self._sync_pages(
                result,
                SyncTrigger.BACKFILL,
                object_type,
                lambda page: self.api_client.list_range(object_type, start, end, page),
            )
        return result

    # ==================== INTERNALS ====================

    @contextmanager
    def _run(self, trigger: SyncTrigger, object_type: ObjectType) -> Iterator[SyncResult]:
        previous = get_correlation_id()
        correlation_id = str(uuid.uuid4())
        set_correlation_id(correlation_id)

        result = SyncResult(trigger=trigger, object_type=object_type, correlation_id=correlation_id)
        self.logger.info(
            f"Starting {trigger.value} sync",
            extra={"trigger": trigger.value, "object_type": object_type.value},
        )
        try:
            yield result
            self.logger.info(
                f"Finished {trigger.value} sync",
                extra={
                    "trigger": trigger.value,
                    "object_type": object_type.value,
                    "inserted": result.inserted,
                    "updated": result.updated,
                    "pages": result.pages,
                    "error_count": len(result.errors),
                    "cursor_advanced": result.cursor_advanced,
                },
            )
        finally:
            if previous:
                set_correlation_id(previous)
            else:
                clear_correlation_id()

    def _sync_pages(
        self,
        result: SyncResult,
        trigger: SyncTrigger,
        object_type: ObjectType,
        fetch_page: Callable[[int], EnvelopePage],
    ) -> bool:
        """Walk pages until ``next_page`` is None. Returns False if a page failed."""
        page: Optional[int] = 1
        while page is not None:
            try:
                listing = fetch_page(page)
            except FATAL_ERRORS:
                raise
            except BaseError as e:
                result.errors.append(
                    RecordError(page=page, error_code=e.error_code.value, message=e.message)
                )
                self._audit(
                    trigger,
                    object_type,
                    "list",
                    OperationStatus.ERROR,
                    error_message=e.message,
                    payload={"page": page},
                )
                self.logger.error(
                    f"Listing page {page} failed, stopping run",
                    extra={"object_type": object_type.value, "page": page, "error_code": e.error_code.value},
                )
                return False

            result.pages += 1
            for envelope in listing.items:
                self._reconcile_listed(
                    result, trigger, object_type, envelope.external_id, envelope
                )
            for rejected in listing.rejected:
                if self.fetch_detail and rejected.external_id:
                    # Only the summary was unusable; the detail record may parse
                    self._reconcile_listed(result, trigger, object_type, rejected.external_id)
                else:
                    self._reject(result, trigger, object_type, rejected)
            page = listing.next_page

        return True

    def _reconcile_listed(
        self,
        result: SyncResult,
        trigger: SyncTrigger,
        object_type: ObjectType,
        external_id: str,
        envelope: Optional[Envelope] = None,
    ) -> None:
        try:
            if self.fetch_detail or envelope is None:
                envelope = self.api_client.get_record(object_type, external_id)
            outcome = self.upsert_engine.reconcile(envelope)
        except FATAL_ERRORS:
            raise
        except BaseError as e:
            result.errors.append(
                RecordError(external_id=external_id, error_code=e.error_code.value, message=e.message)
            )
            self._audit(
                trigger,
                object_type,
                "reconcile",
                OperationStatus.ERROR,
                external_id=external_id,
                error_message=e.message,
            )
            return

        self._count(result, outcome)
        self._audit(trigger, object_type, outcome.value, OperationStatus.SUCCESS, external_id)

    def _reject(
        self,
        result: SyncResult,
        trigger: SyncTrigger,
        object_type: ObjectType,
        error: RecordError,
    ) -> None:
        result.errors.append(error)
        self._audit(
            trigger,
            object_type,
            "parse",
            OperationStatus.ERROR,
            external_id=error.external_id,
            error_message=error.message,
            payload={"page": error.page},
        )

    @staticmethod
    def _count(result: SyncResult, outcome: ReconcileOutcome) -> None:
        if outcome == ReconcileOutcome.INSERTED:
            result.inserted += 1
        else:
            result.updated += 1

    def _audit(
        self,
        trigger: SyncTrigger,
        object_type: ObjectType,
        action: str,
        status: OperationStatus,
        external_id: Optional[str] = None,
        error_message: Optional[str] = None,
        payload: Optional[dict] = None,
    ) -> None:
        if self.sync_log is None:
            return
        self.sync_log.record(
            trigger=trigger,
            object_type=object_type,
            action=action,
            status=status,
            external_id=external_id,
            error_message=error_message,
            payload=payload,
        )
