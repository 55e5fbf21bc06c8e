"""
Pallet Ledger Jobs

Background jobs for the pallet ledger:
- Advancing the business clock on a fixed cadence
- Full reconciliation of every consignment (drift repair, and moving
  bookings from active to expired after the clock crosses a day)
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import date
from typing import List, Optional

from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import async_sessionmaker

from app.config import settings
from app.core.exceptions import ConcurrentWriteConflictError, is_serialization_failure
from app.database import transaction_scope
from app.services.capacity_source_service import CapacitySourceResolver
from app.services.pallet_reconciliation_service import PalletReconciliationService
from app.services.system_timestamp_service import SystemTimestampService

logger = logging.getLogger(__name__)

SCHEDULER_ACTOR = "system:scheduler"


@dataclass
class ReconciliationFailure:
    order_detail_id: int
    reason: str
    error_type: str


@dataclass
class BatchReconciliationReport:
    """Aggregate outcome of a full reconciliation run."""
    processed: int = 0
    failed: int = 0
    failures: List[ReconciliationFailure] = field(default_factory=list)
    last_id: Optional[int] = None
    cancelled: bool = False
    reference_date: Optional[date] = None

    @property
    def failed_ids(self) -> List[int]:
        return [failure.order_detail_id for failure in self.failures]


class PalletReconciliationJob:
    """
    Re-derive counters for every known consignment.

    Each consignment is reconciled in its own transaction; a failure is
    rolled back, recorded in the report and the scan moves on. Running the
    job twice with no ledger change in between writes identical counters.
    """

    def __init__(
        self,
        factory: Optional[async_sessionmaker] = None,
        max_retries: Optional[int] = None,
    ):
        """
        Args:
            factory: Session factory for the per-consignment transactions
                (application factory by default)
            max_retries: Retries per consignment on serialization failures
        """
        self.factory = factory
        self.max_retries = settings.RECONCILE_MAX_RETRIES if max_retries is None else max_retries

    async def _reconcile_one(self, order_detail_id: int) -> None:
        attempt = 0
        while True:
            attempt += 1
            try:
                async with transaction_scope(factory=self.factory) as session:
                    await PalletReconciliationService(session).reconcile(order_detail_id)
                return
            except DBAPIError as e:
                if not is_serialization_failure(e):
                    raise
                if attempt > self.max_retries:
                    raise ConcurrentWriteConflictError(order_detail_id, attempt) from e
                logger.info(
                    f"Serialization conflict on order detail {order_detail_id}, "
                    f"retry {attempt}/{self.max_retries}"
                )

    async def run_full(
        self,
        start_after_id: Optional[int] = None,
        limit: Optional[int] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> BatchReconciliationReport:
        """
        Reconcile every consignment known through either capacity source.

        Args:
            start_after_id: Resume after this consignment id
            limit: Stop after this many consignments
            cancel_event: Checked between consignments; when set the run
                stops and the report is marked cancelled

        Returns:
            BatchReconciliationReport; last_id is the last consignment
            attempted, usable as the next start_after_id

        Raises:
            NotConfiguredError: The business clock was never initialized
        """
        report = BatchReconciliationReport()

        async with transaction_scope(factory=self.factory) as session:
            # Without a business day nothing can be classified as expired
            report.reference_date = await SystemTimestampService(session).current()
            order_detail_ids = await CapacitySourceResolver(session).list_consignment_ids(
                start_after_id=start_after_id, limit=limit
            )

        logger.info(
            f"Starting pallet reconciliation of {len(order_detail_ids)} consignment(s) "
            f"(business day {report.reference_date})"
        )

        for order_detail_id in order_detail_ids:
            if cancel_event is not None and cancel_event.is_set():
                report.cancelled = True
                logger.warning(f"Pallet reconciliation cancelled after id {report.last_id}")
                break

            report.last_id = order_detail_id
            try:
                await self._reconcile_one(order_detail_id)
                report.processed += 1
            except Exception as e:
                report.failed += 1
                report.failures.append(ReconciliationFailure(
                    order_detail_id=order_detail_id,
                    reason=str(e),
                    error_type=type(e).__name__,
                ))
                logger.warning(f"Reconciliation failed for order detail {order_detail_id}: {e}")

        logger.info(
            f"Pallet reconciliation completed: {report.processed} processed, "
            f"{report.failed} failed"
        )
        return report


async def advance_system_timestamp(interval_minutes: Optional[int] = None):
    """
    Advance the business clock by the configured interval.

    Runs on the SYSTEM_TIMESTAMP_ADVANCE_MINUTES cadence.
    """
    from app.database import get_db_session

    minutes = interval_minutes or settings.SYSTEM_TIMESTAMP_ADVANCE_MINUTES
    try:
        async with get_db_session() as session:
            new_value = await SystemTimestampService(session, actor_id=SCHEDULER_ACTOR).advance(minutes)
        return new_value
    except Exception as e:
        logger.error(f"System timestamp advance failed: {e}")
        return None


async def reconcile_all_pallets():
    """Nightly full pallet reconciliation."""
    try:
        report = await PalletReconciliationJob().run_full()
        if report.failures:
            logger.warning(f"Pallet reconciliation failed ids: {report.failed_ids}")
        return report
    except Exception as e:
        logger.error(f"Pallet reconciliation job failed: {e}")
        return None
