"""
Pallet Reconciliation Service.

Keeps the two stored counters of every capacity source consistent with the
booking ledger:

    unbooked  = capacity - sum(effective pallets of all non-rejected lines)
    remaining = capacity - sum(effective pallets of non-rejected lines
                               scheduled strictly before the business day)

Counters are always re-derived from a full read of the ledger, never
patched by arithmetic. Negative values mean the consignment is over-booked
and are stored as-is.

USAGE:
    from app.services.pallet_reconciliation_service import PalletReconciliationService

    async def after_booking(db: AsyncSession, order_detail_id: int):
        service = PalletReconciliationService(db)
        result = await service.reconcile(order_detail_id)
"""

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Iterable, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import InvalidArgumentError
from app.models.inventory import InventoryLot
from app.models.order import OrderDetail
from app.services.booking_ledger_service import BookingLedgerReader
from app.services.capacity_source_service import (
    ActualCapacity,
    CapacitySource,
    CapacitySourceResolver,
    EstimatedCapacity,
)
from app.services.system_timestamp_service import SystemTimestampService

logger = logging.getLogger(__name__)


@dataclass
class CapacityCounters:
    """Counters of one capacity source."""
    source: CapacitySource
    unbooked: Optional[int]
    remaining: Optional[int]

    @property
    def source_type(self) -> str:
        return "actual" if isinstance(self.source, ActualCapacity) else "estimated"

    @property
    def lot_id(self) -> Optional[int]:
        return self.source.lot_id if isinstance(self.source, ActualCapacity) else None

    @property
    def quantity(self) -> int:
        return self.source.quantity


@dataclass
class ReconciliationResult:
    """Outcome of reconciling one consignment."""
    order_detail_id: int
    reference_date: date
    total_effective: int
    expired_effective: int
    counters: List[CapacityCounters] = field(default_factory=list)


def validate_order_detail_id(order_detail_id) -> int:
    """
    Reject identifiers that cannot name a consignment.

    Raises:
        InvalidArgumentError: If the id is not a positive integer
    """
    if isinstance(order_detail_id, bool) or not isinstance(order_detail_id, int) or order_detail_id <= 0:
        raise InvalidArgumentError(f"Invalid order detail id: {order_detail_id!r}")
    return order_detail_id


def unique_ids(ids: Iterable[Optional[int]]) -> List[int]:
    """De-duplicate ids keeping first-seen order, dropping None."""
    seen = set()
    ordered = []
    for item in ids:
        if item is None or item in seen:
            continue
        seen.add(item)
        ordered.append(item)
    return ordered


class PalletReconciliationService:
    """
    Re-derive and persist pallet counters for consignments.

    Runs inside the session it is given: when called right after a booking
    write, the write and its counter update commit (or roll back) together.
    """

    def __init__(self, db: AsyncSession):
        """
        Initialize the service.

        Args:
            db: Async database session; the caller owns commit/rollback
        """
        self.db = db
        self.resolver = CapacitySourceResolver(db)
        self.ledger = BookingLedgerReader(db)
        self.clock = SystemTimestampService(db)

    async def reconcile(self, order_detail_id: int) -> ReconciliationResult:
        """
        Recompute unbooked/remaining counters for one consignment.

        Args:
            order_detail_id: Consignment identifier

        Returns:
            ReconciliationResult with the counters written per source

        Raises:
            InvalidArgumentError: Malformed id
            DataIntegrityGapError: No lot and no estimate for the consignment
            NotConfiguredError: The business clock was never initialized
        """
        validate_order_detail_id(order_detail_id)

        # Lock the rows we are about to write before reading the ledger
        sources = await self.resolver.resolve(order_detail_id, lock=True)
        lines = await self.ledger.lines_for(order_detail_id)
        today = await self.clock.current()

        total_effective = sum(line.effective_pallets for line in lines)
        expired_effective = sum(line.effective_pallets for line in lines if line.is_expired(today))

        result = ReconciliationResult(
            order_detail_id=order_detail_id,
            reference_date=today,
            total_effective=total_effective,
            expired_effective=expired_effective,
        )

        for source in sources:
            unbooked = source.quantity - total_effective
            remaining = source.quantity - expired_effective
            await self._write_counters(source, unbooked, remaining)
            result.counters.append(CapacityCounters(source, unbooked, remaining))

        await self.db.flush()

        logger.debug(
            f"Reconciled order detail {order_detail_id}: {len(sources)} source(s), "
            f"booked={total_effective}, expired={expired_effective}, today={today}"
        )
        return result

    async def reconcile_many(self, order_detail_ids: Iterable[int]) -> List[ReconciliationResult]:
        """Reconcile each distinct consignment once, in ascending id order."""
        results = []
        # Fixed order so concurrent triggers take row locks the same way
        for order_detail_id in sorted(unique_ids(order_detail_ids)):
            results.append(await self.reconcile(order_detail_id))
        return results

    async def get_counters(self, order_detail_id: int) -> List[CapacityCounters]:
        """
        Read the stored counters without recomputing them.

        Raises:
            InvalidArgumentError: Malformed id
            DataIntegrityGapError: No lot and no estimate for the consignment
        """
        validate_order_detail_id(order_detail_id)
        sources = await self.resolver.resolve(order_detail_id)

        counters = []
        for source in sources:
            if isinstance(source, ActualCapacity):
                lot = await self.db.get(InventoryLot, source.lot_id)
                counters.append(
                    CapacityCounters(source, lot.unbooked_pallet_count, lot.remaining_pallet_count)
                )
            else:
                detail = await self.db.get(OrderDetail, source.order_detail_id)
                counters.append(
                    CapacityCounters(source, detail.unbooked_pallets, detail.remaining_pallets)
                )
        return counters

    async def _write_counters(self, source: CapacitySource, unbooked: int, remaining: int) -> None:
        if isinstance(source, ActualCapacity):
            lot = await self.db.get(InventoryLot, source.lot_id)
            lot.unbooked_pallet_count = unbooked
            lot.remaining_pallet_count = remaining
        elif isinstance(source, EstimatedCapacity):
            detail = await self.db.get(OrderDetail, source.order_detail_id)
            detail.unbooked_pallets = unbooked
            detail.remaining_pallets = remaining
        else:
            raise TypeError(f"Unknown capacity source: {source!r}")
