"""
Inventory Lot Service - receipt-side writes.

Receiving the first lot of a consignment switches its capacity source from
the order estimate to the physical count; the consignment is reconciled in
the same session so the switch is visible as soon as the receipt commits.
"""

import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import InvalidArgumentError, NotFoundError
from app.models.inventory import InventoryLot
from app.services.capacity_source_service import CapacitySourceResolver
from app.services.pallet_reconciliation_service import PalletReconciliationService
from app.services.system_timestamp_service import SystemTimestampService

logger = logging.getLogger(__name__)


def _validate_pallet_count(pallet_count) -> int:
    if isinstance(pallet_count, bool) or not isinstance(pallet_count, int) or pallet_count < 0:
        raise InvalidArgumentError(f"pallet_count must be a non-negative integer, got {pallet_count!r}")
    return pallet_count


class InventoryLotService:
    """Receive lots and record recounts, reconciling after each write."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.reconciler = PalletReconciliationService(db)

    async def get_lot(self, lot_id: int) -> InventoryLot:
        lot = await self.db.get(InventoryLot, lot_id)
        if lot is None:
            raise NotFoundError(f"Inventory lot {lot_id} not found")
        return lot

    async def receive_lot(
        self,
        order_detail_id: int,
        pallet_count: int,
        lot_number: Optional[str] = None,
    ) -> InventoryLot:
        """
        Record a physical receipt for an order detail.

        Args:
            order_detail_id: Consignment being received
            pallet_count: Pallets physically counted
            lot_number: Optional warehouse lot reference

        Returns:
            The new lot with its counters already reconciled

        Raises:
            InvalidArgumentError: Negative pallet count
            NotFoundError: Unknown order detail
            NotConfiguredError: The business clock was never initialized
        """
        _validate_pallet_count(pallet_count)

        await CapacitySourceResolver(self.db).get_order_detail(order_detail_id)

        received_at = await SystemTimestampService(self.db).get_current_timestamp()

        lot = InventoryLot(
            order_detail_id=order_detail_id,
            pallet_count=pallet_count,
            lot_number=lot_number,
            received_at=received_at,
        )
        self.db.add(lot)
        await self.db.flush()

        await self.reconciler.reconcile(order_detail_id)

        logger.info(
            f"Received lot {lot.id} for order detail {order_detail_id}: {pallet_count} pallets"
        )
        return lot

    async def update_pallet_count(self, lot_id: int, pallet_count: int) -> InventoryLot:
        """Apply a physical recount to a lot and reconcile its consignment."""
        _validate_pallet_count(pallet_count)
        lot = await self.get_lot(lot_id)

        old_count = lot.pallet_count
        lot.pallet_count = pallet_count
        await self.db.flush()

        await self.reconciler.reconcile(lot.order_detail_id)

        logger.info(f"Lot {lot_id} recounted: {old_count} -> {pallet_count} pallets")
        return lot
