"""
Capacity Source Resolver.

Decides which pallet quantity bookings of a consignment are measured
against. Before receipt that is the order detail's estimate; from the first
received lot onwards it is each lot's physical count. The answer can change
between two calls (a receipt lands), so it is re-read every time.
"""

from dataclasses import dataclass
from typing import List, Optional, Union

from sqlalchemy import select, union
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import DataIntegrityGapError, NotFoundError
from app.models.inventory import InventoryLot
from app.models.order import OrderDetail


@dataclass(frozen=True)
class EstimatedCapacity:
    """Pre-receipt capacity: the planned pallets on the order detail."""
    order_detail_id: int
    quantity: int


@dataclass(frozen=True)
class ActualCapacity:
    """Post-receipt capacity: one physical lot."""
    lot_id: int
    order_detail_id: int
    quantity: int


CapacitySource = Union[EstimatedCapacity, ActualCapacity]


class CapacitySourceResolver:
    """Resolve the authoritative capacity source(s) of a consignment."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def resolve(self, order_detail_id: int, lock: bool = False) -> List[CapacitySource]:
        """
        Resolve capacity sources for an order detail.

        Args:
            order_detail_id: Consignment identifier
            lock: Take row locks on the rows that reconciliation will write,
                serializing concurrent reconciliations of the same consignment

        Returns:
            One ActualCapacity per lot ordered by lot id, or a single
            EstimatedCapacity when nothing has been received yet

        Raises:
            DataIntegrityGapError: No lot and no estimate recorded
        """
        lot_query = (
            select(InventoryLot)
            .where(InventoryLot.order_detail_id == order_detail_id)
            .order_by(InventoryLot.id)
        )
        if lock:
            lot_query = lot_query.with_for_update().execution_options(populate_existing=True)
        lots = (await self.db.execute(lot_query)).scalars().all()

        if lots:
            return [
                ActualCapacity(
                    lot_id=lot.id,
                    order_detail_id=order_detail_id,
                    quantity=lot.pallet_count or 0,
                )
                for lot in lots
            ]

        detail_query = select(OrderDetail).where(OrderDetail.id == order_detail_id)
        if lock:
            detail_query = detail_query.with_for_update().execution_options(populate_existing=True)
        detail = (await self.db.execute(detail_query)).scalar_one_or_none()

        if detail is None or detail.estimated_pallets is None:
            raise DataIntegrityGapError(order_detail_id)

        return [EstimatedCapacity(order_detail_id=order_detail_id, quantity=detail.estimated_pallets)]

    async def get_order_detail(self, order_detail_id: int) -> OrderDetail:
        """Load an order detail or raise NotFoundError."""
        detail = await self.db.get(OrderDetail, order_detail_id)
        if detail is None:
            raise NotFoundError(f"Order detail {order_detail_id} not found")
        return detail

    async def list_consignment_ids(
        self,
        start_after_id: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> List[int]:
        """
        All consignment ids known through either capacity source, ascending.

        Args:
            start_after_id: Only ids greater than this (resume point)
            limit: Maximum number of ids to return
        """
        ids = union(
            select(OrderDetail.id.label("id")),
            select(InventoryLot.order_detail_id.label("id")),
        ).subquery()
        query = select(ids.c.id).order_by(ids.c.id)
        if start_after_id is not None:
            query = query.where(ids.c.id > start_after_id)
        if limit is not None:
            query = query.limit(limit)
        result = await self.db.execute(query)
        return list(result.scalars().all())
