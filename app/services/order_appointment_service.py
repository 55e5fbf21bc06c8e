"""
Order appointment projection.

Copies the earliest non-rejected booking of an order onto the order row
(appointment_time and warehouse_account) so order lists can show when
goods are next going out without joining the ledger. Recomputed from the
full ledger whenever any of the order's bookings change.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundError
from app.models.order import Order
from app.services.booking_ledger_service import BookingLedgerReader
from app.services.pallet_reconciliation_service import unique_ids

logger = logging.getLogger(__name__)


@dataclass
class OrderAppointmentInfo:
    order_id: int
    appointment_id: Optional[int]
    appointment_time: Optional[datetime]
    warehouse_account: Optional[str]


class OrderAppointmentService:
    """Maintain the earliest-booking fields on orders."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.ledger = BookingLedgerReader(db)

    async def project(self, order_id: int) -> OrderAppointmentInfo:
        """
        Write the earliest booking's time and account onto the order.

        Bookings are ranked by their full scheduled start; identical starts
        go to the lower appointment id, then the lower line id. Both fields are cleared when no eligible line is left.

        Raises:
            NotFoundError: If the order does not exist
        """
        order = await self.db.get(Order, order_id)
        if order is None:
            raise NotFoundError(f"Order {order_id} not found")

        lines = [
            line for line in await self.ledger.lines_for_order(order_id)
            if line.scheduled_start is not None
        ]

        if lines:
            earliest = min(
                lines,
                key=lambda line: (line.scheduled_start, line.appointment_id, line.line_id),
            )
            info = OrderAppointmentInfo(
                order_id=order_id,
                appointment_id=earliest.appointment_id,
                appointment_time=earliest.scheduled_start,
                warehouse_account=earliest.appointment_account,
            )
        else:
            info = OrderAppointmentInfo(
                order_id=order_id,
                appointment_id=None,
                appointment_time=None,
                warehouse_account=None,
            )

        order.appointment_time = info.appointment_time
        order.warehouse_account = info.warehouse_account
        await self.db.flush()

        logger.debug(
            f"Order {order_id} appointment info: "
            f"{info.appointment_time} / {info.warehouse_account}"
        )
        return info

    async def project_many(self, order_ids: Iterable[Optional[int]]) -> List[OrderAppointmentInfo]:
        """Project each distinct order once."""
        return [await self.project(order_id) for order_id in unique_ids(order_ids)]
