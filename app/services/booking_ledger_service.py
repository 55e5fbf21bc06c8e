"""
Booking Ledger Reader.

Reads every booking line of a consignment (or of all consignments of an
order) together with its appointment's schedule. Lines of rejected
appointments are left out. Always a full read, never a delta.
"""

from dataclasses import dataclass
from datetime import date, datetime
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.appointment import AppointmentDetailLine, DeliveryAppointment
from app.models.order import OrderDetail


@dataclass(frozen=True)
class BookingLineView:
    """A booking line as seen by reconciliation."""
    line_id: int
    appointment_id: int
    order_detail_id: int
    estimated_pallets: int
    rejected_pallets: int
    scheduled_start: Optional[datetime]
    appointment_account: Optional[str]

    @property
    def effective_pallets(self) -> int:
        return self.estimated_pallets - self.rejected_pallets

    @property
    def scheduled_date(self) -> Optional[date]:
        return self.scheduled_start.date() if self.scheduled_start else None

    def is_expired(self, today: date) -> bool:
        """Scheduled strictly before today. A line due today is still active."""
        return self.scheduled_date is not None and self.scheduled_date < today


class BookingLedgerReader:
    """Full reads of the non-rejected booking ledger."""

    def __init__(self, db: AsyncSession):
        self.db = db

    def _base_query(self):
        return (
            select(
                AppointmentDetailLine.id,
                AppointmentDetailLine.appointment_id,
                AppointmentDetailLine.order_detail_id,
                AppointmentDetailLine.estimated_pallets,
                AppointmentDetailLine.rejected_pallets,
                DeliveryAppointment.confirmed_start,
                DeliveryAppointment.requested_start,
                DeliveryAppointment.appointment_account,
            )
            .join(DeliveryAppointment, AppointmentDetailLine.appointment_id == DeliveryAppointment.id)
            .where(DeliveryAppointment.rejected.is_(False))
            .order_by(AppointmentDetailLine.appointment_id, AppointmentDetailLine.id)
        )

    async def _fetch(self, query) -> List[BookingLineView]:
        result = await self.db.execute(query)
        return [
            BookingLineView(
                line_id=row.id,
                appointment_id=row.appointment_id,
                order_detail_id=row.order_detail_id,
                estimated_pallets=row.estimated_pallets or 0,
                rejected_pallets=row.rejected_pallets or 0,
                scheduled_start=row.confirmed_start or row.requested_start,
                appointment_account=row.appointment_account,
            )
            for row in result.all()
        ]

    async def lines_for(self, order_detail_id: int) -> List[BookingLineView]:
        """All non-rejected booking lines of one consignment."""
        query = self._base_query().where(
            AppointmentDetailLine.order_detail_id == order_detail_id
        )
        return await self._fetch(query)

    async def lines_for_order(self, order_id: int) -> List[BookingLineView]:
        """All non-rejected booking lines across every consignment of an order."""
        query = (
            self._base_query()
            .join(OrderDetail, AppointmentDetailLine.order_detail_id == OrderDetail.id)
            .where(OrderDetail.order_id == order_id)
        )
        return await self._fetch(query)
