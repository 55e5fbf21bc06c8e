"""
Appointment Service - booking-side writes.

Every write that changes the booking ledger (lines created, edited, moved
or deleted, appointments rescheduled, rejected or deleted) reconciles each
affected consignment and re-projects each affected order in the same
session, so the write and its counter effects commit together.

USAGE:
    from app.services.appointment_service import AppointmentService

    async def book(db: AsyncSession):
        service = AppointmentService(db, actor_id="planner@example.com")
        line = await service.create_line(appointment_id=1, order_detail_id=7, estimated_pallets=4)
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.config import settings
from app.core.exceptions import InvalidArgumentError, NotFoundError
from app.database import transaction_scope
from app.models.appointment import AppointmentDetailLine, DeliveryAppointment
from app.models.order import Order, OrderDetail
from app.services.booking_ledger_service import BookingLedgerReader
from app.services.capacity_source_service import CapacitySourceResolver
from app.services.order_appointment_service import OrderAppointmentService
from app.services.pallet_reconciliation_service import PalletReconciliationService, unique_ids

logger = logging.getLogger(__name__)


APPOINTMENT_UPDATABLE_FIELDS = {
    "appointment_account",
    "requested_start",
    "confirmed_start",
    "rejected",
    "order_id",
}


@dataclass
class MoveLinesResult:
    moved: int
    source_appointment_id: int
    target_appointment_id: int
    line_ids: List[int] = field(default_factory=list)


@dataclass
class BatchDeleteResult:
    """Outcome of deleting several appointments, one transaction each."""
    deleted: int = 0
    failed: int = 0
    deleted_ids: List[int] = field(default_factory=list)
    failures: List[Dict[str, Any]] = field(default_factory=list)


def _validate_pallets(name: str, value) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise InvalidArgumentError(f"{name} must be a non-negative integer, got {value!r}")
    return value


class AppointmentService:
    """Booking-side writes with synchronous reconciliation."""

    def __init__(self, db: AsyncSession, actor_id: Optional[str] = None):
        """
        Initialize the service.

        Args:
            db: Async database session; the caller owns commit/rollback
            actor_id: Identity recorded in created_by/updated_by
        """
        self.db = db
        self.actor_id = actor_id
        self.reconciler = PalletReconciliationService(db)
        self.projection = OrderAppointmentService(db)

    # ==================== Lookups ====================

    async def get_appointment(self, appointment_id: int) -> DeliveryAppointment:
        appointment = await self.db.get(DeliveryAppointment, appointment_id)
        if appointment is None:
            raise NotFoundError(f"Appointment {appointment_id} not found")
        return appointment

    async def get_line(self, line_id: int) -> AppointmentDetailLine:
        line = await self.db.get(AppointmentDetailLine, line_id)
        if line is None:
            raise NotFoundError(f"Appointment detail line {line_id} not found")
        return line

    async def get_lines(self, appointment_id: int) -> List[AppointmentDetailLine]:
        result = await self.db.execute(
            select(AppointmentDetailLine)
            .where(AppointmentDetailLine.appointment_id == appointment_id)
            .order_by(AppointmentDetailLine.id)
        )
        return list(result.scalars().all())

    async def _get_by_reference(self, reference_number: str) -> Optional[DeliveryAppointment]:
        result = await self.db.execute(
            select(DeliveryAppointment).where(DeliveryAppointment.reference_number == reference_number)
        )
        return result.scalar_one_or_none()

    async def _available_pallets(self, order_detail_id: int) -> int:
        """
        Capacity minus everything booked right now (may be negative).

        Split receipts are summed: the guard and the booking snapshot look at
        the consignment as a whole, while each stored lot counter is that
        lot's own quantity minus the same booked total.
        """
        sources = await CapacitySourceResolver(self.db).resolve(order_detail_id)
        lines = await BookingLedgerReader(self.db).lines_for(order_detail_id)
        capacity = sum(source.quantity for source in sources)
        return capacity - sum(line.effective_pallets for line in lines)

    def _check_overbooking(self, order_detail_id: int, requested: int, available: int) -> None:
        if settings.BOOKING_OVERBOOK_ALLOWED or requested <= 0:
            return
        if requested > available:
            raise InvalidArgumentError(
                f"Cannot book {requested} pallets of order detail {order_detail_id}: "
                f"only {available} unbooked"
            )

    # ==================== Recompute ====================

    async def _refresh_total_pallets(self, appointment_ids: Iterable[int]) -> None:
        """Recompute the informational pallet total of each appointment."""
        await self.db.flush()
        for appointment_id in unique_ids(appointment_ids):
            total = await self.db.scalar(
                select(func.coalesce(func.sum(AppointmentDetailLine.estimated_pallets), 0))
                .where(AppointmentDetailLine.appointment_id == appointment_id)
            )
            appointment = await self.db.get(DeliveryAppointment, appointment_id)
            if appointment is not None:
                appointment.total_pallets = int(total or 0)

    async def _after_ledger_change(
        self,
        order_detail_ids: Iterable[int],
        extra_order_ids: Iterable[Optional[int]] = (),
    ) -> None:
        """Reconcile touched consignments and re-project their orders."""
        await self.db.flush()

        detail_ids = unique_ids(order_detail_ids)
        await self.reconciler.reconcile_many(detail_ids)

        order_ids: List[Optional[int]] = []
        if detail_ids:
            result = await self.db.execute(
                select(OrderDetail.order_id).where(OrderDetail.id.in_(detail_ids))
            )
            order_ids.extend(result.scalars().all())
        order_ids.extend(extra_order_ids)

        for order_id in unique_ids(order_ids):
            if await self.db.get(Order, order_id) is not None:
                await self.projection.project(order_id)

    # ==================== Appointments ====================

    async def create_appointment(
        self,
        reference_number: str,
        order_id: Optional[int] = None,
        appointment_account: Optional[str] = None,
        requested_start: Optional[datetime] = None,
        confirmed_start: Optional[datetime] = None,
        lines: Optional[List[Dict[str, Any]]] = None,
    ) -> DeliveryAppointment:
        """
        Create an appointment, optionally with its booking lines.

        Args:
            reference_number: Unique appointment reference
            order_id: Optional owning order
            appointment_account: Account the appointment was made under
            requested_start: Requested slot
            confirmed_start: Confirmed slot, overrides requested_start
            lines: Optional list of {"order_detail_id", "estimated_pallets",
                "rejected_pallets"} dicts

        Raises:
            InvalidArgumentError: Duplicate reference or invalid line data
            NotFoundError: Unknown order or order detail
        """
        if not reference_number or not reference_number.strip():
            raise InvalidArgumentError("reference_number is required")
        if await self._get_by_reference(reference_number) is not None:
            raise InvalidArgumentError(f"Appointment '{reference_number}' already exists")
        if order_id is not None and await self.db.get(Order, order_id) is None:
            raise NotFoundError(f"Order {order_id} not found")

        appointment = DeliveryAppointment(
            reference_number=reference_number,
            order_id=order_id,
            appointment_account=appointment_account,
            requested_start=requested_start,
            confirmed_start=confirmed_start,
            rejected=False,
            total_pallets=0,
            created_by=self.actor_id,
        )
        self.db.add(appointment)
        await self.db.flush()

        detail_ids = []
        for item in lines or []:
            line = await self._add_line(
                appointment,
                order_detail_id=item["order_detail_id"],
                estimated_pallets=item.get("estimated_pallets", 0),
                rejected_pallets=item.get("rejected_pallets", 0),
            )
            detail_ids.append(line.order_detail_id)

        await self._refresh_total_pallets([appointment.id])
        await self._after_ledger_change(detail_ids, [order_id])

        logger.info(f"Created appointment {reference_number} with {len(detail_ids)} line(s)")
        return appointment

    async def update_appointment(self, appointment_id: int, **changes) -> DeliveryAppointment:
        """
        Update schedule, account, order link or rejected flag.

        Only the keyword arguments passed are applied, so a schedule can be
        cleared by passing None explicitly.

        Raises:
            NotFoundError: Unknown appointment or order
            InvalidArgumentError: Unknown field
        """
        unknown = set(changes) - APPOINTMENT_UPDATABLE_FIELDS
        if unknown:
            raise InvalidArgumentError(f"Cannot update appointment field(s): {', '.join(sorted(unknown))}")

        appointment = await self.get_appointment(appointment_id)
        new_order_id = changes.get("order_id")
        if new_order_id is not None and await self.db.get(Order, new_order_id) is None:
            raise NotFoundError(f"Order {new_order_id} not found")

        previous_order_id = appointment.order_id
        for key, value in changes.items():
            setattr(appointment, key, value)

        lines = await self.get_lines(appointment_id)
        await self._after_ledger_change(
            [line.order_detail_id for line in lines],
            [previous_order_id, appointment.order_id],
        )

        if "rejected" in changes:
            logger.info(
                f"Appointment {appointment.reference_number} rejected={appointment.rejected}, "
                f"reconciled {len(lines)} line(s)"
            )
        return appointment

    async def delete_appointment(self, appointment_id: int) -> List[int]:
        """
        Delete an appointment and its lines.

        Returns:
            The distinct order detail ids that were reconciled
        """
        appointment = await self.get_appointment(appointment_id)
        order_id = appointment.order_id
        reference_number = appointment.reference_number

        lines = await self.get_lines(appointment_id)
        detail_ids = unique_ids(line.order_detail_id for line in lines)

        # Lines first; the collection is not loaded so nothing cascades implicitly
        for line in lines:
            await self.db.delete(line)
        await self.db.delete(appointment)

        await self._after_ledger_change(detail_ids, [order_id])

        logger.info(
            f"Deleted appointment {reference_number}, reconciled {len(detail_ids)} consignment(s)"
        )
        return detail_ids

    # ==================== Lines ====================

    async def _add_line(
        self,
        appointment: DeliveryAppointment,
        order_detail_id: int,
        estimated_pallets: int,
        rejected_pallets: int = 0,
    ) -> AppointmentDetailLine:
        _validate_pallets("estimated_pallets", estimated_pallets)
        _validate_pallets("rejected_pallets", rejected_pallets)

        await CapacitySourceResolver(self.db).get_order_detail(order_detail_id)

        duplicate = await self.db.execute(
            select(AppointmentDetailLine.id).where(
                AppointmentDetailLine.appointment_id == appointment.id,
                AppointmentDetailLine.order_detail_id == order_detail_id,
            )
        )
        if duplicate.scalar_one_or_none() is not None:
            raise InvalidArgumentError(
                f"Order detail {order_detail_id} is already booked on "
                f"appointment {appointment.reference_number}"
            )

        available = await self._available_pallets(order_detail_id)
        self._check_overbooking(order_detail_id, estimated_pallets - rejected_pallets, available)

        line = AppointmentDetailLine(
            appointment_id=appointment.id,
            order_detail_id=order_detail_id,
            estimated_pallets=estimated_pallets,
            rejected_pallets=rejected_pallets,
            total_pallets_at_time=available,
            created_by=self.actor_id,
            updated_by=self.actor_id,
        )
        self.db.add(line)
        await self.db.flush()
        return line

    async def create_line(
        self,
        appointment_id: int,
        order_detail_id: int,
        estimated_pallets: int,
        rejected_pallets: int = 0,
    ) -> AppointmentDetailLine:
        """
        Book pallets of a consignment on an appointment.

        Raises:
            NotFoundError: Unknown appointment or order detail
            InvalidArgumentError: Negative pallets, duplicate line, or
                over-booking while BOOKING_OVERBOOK_ALLOWED is off
            DataIntegrityGapError: The consignment has no capacity source
        """
        appointment = await self.get_appointment(appointment_id)
        line = await self._add_line(appointment, order_detail_id, estimated_pallets, rejected_pallets)

        await self._refresh_total_pallets([appointment_id])
        await self._after_ledger_change([order_detail_id], [appointment.order_id])
        return line

    async def update_line(
        self,
        line_id: int,
        estimated_pallets: Optional[int] = None,
        rejected_pallets: Optional[int] = None,
    ) -> AppointmentDetailLine:
        """
        Change booked and/or rejected pallets of a line.

        Raises:
            NotFoundError: Unknown line
            InvalidArgumentError: Negative pallets or over-booking when
                BOOKING_OVERBOOK_ALLOWED is off
        """
        line = await self.get_line(line_id)

        new_estimated = line.estimated_pallets if estimated_pallets is None else estimated_pallets
        new_rejected = line.rejected_pallets if rejected_pallets is None else rejected_pallets
        _validate_pallets("estimated_pallets", new_estimated)
        _validate_pallets("rejected_pallets", new_rejected)

        increase = (new_estimated - new_rejected) - line.effective_pallets
        if increase > 0:
            available = await self._available_pallets(line.order_detail_id)
            self._check_overbooking(line.order_detail_id, increase, available)

        line.estimated_pallets = new_estimated
        line.rejected_pallets = new_rejected
        line.updated_by = self.actor_id

        appointment = await self.get_appointment(line.appointment_id)
        await self._refresh_total_pallets([line.appointment_id])
        await self._after_ledger_change([line.order_detail_id], [appointment.order_id])
        return line

    async def set_rejected_pallets(self, line_id: int, rejected_pallets: int) -> AppointmentDetailLine:
        """Record pallets the receiver declined on a line."""
        return await self.update_line(line_id, rejected_pallets=rejected_pallets)

    async def delete_line(self, line_id: int) -> None:
        line = await self.get_line(line_id)
        appointment_id = line.appointment_id
        order_detail_id = line.order_detail_id
        appointment = await self.get_appointment(appointment_id)

        await self.db.delete(line)
        await self.db.flush()

        await self._refresh_total_pallets([appointment_id])
        await self._after_ledger_change([order_detail_id], [appointment.order_id])

    async def move_lines(self, line_ids: List[int], target_reference_number: str) -> MoveLinesResult:
        """
        Move booking lines to another appointment.

        All lines must come from one source appointment, the target must be
        a different appointment, and the target must not already book any
        of the same consignments.

        Raises:
            InvalidArgumentError: Empty selection, mixed sources, same
                target, or duplicate consignment on the target
            NotFoundError: Unknown line or target reference
        """
        line_ids = unique_ids(line_ids)
        if not line_ids:
            raise InvalidArgumentError("line_ids must not be empty")
        if not target_reference_number:
            raise InvalidArgumentError("target_reference_number is required")

        result = await self.db.execute(
            select(AppointmentDetailLine)
            .where(AppointmentDetailLine.id.in_(line_ids))
            .order_by(AppointmentDetailLine.id)
        )
        lines = list(result.scalars().all())
        missing = set(line_ids) - {line.id for line in lines}
        if missing:
            raise NotFoundError(f"Appointment detail line(s) not found: {sorted(missing)}")

        source_ids = {line.appointment_id for line in lines}
        if len(source_ids) > 1:
            raise InvalidArgumentError("All lines must belong to the same appointment")
        source_id = source_ids.pop()

        target = await self._get_by_reference(target_reference_number)
        if target is None:
            raise NotFoundError(f"Target appointment '{target_reference_number}' not found")
        if target.id == source_id:
            raise InvalidArgumentError("Target appointment is the same as the source appointment")

        detail_ids = [line.order_detail_id for line in lines]
        existing = await self.db.execute(
            select(AppointmentDetailLine.order_detail_id).where(
                AppointmentDetailLine.appointment_id == target.id,
                AppointmentDetailLine.order_detail_id.in_(detail_ids),
            )
        )
        duplicates = sorted(existing.scalars().all())
        if duplicates:
            raise InvalidArgumentError(
                f"Target appointment already has lines for order detail(s): {duplicates}"
            )

        source = await self.get_appointment(source_id)
        for line in lines:
            line.appointment_id = target.id
            line.updated_by = self.actor_id
        await self.db.flush()

        await self._refresh_total_pallets([source_id, target.id])
        await self._after_ledger_change(detail_ids, [source.order_id, target.order_id])

        logger.info(
            f"Moved {len(lines)} line(s) from {source.reference_number} "
            f"to {target.reference_number}"
        )
        return MoveLinesResult(
            moved=len(lines),
            source_appointment_id=source_id,
            target_appointment_id=target.id,
            line_ids=[line.id for line in lines],
        )


async def delete_appointments(
    appointment_ids: List[int],
    factory: Optional[async_sessionmaker] = None,
    actor_id: Optional[str] = None,
) -> BatchDeleteResult:
    """
    Delete several appointments, each in its own transaction.

    A failure on one appointment is rolled back and recorded; the others
    still go through.
    """
    report = BatchDeleteResult()

    for appointment_id in unique_ids(appointment_ids):
        try:
            async with transaction_scope(factory=factory) as session:
                await AppointmentService(session, actor_id=actor_id).delete_appointment(appointment_id)
            report.deleted += 1
            report.deleted_ids.append(appointment_id)
        except Exception as e:
            report.failed += 1
            report.failures.append({
                "appointment_id": appointment_id,
                "error": str(e),
                "error_type": type(e).__name__,
            })
            logger.warning(f"Failed to delete appointment {appointment_id}: {e}")

    logger.info(f"Batch delete: {report.deleted} deleted, {report.failed} failed")
    return report
