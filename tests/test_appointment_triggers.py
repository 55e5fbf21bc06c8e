"""
Tests for booking-side writes: every ledger change reconciles the touched
consignments and re-projects their orders in the same session.
"""

from __future__ import annotations

import pytest
from sqlalchemy import select

from app.config import settings
from app.core.exceptions import InvalidArgumentError, NotFoundError
from app.models import AppointmentDetailLine, DeliveryAppointment, OrderDetail, Order
from app.services.appointment_service import AppointmentService, delete_appointments

from tests.conftest import day


async def test_create_appointment_with_lines_reconciles_and_projects(session, clock, ledger):
    order = await ledger.order()
    detail = await ledger.detail(order, estimated_pallets=10)
    service = AppointmentService(session, actor_id="planner")

    appointment = await service.create_appointment(
        reference_number="APT-NEW",
        appointment_account="ACME-WH",
        requested_start=day(2),
        lines=[{"order_detail_id": detail.id, "estimated_pallets": 4}],
    )

    assert appointment.total_pallets == 4
    assert appointment.created_by == "planner"
    assert detail.unbooked_pallets == 6
    assert detail.remaining_pallets == 10
    assert order.appointment_time == day(2)
    assert order.warehouse_account == "ACME-WH"

    lines = await service.get_lines(appointment.id)
    assert lines[0].total_pallets_at_time == 10
    assert lines[0].created_by == "planner"


async def test_create_appointment_rejects_duplicate_reference(session, clock, ledger):
    service = AppointmentService(session)
    await service.create_appointment(reference_number="APT-1")

    with pytest.raises(InvalidArgumentError):
        await service.create_appointment(reference_number="APT-1")


async def test_create_line_reconciles(session, clock, ledger):
    order = await ledger.order()
    detail = await ledger.detail(order, estimated_pallets=10)
    appointment = await ledger.appointment(requested_start=day(-1))

    line = await AppointmentService(session).create_line(appointment.id, detail.id, 3)

    assert line.effective_pallets == 3
    assert detail.unbooked_pallets == 7
    assert detail.remaining_pallets == 7
    assert appointment.total_pallets == 3


async def test_create_line_rejects_duplicate_consignment(session, clock, ledger):
    order = await ledger.order()
    detail = await ledger.detail(order)
    appointment = await ledger.appointment(requested_start=day(1))
    service = AppointmentService(session)
    await service.create_line(appointment.id, detail.id, 2)

    with pytest.raises(InvalidArgumentError):
        await service.create_line(appointment.id, detail.id, 1)


async def test_create_line_unknown_references(session, clock, ledger):
    order = await ledger.order()
    detail = await ledger.detail(order)
    appointment = await ledger.appointment(requested_start=day(1))
    service = AppointmentService(session)

    with pytest.raises(NotFoundError):
        await service.create_line(99999, detail.id, 1)
    with pytest.raises(NotFoundError):
        await service.create_line(appointment.id, 99999, 1)


async def test_create_line_rejects_negative_pallets(session, clock, ledger):
    order = await ledger.order()
    detail = await ledger.detail(order)
    appointment = await ledger.appointment(requested_start=day(1))

    with pytest.raises(InvalidArgumentError):
        await AppointmentService(session).create_line(appointment.id, detail.id, -1)


async def test_over_booking_allowed_by_default(session, clock, ledger):
    order = await ledger.order()
    detail = await ledger.detail(order, estimated_pallets=10)
    appointment = await ledger.appointment(requested_start=day(1))

    await AppointmentService(session).create_line(appointment.id, detail.id, 15)

    assert detail.unbooked_pallets == -5


async def test_over_booking_guard_when_disabled(session, clock, ledger, monkeypatch):
    monkeypatch.setattr(settings, "BOOKING_OVERBOOK_ALLOWED", False)
    order = await ledger.order()
    detail = await ledger.detail(order, estimated_pallets=10)
    appointment = await ledger.appointment(requested_start=day(1))
    service = AppointmentService(session)

    with pytest.raises(InvalidArgumentError):
        await service.create_line(appointment.id, detail.id, 15)

    line = await service.create_line(appointment.id, detail.id, 10)
    with pytest.raises(InvalidArgumentError):
        await service.update_line(line.id, estimated_pallets=11)


async def test_split_receipts_guard_against_summed_capacity(session, clock, ledger, monkeypatch):
    monkeypatch.setattr(settings, "BOOKING_OVERBOOK_ALLOWED", False)
    order = await ledger.order()
    detail = await ledger.detail(order, estimated_pallets=20)
    first_lot = await ledger.lot(detail, pallet_count=6)
    second_lot = await ledger.lot(detail, pallet_count=4)
    service = AppointmentService(session)

    line = await service.create_line((await ledger.appointment(requested_start=day(1))).id, detail.id, 9)

    assert line.total_pallets_at_time == 10
    assert first_lot.unbooked_pallet_count == -3
    assert second_lot.unbooked_pallet_count == -5
    with pytest.raises(InvalidArgumentError):
        await service.create_line((await ledger.appointment(requested_start=day(2))).id, detail.id, 2)


async def test_update_line_and_rejected_pallets_recompute(session, clock, ledger):
    order = await ledger.order()
    detail = await ledger.detail(order, estimated_pallets=10)
    appointment = await ledger.appointment(requested_start=day(-2))
    service = AppointmentService(session, actor_id="dock")
    line = await service.create_line(appointment.id, detail.id, 4)

    await service.update_line(line.id, estimated_pallets=6)
    assert (detail.unbooked_pallets, detail.remaining_pallets) == (4, 4)
    assert appointment.total_pallets == 6

    await service.set_rejected_pallets(line.id, 6)
    assert (detail.unbooked_pallets, detail.remaining_pallets) == (10, 10)
    assert line.updated_by == "dock"


async def test_delete_line_restores_capacity(session, clock, ledger):
    order = await ledger.order()
    detail = await ledger.detail(order, estimated_pallets=10)
    appointment = await ledger.appointment(requested_start=day(1), account="ACME")
    service = AppointmentService(session)
    line = await service.create_line(appointment.id, detail.id, 4)
    assert order.warehouse_account == "ACME"

    await service.delete_line(line.id)

    assert detail.unbooked_pallets == 10
    assert appointment.total_pallets == 0
    assert order.appointment_time is None
    assert order.warehouse_account is None


async def test_rejecting_appointment_releases_its_lines(session, clock, ledger):
    order = await ledger.order()
    detail = await ledger.detail(order, estimated_pallets=10)
    appointment = await ledger.appointment(requested_start=day(-1))
    service = AppointmentService(session)
    await service.create_line(appointment.id, detail.id, 4)
    assert detail.remaining_pallets == 6

    await service.update_appointment(appointment.id, rejected=True)
    assert (detail.unbooked_pallets, detail.remaining_pallets) == (10, 10)
    assert order.appointment_time is None

    await service.update_appointment(appointment.id, rejected=False)
    assert (detail.unbooked_pallets, detail.remaining_pallets) == (6, 6)


async def test_rescheduling_appointment_changes_remaining(session, clock, ledger):
    order = await ledger.order()
    detail = await ledger.detail(order, estimated_pallets=10)
    appointment = await ledger.appointment(requested_start=day(3))
    service = AppointmentService(session)
    await service.create_line(appointment.id, detail.id, 4)
    assert detail.remaining_pallets == 10

    await service.update_appointment(appointment.id, confirmed_start=day(-1))

    assert detail.remaining_pallets == 6
    assert order.appointment_time == day(-1)


async def test_update_appointment_rejects_unknown_fields(session, clock, ledger):
    appointment = await ledger.appointment(requested_start=day(1))

    with pytest.raises(InvalidArgumentError):
        await AppointmentService(session).update_appointment(appointment.id, total_pallets=99)


async def test_delete_appointment_recomputes_every_touched_consignment(session, clock, ledger):
    order = await ledger.order()
    first = await ledger.detail(order, estimated_pallets=10)
    second = await ledger.detail(order, estimated_pallets=8)
    appointment = await ledger.appointment(requested_start=day(-1))
    service = AppointmentService(session)
    await service.create_line(appointment.id, first.id, 4)
    await service.create_line(appointment.id, second.id, 5)
    appointment_id = appointment.id

    touched = await service.delete_appointment(appointment_id)

    assert sorted(touched) == sorted([first.id, second.id])
    assert (first.unbooked_pallets, first.remaining_pallets) == (10, 10)
    assert (second.unbooked_pallets, second.remaining_pallets) == (8, 8)
    remaining_lines = (await session.execute(
        select(AppointmentDetailLine).where(AppointmentDetailLine.appointment_id == appointment_id)
    )).scalars().all()
    assert remaining_lines == []
    assert await session.get(DeliveryAppointment, appointment_id) is None


async def test_move_lines_between_appointments(session, clock, ledger):
    order = await ledger.order()
    first = await ledger.detail(order, estimated_pallets=10)
    second = await ledger.detail(order, estimated_pallets=10)
    source = await ledger.appointment(requested_start=day(-1))
    target = await ledger.appointment(requested_start=day(2))
    service = AppointmentService(session)
    a = await service.create_line(source.id, first.id, 3)
    b = await service.create_line(source.id, second.id, 2)
    assert first.remaining_pallets == 7

    result = await service.move_lines([a.id, b.id], target.reference_number)

    assert result.moved == 2
    assert result.source_appointment_id == source.id
    assert result.target_appointment_id == target.id
    assert source.total_pallets == 0
    assert target.total_pallets == 5
    # Target is in the future, so nothing is expired any more
    assert (first.unbooked_pallets, first.remaining_pallets) == (7, 10)
    assert (second.unbooked_pallets, second.remaining_pallets) == (8, 10)


async def test_move_lines_validation(session, clock, ledger):
    order = await ledger.order()
    detail = await ledger.detail(order, estimated_pallets=10)
    other_detail = await ledger.detail(order, estimated_pallets=10)
    source = await ledger.appointment(requested_start=day(1))
    other_source = await ledger.appointment(requested_start=day(1))
    target = await ledger.appointment(requested_start=day(2))
    service = AppointmentService(session)
    line = await service.create_line(source.id, detail.id, 1)
    foreign = await service.create_line(other_source.id, other_detail.id, 1)
    await service.create_line(target.id, detail.id, 1)

    with pytest.raises(InvalidArgumentError):
        await service.move_lines([], target.reference_number)
    with pytest.raises(InvalidArgumentError):
        await service.move_lines([line.id], source.reference_number)
    with pytest.raises(InvalidArgumentError):
        await service.move_lines([line.id, foreign.id], target.reference_number)
    with pytest.raises(InvalidArgumentError):
        # target already books this consignment
        await service.move_lines([line.id], target.reference_number)
    with pytest.raises(NotFoundError):
        await service.move_lines([line.id], "NO-SUCH-REF")
    with pytest.raises(NotFoundError):
        await service.move_lines([987654], target.reference_number)


async def test_batch_delete_isolates_failures(session, session_factory, clock, ledger):
    order = await ledger.order()
    detail = await ledger.detail(order, estimated_pallets=10)
    appointment = await ledger.appointment(requested_start=day(1))
    await AppointmentService(session).create_line(appointment.id, detail.id, 4)
    await session.commit()
    appointment_id, detail_id, order_id = appointment.id, detail.id, order.id

    report = await delete_appointments([appointment_id, 55555, appointment_id], factory=session_factory)

    assert report.deleted == 1
    assert report.deleted_ids == [appointment_id]
    assert report.failed == 1
    assert report.failures[0]["appointment_id"] == 55555
    assert report.failures[0]["error_type"] == "NotFoundError"

    async with session_factory() as fresh:
        stored = await fresh.get(OrderDetail, detail_id)
        assert stored.unbooked_pallets == 10
        assert await fresh.get(DeliveryAppointment, appointment_id) is None
        assert (await fresh.get(Order, order_id)).appointment_time is None
