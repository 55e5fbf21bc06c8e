"""
Tests for the reconciliation engine: capacity resolution, ledger reads and
the unbooked/remaining formulas.
"""

from __future__ import annotations

import pytest

from app.core.exceptions import (
    DataIntegrityGapError,
    InvalidArgumentError,
    NotConfiguredError,
    NotFoundError,
)
from app.services.booking_ledger_service import BookingLedgerReader
from app.services.capacity_source_service import (
    ActualCapacity,
    CapacitySourceResolver,
    EstimatedCapacity,
)
from app.services.pallet_reconciliation_service import PalletReconciliationService, unique_ids

from tests.conftest import TODAY, day


async def test_zero_bookings_leave_full_capacity(session, clock, ledger):
    order = await ledger.order()
    detail = await ledger.detail(order, estimated_pallets=10)

    result = await PalletReconciliationService(session).reconcile(detail.id)

    assert result.reference_date == TODAY
    assert result.total_effective == 0
    assert detail.unbooked_pallets == 10
    assert detail.remaining_pallets == 10


async def test_reconcile_is_idempotent(session, clock, ledger):
    order = await ledger.order()
    detail = await ledger.detail(order, estimated_pallets=10)
    await ledger.line(await ledger.appointment(requested_start=day(-2)), detail, 3)
    await ledger.line(await ledger.appointment(requested_start=day(2)), detail, 4)
    service = PalletReconciliationService(session)

    await service.reconcile(detail.id)
    first = (detail.unbooked_pallets, detail.remaining_pallets)
    await service.reconcile(detail.id)
    second = (detail.unbooked_pallets, detail.remaining_pallets)

    assert first == second == (3, 7)


async def test_over_booking_goes_negative(session, clock, ledger):
    order = await ledger.order()
    detail = await ledger.detail(order, estimated_pallets=10)
    await ledger.line(await ledger.appointment(requested_start=day(1)), detail, 15)

    await PalletReconciliationService(session).reconcile(detail.id)

    assert detail.unbooked_pallets == -5
    assert detail.remaining_pallets == 10


async def test_fully_rejected_line_contributes_nothing(session, clock, ledger):
    order = await ledger.order()
    detail = await ledger.detail(order, estimated_pallets=10)
    await ledger.line(await ledger.appointment(requested_start=day(-1)), detail, 4, rejected_pallets=4)

    result = await PalletReconciliationService(session).reconcile(detail.id)

    assert result.total_effective == 0
    assert result.expired_effective == 0
    assert detail.unbooked_pallets == 10
    assert detail.remaining_pallets == 10


async def test_expiry_is_strictly_before_today(session, clock, ledger):
    order = await ledger.order()
    detail = await ledger.detail(order, estimated_pallets=10)
    await ledger.line(await ledger.appointment(requested_start=day(0, hour=0)), detail, 3)
    await ledger.line(await ledger.appointment(requested_start=day(-1, hour=23)), detail, 2)

    result = await PalletReconciliationService(session).reconcile(detail.id)

    assert result.total_effective == 5
    assert result.expired_effective == 2
    assert detail.unbooked_pallets == 5
    assert detail.remaining_pallets == 8


async def test_confirmed_start_overrides_requested_start(session, clock, ledger):
    order = await ledger.order()
    detail = await ledger.detail(order, estimated_pallets=10)
    appointment = await ledger.appointment(requested_start=day(-3), confirmed_start=day(1))
    await ledger.line(appointment, detail, 4)

    result = await PalletReconciliationService(session).reconcile(detail.id)

    assert result.expired_effective == 0
    assert detail.remaining_pallets == 10


async def test_unscheduled_line_is_booked_but_never_expired(session, clock, ledger):
    order = await ledger.order()
    detail = await ledger.detail(order, estimated_pallets=10)
    await ledger.line(await ledger.appointment(), detail, 6)

    await PalletReconciliationService(session).reconcile(detail.id)

    assert detail.unbooked_pallets == 4
    assert detail.remaining_pallets == 10


async def test_rejected_appointment_is_excluded(session, clock, ledger):
    order = await ledger.order()
    detail = await ledger.detail(order, estimated_pallets=10)
    appointment = await ledger.appointment(requested_start=day(-1))
    await ledger.line(appointment, detail, 4)
    service = PalletReconciliationService(session)

    await service.reconcile(detail.id)
    assert (detail.unbooked_pallets, detail.remaining_pallets) == (6, 6)

    appointment.rejected = True
    await session.flush()
    await service.reconcile(detail.id)

    assert (detail.unbooked_pallets, detail.remaining_pallets) == (10, 10)


async def test_first_lot_replaces_estimate(session, clock, ledger):
    order = await ledger.order()
    detail = await ledger.detail(order, estimated_pallets=10)
    await ledger.line(await ledger.appointment(requested_start=day(-1)), detail, 4)
    service = PalletReconciliationService(session)

    await service.reconcile(detail.id)
    assert detail.unbooked_pallets == 6

    lot = await ledger.lot(detail, pallet_count=7)
    result = await service.reconcile(detail.id)

    assert [c.source_type for c in result.counters] == ["actual"]
    assert lot.unbooked_pallet_count == 3
    assert lot.remaining_pallet_count == 3
    # Estimate holder keeps its last values for display
    assert detail.estimated_pallets == 10
    assert detail.unbooked_pallets == 6


async def test_each_lot_reconciled_against_same_ledger(session, clock, ledger):
    order = await ledger.order()
    detail = await ledger.detail(order, estimated_pallets=20)
    first = await ledger.lot(detail, pallet_count=5)
    second = await ledger.lot(detail, pallet_count=8)
    await ledger.line(await ledger.appointment(requested_start=day(1)), detail, 3)

    result = await PalletReconciliationService(session).reconcile(detail.id)

    assert [c.lot_id for c in result.counters] == [first.id, second.id]
    assert (first.unbooked_pallet_count, first.remaining_pallet_count) == (2, 5)
    assert (second.unbooked_pallet_count, second.remaining_pallet_count) == (5, 8)


async def test_missing_capacity_source_is_a_data_integrity_gap(session, clock, ledger):
    order = await ledger.order()
    detail = await ledger.detail(order, estimated_pallets=None)

    with pytest.raises(DataIntegrityGapError) as exc_info:
        await PalletReconciliationService(session).reconcile(detail.id)

    assert exc_info.value.order_detail_id == detail.id


async def test_unknown_consignment_is_a_data_integrity_gap(session, clock):
    with pytest.raises(DataIntegrityGapError):
        await PalletReconciliationService(session).reconcile(424242)


async def test_reconcile_without_clock_raises_not_configured(session, ledger):
    order = await ledger.order()
    detail = await ledger.detail(order, estimated_pallets=10)

    with pytest.raises(NotConfiguredError):
        await PalletReconciliationService(session).reconcile(detail.id)


@pytest.mark.parametrize("bad_id", [0, -3, "12", None, True])
async def test_reconcile_rejects_malformed_ids(session, clock, bad_id):
    with pytest.raises(InvalidArgumentError):
        await PalletReconciliationService(session).reconcile(bad_id)


async def test_clock_advance_moves_booking_to_expired(session, clock, ledger):
    order = await ledger.order()
    detail = await ledger.detail(order, estimated_pallets=10)
    await ledger.line(await ledger.appointment(requested_start=day(1)), detail, 4)
    service = PalletReconciliationService(session)

    await service.reconcile(detail.id)
    assert detail.remaining_pallets == 10

    await clock.advance(2 * 24 * 60)
    await service.reconcile(detail.id)

    assert detail.remaining_pallets == 6
    assert detail.unbooked_pallets == 6


async def test_reconcile_many_deduplicates_in_id_order(session, clock, ledger):
    order = await ledger.order()
    a = await ledger.detail(order, estimated_pallets=5)
    b = await ledger.detail(order, estimated_pallets=6)

    results = await PalletReconciliationService(session).reconcile_many([b.id, a.id, b.id, None])

    assert [r.order_detail_id for r in results] == [a.id, b.id]


async def test_get_counters_reads_stored_values_without_recompute(session, clock, ledger):
    order = await ledger.order()
    detail = await ledger.detail(order, estimated_pallets=10)
    lot = await ledger.lot(detail, pallet_count=9)
    lot.unbooked_pallet_count = 123
    lot.remaining_pallet_count = 45
    await session.flush()

    counters = await PalletReconciliationService(session).get_counters(detail.id)

    assert len(counters) == 1
    assert counters[0].source_type == "actual"
    assert (counters[0].unbooked, counters[0].remaining) == (123, 45)


async def test_resolver_returns_explicit_variants(session, ledger):
    order = await ledger.order()
    estimated = await ledger.detail(order, estimated_pallets=10)
    received = await ledger.detail(order, estimated_pallets=10)
    lot = await ledger.lot(received, pallet_count=4)
    resolver = CapacitySourceResolver(session)

    assert await resolver.resolve(estimated.id) == [EstimatedCapacity(estimated.id, 10)]
    assert await resolver.resolve(received.id) == [ActualCapacity(lot.id, received.id, 4)]
    assert await resolver.list_consignment_ids() == [estimated.id, received.id]
    assert await resolver.list_consignment_ids(start_after_id=estimated.id) == [received.id]


async def test_resolver_get_order_detail(session, ledger):
    order = await ledger.order()
    detail = await ledger.detail(order)
    resolver = CapacitySourceResolver(session)

    assert await resolver.get_order_detail(detail.id) is detail
    with pytest.raises(NotFoundError):
        await resolver.get_order_detail(909090)


async def test_ledger_reader_skips_rejected_appointments(session, ledger):
    order = await ledger.order()
    detail = await ledger.detail(order)
    kept = await ledger.line(await ledger.appointment(requested_start=day(1), account="ACME"), detail, 2)
    await ledger.line(await ledger.appointment(requested_start=day(1), rejected=True), detail, 9)

    lines = await BookingLedgerReader(session).lines_for(detail.id)

    assert [line.line_id for line in lines] == [kept.id]
    assert lines[0].effective_pallets == 2
    assert lines[0].scheduled_date == day(1).date()
    assert lines[0].appointment_account == "ACME"


def test_unique_ids_keeps_first_seen_order():
    assert unique_ids([3, 1, 3, None, 2, 1]) == [3, 1, 2]
