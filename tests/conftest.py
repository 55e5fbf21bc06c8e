"""
Pytest configuration and shared fixtures for the pallet ledger tests.

Every test gets its own SQLite file (aiosqlite) with the full schema, a
session, the session factory (for code that opens one transaction per
item) and a business clock pinned to TODAY.
"""

from __future__ import annotations

import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret")
os.environ.setdefault("SCHEDULER_ENABLED", "false")

from datetime import date, datetime, timedelta
from typing import Optional

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from app.database import Base
from app import models  # noqa: F401
from app.models import (
    AppointmentDetailLine,
    DeliveryAppointment,
    InventoryLot,
    Order,
    OrderDetail,
)
from app.services.system_timestamp_service import SystemTimestampService

TODAY = date(2026, 3, 10)


def day(offset: int, hour: int = 9) -> datetime:
    """A naive timestamp `offset` days from TODAY."""
    return datetime(TODAY.year, TODAY.month, TODAY.day, hour) + timedelta(days=offset)


@pytest_asyncio.fixture
async def engine(tmp_path):
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'ledger.db'}",
        poolclass=NullPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture
async def session(session_factory):
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def clock(session):
    """Business clock set to TODAY 08:00 and committed."""
    service = SystemTimestampService(session, actor_id="test")
    await service.set(datetime(TODAY.year, TODAY.month, TODAY.day, 8, 0))
    await session.commit()
    return service


class LedgerBuilder:
    """Insert ledger rows directly, bypassing the write-path triggers."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self._seq = 0

    def _next(self) -> int:
        self._seq += 1
        return self._seq

    async def order(self, order_number: Optional[str] = None) -> Order:
        order = Order(order_number=order_number or f"SO-{self._next():04d}")
        self.session.add(order)
        await self.session.flush()
        return order

    async def detail(self, order: Order, estimated_pallets: Optional[int] = 10) -> OrderDetail:
        detail = OrderDetail(order_id=order.id, estimated_pallets=estimated_pallets)
        self.session.add(detail)
        await self.session.flush()
        return detail

    async def lot(self, detail: OrderDetail, pallet_count: int) -> InventoryLot:
        lot = InventoryLot(order_detail_id=detail.id, pallet_count=pallet_count)
        self.session.add(lot)
        await self.session.flush()
        return lot

    async def appointment(
        self,
        requested_start: Optional[datetime] = None,
        confirmed_start: Optional[datetime] = None,
        rejected: bool = False,
        account: Optional[str] = None,
        order: Optional[Order] = None,
    ) -> DeliveryAppointment:
        appointment = DeliveryAppointment(
            reference_number=f"APT-{self._next():04d}",
            order_id=order.id if order else None,
            appointment_account=account,
            requested_start=requested_start,
            confirmed_start=confirmed_start,
            rejected=rejected,
            total_pallets=0,
        )
        self.session.add(appointment)
        await self.session.flush()
        return appointment

    async def line(
        self,
        appointment: DeliveryAppointment,
        detail: OrderDetail,
        estimated_pallets: int,
        rejected_pallets: int = 0,
    ) -> AppointmentDetailLine:
        line = AppointmentDetailLine(
            appointment_id=appointment.id,
            order_detail_id=detail.id,
            estimated_pallets=estimated_pallets,
            rejected_pallets=rejected_pallets,
        )
        self.session.add(line)
        await self.session.flush()
        return line


@pytest.fixture
def ledger(session):
    return LedgerBuilder(session)
