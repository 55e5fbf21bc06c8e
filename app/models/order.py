from datetime import datetime, timezone
from typing import TYPE_CHECKING, Optional, List

from sqlalchemy import String, DateTime, ForeignKey, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base
from app.db_types import BigIntPK, BigIntFK

if TYPE_CHECKING:
    from app.models.inventory import InventoryLot
    from app.models.appointment import AppointmentDetailLine


class Order(Base):
    """
    Customer order.

    Carries the earliest-booking projection (appointment_time,
    warehouse_account) maintained by OrderAppointmentService.
    """
    __tablename__ = "orders"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    order_number: Mapped[str] = mapped_column(
        String(50),
        unique=True,
        nullable=False,
        index=True
    )
    customer_name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)

    # Earliest non-rejected booking across all consignments of the order
    appointment_time: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        comment="confirmed_start or requested_start of the earliest booking"
    )
    warehouse_account: Mapped[Optional[str]] = mapped_column(
        String(100),
        nullable=True,
        comment="Appointment account of the earliest booking"
    )

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False
    )

    # Relationships
    details: Mapped[List["OrderDetail"]] = relationship(
        "OrderDetail",
        back_populates="order",
        cascade="all, delete-orphan",
        passive_deletes=True
    )

    def __repr__(self) -> str:
        return f"<Order(order_number='{self.order_number}')>"


class OrderDetail(Base):
    """
    Order detail line, the consignment tracked through receipt and booking.

    estimated_pallets is the pre-receipt capacity source. unbooked_pallets
    and remaining_pallets are only written while the consignment has no
    inventory lot; afterwards the counters live on each lot and these
    columns are kept for display.
    """
    __tablename__ = "order_detail"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    order_id: Mapped[int] = mapped_column(
        BigIntFK,
        ForeignKey("orders.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    estimated_pallets: Mapped[Optional[int]] = mapped_column(
        Integer,
        nullable=True,
        comment="Planned pallet count recorded at order entry"
    )
    unbooked_pallets: Mapped[Optional[int]] = mapped_column(
        Integer,
        nullable=True,
        comment="estimated_pallets minus all effective bookings"
    )
    remaining_pallets: Mapped[Optional[int]] = mapped_column(
        Integer,
        nullable=True,
        comment="estimated_pallets minus expired effective bookings"
    )

    po: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False
    )

    # Relationships
    order: Mapped["Order"] = relationship("Order", back_populates="details")
    lots: Mapped[List["InventoryLot"]] = relationship(
        "InventoryLot",
        back_populates="order_detail",
        passive_deletes=True
    )
    booking_lines: Mapped[List["AppointmentDetailLine"]] = relationship(
        "AppointmentDetailLine",
        back_populates="order_detail",
        passive_deletes=True
    )

    def __repr__(self) -> str:
        return f"<OrderDetail(id={self.id}, estimated_pallets={self.estimated_pallets})>"
