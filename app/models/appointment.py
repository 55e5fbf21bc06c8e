from datetime import date, datetime, timezone
from typing import TYPE_CHECKING, Optional, List

from sqlalchemy import (
    String, Boolean, DateTime, ForeignKey, Integer, UniqueConstraint, CheckConstraint
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base
from app.db_types import BigIntPK, BigIntFK

if TYPE_CHECKING:
    from app.models.order import Order, OrderDetail


class DeliveryAppointment(Base):
    """
    Outbound delivery appointment.

    Owns its booking lines. A rejected appointment keeps its lines but none
    of them count toward any consignment's bookings.
    """
    __tablename__ = "delivery_appointments"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    reference_number: Mapped[str] = mapped_column(
        String(50),
        unique=True,
        nullable=False,
        index=True
    )
    order_id: Mapped[Optional[int]] = mapped_column(
        BigIntFK,
        ForeignKey("orders.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )
    appointment_account: Mapped[Optional[str]] = mapped_column(
        String(100),
        nullable=True,
        comment="Carrier/warehouse account the appointment was made under"
    )

    # Schedule
    requested_start: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True
    )
    confirmed_start: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        comment="Takes precedence over requested_start when set"
    )

    rejected: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    total_pallets: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False,
        comment="Sum of line estimated pallets, informational"
    )

    created_by: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
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
    order: Mapped[Optional["Order"]] = relationship("Order")
    lines: Mapped[List["AppointmentDetailLine"]] = relationship(
        "AppointmentDetailLine",
        back_populates="appointment",
        cascade="all, delete-orphan",
        passive_deletes=True
    )

    @property
    def scheduled_start(self) -> Optional[datetime]:
        return self.confirmed_start or self.requested_start

    @property
    def scheduled_date(self) -> Optional[date]:
        """Calendar day of the schedule, no timezone conversion."""
        start = self.scheduled_start
        return start.date() if start else None

    def __repr__(self) -> str:
        return f"<DeliveryAppointment(reference_number='{self.reference_number}')>"


class AppointmentDetailLine(Base):
    """
    Booking line: one appointment's claim on a consignment's pallets.

    Effective pallets are estimated_pallets - rejected_pallets.
    """
    __tablename__ = "appointment_detail_lines"
    __table_args__ = (
        UniqueConstraint(
            "appointment_id", "order_detail_id",
            name="uq_appointment_line_detail"
        ),
        CheckConstraint("estimated_pallets >= 0", name="ck_line_estimated_pallets"),
        CheckConstraint("rejected_pallets >= 0", name="ck_line_rejected_pallets"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    appointment_id: Mapped[int] = mapped_column(
        BigIntFK,
        ForeignKey("delivery_appointments.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    order_detail_id: Mapped[int] = mapped_column(
        BigIntFK,
        ForeignKey("order_detail.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    estimated_pallets: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    rejected_pallets: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    total_pallets_at_time: Mapped[Optional[int]] = mapped_column(
        Integer,
        nullable=True,
        comment="Unbooked pallets of the consignment when the line was booked"
    )

    created_by: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    updated_by: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
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
    appointment: Mapped["DeliveryAppointment"] = relationship(
        "DeliveryAppointment", back_populates="lines"
    )
    order_detail: Mapped["OrderDetail"] = relationship(
        "OrderDetail", back_populates="booking_lines"
    )

    @property
    def effective_pallets(self) -> int:
        return (self.estimated_pallets or 0) - (self.rejected_pallets or 0)

    def __repr__(self) -> str:
        return (
            f"<AppointmentDetailLine(id={self.id}, detail={self.order_detail_id}, "
            f"pallets={self.estimated_pallets})>"
        )
