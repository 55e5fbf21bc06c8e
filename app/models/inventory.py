from datetime import datetime, timezone
from typing import TYPE_CHECKING, Optional

from sqlalchemy import String, DateTime, ForeignKey, Integer, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base
from app.db_types import BigIntPK, BigIntFK

if TYPE_CHECKING:
    from app.models.order import OrderDetail


class InventoryLot(Base):
    """
    Physical pallet lot received into the warehouse.

    Once any lot exists for an order detail, lots become the authoritative
    capacity source for it. A consignment received in several splits has
    several lots, each reconciled against the same booking ledger.
    """
    __tablename__ = "inventory_lots"
    __table_args__ = (
        CheckConstraint("pallet_count >= 0", name="ck_inventory_lots_pallet_count"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    order_detail_id: Mapped[int] = mapped_column(
        BigIntFK,
        ForeignKey("order_detail.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    lot_number: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    # Quantities
    pallet_count: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        comment="Physically received pallets"
    )
    unbooked_pallet_count: Mapped[Optional[int]] = mapped_column(
        Integer,
        nullable=True,
        comment="pallet_count minus all effective bookings"
    )
    remaining_pallet_count: Mapped[Optional[int]] = mapped_column(
        Integer,
        nullable=True,
        comment="pallet_count minus expired effective bookings"
    )

    received_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        comment="System timestamp at receipt"
    )

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
    order_detail: Mapped["OrderDetail"] = relationship("OrderDetail", back_populates="lots")

    def __repr__(self) -> str:
        return f"<InventoryLot(id={self.id}, pallets={self.pallet_count})>"
