"""Inventory lot schemas for API requests/responses."""
from datetime import datetime
from typing import Optional

from pydantic import Field

from app.schemas.base import BaseResponseSchema, BaseCreateSchema, BaseUpdateSchema


class InventoryLotCreate(BaseCreateSchema):
    """Physical receipt of pallets for an order detail."""
    order_detail_id: int
    pallet_count: int = Field(..., ge=0)
    lot_number: Optional[str] = Field(None, max_length=50)


class InventoryLotUpdate(BaseUpdateSchema):
    """Physical recount."""
    pallet_count: int = Field(..., ge=0)


class InventoryLotResponse(BaseResponseSchema):
    id: int
    order_detail_id: int
    lot_number: Optional[str] = None
    pallet_count: int
    unbooked_pallet_count: Optional[int] = None
    remaining_pallet_count: Optional[int] = None
    received_at: Optional[datetime] = None
