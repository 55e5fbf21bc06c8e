"""Pallet reconciliation schemas for API requests/responses."""
from datetime import date
from typing import Optional, List

from pydantic import BaseModel, Field

from app.schemas.base import BaseResponseSchema


# ==================== COUNTER SCHEMAS ====================

class CapacityCountersResponse(BaseResponseSchema):
    """Counters of one capacity source (a lot, or the order estimate)."""
    source_type: str = Field(..., description="estimated or actual")
    lot_id: Optional[int] = None
    quantity: int
    unbooked: Optional[int] = None
    remaining: Optional[int] = None


class PalletCountersResponse(BaseModel):
    order_detail_id: int
    counters: List[CapacityCountersResponse]


class ReconciliationResultResponse(BaseResponseSchema):
    order_detail_id: int
    reference_date: date
    total_effective: int
    expired_effective: int
    counters: List[CapacityCountersResponse]


# ==================== BATCH SCHEMAS ====================

class RecalculateRequest(BaseModel):
    """Full or partial batch reconciliation."""
    start_after_id: Optional[int] = Field(None, ge=0)
    limit: Optional[int] = Field(None, ge=1)


class ReconciliationFailureResponse(BaseResponseSchema):
    order_detail_id: int
    reason: str
    error_type: str


class BatchReconciliationResponse(BaseResponseSchema):
    processed: int
    failed: int
    failures: List[ReconciliationFailureResponse]
    last_id: Optional[int] = None
    cancelled: bool = False
    reference_date: Optional[date] = None
