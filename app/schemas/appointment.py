"""Delivery appointment schemas for API requests/responses."""
from datetime import datetime
from typing import Optional, List, Dict, Any

from pydantic import BaseModel, Field

from app.schemas.base import BaseResponseSchema, BaseCreateSchema, BaseUpdateSchema


# ==================== LINE SCHEMAS ====================

class AppointmentLineItem(BaseModel):
    """Line booked together with a new appointment."""
    order_detail_id: int
    estimated_pallets: int = Field(..., ge=0)
    rejected_pallets: int = Field(0, ge=0)


class AppointmentLineCreate(BaseCreateSchema):
    appointment_id: int
    order_detail_id: int
    estimated_pallets: int = Field(..., ge=0)
    rejected_pallets: int = Field(0, ge=0)


class AppointmentLineUpdate(BaseUpdateSchema):
    estimated_pallets: Optional[int] = Field(None, ge=0)
    rejected_pallets: Optional[int] = Field(None, ge=0)


class AppointmentLineResponse(BaseResponseSchema):
    id: int
    appointment_id: int
    order_detail_id: int
    estimated_pallets: int
    rejected_pallets: int
    effective_pallets: int
    total_pallets_at_time: Optional[int] = None
    created_by: Optional[str] = None
    updated_by: Optional[str] = None


class BatchMoveRequest(BaseModel):
    line_ids: List[int] = Field(..., min_length=1)
    target_reference_number: str = Field(..., min_length=1)


class BatchMoveResponse(BaseResponseSchema):
    moved: int
    source_appointment_id: int
    target_appointment_id: int
    line_ids: List[int]


# ==================== APPOINTMENT SCHEMAS ====================

class AppointmentCreate(BaseCreateSchema):
    reference_number: str = Field(..., min_length=1, max_length=50)
    order_id: Optional[int] = None
    appointment_account: Optional[str] = None
    requested_start: Optional[datetime] = None
    confirmed_start: Optional[datetime] = None
    lines: List[AppointmentLineItem] = Field(default_factory=list)


class AppointmentUpdate(BaseUpdateSchema):
    """Only fields present in the request are applied."""
    order_id: Optional[int] = None
    appointment_account: Optional[str] = None
    requested_start: Optional[datetime] = None
    confirmed_start: Optional[datetime] = None
    rejected: Optional[bool] = None


class AppointmentResponse(BaseResponseSchema):
    id: int
    reference_number: str
    order_id: Optional[int] = None
    appointment_account: Optional[str] = None
    requested_start: Optional[datetime] = None
    confirmed_start: Optional[datetime] = None
    rejected: bool
    total_pallets: int


class AppointmentDetail(AppointmentResponse):
    lines: List[AppointmentLineResponse] = Field(default_factory=list)


class BatchDeleteRequest(BaseModel):
    appointment_ids: List[int] = Field(..., min_length=1)


class BatchDeleteResponse(BaseResponseSchema):
    deleted: int
    failed: int
    deleted_ids: List[int]
    failures: List[Dict[str, Any]]


# ==================== ORDER PROJECTION ====================

class OrderAppointmentInfoResponse(BaseResponseSchema):
    order_id: int
    appointment_id: Optional[int] = None
    appointment_time: Optional[datetime] = None
    warehouse_account: Optional[str] = None
