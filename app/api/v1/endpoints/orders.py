"""Order appointment projection API endpoints."""
from fastapi import APIRouter

from app.api.deps import DB
from app.schemas.appointment import OrderAppointmentInfoResponse
from app.services.order_appointment_service import OrderAppointmentService


router = APIRouter(tags=["Orders"])


@router.post("/{order_id}/sync-appointment-info", response_model=OrderAppointmentInfoResponse)
async def sync_order_appointment_info(order_id: int, db: DB):
    """
    Recompute the order's earliest booking (time and warehouse account).
    Normally maintained by booking writes; exposed for repair after bulk edits.
    """
    info = await OrderAppointmentService(db).project(order_id)
    return OrderAppointmentInfoResponse.model_validate(info)
