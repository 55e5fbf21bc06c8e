"""Delivery appointment API endpoints."""
from fastapi import APIRouter, HTTPException, status

from app.api.deps import DB, OptionalActor, SessionFactory
from app.schemas.appointment import (
    AppointmentCreate,
    AppointmentUpdate,
    AppointmentResponse,
    AppointmentDetail,
    AppointmentLineResponse,
    BatchDeleteRequest,
    BatchDeleteResponse,
)
from app.services.appointment_service import AppointmentService, delete_appointments


router = APIRouter(tags=["Appointments"])


async def _detail(service: AppointmentService, appointment) -> AppointmentDetail:
    lines = await service.get_lines(appointment.id)
    return AppointmentDetail(
        **AppointmentResponse.model_validate(appointment).model_dump(),
        lines=[AppointmentLineResponse.model_validate(line) for line in lines],
    )


@router.get("/{appointment_id}", response_model=AppointmentDetail)
async def get_appointment(appointment_id: int, db: DB):
    service = AppointmentService(db)
    appointment = await service.get_appointment(appointment_id)
    return await _detail(service, appointment)


@router.post("", response_model=AppointmentDetail, status_code=status.HTTP_201_CREATED)
async def create_appointment(
    data: AppointmentCreate,
    db: DB,
    actor: OptionalActor,
):
    """
    Create an appointment with its booking lines.
    Every booked consignment is reconciled before the response is sent.
    """
    service = AppointmentService(db, actor_id=actor)
    try:
        appointment = await service.create_appointment(
            reference_number=data.reference_number,
            order_id=data.order_id,
            appointment_account=data.appointment_account,
            requested_start=data.requested_start,
            confirmed_start=data.confirmed_start,
            lines=[line.model_dump() for line in data.lines],
        )
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )
    return await _detail(service, appointment)


@router.patch("/{appointment_id}", response_model=AppointmentDetail)
async def update_appointment(
    appointment_id: int,
    data: AppointmentUpdate,
    db: DB,
    actor: OptionalActor,
):
    """Reschedule, reject/un-reject or relink an appointment."""
    service = AppointmentService(db, actor_id=actor)
    try:
        appointment = await service.update_appointment(
            appointment_id, **data.model_dump(exclude_unset=True)
        )
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )
    return await _detail(service, appointment)


@router.delete("/{appointment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_appointment(appointment_id: int, db: DB, actor: OptionalActor):
    """Delete an appointment and its lines, reconciling every consignment it touched."""
    await AppointmentService(db, actor_id=actor).delete_appointment(appointment_id)


@router.post("/batch-delete", response_model=BatchDeleteResponse)
async def batch_delete_appointments(
    data: BatchDeleteRequest,
    factory: SessionFactory,
    actor: OptionalActor,
):
    """Delete several appointments; each one commits or fails on its own."""
    report = await delete_appointments(data.appointment_ids, factory=factory, actor_id=actor)
    return BatchDeleteResponse.model_validate(report)
