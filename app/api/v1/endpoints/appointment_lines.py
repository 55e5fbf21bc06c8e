"""Appointment detail line (booking line) API endpoints."""
from fastapi import APIRouter, HTTPException, status

from app.api.deps import DB, OptionalActor
from app.schemas.appointment import (
    AppointmentLineCreate,
    AppointmentLineUpdate,
    AppointmentLineResponse,
    BatchMoveRequest,
    BatchMoveResponse,
)
from app.services.appointment_service import AppointmentService


router = APIRouter(tags=["Appointment Lines"])


@router.post("", response_model=AppointmentLineResponse, status_code=status.HTTP_201_CREATED)
async def create_line(
    data: AppointmentLineCreate,
    db: DB,
    actor: OptionalActor,
):
    """Book pallets of an order detail on an appointment."""
    service = AppointmentService(db, actor_id=actor)
    try:
        line = await service.create_line(
            appointment_id=data.appointment_id,
            order_detail_id=data.order_detail_id,
            estimated_pallets=data.estimated_pallets,
            rejected_pallets=data.rejected_pallets,
        )
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )
    return AppointmentLineResponse.model_validate(line)


@router.patch("/{line_id}", response_model=AppointmentLineResponse)
async def update_line(
    line_id: int,
    data: AppointmentLineUpdate,
    db: DB,
    actor: OptionalActor,
):
    """Change booked or rejected pallets of a line."""
    service = AppointmentService(db, actor_id=actor)
    try:
        line = await service.update_line(
            line_id,
            estimated_pallets=data.estimated_pallets,
            rejected_pallets=data.rejected_pallets,
        )
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )
    return AppointmentLineResponse.model_validate(line)


@router.delete("/{line_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_line(line_id: int, db: DB, actor: OptionalActor):
    await AppointmentService(db, actor_id=actor).delete_line(line_id)


@router.post("/batch-move", response_model=BatchMoveResponse)
async def batch_move_lines(
    data: BatchMoveRequest,
    db: DB,
    actor: OptionalActor,
):
    """Move lines from one appointment to another (by reference number)."""
    service = AppointmentService(db, actor_id=actor)
    try:
        result = await service.move_lines(data.line_ids, data.target_reference_number)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )
    return BatchMoveResponse.model_validate(result)
