"""System timestamp (business clock) API endpoints."""
from fastapi import APIRouter, HTTPException, status

from app.api.deps import DB, CurrentActor
from app.schemas.system_timestamp import (
    SystemTimestampResponse,
    SystemTimestampSet,
    SystemTimestampAdvance,
    SystemTimestampUpdateResult,
)
from app.services.system_timestamp_service import SystemTimestampService


router = APIRouter(tags=["System Timestamp"])


@router.get("", response_model=SystemTimestampResponse)
async def get_system_timestamp(db: DB):
    """Get the current business clock and who last moved it."""
    config = await SystemTimestampService(db).get_config()
    return SystemTimestampResponse(
        value=config.value,
        current_date=config.value.date(),
        version=config.version,
        updated_at=config.updated_at,
        updated_by=config.updated_by,
    )


@router.put("", response_model=SystemTimestampUpdateResult)
async def set_system_timestamp(
    data: SystemTimestampSet,
    db: DB,
    actor: CurrentActor,
):
    """
    Overwrite the business clock.
    Used for initial seeding and administrative correction.
    """
    service = SystemTimestampService(db, actor_id=actor)
    try:
        value = await service.set(data.value)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )
    return SystemTimestampUpdateResult(value=value, current_date=value.date())


@router.post("/advance", response_model=SystemTimestampUpdateResult)
async def advance_system_timestamp(
    data: SystemTimestampAdvance,
    db: DB,
    actor: CurrentActor,
):
    """Advance the business clock by interval_minutes."""
    service = SystemTimestampService(db, actor_id=actor)
    try:
        value = await service.advance(data.interval_minutes)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )
    return SystemTimestampUpdateResult(value=value, current_date=value.date())
