"""
Cron entry points.

Called by an external scheduler on a fixed cadence. When CRON_SECRET is
configured the caller must send it as a bearer token.
"""
from typing import Optional
import logging

from fastapi import APIRouter, Header, HTTPException, Query, status

from app.api.deps import DB
from app.config import settings
from app.jobs.pallet_jobs import SCHEDULER_ACTOR
from app.schemas.system_timestamp import SystemTimestampUpdateResult
from app.services.system_timestamp_service import SystemTimestampService


logger = logging.getLogger(__name__)

router = APIRouter(tags=["Cron"])


def _check_cron_secret(authorization: Optional[str]) -> None:
    if not settings.CRON_SECRET:
        return
    if authorization != f"Bearer {settings.CRON_SECRET}":
        logger.warning("Rejected cron call with missing or wrong secret")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized"
        )


@router.get("/update-system-timestamp", response_model=SystemTimestampUpdateResult)
async def update_system_timestamp(
    db: DB,
    interval_minutes: Optional[int] = Query(None, description="Defaults to SYSTEM_TIMESTAMP_ADVANCE_MINUTES"),
    authorization: Optional[str] = Header(None),
):
    """Advance the business clock by a fixed step."""
    _check_cron_secret(authorization)

    minutes = settings.SYSTEM_TIMESTAMP_ADVANCE_MINUTES if interval_minutes is None else interval_minutes
    service = SystemTimestampService(db, actor_id=SCHEDULER_ACTOR)
    try:
        value = await service.advance(minutes)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )
    return SystemTimestampUpdateResult(value=value, current_date=value.date())
