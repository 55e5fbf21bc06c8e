"""System timestamp schemas for API requests/responses."""
from datetime import date, datetime
from typing import Optional, Union

from pydantic import BaseModel, Field

from app.schemas.base import BaseResponseSchema


class SystemTimestampResponse(BaseResponseSchema):
    """Current business clock."""
    value: datetime
    current_date: date
    version: int
    updated_at: Optional[datetime] = None
    updated_by: Optional[str] = None


class SystemTimestampSet(BaseModel):
    """Overwrite the business clock. A bare date means midnight of that day."""
    value: Union[datetime, date]


class SystemTimestampAdvance(BaseModel):
    """Advance the business clock by a positive number of minutes."""
    interval_minutes: int = Field(30, description="Minutes to add, must be positive")


class SystemTimestampUpdateResult(BaseModel):
    success: bool = True
    value: datetime
    current_date: date
