"""
Base Schema Classes for Pydantic Models

This module provides base classes for request and response schemas so ORM
objects and service result dataclasses serialize consistently.

RULE: All response schemas that use `from_attributes=True` MUST inherit from BaseResponseSchema.
"""

from pydantic import BaseModel, ConfigDict


class BaseResponseSchema(BaseModel):
    """
    Base class for all response schemas that read from ORM models or
    service result dataclasses.

    Usage:
        class InventoryLotResponse(BaseResponseSchema):
            id: int
            pallet_count: int
            unbooked_pallet_count: Optional[int] = None
    """
    model_config = ConfigDict(
        from_attributes=True,
        # Allow population by field name or alias
        populate_by_name=True,
    )


class BaseCreateSchema(BaseModel):
    """
    Base class for create/input schemas.

    No from_attributes needed since these don't read from ORM.
    """
    model_config = ConfigDict(
        # Allow extra fields to be ignored (forward compatibility)
        extra='ignore',
    )


class BaseUpdateSchema(BaseModel):
    """
    Base class for update/patch schemas.

    All fields are optional by default for partial updates; only the
    fields actually sent are applied (model_dump(exclude_unset=True)).
    """
    model_config = ConfigDict(
        extra='ignore',
    )
