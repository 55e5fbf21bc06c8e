"""Inventory lot (receipt) API endpoints."""
from fastapi import APIRouter, HTTPException, status

from app.api.deps import DB
from app.schemas.inventory import InventoryLotCreate, InventoryLotUpdate, InventoryLotResponse
from app.services.inventory_lot_service import InventoryLotService


router = APIRouter(tags=["Inventory Lots"])


@router.get("/{lot_id}", response_model=InventoryLotResponse)
async def get_lot(lot_id: int, db: DB):
    lot = await InventoryLotService(db).get_lot(lot_id)
    return InventoryLotResponse.model_validate(lot)


@router.post("", response_model=InventoryLotResponse, status_code=status.HTTP_201_CREATED)
async def receive_lot(data: InventoryLotCreate, db: DB):
    """
    Receive pallets for an order detail.
    The first lot switches the consignment from estimated to actual capacity.
    """
    service = InventoryLotService(db)
    try:
        lot = await service.receive_lot(
            order_detail_id=data.order_detail_id,
            pallet_count=data.pallet_count,
            lot_number=data.lot_number,
        )
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )
    return InventoryLotResponse.model_validate(lot)


@router.patch("/{lot_id}", response_model=InventoryLotResponse)
async def update_lot(lot_id: int, data: InventoryLotUpdate, db: DB):
    """Apply a physical recount."""
    service = InventoryLotService(db)
    try:
        lot = await service.update_pallet_count(lot_id, data.pallet_count)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )
    return InventoryLotResponse.model_validate(lot)
