from fastapi import APIRouter

from app.api.v1.endpoints import (
    # Business clock
    system_timestamp,
    cron,
    # Pallet reconciliation
    pallets,
    # Booking ledger
    appointments,
    appointment_lines,
    # Receipts
    inventory_lots,
    # Orders
    orders,
)


# Create main API router
api_router = APIRouter(prefix="/api/v1")

# ==================== Business Clock ====================
api_router.include_router(
    system_timestamp.router,
    prefix="/system/timestamp",
    tags=["System Timestamp"]
)
api_router.include_router(
    cron.router,
    prefix="/cron",
    tags=["Cron"]
)

# ==================== Pallet Reconciliation ====================
api_router.include_router(
    pallets.router,
    prefix="/pallets",
    tags=["Pallets"]
)

# ==================== Booking Ledger ====================
api_router.include_router(
    appointments.router,
    prefix="/appointments",
    tags=["Appointments"]
)
api_router.include_router(
    appointment_lines.router,
    prefix="/appointment-detail-lines",
    tags=["Appointment Lines"]
)

# ==================== Receipts ====================
api_router.include_router(
    inventory_lots.router,
    prefix="/inventory-lots",
    tags=["Inventory Lots"]
)

# ==================== Orders ====================
api_router.include_router(
    orders.router,
    prefix="/orders",
    tags=["Orders"]
)
