# Services module
from app.services.system_timestamp_service import SystemTimestampService
from app.services.capacity_source_service import (
    CapacitySourceResolver,
    EstimatedCapacity,
    ActualCapacity,
)
from app.services.booking_ledger_service import BookingLedgerReader, BookingLineView
from app.services.pallet_reconciliation_service import PalletReconciliationService

# Write paths
from app.services.appointment_service import AppointmentService
from app.services.inventory_lot_service import InventoryLotService
from app.services.order_appointment_service import OrderAppointmentService

__all__ = [
    "SystemTimestampService",
    "CapacitySourceResolver",
    "EstimatedCapacity",
    "ActualCapacity",
    "BookingLedgerReader",
    "BookingLineView",
    "PalletReconciliationService",
    # Write paths
    "AppointmentService",
    "InventoryLotService",
    "OrderAppointmentService",
]
