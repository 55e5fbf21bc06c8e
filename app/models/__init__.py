from app.models.order import Order, OrderDetail
from app.models.inventory import InventoryLot
from app.models.appointment import DeliveryAppointment, AppointmentDetailLine
from app.models.system_config import SystemConfig, SystemConfigAudit, SYSTEM_TIMESTAMP_KEY

__all__ = [
    "Order",
    "OrderDetail",
    "InventoryLot",
    "DeliveryAppointment",
    "AppointmentDetailLine",
    "SystemConfig",
    "SystemConfigAudit",
    "SYSTEM_TIMESTAMP_KEY",
]
