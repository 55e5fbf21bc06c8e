"""
Background Jobs Module

Handles scheduled tasks for:
- Business clock advance
- Full pallet reconciliation
"""

from app.jobs.scheduler import scheduler, start_scheduler, shutdown_scheduler
from app.jobs.pallet_jobs import (
    PalletReconciliationJob,
    BatchReconciliationReport,
    ReconciliationFailure,
    advance_system_timestamp,
    reconcile_all_pallets,
)

__all__ = [
    "scheduler",
    "start_scheduler",
    "shutdown_scheduler",
    "PalletReconciliationJob",
    "BatchReconciliationReport",
    "ReconciliationFailure",
    "advance_system_timestamp",
    "reconcile_all_pallets",
]
