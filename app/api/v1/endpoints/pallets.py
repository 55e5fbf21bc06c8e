"""Pallet counter and reconciliation API endpoints."""
from typing import Optional

from fastapi import APIRouter, HTTPException, status

from app.api.deps import DB, SessionFactory
from app.jobs.pallet_jobs import PalletReconciliationJob
from app.schemas.pallet import (
    CapacityCountersResponse,
    PalletCountersResponse,
    ReconciliationResultResponse,
    RecalculateRequest,
    BatchReconciliationResponse,
)
from app.services.pallet_reconciliation_service import PalletReconciliationService


router = APIRouter(tags=["Pallets"])


@router.get("/{order_detail_id}/counters", response_model=PalletCountersResponse)
async def get_pallet_counters(order_detail_id: int, db: DB):
    """Stored unbooked/remaining counters per capacity source (no recompute)."""
    try:
        counters = await PalletReconciliationService(db).get_counters(order_detail_id)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )
    return PalletCountersResponse(
        order_detail_id=order_detail_id,
        counters=[CapacityCountersResponse.model_validate(c) for c in counters],
    )


@router.post("/reconcile/{order_detail_id}", response_model=ReconciliationResultResponse)
async def reconcile_order_detail(order_detail_id: int, db: DB):
    """Recompute the counters of one consignment from the full ledger."""
    try:
        result = await PalletReconciliationService(db).reconcile(order_detail_id)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )
    return ReconciliationResultResponse.model_validate(result)


@router.post("/recalculate", response_model=BatchReconciliationResponse)
async def recalculate_all_pallets(
    factory: SessionFactory,
    data: Optional[RecalculateRequest] = None,
):
    """
    Run the batch reconciliation over every consignment.
    Each consignment commits on its own; failures are listed in the report.
    """
    data = data or RecalculateRequest()
    job = PalletReconciliationJob(factory=factory)
    report = await job.run_full(start_after_id=data.start_after_id, limit=data.limit)
    return BatchReconciliationResponse.model_validate(report)
