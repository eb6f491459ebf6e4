"""
Admin / observability endpoints
===============================

GET  /api/admin/health    -- simple health check
POST /api/admin/reconcile -- repair drifted driver -> trip pointers now
"""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.dependencies import get_db
from src.api.middleware import RATE_LIMIT, limiter
from src.api.schemas import HealthResponse, ReconcileResponse
from src.workers.reconciler import reconcile_driver_pointers

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/health", response_model=HealthResponse, summary="Health check")
async def health():
    return HealthResponse()


@router.post(
    "/reconcile",
    response_model=ReconcileResponse,
    summary="Re-derive every driver's active trip from the trips table",
)
@limiter.limit(RATE_LIMIT)
async def reconcile(request: Request, db: AsyncSession = Depends(get_db)):
    repaired = await reconcile_driver_pointers(db)
    return ReconcileResponse(repaired=repaired)
