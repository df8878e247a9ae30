"""
Admin / observability endpoints
===============================

GET /api/v1/admin/health -- liveness plus the number of unsettled payments
"""

from fastapi import APIRouter, Request

from cabbooking.api.schemas import HealthResponse

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/health", response_model=HealthResponse, summary="Health check")
async def health(request: Request):
    return HealthResponse(pending_settlements=request.app.state.settlements.pending)
