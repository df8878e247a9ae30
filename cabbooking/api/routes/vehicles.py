"""
Vehicle endpoints (read-only)
=============================

GET /api/v1/vehicles/available?electric=true -- vehicles free to allocate
"""

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from cabbooking.api.dependencies import get_db
from cabbooking.api.middleware import limiter
from cabbooking.api.schemas import VehicleResponse
from cabbooking.infrastructure.repositories import VehicleRepository

router = APIRouter(prefix="/vehicles", tags=["vehicles"])


@router.get(
    "/available",
    response_model=list[VehicleResponse],
    summary="List available vehicles",
)
@limiter.limit("100/minute")
async def list_available(
    request: Request,
    electric: bool = Query(False, description="Only electric vehicles"),
    db: AsyncSession = Depends(get_db),
):
    return await VehicleRepository(db).find_available(electric_only=electric)
