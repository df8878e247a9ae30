"""
FastAPI application factory.

* Builds the booking core: allocator, settlement scheduler, audit sink and
  the ``BookingService`` orchestrator, stored on ``app.state``.
* Drains outstanding settlements on shutdown via the lifespan hook.
* Maps ``BookingRejection`` reasons to HTTP status codes.
* Applies rate-limiting.
* Swagger / OpenAPI UI available at ``/docs``.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from cabbooking.api.middleware import limiter
from cabbooking.api.routes import admin, bookings, vehicles
from cabbooking.config import settings
from cabbooking.domain.exceptions import BookingRejection, RejectionReason
from cabbooking.infrastructure.audit import AuditSink, FileAuditSink
from cabbooking.infrastructure.locks import DistributedLock
from cabbooking.services.allocator import VehicleAllocator
from cabbooking.services.booking import BookingService
from cabbooking.workers.settlement import SettlementScheduler

logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)

REJECTION_STATUS = {
    RejectionReason.VALIDATION: 422,
    RejectionReason.NOT_FOUND: 404,
    RejectionReason.NO_CAPACITY: 409,
    RejectionReason.PERSISTENCE: 503,
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Let in-flight settlements finish on shutdown."""
    yield
    await app.state.settlements.shutdown()


async def _booking_rejected(request: Request, exc: BookingRejection) -> JSONResponse:
    return JSONResponse(
        status_code=REJECTION_STATUS[exc.reason],
        content={"detail": exc.message, "reason": exc.reason.value},
    )


def _allocation_lock_factory():
    if not settings.distributed_allocation_lock:
        return None
    from cabbooking.infrastructure.redis_client import get_redis

    redis = get_redis()
    logger.info("Vehicle allocation guarded by Redis lock")
    return lambda: DistributedLock(
        redis,
        "vehicle_allocation",
        ttl_seconds=settings.allocation_lock_ttl_seconds,
        wait_seconds=settings.allocation_lock_wait_seconds,
    )


def create_app(
    session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
    audit_sink: Optional[AuditSink] = None,
    settlements: Optional[SettlementScheduler] = None,
) -> FastAPI:
    if session_factory is None:
        from cabbooking.infrastructure.database import async_session_factory

        session_factory = async_session_factory

    app = FastAPI(
        title="Cab Booking API",
        description=(
            "Books rides against a shared vehicle pool, prices them, "
            "records carbon saved on eco rides and settles payment "
            "(UPI, card or cash) in the background."
        ),
        version="1.0.0",
        lifespan=lifespan,
    )

    if settlements is None:
        settlements = SettlementScheduler(
            session_factory,
            grace_seconds=settings.settlement_grace_seconds,
            timeout_seconds=settings.settlement_timeout_seconds,
            max_concurrency=settings.settlement_max_concurrency,
        )
    app.state.session_factory = session_factory
    app.state.settlements = settlements
    app.state.booking_service = BookingService(
        session_factory,
        VehicleAllocator(lock_factory=_allocation_lock_factory()),
        settlements,
        audit_sink if audit_sink is not None else FileAuditSink(settings.audit_log_path),
        tax_rate=settings.tax_rate,
        carbon_saved_per_km=settings.carbon_saved_per_km,
        upi_provider=settings.upi_provider,
    )

    # Rate limiter
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    app.add_exception_handler(BookingRejection, _booking_rejected)

    # Routers
    app.include_router(bookings.router, prefix="/api/v1")
    app.include_router(vehicles.router, prefix="/api/v1")
    app.include_router(admin.router, prefix="/api/v1")

    return app
