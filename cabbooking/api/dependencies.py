"""FastAPI dependency injection helpers."""

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession

from cabbooking.services.booking import BookingService


def get_booking_service(request: Request) -> BookingService:
    """The orchestrator built by ``create_app``."""
    return request.app.state.booking_service


async def get_db(request: Request) -> AsyncSession:  # type: ignore[misc]
    """Yield an async DB session; commit on success, rollback on error."""
    async with request.app.state.session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
