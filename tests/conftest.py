"""
Shared test fixtures.

Each test gets its own SQLite database file (via aiosqlite) so tests run
without Docker / PostgreSQL / Redis.  The production ORM models are used
unchanged.  Settlement runs with no grace delay so tests only wait for
``scheduler.drain()``.
"""

from __future__ import annotations

from typing import AsyncGenerator, Optional

import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from cabbooking.domain.entities import BookingRequest
from cabbooking.domain.enums import BookingStatus, PaymentStatus, VehicleType
from cabbooking.infrastructure.audit import AuditSink
from cabbooking.infrastructure.database import Base, build_session_factory
from cabbooking.infrastructure.models import (
    BookingModel,
    DriverModel,
    RiderModel,
    VehicleModel,
)
from cabbooking.infrastructure.repositories import VehicleRepository
from cabbooking.services.allocator import VehicleAllocator
from cabbooking.services.booking import BookingService
from cabbooking.workers.settlement import SettlementScheduler


class RecordingAuditSink(AuditSink):
    def __init__(self):
        self.lines: list[str] = []

    async def append(self, line: str) -> None:
        self.lines.append(line)


# ── Data helpers ──────────────────────────────────────────────────────


async def add_rider(factory, name: str = "Test Rider", email: str = "rider@example.com") -> int:
    async with factory() as session:
        rider = RiderModel(name=name, email=email)
        session.add(rider)
        await session.commit()
        return rider.id


async def add_vehicle(
    factory,
    registration: str,
    *,
    rate_per_km: float = 10.0,
    is_electric: bool = False,
    is_available: bool = True,
    with_driver: bool = True,
) -> int:
    async with factory() as session:
        driver_id = None
        if with_driver:
            driver = DriverModel(
                name=f"Driver {registration}",
                license_number=f"LIC-{registration}",
                phone="9988776655",
                rating=4.5,
            )
            session.add(driver)
            await session.flush()
            driver_id = driver.id
        vehicle = VehicleModel(
            registration_number=registration,
            vehicle_type=VehicleType.SEDAN,
            rate_per_km=rate_per_km,
            is_electric=is_electric,
            seats=4,
            is_available=is_available,
            driver_id=driver_id,
        )
        session.add(vehicle)
        await session.commit()
        return vehicle.id


async def add_booking(
    factory,
    rider_id: int,
    vehicle_id: int,
    *,
    fare: float,
    payment_method: str,
) -> int:
    """Insert a CONFIRMED booking directly, bypassing the orchestrator."""
    from datetime import datetime, timezone

    async with factory() as session:
        booking = BookingModel(
            rider_id=rider_id,
            vehicle_id=vehicle_id,
            pickup_location="Airport",
            drop_location="Downtown",
            distance=10.0,
            fare=fare,
            status=BookingStatus.CONFIRMED,
            eco_ride=False,
            carbon_saved=0.0,
            payment_method=payment_method,
            payment_status=PaymentStatus.PENDING,
            created_at=datetime.now(timezone.utc),
        )
        session.add(booking)
        await session.commit()
        return booking.id


async def get_vehicle(factory, vehicle_id: int) -> Optional[VehicleModel]:
    async with factory() as session:
        return await VehicleRepository(session).get_by_id(vehicle_id)


async def get_booking(factory, booking_id: int) -> Optional[BookingModel]:
    async with factory() as session:
        return await session.get(BookingModel, booking_id)


def make_request(rider_id: int, **overrides) -> BookingRequest:
    fields = dict(
        rider_id=rider_id,
        pickup_location="Airport Terminal 1",
        drop_location="Connaught Place",
        distance=10.0,
        payment_method="CARD",
        card_number="1234567890123456",
        bank_name="HDFC",
    )
    fields.update(overrides)
    return BookingRequest(**fields)


# ── Fixtures ──────────────────────────────────────────────────────────


@pytest_asyncio.fixture
async def session_factory(tmp_path) -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    """Fresh database per test; tables created from the ORM metadata."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield build_session_factory(engine)

    await engine.dispose()


@pytest_asyncio.fixture
async def scheduler(session_factory) -> AsyncGenerator[SettlementScheduler, None]:
    scheduler = SettlementScheduler(
        session_factory, grace_seconds=0, timeout_seconds=5, max_concurrency=5
    )
    yield scheduler
    await scheduler.shutdown()


@pytest_asyncio.fixture
async def audit_sink() -> RecordingAuditSink:
    return RecordingAuditSink()


@pytest_asyncio.fixture
async def service(session_factory, scheduler, audit_sink) -> BookingService:
    return BookingService(
        session_factory,
        VehicleAllocator(),
        scheduler,
        audit_sink,
    )
