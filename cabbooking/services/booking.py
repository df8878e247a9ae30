"""
Booking Orchestrator
====================

``create_booking`` steps
------------------------
1. Validate the request (locations, distance, payment method).
2. Resolve the rider; unknown id -> ``RiderNotFound``.
3. Inside the allocator's critical section: reserve a vehicle, compute fare
   and carbon saved, persist the booking (CONFIRMED, payment PENDING) and
   commit.  Reservation and booking row share one transaction; if the store
   fails, the transaction is rolled back and the vehicle explicitly released
   before ``BookingPersistenceError`` is raised.  An unobtainable allocation
   lock raises ``AllocationUnavailable`` (also PERSISTENCE) before any
   reservation.
4. Hand the payment details to the settlement scheduler and return without
   waiting for settlement.
5. Append one audit line; audit failures are logged and dropped.

No step before the commit leaves anything behind on rejection.
"""

from __future__ import annotations

import dataclasses
import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from cabbooking.domain.distance import haversine_km
from cabbooking.domain.entities import BookingRequest, BookingView, check_transition
from cabbooking.domain.enums import BookingStatus, PaymentStatus
from cabbooking.domain.exceptions import (
    BookingNotFound,
    BookingPersistenceError,
    InvalidBookingRequest,
    InvalidStateTransition,
    NoVehicleAvailable,
    RiderNotFound,
    UnsupportedPaymentMethod,
)
from cabbooking.domain.fares import (
    CARBON_SAVED_PER_KM,
    TAX_RATE,
    calculate_carbon_saved,
    calculate_fare,
)
from cabbooking.domain.payments import details_from_request, resolve_method
from cabbooking.infrastructure.audit import AuditSink, format_booking_line
from cabbooking.infrastructure.models import BookingModel, DriverModel, RiderModel, VehicleModel
from cabbooking.infrastructure.repositories import (
    BookingRepository,
    DriverRepository,
    RiderRepository,
    VehicleRepository,
)
from cabbooking.services.allocator import VehicleAllocator
from cabbooking.workers.settlement import SettlementScheduler

logger = logging.getLogger(__name__)


def project(
    booking: BookingModel,
    rider: RiderModel,
    vehicle: VehicleModel,
    driver: Optional[DriverModel],
) -> BookingView:
    """Flatten a booking and its parties into the response shape."""
    return BookingView(
        id=booking.id,
        rider_id=rider.id,
        rider_name=rider.name,
        rider_email=rider.email,
        pickup_location=booking.pickup_location,
        drop_location=booking.drop_location,
        distance=booking.distance,
        fare=booking.fare,
        status=BookingStatus(booking.status).value,
        created_at=booking.created_at,
        eco_ride=booking.eco_ride,
        carbon_saved=booking.carbon_saved,
        vehicle_id=vehicle.id,
        registration_number=vehicle.registration_number,
        vehicle_type=getattr(vehicle.vehicle_type, "value", vehicle.vehicle_type),
        is_electric=vehicle.is_electric,
        driver_id=driver.id if driver else None,
        driver_name=driver.name if driver else None,
        driver_phone=driver.phone if driver else None,
        driver_rating=driver.rating if driver else None,
        payment_method=booking.payment_method,
        payment_status=PaymentStatus(booking.payment_status).value,
        payment_message=booking.payment_details,
    )


class BookingService:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        allocator: VehicleAllocator,
        settlements: SettlementScheduler,
        audit_sink: Optional[AuditSink] = None,
        *,
        tax_rate: float = TAX_RATE,
        carbon_saved_per_km: float = CARBON_SAVED_PER_KM,
        upi_provider: str = "PhonePe",
    ):
        self.session_factory = session_factory
        self.allocator = allocator
        self.settlements = settlements
        self.audit_sink = audit_sink
        self.tax_rate = tax_rate
        self.carbon_saved_per_km = carbon_saved_per_km
        self.upi_provider = upi_provider

    # ── Creation ──────────────────────────────────────────────────────

    async def create_booking(self, request: BookingRequest) -> BookingView:
        try:
            method = resolve_method(request.payment_method)
        except UnsupportedPaymentMethod as exc:
            raise InvalidBookingRequest(str(exc)) from None
        distance = self._resolve_distance(request)
        details = details_from_request(method, request, upi_provider=self.upi_provider)

        async with self.session_factory() as session:
            rider = await RiderRepository(session).get_by_id(request.rider_id)
            if rider is None:
                raise RiderNotFound(f"Rider {request.rider_id} not found")

            vehicles = VehicleRepository(session)
            bookings = BookingRepository(session)
            async with self.allocator.critical_section():
                vehicle = None
                try:
                    vehicle = await self.allocator.allocate(vehicles, request.eco_ride)
                    if vehicle is None:
                        logger.info(
                            "No vehicle available for rider %s (eco=%s)",
                            rider.id,
                            request.eco_ride,
                        )
                        raise NoVehicleAvailable("No cabs available at the moment")

                    booking = BookingModel(
                        rider_id=rider.id,
                        vehicle_id=vehicle.id,
                        pickup_location=request.pickup_location,
                        drop_location=request.drop_location,
                        distance=distance,
                        fare=calculate_fare(distance, vehicle.rate_per_km, self.tax_rate),
                        status=BookingStatus.CONFIRMED,
                        eco_ride=request.eco_ride,
                        carbon_saved=calculate_carbon_saved(
                            distance, request.eco_ride, self.carbon_saved_per_km
                        ),
                        payment_method=method.value,
                        payment_status=PaymentStatus.PENDING,
                        created_at=datetime.now(timezone.utc),
                    )
                    await bookings.add(booking)
                    await session.commit()
                except SQLAlchemyError as exc:
                    await session.rollback()
                    if vehicle is not None:
                        await self._release_after_failure(vehicle.id)
                    logger.error("Booking for rider %s could not be saved: %s", rider.id, exc)
                    raise BookingPersistenceError("Booking could not be saved") from exc

            driver = None
            if vehicle.driver_id is not None:
                try:
                    driver = await DriverRepository(session).get_by_id(vehicle.driver_id)
                except SQLAlchemyError:
                    logger.warning("Driver lookup failed for booking %s", booking.id)

        view = project(booking, rider, vehicle, driver)
        logger.info(
            "Booking %s confirmed: rider=%s vehicle=%s fare=%.2f eco=%s",
            view.id,
            view.rider_id,
            view.vehicle_id,
            view.fare,
            view.eco_ride,
        )
        self.settlements.schedule(view.id, details)
        await self._audit(view)
        return view

    async def create_eco_booking(self, request: BookingRequest) -> BookingView:
        return await self.create_booking(dataclasses.replace(request, eco_ride=True))

    # ── Reads ─────────────────────────────────────────────────────────

    async def get_booking(self, booking_id: int) -> BookingView:
        async with self.session_factory() as session:
            row = await BookingRepository(session).get_row(booking_id)
        if row is None:
            raise BookingNotFound(f"Booking {booking_id} not found")
        return project(*row)

    async def list_by_rider(self, rider_id: int) -> list[BookingView]:
        async with self.session_factory() as session:
            rows = await BookingRepository(session).list_rows(rider_id=rider_id)
        return [project(*row) for row in rows]

    async def list_all(self) -> list[BookingView]:
        async with self.session_factory() as session:
            rows = await BookingRepository(session).list_rows()
        return [project(*row) for row in rows]

    # ── Lifecycle ─────────────────────────────────────────────────────

    async def complete_booking(self, booking_id: int) -> BookingView:
        return await self._close(booking_id, BookingStatus.COMPLETED)

    async def cancel_booking(self, booking_id: int) -> BookingView:
        return await self._close(booking_id, BookingStatus.CANCELLED)

    async def _close(self, booking_id: int, new_status: BookingStatus) -> BookingView:
        """Move a booking to a terminal status and free its vehicle.

        The status write is conditional on the status read above, so of two
        racing closes only one wins and releases the vehicle.
        """
        async with self.session_factory() as session:
            bookings = BookingRepository(session)
            booking = await bookings.get_by_id(booking_id)
            if booking is None:
                raise BookingNotFound(f"Booking {booking_id} not found")
            check_transition(booking.status, new_status)

            async with self.allocator.critical_section():
                if not await bookings.transition_status(booking, new_status):
                    # Closed concurrently since our read.
                    await session.rollback()
                    current = await bookings.get_status(booking_id)
                    if current is None:
                        raise BookingNotFound(f"Booking {booking_id} not found")
                    raise InvalidStateTransition(
                        f"Cannot transition from {BookingStatus(current).value} "
                        f"to {new_status.value}"
                    )
                await self.allocator.release(VehicleRepository(session), booking.vehicle_id)
                await session.commit()
            logger.info("Booking %s %s, vehicle %s released",
                        booking_id, new_status.value.lower(), booking.vehicle_id)

            row = await bookings.get_row(booking_id)
        return project(*row)

    # ── Internals ─────────────────────────────────────────────────────

    def _resolve_distance(self, request: BookingRequest) -> float:
        if not (request.pickup_location or "").strip():
            raise InvalidBookingRequest("Pickup location is required")
        if not (request.drop_location or "").strip():
            raise InvalidBookingRequest("Drop location is required")

        distance = request.distance
        if distance is None and request.pickup and request.drop:
            distance = haversine_km(request.pickup, request.drop)
        if distance is None or distance <= 0:
            raise InvalidBookingRequest("Distance must be greater than zero")
        return distance

    async def _release_after_failure(self, vehicle_id: int) -> None:
        """Make sure a failed booking never leaves its vehicle reserved."""
        try:
            async with self.session_factory() as session:
                await self.allocator.release(VehicleRepository(session), vehicle_id)
                await session.commit()
        except SQLAlchemyError:
            logger.exception("Could not release vehicle %s after failed booking", vehicle_id)

    async def _audit(self, view: BookingView) -> None:
        if self.audit_sink is None:
            return
        try:
            await self.audit_sink.append(format_booking_line(view))
        except Exception:
            logger.exception("Audit append failed for booking %s", view.id)
