"""
Repository Pattern -- abstracts DB access so the booking core stays DB-agnostic.

Each repository receives an ``AsyncSession`` (unit-of-work) and exposes
domain-relevant queries only.  Availability, booking status and payment
outcome are changed with conditional UPDATEs so a lost race shows up as
``rowcount == 0`` instead of a silent overwrite.
"""

from __future__ import annotations

from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.attributes import set_committed_value

from .models import BookingModel, DriverModel, PaymentModel, RiderModel, VehicleModel
from cabbooking.domain.enums import BookingStatus, PaymentStatus

BookingRow = tuple[BookingModel, RiderModel, VehicleModel, Optional[DriverModel]]


class RiderRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, rider_id: int) -> Optional[RiderModel]:
        return await self.session.get(RiderModel, rider_id)


class DriverRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, driver_id: int) -> Optional[DriverModel]:
        return await self.session.get(DriverModel, driver_id)


class VehicleRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, vehicle_id: int) -> Optional[VehicleModel]:
        return await self.session.get(VehicleModel, vehicle_id)

    async def find_available(self, electric_only: bool = False) -> list[VehicleModel]:
        """Available vehicles in stable (id) order."""
        query = select(VehicleModel).where(VehicleModel.is_available.is_(True))
        if electric_only:
            query = query.where(VehicleModel.is_electric.is_(True))
        result = await self.session.execute(query.order_by(VehicleModel.id))
        return list(result.scalars().all())

    async def try_reserve(self, vehicle: VehicleModel) -> bool:
        """Flip availability to false only if it is still true."""
        result = await self.session.execute(
            update(VehicleModel)
            .where(VehicleModel.id == vehicle.id, VehicleModel.is_available.is_(True))
            .values(is_available=False)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            return False
        set_committed_value(vehicle, "is_available", False)
        return True

    async def release(self, vehicle_id: int) -> None:
        await self.session.execute(
            update(VehicleModel)
            .where(VehicleModel.id == vehicle_id)
            .values(is_available=True)
            .execution_options(synchronize_session=False)
        )


class BookingRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def add(self, booking: BookingModel) -> BookingModel:
        self.session.add(booking)
        await self.session.flush()
        return booking

    async def get_by_id(self, booking_id: int) -> Optional[BookingModel]:
        return await self.session.get(BookingModel, booking_id)

    async def get_row(self, booking_id: int) -> Optional[BookingRow]:
        rows = await self._rows(BookingModel.id == booking_id)
        return rows[0] if rows else None

    async def list_rows(self, rider_id: Optional[int] = None) -> list[BookingRow]:
        """Bookings joined with rider / vehicle / driver, newest first."""
        if rider_id is None:
            return await self._rows()
        return await self._rows(BookingModel.rider_id == rider_id)

    async def get_status(self, booking_id: int) -> Optional[BookingStatus]:
        result = await self.session.execute(
            select(BookingModel.status).where(BookingModel.id == booking_id)
        )
        return result.scalar_one_or_none()

    async def transition_status(self, booking: BookingModel, new_status: BookingStatus) -> bool:
        """Move *booking* on only if its stored status is still the one we read."""
        result = await self.session.execute(
            update(BookingModel)
            .where(BookingModel.id == booking.id, BookingModel.status == booking.status)
            .values(status=new_status)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            return False
        set_committed_value(booking, "status", new_status)
        return True

    async def record_payment_outcome(
        self, booking_id: int, status: PaymentStatus, message: str
    ) -> bool:
        """Write the payment outcome once; later writes find no PENDING row."""
        result = await self.session.execute(
            update(BookingModel)
            .where(
                BookingModel.id == booking_id,
                BookingModel.payment_status == PaymentStatus.PENDING,
            )
            .values(payment_status=status, payment_details=message)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def _rows(self, *criteria) -> list[BookingRow]:
        query = (
            select(BookingModel, RiderModel, VehicleModel, DriverModel)
            .join(RiderModel, BookingModel.rider_id == RiderModel.id)
            .join(VehicleModel, BookingModel.vehicle_id == VehicleModel.id)
            .outerjoin(DriverModel, VehicleModel.driver_id == DriverModel.id)
            .where(*criteria)
            .order_by(BookingModel.created_at.desc(), BookingModel.id.desc())
        )
        result = await self.session.execute(query)
        return [tuple(row) for row in result.all()]


class PaymentRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def add(self, payment: PaymentModel) -> PaymentModel:
        self.session.add(payment)
        await self.session.flush()
        return payment

    async def get_by_booking(self, booking_id: int) -> Optional[PaymentModel]:
        result = await self.session.execute(
            select(PaymentModel).where(PaymentModel.booking_id == booking_id)
        )
        return result.scalar_one_or_none()
