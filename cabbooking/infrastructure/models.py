"""
SQLAlchemy ORM models.

Tables
------
* ``riders``    -- identity references for people booking rides
* ``drivers``   -- drivers assigned to vehicles
* ``vehicles``  -- the shared availability pool
* ``bookings``  -- committed bookings with fare, carbon and payment outcome
* ``payments``  -- one settlement record per booking

``bookings.payment_method`` is a plain string: settlement validates the tag
against the closed ``PaymentMethod`` set and fails the payment otherwise.
``payments.booking_id`` is unique, so a booking is settled at most once.
"""

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    func,
)

from .database import Base
from cabbooking.domain.enums import BookingStatus, PaymentStatus, VehicleType


class RiderModel(Base):
    __tablename__ = "riders"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(120), nullable=False)
    email = Column(String(255), unique=True, nullable=False)
    phone = Column(String(20), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class DriverModel(Base):
    __tablename__ = "drivers"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(120), nullable=False)
    license_number = Column(String(40), unique=True, nullable=False)
    phone = Column(String(20), nullable=False)
    rating = Column(Float, default=5.0)


class VehicleModel(Base):
    __tablename__ = "vehicles"

    id = Column(Integer, primary_key=True, autoincrement=True)
    registration_number = Column(String(20), unique=True, nullable=False)
    vehicle_type = Column(Enum(VehicleType), default=VehicleType.SEDAN, nullable=False)
    rate_per_km = Column(Float, nullable=False)
    is_electric = Column(Boolean, default=False, nullable=False)
    seats = Column(Integer, default=4, nullable=False)
    is_available = Column(Boolean, default=True, nullable=False)
    driver_id = Column(Integer, ForeignKey("drivers.id"), nullable=True)

    __table_args__ = (
        Index("idx_vehicles_available", "is_available", "is_electric"),
    )


class BookingModel(Base):
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, autoincrement=True)
    rider_id = Column(Integer, ForeignKey("riders.id"), nullable=False)
    vehicle_id = Column(Integer, ForeignKey("vehicles.id"), nullable=False)

    pickup_location = Column(String(255), nullable=False)
    drop_location = Column(String(255), nullable=False)
    distance = Column(Float, nullable=False)
    fare = Column(Float, nullable=False)
    status = Column(Enum(BookingStatus), default=BookingStatus.CONFIRMED, nullable=False)
    eco_ride = Column(Boolean, default=False, nullable=False)
    carbon_saved = Column(Float, default=0.0, nullable=False)  # kg CO2

    payment_method = Column(String(20), nullable=False)
    payment_status = Column(
        Enum(PaymentStatus), default=PaymentStatus.PENDING, nullable=False
    )
    payment_details = Column(Text, nullable=True)  # outcome description

    created_at = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index("idx_bookings_rider", "rider_id"),
        Index("idx_bookings_vehicle", "vehicle_id"),
        Index("idx_bookings_status", "status"),
    )


class PaymentModel(Base):
    __tablename__ = "payments"

    id = Column(Integer, primary_key=True, autoincrement=True)
    booking_id = Column(Integer, ForeignKey("bookings.id"), unique=True, nullable=False)
    method = Column(String(20), nullable=False)
    amount = Column(Float, nullable=False)
    status = Column(Enum(PaymentStatus), nullable=False)
    details = Column(JSON, nullable=True)  # variant-specific payload
    settled_at = Column(DateTime(timezone=True), nullable=False)
