"""
Domain value objects for the booking core.

* ``BookingRequest`` -- what a caller asks for; payment fields are only
  held in memory and handed to settlement, never persisted raw.
* ``BookingView``    -- flat projection of a booking with its rider,
  vehicle, driver and payment outcome.
* ``check_transition`` enforces the booking lifecycle
  (PENDING -> CONFIRMED -> COMPLETED | CANCELLED).
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from .enums import BOOKING_TRANSITIONS, BookingStatus
from .exceptions import InvalidStateTransition


# ── Value Objects ─────────────────────────────────────────────────────


@dataclass(frozen=True)
class Location:
    latitude: float
    longitude: float


@dataclass(frozen=True)
class BookingRequest:
    rider_id: int
    pickup_location: str
    drop_location: str
    distance: Optional[float] = None
    eco_ride: bool = False
    payment_method: Optional[str] = None

    pickup_lat: Optional[float] = None
    pickup_lng: Optional[float] = None
    drop_lat: Optional[float] = None
    drop_lng: Optional[float] = None

    # Payment-method specific fields
    upi_id: Optional[str] = None
    card_number: Optional[str] = None
    card_type: Optional[str] = None
    bank_name: Optional[str] = None
    card_holder_name: Optional[str] = None
    received_amount: Optional[float] = None
    collected_by: Optional[str] = None

    @property
    def pickup(self) -> Optional[Location]:
        if self.pickup_lat is None or self.pickup_lng is None:
            return None
        return Location(self.pickup_lat, self.pickup_lng)

    @property
    def drop(self) -> Optional[Location]:
        if self.drop_lat is None or self.drop_lng is None:
            return None
        return Location(self.drop_lat, self.drop_lng)


@dataclass(frozen=True)
class BookingView:
    id: int
    rider_id: int
    rider_name: str
    rider_email: str
    pickup_location: str
    drop_location: str
    distance: float
    fare: float
    status: str
    created_at: Optional[datetime]
    eco_ride: bool
    carbon_saved: float

    vehicle_id: int
    registration_number: str
    vehicle_type: str
    is_electric: bool

    driver_id: Optional[int]
    driver_name: Optional[str]
    driver_phone: Optional[str]
    driver_rating: Optional[float]

    payment_method: str
    payment_status: str
    payment_message: Optional[str]


# ── Lifecycle ─────────────────────────────────────────────────────────


def check_transition(current: BookingStatus, new_status: BookingStatus) -> None:
    """Raise ``InvalidStateTransition`` unless *current* -> *new_status* is legal."""
    allowed = BOOKING_TRANSITIONS.get(BookingStatus(current), set())
    if new_status not in allowed:
        raise InvalidStateTransition(
            f"Cannot transition from {BookingStatus(current).value} to {new_status.value}"
        )
