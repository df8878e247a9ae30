"""Pydantic request / response schemas for the REST API."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from cabbooking.domain.enums import VehicleType


# ── Requests ──────────────────────────────────────────────────────────


class BookingCreateRequest(BaseModel):
    rider_id: int
    pickup_location: str = Field(..., min_length=1, max_length=255)
    drop_location: str = Field(..., min_length=1, max_length=255)
    distance: Optional[float] = Field(
        None, gt=0, description="Trip distance in km. Estimated from coordinates if omitted."
    )
    pickup_lat: Optional[float] = Field(None, ge=-90, le=90)
    pickup_lng: Optional[float] = Field(None, ge=-180, le=180)
    drop_lat: Optional[float] = Field(None, ge=-90, le=90)
    drop_lng: Optional[float] = Field(None, ge=-180, le=180)
    eco_ride: bool = False
    payment_method: str = Field(..., description="UPI, CARD or CASH")

    # UPI
    upi_id: Optional[str] = None
    # Card
    card_number: Optional[str] = None
    card_type: Optional[str] = None
    bank_name: Optional[str] = None
    card_holder_name: Optional[str] = None
    # Cash
    received_amount: Optional[float] = Field(None, ge=0)
    collected_by: Optional[str] = None


# ── Responses ─────────────────────────────────────────────────────────


class BookingResponse(BaseModel):
    id: int
    rider_id: int
    rider_name: str
    rider_email: str
    pickup_location: str
    drop_location: str
    distance: float
    fare: float
    status: str
    created_at: Optional[datetime] = None
    eco_ride: bool
    carbon_saved: float

    vehicle_id: int
    registration_number: str
    vehicle_type: VehicleType
    is_electric: bool

    driver_id: Optional[int] = None
    driver_name: Optional[str] = None
    driver_phone: Optional[str] = None
    driver_rating: Optional[float] = None

    payment_method: str
    payment_status: str
    payment_message: Optional[str] = None

    model_config = {"from_attributes": True}


class VehicleResponse(BaseModel):
    id: int
    registration_number: str
    vehicle_type: VehicleType
    rate_per_km: float
    is_electric: bool
    seats: int
    is_available: bool
    driver_id: Optional[int] = None

    model_config = {"from_attributes": True}


class HealthResponse(BaseModel):
    status: str = "ok"
    pending_settlements: int = 0


class ErrorResponse(BaseModel):
    detail: str
    reason: Optional[str] = None
