"""
Booking endpoints
=================

POST  /api/v1/bookings                     -- create a booking (201)
POST  /api/v1/bookings/eco                 -- create a booking preferring an EV
GET   /api/v1/bookings                     -- all bookings, newest first
GET   /api/v1/bookings/rider/{rider_id}    -- a rider's bookings
GET   /api/v1/bookings/{booking_id}        -- one booking with payment outcome
PATCH /api/v1/bookings/{booking_id}/complete
PATCH /api/v1/bookings/{booking_id}/cancel

Rejections (``BookingRejection``) are turned into HTTP errors by the
handler registered in ``create_app``.  Payment settles after the response;
its outcome shows up on later reads.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request

from cabbooking.api.dependencies import get_booking_service
from cabbooking.api.middleware import limiter
from cabbooking.api.schemas import BookingCreateRequest, BookingResponse, ErrorResponse
from cabbooking.domain.entities import BookingRequest
from cabbooking.domain.exceptions import InvalidStateTransition
from cabbooking.services.booking import BookingService

router = APIRouter(prefix="/bookings", tags=["bookings"])

_REJECTIONS = {
    404: {"model": ErrorResponse, "description": "Rider not found"},
    409: {"model": ErrorResponse, "description": "No vehicle available"},
    422: {"description": "Invalid request or payment method"},
    503: {"model": ErrorResponse, "description": "Booking could not be saved"},
}


@router.post(
    "",
    status_code=201,
    response_model=BookingResponse,
    summary="Create a booking",
    responses=_REJECTIONS,
)
@limiter.limit("100/minute")
async def create_booking(
    request: Request,
    body: BookingCreateRequest,
    service: BookingService = Depends(get_booking_service),
):
    return await service.create_booking(BookingRequest(**body.model_dump()))


@router.post(
    "/eco",
    status_code=201,
    response_model=BookingResponse,
    summary="Create an eco booking (electric vehicle preferred)",
    responses=_REJECTIONS,
)
@limiter.limit("100/minute")
async def create_eco_booking(
    request: Request,
    body: BookingCreateRequest,
    service: BookingService = Depends(get_booking_service),
):
    return await service.create_eco_booking(BookingRequest(**body.model_dump()))


@router.get("", response_model=list[BookingResponse], summary="List all bookings")
@limiter.limit("100/minute")
async def list_bookings(
    request: Request,
    service: BookingService = Depends(get_booking_service),
):
    return await service.list_all()


@router.get(
    "/rider/{rider_id}",
    response_model=list[BookingResponse],
    summary="List a rider's bookings",
)
@limiter.limit("100/minute")
async def list_rider_bookings(
    request: Request,
    rider_id: int,
    service: BookingService = Depends(get_booking_service),
):
    return await service.list_by_rider(rider_id)


@router.get(
    "/{booking_id}",
    response_model=BookingResponse,
    summary="Get a booking and its payment status",
)
@limiter.limit("100/minute")
async def get_booking(
    request: Request,
    booking_id: int,
    service: BookingService = Depends(get_booking_service),
):
    return await service.get_booking(booking_id)


@router.patch(
    "/{booking_id}/complete",
    response_model=BookingResponse,
    summary="Complete a booking and free its vehicle",
)
@limiter.limit("100/minute")
async def complete_booking(
    request: Request,
    booking_id: int,
    service: BookingService = Depends(get_booking_service),
):
    try:
        return await service.complete_booking(booking_id)
    except InvalidStateTransition as exc:
        raise HTTPException(status_code=409, detail=str(exc))


@router.patch(
    "/{booking_id}/cancel",
    response_model=BookingResponse,
    summary="Cancel a booking and free its vehicle",
)
@limiter.limit("100/minute")
async def cancel_booking(
    request: Request,
    booking_id: int,
    service: BookingService = Depends(get_booking_service),
):
    try:
        return await service.cancel_booking(booking_id)
    except InvalidStateTransition as exc:
        raise HTTPException(status_code=409, detail=str(exc))
