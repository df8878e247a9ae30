"""
Integration tests for the REST API endpoints.

The app is built with the per-test SQLite session factory, a recording
audit sink and a zero-grace settlement scheduler, so routes run the real
``BookingService`` end to end.
"""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from cabbooking.api.app import create_app
from cabbooking.api.middleware import limiter
from cabbooking.infrastructure.locks import DistributedLock
from cabbooking.services.allocator import VehicleAllocator
from cabbooking.services.booking import BookingService
from tests.conftest import add_rider, add_vehicle


# ── Fixture ───────────────────────────────────────────────────────────


@pytest_asyncio.fixture
async def seeded(session_factory):
    rider_id = await add_rider(session_factory, name="Test User", email="test@example.com")
    sedan_id = await add_vehicle(session_factory, "DL02CA2001", rate_per_km=12.0)
    ev_id = await add_vehicle(session_factory, "DL01EV1001", rate_per_km=14.0, is_electric=True)
    return {"rider_id": rider_id, "sedan_id": sedan_id, "ev_id": ev_id}


@pytest_asyncio.fixture
async def client(session_factory, scheduler, audit_sink, seeded):
    """AsyncClient backed by SQLite and the real booking core."""
    limiter.reset()
    app = create_app(
        session_factory=session_factory,
        audit_sink=audit_sink,
        settlements=scheduler,
    )
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


def _body(rider_id: int, **overrides) -> dict:
    body = {
        "rider_id": rider_id,
        "pickup_location": "Airport Terminal 1",
        "drop_location": "Connaught Place",
        "distance": 10.0,
        "payment_method": "CARD",
        "card_number": "1234567890123456",
        "card_type": "VISA",
        "bank_name": "HDFC",
        "card_holder_name": "Test User",
    }
    body.update(overrides)
    return body


# ── Tests ─────────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_health(client: AsyncClient):
    resp = await client.get("/api/v1/admin/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok", "pending_settlements": 0}


@pytest.mark.asyncio
async def test_create_booking_returns_201(client: AsyncClient, seeded):
    resp = await client.post("/api/v1/bookings", json=_body(seeded["rider_id"]))

    assert resp.status_code == 201
    data = resp.json()
    assert data["status"] == "CONFIRMED"
    assert data["payment_status"] == "PENDING"
    assert data["payment_method"] == "CARD"
    assert data["vehicle_id"] == seeded["sedan_id"]
    assert data["fare"] == pytest.approx(10.0 * 12.0 * 1.05)
    assert data["rider_name"] == "Test User"
    assert data["vehicle_type"] == "SEDAN"
    assert "card_number" not in data


@pytest.mark.asyncio
async def test_create_eco_booking(client: AsyncClient, seeded):
    resp = await client.post(
        "/api/v1/bookings/eco",
        json=_body(seeded["rider_id"], payment_method="upi", upi_id="johndoe@okaxis"),
    )

    assert resp.status_code == 201
    data = resp.json()
    assert data["vehicle_id"] == seeded["ev_id"]
    assert data["eco_ride"] is True
    assert data["is_electric"] is True
    assert data["carbon_saved"] == pytest.approx(1.0)


@pytest.mark.asyncio
async def test_unknown_rider_is_404(client: AsyncClient):
    resp = await client.post("/api/v1/bookings", json=_body(9999))
    assert resp.status_code == 404
    assert resp.json()["reason"] == "NOT_FOUND"


@pytest.mark.asyncio
async def test_exhausted_pool_is_409(client: AsyncClient, seeded):
    rider_id = seeded["rider_id"]
    for _ in range(2):
        assert (await client.post("/api/v1/bookings", json=_body(rider_id))).status_code == 201

    resp = await client.post("/api/v1/bookings", json=_body(rider_id))
    assert resp.status_code == 409
    assert resp.json() == {"detail": "No cabs available at the moment", "reason": "NO_CAPACITY"}


@pytest.mark.asyncio
async def test_unknown_payment_method_is_422(client: AsyncClient, seeded):
    resp = await client.post(
        "/api/v1/bookings", json=_body(seeded["rider_id"], payment_method="BITCOIN")
    )
    assert resp.status_code == 422
    assert resp.json()["reason"] == "VALIDATION"

    available = await client.get("/api/v1/vehicles/available")
    assert len(available.json()) == 2


@pytest.mark.asyncio
async def test_schema_validation_is_422(client: AsyncClient, seeded):
    resp = await client.post("/api/v1/bookings", json=_body(seeded["rider_id"], distance=-5))
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_get_booking_shows_settled_payment(client: AsyncClient, seeded, scheduler):
    booking_id = (await client.post("/api/v1/bookings", json=_body(seeded["rider_id"]))).json()["id"]
    await scheduler.drain()

    resp = await client.get(f"/api/v1/bookings/{booking_id}")
    assert resp.status_code == 200
    data = resp.json()
    assert data["id"] == booking_id
    assert data["payment_status"] == "SUCCESS"
    assert data["payment_message"].startswith("Card Payment Processed!")


@pytest.mark.asyncio
async def test_get_booking_not_found(client: AsyncClient):
    resp = await client.get("/api/v1/bookings/9999")
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_list_bookings(client: AsyncClient, seeded):
    rider_id = seeded["rider_id"]
    await client.post("/api/v1/bookings", json=_body(rider_id))

    all_resp = await client.get("/api/v1/bookings")
    rider_resp = await client.get(f"/api/v1/bookings/rider/{rider_id}")
    empty_resp = await client.get("/api/v1/bookings/rider/9999")

    assert len(all_resp.json()) == 1
    assert rider_resp.json()[0]["rider_id"] == rider_id
    assert empty_resp.json() == []


@pytest.mark.asyncio
async def test_complete_booking_frees_vehicle(client: AsyncClient, seeded):
    booking = (await client.post("/api/v1/bookings", json=_body(seeded["rider_id"]))).json()

    resp = await client.patch(f"/api/v1/bookings/{booking['id']}/complete")
    assert resp.status_code == 200
    assert resp.json()["status"] == "COMPLETED"

    available = await client.get("/api/v1/vehicles/available")
    assert booking["vehicle_id"] in [v["id"] for v in available.json()]


@pytest.mark.asyncio
async def test_cancel_already_cancelled_booking_fails(client: AsyncClient, seeded):
    booking_id = (await client.post("/api/v1/bookings", json=_body(seeded["rider_id"]))).json()["id"]

    assert (await client.patch(f"/api/v1/bookings/{booking_id}/cancel")).status_code == 200
    resp = await client.patch(f"/api/v1/bookings/{booking_id}/cancel")
    assert resp.status_code == 409


@pytest.mark.asyncio
async def test_available_vehicles_filter(client: AsyncClient, seeded):
    resp = await client.get("/api/v1/vehicles/available", params={"electric": "true"})
    assert resp.status_code == 200
    assert [v["id"] for v in resp.json()] == [seeded["ev_id"]]


@pytest.mark.asyncio
async def test_busy_allocation_lock_is_503(session_factory, scheduler, seeded):
    mock_redis = AsyncMock()
    mock_redis.set = AsyncMock(return_value=False)
    limiter.reset()
    app = create_app(session_factory=session_factory, settlements=scheduler)
    app.state.booking_service = BookingService(
        session_factory,
        VehicleAllocator(lock_factory=lambda: DistributedLock(mock_redis, "vehicle_allocation")),
        scheduler,
    )

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        resp = await ac.post("/api/v1/bookings", json=_body(seeded["rider_id"]))

    assert resp.status_code == 503
    assert resp.json()["reason"] == "PERSISTENCE"
