"""Unit tests for the vehicle allocation policy (mocked vehicle store)."""

from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from cabbooking.domain.exceptions import AllocationUnavailable
from cabbooking.infrastructure.locks import LockNotAcquired
from cabbooking.services.allocator import VehicleAllocator, candidate_pools


def _vehicle(vehicle_id: int, electric: bool = False):
    return SimpleNamespace(id=vehicle_id, is_electric=electric, is_available=True)


def _store(electric: list, any_type: list, reserve_results=None):
    store = MagicMock()

    async def find_available(electric_only: bool = False):
        return list(electric if electric_only else any_type)

    store.find_available = AsyncMock(side_effect=find_available)
    store.try_reserve = AsyncMock(
        side_effect=reserve_results if reserve_results is not None else lambda v: True
    )
    store.release = AsyncMock()
    return store


class TestCandidatePools:
    def test_eco_prefers_electric_then_any(self):
        assert candidate_pools(True) == (True, False)

    def test_standard_queries_any(self):
        assert candidate_pools(False) == (False,)


class TestAllocate:
    @pytest.mark.asyncio
    async def test_eco_picks_first_electric(self):
        ev = _vehicle(7, electric=True)
        store = _store(electric=[ev], any_type=[_vehicle(1), ev])

        assert await VehicleAllocator().allocate(store, eco_requested=True) is ev
        store.try_reserve.assert_awaited_once_with(ev)

    @pytest.mark.asyncio
    async def test_eco_falls_back_to_any_type(self):
        sedan = _vehicle(1)
        store = _store(electric=[], any_type=[sedan])

        assert await VehicleAllocator().allocate(store, eco_requested=True) is sedan
        assert store.find_available.await_count == 2

    @pytest.mark.asyncio
    async def test_standard_takes_first_in_order(self):
        first, second = _vehicle(1), _vehicle(2, electric=True)
        store = _store(electric=[second], any_type=[first, second])

        assert await VehicleAllocator().allocate(store, eco_requested=False) is first
        store.find_available.assert_awaited_once_with(electric_only=False)

    @pytest.mark.asyncio
    async def test_lost_reservation_moves_to_next_candidate(self):
        first, second = _vehicle(1), _vehicle(2)
        store = _store(electric=[], any_type=[first, second], reserve_results=[False, True])

        assert await VehicleAllocator().allocate(store, eco_requested=False) is second

    @pytest.mark.asyncio
    async def test_empty_pool_returns_none(self):
        store = _store(electric=[], any_type=[])

        assert await VehicleAllocator().allocate(store, eco_requested=True) is None
        store.try_reserve.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_release_delegates_to_store(self):
        store = _store(electric=[], any_type=[])
        await VehicleAllocator().release(store, 3)
        store.release.assert_awaited_once_with(3)


class TestCriticalSection:
    @pytest.mark.asyncio
    async def test_distributed_lock_wraps_section(self):
        lock = MagicMock()
        lock.__aenter__ = AsyncMock(return_value=lock)
        lock.__aexit__ = AsyncMock(return_value=None)
        allocator = VehicleAllocator(lock_factory=lambda: lock)

        async with allocator.critical_section():
            lock.__aenter__.assert_awaited_once()
            lock.__aexit__.assert_not_awaited()
        lock.__aexit__.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_unavailable_lock_raises_and_frees_section(self):
        lock = MagicMock()
        lock.__aenter__ = AsyncMock(side_effect=LockNotAcquired("Could not acquire lock"))
        lock.__aexit__ = AsyncMock(return_value=None)
        allocator = VehicleAllocator(lock_factory=lambda: lock)

        with pytest.raises(AllocationUnavailable):
            async with allocator.critical_section():
                pytest.fail("section body must not run without the lock")

        lock.__aexit__.assert_not_awaited()
        assert not allocator._lock.locked()
