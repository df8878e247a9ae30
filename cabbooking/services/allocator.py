"""
Vehicle Allocator
=================

Selects one available vehicle and reserves it in the same step.

Policy
------
* eco requested  -> available electric vehicles; if none, any available one
* otherwise      -> any available vehicle

Candidates are taken in store order (vehicle id).  A ``None`` result is a
normal outcome, not an error.

Concurrency safety
------------------
* An ``asyncio.Lock`` serialises the allocate-and-persist step inside one
  process; callers hold it via ``critical_section()`` until the booking is
  committed or rolled back.
* An optional Redis ``DistributedLock`` extends that to several processes.
  If it cannot be taken (held elsewhere or Redis unreachable) the caller
  gets ``AllocationUnavailable`` before anything is reserved.
* The reservation itself is a conditional UPDATE
  (``is_available = true`` -> ``false``), so even a caller that bypasses
  the locks can never reserve a vehicle someone else already holds.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import AsyncExitStack, asynccontextmanager
from typing import AsyncIterator, Callable, Optional

from cabbooking.domain.exceptions import AllocationUnavailable
from cabbooking.infrastructure.locks import DistributedLock, LockNotAcquired
from cabbooking.infrastructure.models import VehicleModel
from cabbooking.infrastructure.repositories import VehicleRepository

logger = logging.getLogger(__name__)


def candidate_pools(eco_requested: bool) -> tuple[bool, ...]:
    """``electric_only`` flags to query, in order of preference."""
    return (True, False) if eco_requested else (False,)


class VehicleAllocator:
    def __init__(self, lock_factory: Optional[Callable[[], DistributedLock]] = None):
        self._lock = asyncio.Lock()
        self._lock_factory = lock_factory

    @asynccontextmanager
    async def critical_section(self) -> AsyncIterator[None]:
        async with self._lock, AsyncExitStack() as stack:
            if self._lock_factory is not None:
                try:
                    await stack.enter_async_context(self._lock_factory())
                except LockNotAcquired as exc:
                    logger.warning("Allocation lock unavailable: %s", exc)
                    raise AllocationUnavailable("Vehicle allocation is busy, try again") from exc
            yield

    async def allocate(
        self, vehicles: VehicleRepository, eco_requested: bool
    ) -> Optional[VehicleModel]:
        """Reserve and return the first matching vehicle, or ``None``."""
        for electric_only in candidate_pools(eco_requested):
            candidates = await vehicles.find_available(electric_only=electric_only)
            for vehicle in candidates:
                if await vehicles.try_reserve(vehicle):
                    return vehicle
                logger.debug("Vehicle %s taken concurrently, trying next", vehicle.id)
            if eco_requested and electric_only:
                logger.info("No electric vehicle available, falling back to any type")
        return None

    async def release(self, vehicles: VehicleRepository, vehicle_id: int) -> None:
        await vehicles.release(vehicle_id)
