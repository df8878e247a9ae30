"""
Settlement Scheduler
====================

Every confirmed booking gets one independent settlement unit, run as an
``asyncio`` task off the booking response path.

Per unit
--------
1. Wait the grace interval (simulated processing latency, not a retry).
2. Load the booking and pick the strategy for its payment-method tag.
3. ``settle`` the fare, insert the ``payments`` row and write the outcome
   onto the booking in one transaction.

Isolation
---------
* Any exception inside a unit, an unknown method or a timeout only marks
  that booking's payment FAILED.  Nothing propagates to other units or to
  the caller that created the booking.
* The outcome is written with ``WHERE payment_status = 'PENDING'`` and
  ``payments.booking_id`` is unique, so a booking is settled at most once.
* A booking id already in flight is not scheduled a second time.
* An ``asyncio.Semaphore`` bounds how many units run at once.

There is no automatic retry; FAILED is terminal for the core.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from cabbooking.domain.enums import PaymentStatus
from cabbooking.domain.payments import PaymentDetails, strategy_for
from cabbooking.infrastructure.models import PaymentModel
from cabbooking.infrastructure.repositories import BookingRepository, PaymentRepository

logger = logging.getLogger(__name__)

TIMEOUT_MESSAGE = "Payment timed out"


class SettlementScheduler:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        grace_seconds: float = 1.0,
        timeout_seconds: float = 30.0,
        max_concurrency: int = 20,
    ):
        self.session_factory = session_factory
        self.grace_seconds = grace_seconds
        self.timeout_seconds = timeout_seconds
        self._semaphore = asyncio.Semaphore(max_concurrency)
        self._tasks: set[asyncio.Task] = set()
        self._in_flight: set[int] = set()
        self._closed = False

    # ── Public API ────────────────────────────────────────────────────

    def schedule(self, booking_id: int, details: PaymentDetails) -> asyncio.Task | None:
        """Start settling *booking_id* in the background; never blocks."""
        if self._closed:
            logger.warning("Scheduler shut down; booking %s stays PENDING", booking_id)
            return None
        if booking_id in self._in_flight:
            logger.warning("Settlement already in flight for booking %s", booking_id)
            return None

        self._in_flight.add(booking_id)
        task = asyncio.create_task(
            self._run(booking_id, details), name=f"settle-booking-{booking_id}"
        )
        self._tasks.add(task)
        task.add_done_callback(lambda done: self._forget(booking_id, done))
        return task

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def drain(self) -> None:
        """Wait until every scheduled unit has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def shutdown(self) -> None:
        self._closed = True
        await self.drain()
        logger.info("Settlement scheduler stopped")

    # ── Internals ─────────────────────────────────────────────────────

    def _forget(self, booking_id: int, task: asyncio.Task) -> None:
        # Also runs for tasks cancelled before their coroutine started.
        self._tasks.discard(task)
        self._in_flight.discard(booking_id)

    async def _run(self, booking_id: int, details: PaymentDetails) -> None:
        try:
            async with self._semaphore:
                await asyncio.wait_for(
                    self._settle(booking_id, details), timeout=self.timeout_seconds
                )
        except asyncio.TimeoutError:
            logger.warning("Settlement for booking %s timed out", booking_id)
            await self._mark_failed(booking_id, TIMEOUT_MESSAGE)
        except Exception as exc:
            logger.exception("Settlement for booking %s failed", booking_id)
            await self._mark_failed(booking_id, f"Payment processing failed: {exc}")

    async def _settle(self, booking_id: int, details: PaymentDetails) -> None:
        await asyncio.sleep(self.grace_seconds)

        async with self.session_factory() as session:
            bookings = BookingRepository(session)
            booking = await bookings.get_by_id(booking_id)
            if booking is None:
                logger.warning("Booking %s vanished before settlement", booking_id)
                return
            if booking.payment_status != PaymentStatus.PENDING:
                logger.info("Booking %s already settled, skipping", booking_id)
                return

            strategy = strategy_for(booking.payment_method)
            outcome = strategy.settle(booking.fare, details)

            await PaymentRepository(session).add(
                PaymentModel(
                    booking_id=booking.id,
                    method=strategy.method.value,
                    amount=booking.fare,
                    status=outcome.status,
                    details=outcome.details,
                    settled_at=datetime.now(timezone.utc),
                )
            )
            if not await bookings.record_payment_outcome(
                booking.id, outcome.status, outcome.message
            ):
                await session.rollback()
                logger.info("Booking %s settled concurrently, discarding", booking_id)
                return
            await session.commit()

        if outcome.succeeded:
            logger.info("Payment for booking %s settled: %s", booking_id, outcome.message)
        else:
            logger.warning("Payment for booking %s failed: %s", booking_id, outcome.message)

    async def _mark_failed(self, booking_id: int, message: str) -> None:
        try:
            async with self.session_factory() as session:
                if await BookingRepository(session).record_payment_outcome(
                    booking_id, PaymentStatus.FAILED, message
                ):
                    await session.commit()
        except Exception:
            logger.exception("Could not mark payment FAILED for booking %s", booking_id)
