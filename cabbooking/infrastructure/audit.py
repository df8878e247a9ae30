"""
Audit sink -- one append-only line per committed booking.

The sink is best-effort: callers log and discard any error it raises.
``FileAuditSink`` appends to a text file from a worker thread so the
event loop never blocks on disk I/O.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path
from typing import Optional

from cabbooking.domain.entities import BookingView


class AuditSink(ABC):
    @abstractmethod
    async def append(self, line: str) -> None: ...


class FileAuditSink(AuditSink):
    def __init__(self, path: str | Path):
        self.path = Path(path)
        self._lock = asyncio.Lock()

    async def append(self, line: str) -> None:
        async with self._lock:
            await asyncio.to_thread(self._write, line)

    def _write(self, line: str) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.path.open("a", encoding="utf-8") as fh:
            fh.write(line.rstrip("\n") + "\n")


def format_booking_line(view: BookingView, now: Optional[datetime] = None) -> str:
    moment = view.created_at or now or datetime.now()
    if moment.tzinfo is not None:
        moment = moment.astimezone()  # stored in UTC, logged in local time
    stamp = moment.strftime("%Y-%m-%d %H:%M:%S")
    return (
        f"[{stamp}] Booking #{view.id} | User: {view.rider_name} "
        f"| From: {view.pickup_location} | To: {view.drop_location} "
        f"| Distance: {view.distance:.2f} km | Fare: {view.fare:.2f} "
        f"| Vehicle: {view.vehicle_id} ({view.registration_number}) "
        f"| EcoRide: {'YES' if view.eco_ride else 'NO'} "
        f"| Carbon Saved: {view.carbon_saved:.2f} kg"
    )
