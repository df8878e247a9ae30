"""
Seed script -- populates the database with sample data for local runs.

Run after migrations:
    python seed.py

Creates:
  - 4 sample riders
  - 5 sample drivers
  - 8 sample vehicles (3 electric), one per driver where possible
"""

import asyncio

from sqlalchemy import text

from cabbooking.domain.enums import VehicleType
from cabbooking.infrastructure.database import async_session_factory, engine
from cabbooking.infrastructure.models import DriverModel, RiderModel, VehicleModel


RIDERS = [
    {"name": "John Doe", "email": "john@example.com", "phone": "9876543210"},
    {"name": "Jane Smith", "email": "jane@example.com", "phone": "9876543211"},
    {"name": "Mike Johnson", "email": "mike@example.com", "phone": "9876543212"},
    {"name": "Priya Patel", "email": "priya@example.com", "phone": "9876543213"},
]

DRIVERS = [
    {"name": "Rajesh Kumar", "license_number": "DL1234567", "phone": "9988776655", "rating": 4.5},
    {"name": "Amit Sharma", "license_number": "DL2345678", "phone": "9988776656", "rating": 4.8},
    {"name": "Suresh Patel", "license_number": "DL3456789", "phone": "9988776657", "rating": 4.2},
    {"name": "Vikram Singh", "license_number": "DL4567890", "phone": "9988776658", "rating": 4.6},
    {"name": "Arjun Nair", "license_number": "DL5678901", "phone": "9988776659", "rating": 4.9},
]

VEHICLES = [
    # Electric
    {"registration_number": "DL01EV1001", "vehicle_type": VehicleType.SEDAN, "rate_per_km": 14.0, "is_electric": True, "seats": 4},
    {"registration_number": "DL01EV1002", "vehicle_type": VehicleType.HATCHBACK, "rate_per_km": 11.0, "is_electric": True, "seats": 4},
    {"registration_number": "DL01EV1003", "vehicle_type": VehicleType.SUV, "rate_per_km": 18.0, "is_electric": True, "seats": 6},
    # Combustion
    {"registration_number": "DL02CA2001", "vehicle_type": VehicleType.SEDAN, "rate_per_km": 12.0, "is_electric": False, "seats": 4},
    {"registration_number": "DL02CA2002", "vehicle_type": VehicleType.SEDAN, "rate_per_km": 12.0, "is_electric": False, "seats": 4},
    {"registration_number": "DL02CA2003", "vehicle_type": VehicleType.HATCHBACK, "rate_per_km": 10.0, "is_electric": False, "seats": 4},
    {"registration_number": "DL02CA2004", "vehicle_type": VehicleType.SUV, "rate_per_km": 16.0, "is_electric": False, "seats": 6},
    {"registration_number": "DL02CA2005", "vehicle_type": VehicleType.SUV, "rate_per_km": 16.0, "is_electric": False, "seats": 7},
]


async def seed():
    async with async_session_factory() as session:
        # Check if already seeded
        result = await session.execute(text("SELECT count(*) FROM riders"))
        if result.scalar() > 0:
            print("Database already seeded. Skipping.")
            return

        # ── Riders ────────────────────────────────────────────────────
        session.add_all(RiderModel(**r) for r in RIDERS)
        print(f"  Created {len(RIDERS)} riders")

        # ── Drivers ───────────────────────────────────────────────────
        drivers = [DriverModel(**d) for d in DRIVERS]
        session.add_all(drivers)
        await session.flush()
        print(f"  Created {len(drivers)} drivers")

        # ── Vehicles ──────────────────────────────────────────────────
        for i, v in enumerate(VEHICLES):
            driver = drivers[i] if i < len(drivers) else None
            session.add(
                VehicleModel(
                    **v,
                    is_available=True,
                    driver_id=driver.id if driver else None,
                )
            )
        await session.flush()
        print(f"  Created {len(VEHICLES)} vehicles")

        await session.commit()
        print("\nSeed complete!")


async def main():
    print("Seeding database...")
    await seed()
    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
