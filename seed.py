"""
Seed script -- populates the database with sample data for reviewers.

Run after migrations:
    python seed.py

Creates:
  - 1 admin and 4 drivers (password: ``password123``)
  - 4 vehicles
  - 6 stops across Istanbul / Izmir
  - 3 trips: one pending, one assigned, one active (with a live location)
"""

import asyncio
from datetime import datetime, timezone

from sqlalchemy import func, select

from src.domain.enums import TripStatus, UserRole
from src.domain.security import hash_password
from src.infrastructure.database import async_session_factory, engine
from src.infrastructure.models import (
    StopModel,
    TripModel,
    UserModel,
    VehicleModel,
)

DEFAULT_PASSWORD = "password123"

USERS = [
    {"username": "ali", "name": "Ali Veli", "role": UserRole.ADMIN, "plate": None},
    {"username": "ahmet", "name": "Ahmet Yilmaz", "role": UserRole.DRIVER, "plate": "34 ABC 123"},
    {"username": "mehmet", "name": "Mehmet Demir", "role": UserRole.DRIVER, "plate": "35 KLM 456"},
    {"username": "ayse", "name": "Ayse Kaya", "role": UserRole.DRIVER, "plate": "06 XYZ 789"},
    {"username": "zeynep", "name": "Zeynep Celik", "role": UserRole.DRIVER, "plate": "16 DEF 321"},
]

VEHICLES = [
    {"plate": "34 ABC 123", "model": "Ford Transit", "fuel_type": "diesel"},
    {"plate": "35 KLM 456", "model": "Mercedes Sprinter", "fuel_type": "diesel"},
    {"plate": "06 XYZ 789", "model": "Renault Master", "fuel_type": "diesel"},
    {"plate": "16 DEF 321", "model": "Fiat Doblo", "fuel_type": "electric"},
]

STOPS = [
    {"name": "Istanbul Hadimkoy Depot", "lat": 41.1358, "lng": 28.6347},
    {"name": "Istanbul Ambarli Port", "lat": 40.9690, "lng": 28.6869},
    {"name": "Bursa Transfer Hub", "lat": 40.1950, "lng": 29.0600},
    {"name": "Balikesir Cross-dock", "lat": 39.6484, "lng": 27.8826},
    {"name": "Manisa Warehouse", "lat": 38.6191, "lng": 27.4289},
    {"name": "Izmir Transfer Center", "lat": 38.4237, "lng": 27.1428},
]


def _snapshot(stop: StopModel) -> dict:
    return {"id": stop.id, "name": stop.name, "location": {"lat": stop.lat, "lng": stop.lng}}


async def seed():
    async with async_session_factory() as session:
        # Check if already seeded
        count = await session.scalar(select(func.count()).select_from(UserModel))
        if count:
            print("Database already seeded. Skipping.")
            return

        # ── Users ─────────────────────────────────────────────────────
        password_hash = hash_password(DEFAULT_PASSWORD)
        users = {}
        for u in USERS:
            m = UserModel(password_hash=password_hash, **u)
            session.add(m)
            users[u["username"]] = m
        await session.flush()
        print(f"  Created {len(users)} users")

        # ── Vehicles ──────────────────────────────────────────────────
        session.add_all([VehicleModel(**v) for v in VEHICLES])
        await session.flush()
        print(f"  Created {len(VEHICLES)} vehicles")

        # ── Stops ─────────────────────────────────────────────────────
        stops = [StopModel(**s) for s in STOPS]
        session.add_all(stops)
        await session.flush()
        print(f"  Created {len(stops)} stops")

        # ── Trips ─────────────────────────────────────────────────────
        now = datetime.now(timezone.utc)
        ahmet, mehmet = users["ahmet"], users["mehmet"]

        pending = TripModel(
            details="Textiles, 12 pallets",
            consignment_number="CN-1001",
            stops=[_snapshot(s) for s in (stops[0], stops[2], stops[5])],
            status=TripStatus.PENDING,
        )
        assigned = TripModel(
            details="Auto parts, 4 crates",
            consignment_number="CN-1002",
            stops=[_snapshot(s) for s in (stops[1], stops[2])],
            status=TripStatus.ASSIGNED,
            assigned_driver_id=mehmet.id,
            assigned_driver_name=mehmet.name,
            assigned_at=now,
        )
        active = TripModel(
            details="Groceries, refrigerated",
            consignment_number="CN-1003",
            stops=[_snapshot(s) for s in (stops[0], stops[3], stops[4], stops[5])],
            status=TripStatus.ACTIVE,
            assigned_driver_id=ahmet.id,
            assigned_driver_name=ahmet.name,
            assigned_at=now,
            started_at=now,
        )
        session.add_all([pending, assigned, active])
        await session.flush()

        # Keep driver pointers consistent with the open trips
        mehmet.active_trip_id = assigned.id
        ahmet.active_trip_id = active.id
        ahmet.last_lat, ahmet.last_lng = 39.9, 27.7
        ahmet.location_updated_at = now
        print("  Created 3 trips")

        await session.commit()
        print("\nSeed complete!")


async def main():
    print("Seeding database...")
    await seed()
    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
