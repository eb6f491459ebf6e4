"""
Trip / Driver Assignment & Lifecycle Manager
============================================

Drives a trip through PENDING -> ASSIGNED -> ACTIVE -> COMPLETED and keeps
each driver's ``active_trip_id`` in step with it.

Consistency
-----------
* The manager is handed an ``AsyncSession`` and never commits.  The
  caller's unit of work (``get_db`` for HTTP requests) commits after a
  successful call and rolls back on any exception, so the trip write and
  the driver write of ``assign_driver`` / ``complete_trip`` land together
  or not at all.
* Driver occupancy is claimed with a conditional UPDATE
  (``... WHERE active_trip_id IS NULL``).  The earlier read only produces
  friendly error messages; the affected-row count is what decides, so two
  concurrent assignments of one idle driver cannot both succeed.
* Trip status moves with compare-and-set on the expected prior status,
  following ``TRIP_TRANSITIONS``.  COMPLETED is terminal.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from src.config import settings
from src.domain.entities import Location, ensure_transition, order_stops
from src.domain.enums import TripStatus
from src.domain.errors import ConflictError, NotFoundError, ValidationError
from src.infrastructure.models import StopModel, TripModel, UserModel
from src.infrastructure.repositories import (
    StopRepository,
    TripRepository,
    UserRepository,
)

logger = logging.getLogger(__name__)


@dataclass
class ActiveTripView:
    trip: TripModel
    current_location: Optional[Location]


def _stop_snapshot(stop: StopModel) -> dict:
    return {
        "id": stop.id,
        "name": stop.name,
        "location": {"lat": stop.lat, "lng": stop.lng},
    }


class TripLifecycleManager:
    def __init__(self, session: AsyncSession):
        self.session = session
        self.trips = TripRepository(session)
        self.users = UserRepository(session)
        self.stops = StopRepository(session)

    # ── Lookups ───────────────────────────────────────────────────────

    async def get_trip(self, trip_id: str) -> TripModel:
        trip = await self.trips.get_by_id(trip_id)
        if trip is None:
            raise NotFoundError("Trip not found")
        return trip

    async def _get_driver(self, driver_id: str) -> UserModel:
        driver = await self.users.get_driver(driver_id)
        if driver is None:
            raise NotFoundError("Driver not found")
        return driver

    async def list_trips(self, status: TripStatus | None = None) -> list[TripModel]:
        return await self.trips.list_by_status(status)

    # ── Commands ──────────────────────────────────────────────────────

    async def create_trip(
        self,
        details: str,
        stop_ids: Sequence[str],
        consignment_number: str | None = None,
    ) -> TripModel:
        if not details or not details.strip():
            raise ValidationError("Trip details are required")

        resolved = await self.stops.get_many(stop_ids)
        ordered = order_stops(stop_ids, resolved, minimum=settings.min_trip_stops)

        trip = await self.trips.create(
            TripModel(
                details=details.strip(),
                consignment_number=consignment_number,
                stops=[_stop_snapshot(s) for s in ordered],
                status=TripStatus.PENDING,
                assigned_driver_id=None,
            )
        )
        logger.info("Trip %s created with %d stops", trip.id, len(ordered))
        return trip

    async def assign_driver(self, trip_id: str, driver_id: str) -> TripModel:
        trip = await self.get_trip(trip_id)
        driver = await self._get_driver(driver_id)
        ensure_transition(trip.status, TripStatus.ASSIGNED)

        if not await self.users.claim_for_trip(driver.id, trip.id):
            logger.warning(
                "Driver %s already busy; cannot take trip %s", driver.id, trip.id
            )
            raise ConflictError("Driver already has an active trip")

        moved = await self.trips.transition(
            trip.id,
            TripStatus.PENDING,
            TripStatus.ASSIGNED,
            assigned_driver_id=driver.id,
            assigned_driver_name=driver.name,
            assigned_at=datetime.now(timezone.utc),
        )
        if not moved:
            # Lost the race for the trip; the unit of work undoes the claim
            raise ConflictError("Trip is no longer pending")

        await self.session.refresh(trip)
        await self.session.refresh(driver)
        logger.info("Trip %s assigned to driver %s", trip.id, driver.id)
        return trip

    async def start_trip(self, trip_id: str) -> TripModel:
        trip = await self.get_trip(trip_id)
        ensure_transition(trip.status, TripStatus.ACTIVE)

        moved = await self.trips.transition(
            trip.id,
            TripStatus.ASSIGNED,
            TripStatus.ACTIVE,
            started_at=datetime.now(timezone.utc),
        )
        if not moved:
            raise ConflictError("Trip is no longer assigned")

        await self.session.refresh(trip)
        logger.info("Trip %s started", trip.id)
        return trip

    async def complete_trip(self, trip_id: str, driver_id: str) -> TripModel:
        trip = await self.get_trip(trip_id)
        driver = await self._get_driver(driver_id)
        ensure_transition(trip.status, TripStatus.COMPLETED)
        if trip.assigned_driver_id != driver.id:
            raise ConflictError("Trip is not assigned to this driver")

        moved = await self.trips.transition(
            trip.id,
            TripStatus.ACTIVE,
            TripStatus.COMPLETED,
            completed_at=datetime.now(timezone.utc),
        )
        if not moved:
            raise ConflictError("Trip is no longer active")
        await self.users.release(driver.id)

        await self.session.refresh(trip)
        await self.session.refresh(driver)
        logger.info("Trip %s completed; driver %s released", trip.id, driver.id)
        return trip

    async def record_driver_location(
        self, driver_id: str, location: Location
    ) -> UserModel:
        driver = await self._get_driver(driver_id)
        await self.users.set_location(
            driver.id, location.latitude, location.longitude
        )
        await self.session.refresh(driver)
        return driver

    # ── Queries ───────────────────────────────────────────────────────

    async def list_active_trips_with_locations(self) -> list[ActiveTripView]:
        rows = await self.trips.get_active_with_driver_locations()
        return [
            ActiveTripView(
                trip=trip,
                current_location=(
                    Location.from_columns(driver.last_lat, driver.last_lng)
                    if driver is not None
                    else None
                ),
            )
            for trip, driver in rows
        ]

    async def query_available_drivers(self) -> list[UserModel]:
        return await self.users.list_available_drivers()

    async def get_driver_trip(self, user_id: str) -> Optional[TripModel]:
        """The trip occupying *user_id*, or None when the driver is idle."""
        user = await self.users.get_by_id(user_id)
        if user is None:
            raise NotFoundError("User not found")
        if user.active_trip_id is None:
            return None
        return await self.trips.get_by_id(user.active_trip_id)
