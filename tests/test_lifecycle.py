"""Trip / driver lifecycle manager against a real (SQLite) session."""

from __future__ import annotations

import pytest
import pytest_asyncio
from sqlalchemy import select

from src.domain.entities import Location
from src.domain.enums import OPEN_TRIP_STATUSES, TripStatus, UserRole
from src.domain.errors import (
    ConflictError,
    InvalidStateTransition,
    NotFoundError,
    ValidationError,
)
from src.infrastructure.models import TripModel, UserModel
from src.services.trip_lifecycle import TripLifecycleManager


async def _assert_pointers_consistent(session):
    """Every driver points at its one open trip, or at nothing."""
    drivers = (
        await session.execute(
            select(UserModel)
            .where(UserModel.role == UserRole.DRIVER)
            .execution_options(populate_existing=True)
        )
    ).scalars().all()
    trips = (
        await session.execute(
            select(TripModel).execution_options(populate_existing=True)
        )
    ).scalars().all()
    for driver in drivers:
        await session.refresh(driver)
        open_trips = [
            t
            for t in trips
            if t.assigned_driver_id == driver.id
            and t.status in OPEN_TRIP_STATUSES
        ]
        if driver.active_trip_id is None:
            assert open_trips == []
        else:
            assert [t.id for t in open_trips] == [driver.active_trip_id]


@pytest.fixture
def manager(db_session):
    return TripLifecycleManager(db_session)


@pytest_asyncio.fixture
async def route(make_stops):
    return await make_stops("Depot", "Port")


# ── create_trip ───────────────────────────────────────────────────────


class TestCreateTrip:
    @pytest.mark.asyncio
    async def test_new_trip_is_pending_and_unassigned(self, manager, route):
        trip = await manager.create_trip("Pallets", [s.id for s in route])
        assert trip.status == TripStatus.PENDING
        assert trip.assigned_driver_id is None
        assert trip.assigned_driver_name is None

    @pytest.mark.asyncio
    async def test_stops_keep_caller_order(self, manager, make_stops):
        a, b, c = await make_stops("A", "B", "C")
        trip = await manager.create_trip("Mixed", [c.id, a.id, b.id])
        assert [s["name"] for s in trip.stops] == ["C", "A", "B"]
        assert trip.stops[0]["location"] == {"lat": c.lat, "lng": c.lng}

    @pytest.mark.asyncio
    async def test_blank_details_rejected(self, manager, route):
        with pytest.raises(ValidationError):
            await manager.create_trip("  ", [s.id for s in route])

    @pytest.mark.asyncio
    async def test_single_stop_rejected(self, manager, route):
        with pytest.raises(ValidationError):
            await manager.create_trip("Pallets", [route[0].id])

    @pytest.mark.asyncio
    async def test_unresolvable_stop_rejected(self, manager, route):
        with pytest.raises(ValidationError):
            await manager.create_trip("Pallets", [route[0].id, "no-such-stop"])


# ── assign_driver ─────────────────────────────────────────────────────


class TestAssignDriver:
    @pytest.mark.asyncio
    async def test_assign_occupies_driver(self, manager, route, make_driver, db_session):
        driver = await make_driver("ahmet", "Ahmet Yilmaz")
        trip = await manager.create_trip("Pallets", [s.id for s in route])

        trip = await manager.assign_driver(trip.id, driver.id)
        await db_session.commit()

        assert trip.status == TripStatus.ASSIGNED
        assert trip.assigned_driver_id == driver.id
        assert trip.assigned_driver_name == "Ahmet Yilmaz"
        assert trip.assigned_at is not None
        await db_session.refresh(driver)
        assert driver.active_trip_id == trip.id
        await _assert_pointers_consistent(db_session)

    @pytest.mark.asyncio
    async def test_busy_driver_cannot_take_second_trip(
        self, manager, route, make_driver, db_session
    ):
        driver = await make_driver("ahmet")
        first = await manager.create_trip("First", [s.id for s in route])
        second = await manager.create_trip("Second", [s.id for s in route])
        await manager.assign_driver(first.id, driver.id)
        await db_session.commit()

        with pytest.raises(ConflictError, match="already has an active trip"):
            await manager.assign_driver(second.id, driver.id)
        await db_session.rollback()

        await db_session.refresh(second)
        assert second.status == TripStatus.PENDING
        await _assert_pointers_consistent(db_session)

    @pytest.mark.asyncio
    async def test_assigned_trip_cannot_be_reassigned(
        self, manager, route, make_driver, db_session
    ):
        first, second = await make_driver("first"), await make_driver("second")
        trip = await manager.create_trip("Pallets", [s.id for s in route])
        await manager.assign_driver(trip.id, first.id)
        await db_session.commit()

        with pytest.raises(InvalidStateTransition):
            await manager.assign_driver(trip.id, second.id)
        await db_session.rollback()

        await db_session.refresh(second)
        assert second.active_trip_id is None

    @pytest.mark.asyncio
    async def test_unknown_trip(self, manager, make_driver):
        driver = await make_driver("ahmet")
        with pytest.raises(NotFoundError, match="Trip"):
            await manager.assign_driver("nope", driver.id)

    @pytest.mark.asyncio
    async def test_unknown_driver(self, manager, route):
        trip = await manager.create_trip("Pallets", [s.id for s in route])
        with pytest.raises(NotFoundError, match="Driver"):
            await manager.assign_driver(trip.id, "nope")

    @pytest.mark.asyncio
    async def test_admin_is_not_a_driver(self, manager, route, make_user):
        admin = await make_user("ali", role=UserRole.ADMIN)
        trip = await manager.create_trip("Pallets", [s.id for s in route])
        with pytest.raises(NotFoundError):
            await manager.assign_driver(trip.id, admin.id)


# ── start / complete ──────────────────────────────────────────────────


@pytest_asyncio.fixture
async def assigned(manager, route, make_driver, db_session):
    """A trip assigned to a fresh driver, committed."""
    driver = await make_driver("ahmet")
    trip = await manager.create_trip("Pallets", [s.id for s in route])
    await manager.assign_driver(trip.id, driver.id)
    await db_session.commit()
    return trip, driver


class TestStartAndComplete:
    @pytest.mark.asyncio
    async def test_start_requires_assignment(self, manager, route):
        trip = await manager.create_trip("Pallets", [s.id for s in route])
        with pytest.raises(InvalidStateTransition):
            await manager.start_trip(trip.id)

    @pytest.mark.asyncio
    async def test_start_unknown_trip(self, manager):
        with pytest.raises(NotFoundError):
            await manager.start_trip("nope")

    @pytest.mark.asyncio
    async def test_start_sets_active(self, manager, assigned):
        trip, _ = assigned
        trip = await manager.start_trip(trip.id)
        assert trip.status == TripStatus.ACTIVE
        assert trip.started_at is not None

    @pytest.mark.asyncio
    async def test_complete_releases_driver_and_location(
        self, manager, assigned, db_session
    ):
        trip, driver = assigned
        await manager.start_trip(trip.id)
        await manager.record_driver_location(driver.id, Location(40.0, 28.0))
        await db_session.commit()

        trip = await manager.complete_trip(trip.id, driver.id)
        await db_session.commit()

        assert trip.status == TripStatus.COMPLETED
        assert trip.completed_at is not None
        await db_session.refresh(driver)
        assert driver.active_trip_id is None
        assert driver.last_lat is None and driver.last_lng is None
        await _assert_pointers_consistent(db_session)

    @pytest.mark.asyncio
    async def test_complete_before_start_is_rejected(self, manager, assigned):
        trip, driver = assigned
        with pytest.raises(InvalidStateTransition):
            await manager.complete_trip(trip.id, driver.id)

    @pytest.mark.asyncio
    async def test_complete_by_other_driver_is_rejected(
        self, manager, assigned, make_driver
    ):
        trip, _ = assigned
        other = await make_driver("other")
        await manager.start_trip(trip.id)
        with pytest.raises(ConflictError, match="not assigned to this driver"):
            await manager.complete_trip(trip.id, other.id)

    @pytest.mark.asyncio
    async def test_complete_unknown_driver(self, manager, assigned):
        trip, _ = assigned
        with pytest.raises(NotFoundError):
            await manager.complete_trip(trip.id, "nope")

    @pytest.mark.asyncio
    async def test_completed_trip_never_changes_again(
        self, manager, assigned, make_driver, db_session
    ):
        trip, driver = assigned
        trip_id, driver_id = trip.id, driver.id
        await manager.start_trip(trip_id)
        await manager.complete_trip(trip_id, driver_id)
        await db_session.commit()
        fresh = await make_driver("fresh")

        for attempt in (
            manager.assign_driver(trip_id, fresh.id),
            manager.start_trip(trip_id),
            manager.complete_trip(trip_id, driver_id),
        ):
            with pytest.raises(ConflictError):
                await attempt
            await db_session.rollback()

        await db_session.refresh(trip)
        assert trip.status == TripStatus.COMPLETED
        assert trip.assigned_driver_id == driver_id

    @pytest.mark.asyncio
    async def test_released_driver_can_take_next_trip(
        self, manager, assigned, route, db_session
    ):
        trip, driver = assigned
        await manager.start_trip(trip.id)
        await manager.complete_trip(trip.id, driver.id)
        await db_session.commit()

        nxt = await manager.create_trip("Next", [s.id for s in route])
        nxt = await manager.assign_driver(nxt.id, driver.id)
        assert nxt.status == TripStatus.ASSIGNED


# ── Locations & read models ───────────────────────────────────────────


class TestReads:
    @pytest.mark.asyncio
    async def test_location_recorded_without_trip(self, manager, make_driver):
        driver = await make_driver("idle")
        driver = await manager.record_driver_location(driver.id, Location(41.0, 29.0))
        assert (driver.last_lat, driver.last_lng) == (41.0, 29.0)
        assert driver.active_trip_id is None

    @pytest.mark.asyncio
    async def test_location_overwrites_previous(self, manager, make_driver):
        driver = await make_driver("moving")
        await manager.record_driver_location(driver.id, Location(41.0, 29.0))
        driver = await manager.record_driver_location(driver.id, Location(40.5, 28.5))
        assert (driver.last_lat, driver.last_lng) == (40.5, 28.5)

    @pytest.mark.asyncio
    async def test_location_for_unknown_driver(self, manager):
        with pytest.raises(NotFoundError):
            await manager.record_driver_location("nope", Location(0, 0))

    @pytest.mark.asyncio
    async def test_active_trips_joined_to_locations(
        self, manager, route, make_driver, db_session
    ):
        tracked, silent, waiting = (
            await make_driver("tracked"),
            await make_driver("silent"),
            await make_driver("waiting"),
        )
        ids = [s.id for s in route]
        t1 = await manager.create_trip("Tracked", ids)
        t2 = await manager.create_trip("Silent", ids)
        t3 = await manager.create_trip("Waiting", ids)
        for trip, driver in ((t1, tracked), (t2, silent), (t3, waiting)):
            await manager.assign_driver(trip.id, driver.id)
        await manager.start_trip(t1.id)
        await manager.start_trip(t2.id)
        await manager.record_driver_location(tracked.id, Location(40.1, 28.9))
        await db_session.commit()

        views = {v.trip.id: v for v in await manager.list_active_trips_with_locations()}
        assert set(views) == {t1.id, t2.id}
        assert views[t1.id].current_location == Location(40.1, 28.9)
        assert views[t2.id].current_location is None

    @pytest.mark.asyncio
    async def test_available_drivers_excludes_busy_and_admins(
        self, manager, route, make_driver, make_user, db_session
    ):
        busy, idle = await make_driver("busy"), await make_driver("idle")
        await make_user("ali", role=UserRole.ADMIN)
        trip = await manager.create_trip("Pallets", [s.id for s in route])
        await manager.assign_driver(trip.id, busy.id)
        await db_session.commit()

        available = await manager.query_available_drivers()
        assert [d.id for d in available] == [idle.id]

    @pytest.mark.asyncio
    async def test_driver_trip_lookup(self, manager, route, make_driver, db_session):
        driver = await make_driver("ahmet")
        assert await manager.get_driver_trip(driver.id) is None

        trip = await manager.create_trip("Pallets", [s.id for s in route])
        await manager.assign_driver(trip.id, driver.id)
        await db_session.commit()
        current = await manager.get_driver_trip(driver.id)
        assert current is not None and current.id == trip.id

        with pytest.raises(NotFoundError):
            await manager.get_driver_trip("nope")
