"""
Repository Pattern -- abstracts DB access so domain logic stays DB-agnostic.

Each repository receives an ``AsyncSession`` (unit-of-work) and exposes
domain-relevant queries only.  Nothing here commits; state-changing
methods that guard an invariant are single conditional UPDATEs whose
affected-row count tells the caller whether the precondition held.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional, Sequence

from sqlalchemy import delete, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from .models import (
    MessageModel,
    StopModel,
    TripModel,
    UserModel,
    VehicleModel,
)
from src.domain.enums import OPEN_TRIP_STATUSES, TripStatus, UserRole


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _open_trip_held(driver_id: str, trip_id: str):
    """Subquery finding *trip_id* while it is open and held by *driver_id*."""
    return select(TripModel.id).where(
        TripModel.id == trip_id,
        TripModel.assigned_driver_id == driver_id,
        TripModel.status.in_(list(OPEN_TRIP_STATUSES)),
    )


class UserRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, user: UserModel) -> UserModel:
        self.session.add(user)
        await self.session.flush()
        return user

    async def get_by_id(self, user_id: str) -> Optional[UserModel]:
        return await self.session.get(UserModel, user_id)

    async def get_by_username(self, username: str) -> Optional[UserModel]:
        result = await self.session.execute(
            select(UserModel).where(UserModel.username == username)
        )
        return result.scalar_one_or_none()

    async def get_driver(self, user_id: str) -> Optional[UserModel]:
        user = await self.get_by_id(user_id)
        if user is None or user.role != UserRole.DRIVER:
            return None
        return user

    async def list_all(self) -> list[UserModel]:
        result = await self.session.execute(
            select(UserModel).order_by(UserModel.created_at)
        )
        return list(result.scalars().all())

    async def list_drivers(self) -> list[UserModel]:
        """All drivers, re-read from the database even if already loaded."""
        result = await self.session.execute(
            select(UserModel)
            .where(UserModel.role == UserRole.DRIVER)
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def list_available_drivers(self) -> list[UserModel]:
        result = await self.session.execute(
            select(UserModel)
            .where(
                UserModel.role == UserRole.DRIVER,
                UserModel.active_trip_id.is_(None),
            )
            .order_by(UserModel.name)
        )
        return list(result.scalars().all())

    async def claim_for_trip(self, driver_id: str, trip_id: str) -> bool:
        """
        Point an idle driver at *trip_id* in one statement.

        Returns False if the driver was already occupied (or is not a
        driver), so two racing assignments cannot both win.
        """
        result = await self.session.execute(
            update(UserModel)
            .where(
                UserModel.id == driver_id,
                UserModel.role == UserRole.DRIVER,
                UserModel.active_trip_id.is_(None),
            )
            .values(active_trip_id=trip_id)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def release(self, driver_id: str) -> None:
        """Return the driver to the available pool and forget its location."""
        await self.session.execute(
            update(UserModel)
            .where(UserModel.id == driver_id)
            .values(
                active_trip_id=None,
                last_lat=None,
                last_lng=None,
                location_updated_at=None,
            )
            .execution_options(synchronize_session=False)
        )

    async def repair_active_trip(
        self,
        driver_id: str,
        current: Optional[str],
        expected: Optional[str],
    ) -> bool:
        """
        Move the driver's pointer from *current* to *expected*.

        Applies only while the pointer still reads *current* and the trips
        table still agrees: *expected* must be an open trip held by this
        driver, and a cleared *current* must no longer be one.  Returns
        False if either side changed since the caller read it.
        """
        pointer_unchanged = (
            UserModel.active_trip_id.is_(None)
            if current is None
            else UserModel.active_trip_id == current
        )
        conditions = [UserModel.id == driver_id, pointer_unchanged]
        if expected is not None:
            conditions.append(_open_trip_held(driver_id, expected).exists())
        elif current is not None:
            conditions.append(~_open_trip_held(driver_id, current).exists())

        result = await self.session.execute(
            update(UserModel)
            .where(*conditions)
            .values(active_trip_id=expected)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def set_location(self, driver_id: str, lat: float, lng: float) -> None:
        await self.session.execute(
            update(UserModel)
            .where(UserModel.id == driver_id)
            .values(last_lat=lat, last_lng=lng, location_updated_at=_now())
            .execution_options(synchronize_session=False)
        )


class VehicleRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, vehicle: VehicleModel) -> VehicleModel:
        self.session.add(vehicle)
        await self.session.flush()
        return vehicle

    async def get_by_plate(self, plate: str) -> Optional[VehicleModel]:
        result = await self.session.execute(
            select(VehicleModel).where(VehicleModel.plate == plate)
        )
        return result.scalar_one_or_none()

    async def list_all(self) -> list[VehicleModel]:
        result = await self.session.execute(
            select(VehicleModel).order_by(VehicleModel.created_at)
        )
        return list(result.scalars().all())

    async def delete(self, vehicle_id: str) -> bool:
        result = await self.session.execute(
            delete(VehicleModel)
            .where(VehicleModel.id == vehicle_id)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1


class StopRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, stop: StopModel) -> StopModel:
        self.session.add(stop)
        await self.session.flush()
        return stop

    async def get_many(self, stop_ids: Sequence[str]) -> list[StopModel]:
        """Fetch stops by id.  Order is whatever the database returns."""
        if not stop_ids:
            return []
        result = await self.session.execute(
            select(StopModel).where(StopModel.id.in_(set(stop_ids)))
        )
        return list(result.scalars().all())

    async def list_all(self) -> list[StopModel]:
        result = await self.session.execute(
            select(StopModel).order_by(StopModel.name)
        )
        return list(result.scalars().all())

    async def delete(self, stop_id: str) -> bool:
        result = await self.session.execute(
            delete(StopModel)
            .where(StopModel.id == stop_id)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1


class TripRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, trip: TripModel) -> TripModel:
        self.session.add(trip)
        await self.session.flush()
        return trip

    async def get_by_id(self, trip_id: str) -> Optional[TripModel]:
        return await self.session.get(TripModel, trip_id)

    async def list_by_status(
        self, status: TripStatus | None = None
    ) -> list[TripModel]:
        query = select(TripModel).order_by(TripModel.created_at.desc())
        if status is not None:
            query = query.where(TripModel.status == status)
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def transition(
        self,
        trip_id: str,
        current: TripStatus,
        target: TripStatus,
        **values,
    ) -> bool:
        """
        Compare-and-set the trip status.

        Applies only while the stored status is still *current*; returns
        False if another request moved the trip first.
        """
        result = await self.session.execute(
            update(TripModel)
            .where(TripModel.id == trip_id, TripModel.status == current)
            .values(status=target, **values)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def get_active_with_driver_locations(
        self,
    ) -> list[tuple[TripModel, Optional[UserModel]]]:
        """ACTIVE trips joined to the driver whose ``active_trip_id`` matches."""
        result = await self.session.execute(
            select(TripModel, UserModel)
            .outerjoin(UserModel, UserModel.active_trip_id == TripModel.id)
            .where(TripModel.status == TripStatus.ACTIVE)
            .order_by(TripModel.started_at)
            .execution_options(populate_existing=True)
        )
        return [(trip, driver) for trip, driver in result.all()]

    async def get_open_trips(self) -> list[TripModel]:
        """Trips that currently occupy a driver."""
        result = await self.session.execute(
            select(TripModel)
            .where(
                TripModel.status.in_(list(OPEN_TRIP_STATUSES)),
                TripModel.assigned_driver_id.is_not(None),
            )
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())


class MessageRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, message: MessageModel) -> MessageModel:
        self.session.add(message)
        await self.session.flush()
        return message

    async def list_for(self, recipient_id: str | None = None) -> list[MessageModel]:
        """All messages, or broadcasts plus those addressed to *recipient_id*."""
        query = select(MessageModel).order_by(MessageModel.created_at)
        if recipient_id is not None:
            query = query.where(
                or_(
                    MessageModel.recipient_id.is_(None),
                    MessageModel.recipient_id == recipient_id,
                )
            )
        result = await self.session.execute(query)
        return list(result.scalars().all())
