"""
SQLAlchemy ORM models.

Tables
------
* ``users``     -- drivers and admins; a driver points at its open trip
* ``vehicles``  -- fleet catalogue
* ``stops``     -- named geographic points, immutable once created
* ``trips``     -- lifecycle-managed movement tasks
* ``messages``  -- dispatch messages polled by driver apps

Trips carry an ordered JSON snapshot of their stops (stops never change,
so the copy cannot go stale) and a snapshot of the assigned driver's name.
``users.active_trip_id`` is written only by the lifecycle manager and the
reconciler.

Indexes
-------
* **B-Tree** on ``trips.status``, ``trips.assigned_driver_id``,
  ``users.role`` and ``users.active_trip_id`` -- the filters behind
  "available drivers" and "active trips with locations".
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Index,
    String,
    Text,
    func,
)

from .database import Base
from src.domain.enums import TripStatus, UserRole


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return uuid.uuid4().hex


def _values(enum_cls):
    return [member.value for member in enum_cls]


class UserModel(Base):
    __tablename__ = "users"

    id = Column(String(32), primary_key=True, default=new_id)
    username = Column(String(80), unique=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    name = Column(String(120), nullable=False)
    role = Column(
        Enum(UserRole, values_callable=_values, name="userrole"),
        default=UserRole.DRIVER,
        nullable=False,
    )
    plate = Column(String(20), nullable=True)
    # No FK: users and trips reference each other and are written in
    # either order inside one transaction.
    active_trip_id = Column(String(32), nullable=True)

    # Last known location; overwritten on every report, no history
    last_lat = Column(Float, nullable=True)
    last_lng = Column(Float, nullable=True)
    location_updated_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(
        DateTime(timezone=True), default=utcnow, server_default=func.now()
    )

    __table_args__ = (
        Index("idx_users_role", "role"),
        Index("idx_users_active_trip", "active_trip_id"),
    )


class VehicleModel(Base):
    __tablename__ = "vehicles"

    id = Column(String(32), primary_key=True, default=new_id)
    plate = Column(String(20), unique=True, nullable=False)
    model = Column(String(120), nullable=False)
    fuel_type = Column(String(40), nullable=True)
    created_at = Column(
        DateTime(timezone=True), default=utcnow, server_default=func.now()
    )


class StopModel(Base):
    __tablename__ = "stops"

    id = Column(String(32), primary_key=True, default=new_id)
    name = Column(String(120), nullable=False)
    lat = Column(Float, nullable=False)
    lng = Column(Float, nullable=False)
    created_at = Column(
        DateTime(timezone=True), default=utcnow, server_default=func.now()
    )


class TripModel(Base):
    __tablename__ = "trips"

    id = Column(String(32), primary_key=True, default=new_id)
    details = Column(Text, nullable=False)
    consignment_number = Column(String(64), nullable=True)
    # [{"id": ..., "name": ..., "location": {"lat": ..., "lng": ...}}, ...]
    stops = Column(JSON, nullable=False, default=list)

    status = Column(
        Enum(TripStatus, values_callable=_values, name="tripstatus"),
        default=TripStatus.PENDING,
        nullable=False,
    )
    assigned_driver_id = Column(String(32), ForeignKey("users.id"), nullable=True)
    assigned_driver_name = Column(String(120), nullable=True)

    created_at = Column(
        DateTime(timezone=True), default=utcnow, server_default=func.now()
    )
    assigned_at = Column(DateTime(timezone=True), nullable=True)
    started_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index("idx_trips_status", "status"),
        Index("idx_trips_driver", "assigned_driver_id"),
    )


class MessageModel(Base):
    __tablename__ = "messages"

    id = Column(String(32), primary_key=True, default=new_id)
    sender = Column(String(120), nullable=False)
    content = Column(Text, nullable=False)
    # NULL means broadcast to every driver
    recipient_id = Column(String(32), ForeignKey("users.id"), nullable=True)
    created_at = Column(
        DateTime(timezone=True), default=utcnow, server_default=func.now()
    )

    __table_args__ = (Index("idx_messages_recipient", "recipient_id"),)
