"""Domain enumerations and state-transition rules."""

import enum


class TripStatus(str, enum.Enum):
    PENDING = "pending"
    ASSIGNED = "assigned"
    ACTIVE = "active"
    COMPLETED = "completed"


# State machine: maps current status -> set of valid next statuses
TRIP_TRANSITIONS: dict[TripStatus, set[TripStatus]] = {
    TripStatus.PENDING: {TripStatus.ASSIGNED},
    TripStatus.ASSIGNED: {TripStatus.ACTIVE},
    TripStatus.ACTIVE: {TripStatus.COMPLETED},
    TripStatus.COMPLETED: set(),
}

# Statuses during which a trip occupies its driver
OPEN_TRIP_STATUSES: frozenset[TripStatus] = frozenset(
    {TripStatus.ASSIGNED, TripStatus.ACTIVE}
)


class UserRole(str, enum.Enum):
    DRIVER = "driver"
    ADMIN = "admin"
