"""
Driver / Trip Consistency Planning
==================================

A driver's ``active_trip_id`` duplicates what the trips table already
says: the driver is occupied by the trip assigned to them whose status is
ASSIGNED or ACTIVE.  The lifecycle manager writes both sides in one
transaction, but rows edited by hand, restored from backups, or written
by older deployments can still drift.

``plan_repairs`` derives the expected value from the trips and reports
every driver whose stored pointer disagrees.  It is pure so the worker
can apply the plan inside its own session.

Tie-break
---------
If several open trips name the same driver (only possible after manual
edits) the most recently assigned one wins.  The others are reported in
``Repair.orphaned_trip_ids`` for an operator to resolve; trip status is
never rewritten here.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, Optional


@dataclass(frozen=True)
class DriverPointer:
    driver_id: str
    active_trip_id: Optional[str]


@dataclass(frozen=True)
class OpenTrip:
    trip_id: str
    driver_id: str
    assigned_at: Optional[datetime] = None


@dataclass
class Repair:
    driver_id: str
    current: Optional[str]
    expected: Optional[str]
    orphaned_trip_ids: list[str] = field(default_factory=list)


def _sort_key(trip: OpenTrip) -> tuple[bool, datetime]:
    # Trips without an assignment time sort first
    return (trip.assigned_at is not None, trip.assigned_at or datetime.min)


def plan_repairs(
    drivers: Iterable[DriverPointer], open_trips: Iterable[OpenTrip]
) -> list[Repair]:
    """Return one ``Repair`` per driver whose pointer must change."""
    by_driver: dict[str, list[OpenTrip]] = defaultdict(list)
    for trip in open_trips:
        by_driver[trip.driver_id].append(trip)

    repairs: list[Repair] = []
    for driver in drivers:
        candidates = sorted(by_driver.get(driver.driver_id, []), key=_sort_key)
        expected = candidates[-1].trip_id if candidates else None
        orphaned = [t.trip_id for t in candidates[:-1]]
        if expected != driver.active_trip_id:
            repairs.append(
                Repair(
                    driver_id=driver.driver_id,
                    current=driver.active_trip_id,
                    expected=expected,
                    orphaned_trip_ids=orphaned,
                )
            )
    return repairs
