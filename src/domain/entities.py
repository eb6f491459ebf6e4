"""
Domain value objects and lifecycle rules.

Patterns used
-------------
- **State Pattern** on trips: ``ensure_transition`` enforces valid lifecycle
  transitions (PENDING -> ASSIGNED -> ACTIVE -> COMPLETED).
- ``order_stops`` resolves stop references in the caller's order, not in
  whatever order storage happened to return them.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional, Protocol, Sequence, TypeVar

from .enums import TRIP_TRANSITIONS, TripStatus
from .errors import InvalidStateTransition, ValidationError


# ── Value Object ──────────────────────────────────────────────────────


@dataclass(frozen=True)
class Location:
    latitude: float
    longitude: float

    def __post_init__(self) -> None:
        if not -90 <= self.latitude <= 90:
            raise ValidationError(f"Latitude out of range: {self.latitude}")
        if not -180 <= self.longitude <= 180:
            raise ValidationError(f"Longitude out of range: {self.longitude}")

    @classmethod
    def from_columns(
        cls, lat: Optional[float], lng: Optional[float]
    ) -> Optional["Location"]:
        """Build from a nullable (lat, lng) column pair."""
        if lat is None or lng is None:
            return None
        return cls(lat, lng)


# ── Trip lifecycle ────────────────────────────────────────────────────


def ensure_transition(current: TripStatus | str, target: TripStatus) -> None:
    """Raise unless *current* may move to *target*."""
    current = TripStatus(current)
    if target not in TRIP_TRANSITIONS.get(current, set()):
        raise InvalidStateTransition(
            f"Cannot move trip from {current.value} to {target.value}"
        )


# ── Stop ordering ─────────────────────────────────────────────────────


class _HasId(Protocol):
    id: str


S = TypeVar("S", bound=_HasId)


def order_stops(
    requested_ids: Sequence[str], resolved: Iterable[S], minimum: int = 2
) -> list[S]:
    """
    Return the resolved stops in ``requested_ids`` order.

    Repeated ids are kept (a route may revisit a stop).  Any id missing
    from ``resolved`` or a route shorter than ``minimum`` is rejected.
    """
    if len(requested_ids) < minimum:
        raise ValidationError(f"A trip needs at least {minimum} stops")

    by_id = {stop.id: stop for stop in resolved}
    missing = [sid for sid in requested_ids if sid not in by_id]
    if missing:
        raise ValidationError(f"Unknown stop id(s): {', '.join(missing)}")
    return [by_id[sid] for sid in requested_ids]
