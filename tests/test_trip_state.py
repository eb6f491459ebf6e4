"""Unit tests for the trip state machine and stop ordering."""

from dataclasses import dataclass

import pytest

from src.domain.entities import Location, ensure_transition, order_stops
from src.domain.enums import TRIP_TRANSITIONS, TripStatus
from src.domain.errors import ConflictError, InvalidStateTransition, ValidationError


class TestTripStateMachine:
    # ── Valid transitions ─────────────────────────────────────────

    def test_pending_to_assigned(self):
        ensure_transition(TripStatus.PENDING, TripStatus.ASSIGNED)

    def test_assigned_to_active(self):
        ensure_transition(TripStatus.ASSIGNED, TripStatus.ACTIVE)

    def test_active_to_completed(self):
        ensure_transition(TripStatus.ACTIVE, TripStatus.COMPLETED)

    def test_accepts_raw_status_strings(self):
        ensure_transition("pending", TripStatus.ASSIGNED)

    # ── Invalid transitions ───────────────────────────────────────

    def test_pending_to_active_skips_assignment(self):
        with pytest.raises(InvalidStateTransition):
            ensure_transition(TripStatus.PENDING, TripStatus.ACTIVE)

    def test_assigned_to_completed_skips_start(self):
        with pytest.raises(InvalidStateTransition):
            ensure_transition(TripStatus.ASSIGNED, TripStatus.COMPLETED)

    def test_active_back_to_assigned_fails(self):
        with pytest.raises(InvalidStateTransition):
            ensure_transition(TripStatus.ACTIVE, TripStatus.ASSIGNED)

    @pytest.mark.parametrize("target", list(TripStatus))
    def test_completed_is_terminal(self, target):
        with pytest.raises(InvalidStateTransition):
            ensure_transition(TripStatus.COMPLETED, target)

    def test_invalid_transition_is_a_conflict(self):
        assert issubclass(InvalidStateTransition, ConflictError)

    def test_transitions_only_move_forward(self):
        order = list(TripStatus)
        for current, targets in TRIP_TRANSITIONS.items():
            for target in targets:
                assert order.index(target) == order.index(current) + 1


@dataclass
class _Stop:
    id: str
    name: str = ""


class TestStopOrdering:
    def test_preserves_requested_order_not_storage_order(self):
        a, b, c = _Stop("a"), _Stop("b"), _Stop("c")
        ordered = order_stops(["c", "a", "b"], [a, b, c])
        assert [s.id for s in ordered] == ["c", "a", "b"]

    def test_repeated_stop_is_kept(self):
        a, b = _Stop("a"), _Stop("b")
        ordered = order_stops(["a", "b", "a"], [b, a])
        assert [s.id for s in ordered] == ["a", "b", "a"]

    def test_fewer_than_two_stops_rejected(self):
        with pytest.raises(ValidationError, match="at least 2"):
            order_stops(["a"], [_Stop("a")])

    def test_unknown_stop_rejected(self):
        with pytest.raises(ValidationError, match="missing"):
            order_stops(["a", "missing"], [_Stop("a")])


class TestLocation:
    def test_out_of_range_latitude(self):
        with pytest.raises(ValidationError):
            Location(91.0, 0.0)

    def test_from_columns_requires_both(self):
        assert Location.from_columns(None, 29.0) is None
        assert Location.from_columns(41.0, 29.0) == Location(41.0, 29.0)
