"""
Trip endpoints
==============

POST /api/trips                     -- create a trip over >= 2 stops
GET  /api/trips                     -- list trips (optional ?status=)
GET  /api/trips/active-with-routes  -- active trips + driver's last location
GET  /api/trips/{trip_id}           -- single trip
PUT  /api/trips/assign              -- pending -> assigned (occupies driver)
POST /api/trips/start               -- assigned -> active
POST /api/trips/complete            -- active -> completed (releases driver)
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Request

from src.api.dependencies import get_lifecycle
from src.api.middleware import RATE_LIMIT, limiter
from src.api.schemas import (
    ActiveTripResponse,
    ErrorResponse,
    Point,
    TripAssignRequest,
    TripCompleteRequest,
    TripCreateRequest,
    TripEnvelope,
    TripResponse,
    TripStartRequest,
)
from src.domain.enums import TripStatus
from src.services.trip_lifecycle import TripLifecycleManager

router = APIRouter(prefix="/trips", tags=["trips"])


def _envelope(message: str, trip) -> TripEnvelope:
    return TripEnvelope(message=message, trip=TripResponse.model_validate(trip))


@router.post(
    "",
    status_code=201,
    response_model=TripEnvelope,
    summary="Create a trip",
    responses={
        400: {
            "model": ErrorResponse,
            "description": "Missing details or fewer than two valid stops.",
        },
    },
)
@limiter.limit(RATE_LIMIT)
async def create_trip(
    request: Request,
    body: TripCreateRequest,
    manager: TripLifecycleManager = Depends(get_lifecycle),
):
    trip = await manager.create_trip(
        body.details, body.stops, consignment_number=body.consignment_number
    )
    return _envelope("Trip created", trip)


@router.get("", response_model=list[TripResponse], summary="List trips")
@limiter.limit(RATE_LIMIT)
async def list_trips(
    request: Request,
    status: Optional[TripStatus] = None,
    manager: TripLifecycleManager = Depends(get_lifecycle),
):
    return await manager.list_trips(status)


@router.get(
    "/active-with-routes",
    response_model=list[ActiveTripResponse],
    summary="Active trips with each driver's last known location",
)
@limiter.limit(RATE_LIMIT)
async def active_with_routes(
    request: Request,
    manager: TripLifecycleManager = Depends(get_lifecycle),
):
    views = await manager.list_active_trips_with_locations()
    return [
        ActiveTripResponse.model_validate(view.trip).model_copy(
            update={"current_location": Point.from_location(view.current_location)}
        )
        for view in views
    ]


@router.get("/{trip_id}", response_model=TripResponse, summary="Get a trip")
@limiter.limit(RATE_LIMIT)
async def get_trip(
    request: Request,
    trip_id: str,
    manager: TripLifecycleManager = Depends(get_lifecycle),
):
    return await manager.get_trip(trip_id)


@router.put(
    "/assign",
    response_model=TripEnvelope,
    summary="Assign a driver to a pending trip",
    responses={
        404: {"model": ErrorResponse, "description": "Unknown trip or driver."},
        409: {
            "model": ErrorResponse,
            "description": "Trip not pending or driver already busy.",
        },
    },
)
@limiter.limit(RATE_LIMIT)
async def assign_driver(
    request: Request,
    body: TripAssignRequest,
    manager: TripLifecycleManager = Depends(get_lifecycle),
):
    trip = await manager.assign_driver(body.trip_id, body.driver_id)
    return _envelope("Driver assigned", trip)


@router.post(
    "/start",
    response_model=TripEnvelope,
    summary="Start an assigned trip",
    responses={
        404: {"model": ErrorResponse, "description": "Unknown trip."},
        409: {
            "model": ErrorResponse,
            "description": "Trip is not in the assigned state.",
        },
    },
)
@limiter.limit(RATE_LIMIT)
async def start_trip(
    request: Request,
    body: TripStartRequest,
    manager: TripLifecycleManager = Depends(get_lifecycle),
):
    trip = await manager.start_trip(body.trip_id)
    return _envelope("Trip started", trip)


@router.post(
    "/complete",
    response_model=TripEnvelope,
    summary="Complete an active trip and release its driver",
    responses={
        404: {"model": ErrorResponse, "description": "Unknown trip or driver."},
        409: {
            "model": ErrorResponse,
            "description": (
                "Trip is not active (completing an assigned trip is refused) "
                "or is held by another driver."
            ),
        },
    },
)
@limiter.limit(RATE_LIMIT)
async def complete_trip(
    request: Request,
    body: TripCompleteRequest,
    manager: TripLifecycleManager = Depends(get_lifecycle),
):
    trip = await manager.complete_trip(body.trip_id, body.user_id)
    return _envelope("Trip completed", trip)
