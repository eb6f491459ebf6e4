"""
Driver endpoints
================

GET /api/drivers/available       -- idle drivers (no open trip)
PUT /api/driver/location         -- overwrite the driver's last location
GET /api/driver/trip/{user_id}   -- the driver's current trip, or null
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from src.api.dependencies import get_lifecycle
from src.api.middleware import RATE_LIMIT, limiter
from src.api.schemas import (
    AckResponse,
    DriverLocationRequest,
    DriverTripResponse,
    TripResponse,
    UserResponse,
)
from src.services.trip_lifecycle import TripLifecycleManager

router = APIRouter(tags=["drivers"])


@router.get(
    "/drivers/available",
    response_model=list[UserResponse],
    summary="List drivers free to take a trip",
)
@limiter.limit(RATE_LIMIT)
async def available_drivers(
    request: Request,
    manager: TripLifecycleManager = Depends(get_lifecycle),
):
    drivers = await manager.query_available_drivers()
    return [UserResponse.from_model(d) for d in drivers]


@router.put(
    "/driver/location",
    response_model=AckResponse,
    summary="Report the driver's current location",
)
@limiter.limit(RATE_LIMIT)
async def update_location(
    request: Request,
    body: DriverLocationRequest,
    manager: TripLifecycleManager = Depends(get_lifecycle),
):
    await manager.record_driver_location(body.user_id, body.location.to_location())
    return AckResponse()


@router.get(
    "/driver/trip/{user_id}",
    response_model=DriverTripResponse,
    summary="Get the trip currently occupying a driver",
)
@limiter.limit(RATE_LIMIT)
async def driver_trip(
    request: Request,
    user_id: str,
    manager: TripLifecycleManager = Depends(get_lifecycle),
):
    trip = await manager.get_driver_trip(user_id)
    return DriverTripResponse(
        trip=TripResponse.model_validate(trip) if trip is not None else None
    )
