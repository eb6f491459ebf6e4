"""
Fleet catalogue endpoints
=========================

POST   /api/vehicles       -- add a vehicle
GET    /api/vehicles       -- list vehicles
DELETE /api/vehicles/{id}  -- remove a vehicle
POST   /api/stops          -- add a stop (immutable afterwards)
GET    /api/stops          -- list stops
DELETE /api/stops/{id}     -- remove a stop; trips keep their snapshot
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.dependencies import get_db
from src.api.middleware import RATE_LIMIT, limiter
from src.api.schemas import (
    StatusResponse,
    StopCreateRequest,
    StopEnvelope,
    StopResponse,
    VehicleCreateRequest,
    VehicleEnvelope,
    VehicleResponse,
)
from src.domain.errors import ConflictError, NotFoundError
from src.infrastructure.models import StopModel, VehicleModel
from src.infrastructure.repositories import StopRepository, VehicleRepository

router = APIRouter(tags=["fleet"])


# ── Vehicles ──────────────────────────────────────────────────────────


@router.post(
    "/vehicles",
    status_code=201,
    response_model=VehicleEnvelope,
    summary="Add a vehicle",
)
@limiter.limit(RATE_LIMIT)
async def create_vehicle(
    request: Request,
    body: VehicleCreateRequest,
    db: AsyncSession = Depends(get_db),
):
    repo = VehicleRepository(db)
    if await repo.get_by_plate(body.plate):
        raise ConflictError("A vehicle with this plate already exists")
    try:
        vehicle = await repo.create(
            VehicleModel(
                plate=body.plate, model=body.model, fuel_type=body.fuel_type
            )
        )
    except IntegrityError as exc:
        raise ConflictError("A vehicle with this plate already exists") from exc
    return VehicleEnvelope(vehicle=VehicleResponse.model_validate(vehicle))


@router.get("/vehicles", response_model=list[VehicleResponse], summary="List vehicles")
@limiter.limit(RATE_LIMIT)
async def list_vehicles(request: Request, db: AsyncSession = Depends(get_db)):
    return await VehicleRepository(db).list_all()


@router.delete(
    "/vehicles/{vehicle_id}", response_model=StatusResponse, summary="Delete a vehicle"
)
@limiter.limit(RATE_LIMIT)
async def delete_vehicle(
    request: Request,
    vehicle_id: str,
    db: AsyncSession = Depends(get_db),
):
    if not await VehicleRepository(db).delete(vehicle_id):
        raise NotFoundError("Vehicle not found")
    return StatusResponse(message="Vehicle deleted")


# ── Stops ─────────────────────────────────────────────────────────────


@router.post(
    "/stops",
    status_code=201,
    response_model=StopEnvelope,
    summary="Add a stop",
)
@limiter.limit(RATE_LIMIT)
async def create_stop(
    request: Request,
    body: StopCreateRequest,
    db: AsyncSession = Depends(get_db),
):
    stop = await StopRepository(db).create(
        StopModel(name=body.name, lat=body.location.lat, lng=body.location.lng)
    )
    return StopEnvelope(stop=StopResponse.from_model(stop))


@router.get("/stops", response_model=list[StopResponse], summary="List stops")
@limiter.limit(RATE_LIMIT)
async def list_stops(request: Request, db: AsyncSession = Depends(get_db)):
    return [StopResponse.from_model(s) for s in await StopRepository(db).list_all()]


@router.delete(
    "/stops/{stop_id}", response_model=StatusResponse, summary="Delete a stop"
)
@limiter.limit(RATE_LIMIT)
async def delete_stop(
    request: Request,
    stop_id: str,
    db: AsyncSession = Depends(get_db),
):
    if not await StopRepository(db).delete(stop_id):
        raise NotFoundError("Stop not found")
    return StatusResponse(message="Stop deleted")
