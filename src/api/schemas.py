"""
Pydantic request / response schemas for the REST API.

Clients speak camelCase (``tripId``, ``activeTripId``); snake_case field
names are accepted on input as well.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel

from src.domain.entities import Location
from src.domain.enums import TripStatus, UserRole
from src.infrastructure.models import StopModel, UserModel


class ApiModel(BaseModel):
    model_config = {
        "alias_generator": to_camel,
        "populate_by_name": True,
        "from_attributes": True,
    }


class Point(ApiModel):
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)

    def to_location(self) -> Location:
        return Location(self.lat, self.lng)

    @classmethod
    def from_location(cls, location: Optional[Location]) -> Optional["Point"]:
        if location is None:
            return None
        return cls(lat=location.latitude, lng=location.longitude)


# ── Requests ──────────────────────────────────────────────────────────


class RegisterRequest(ApiModel):
    username: str = Field(..., min_length=1, max_length=80)
    password: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1, max_length=120)
    role: UserRole
    plate: Optional[str] = Field(None, max_length=20)


class LoginRequest(ApiModel):
    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class VehicleCreateRequest(ApiModel):
    plate: str = Field(..., min_length=1, max_length=20)
    model: str = Field(..., min_length=1, max_length=120)
    fuel_type: Optional[str] = Field(None, max_length=40)


class StopCreateRequest(ApiModel):
    name: str = Field(..., min_length=1, max_length=120)
    location: Point


class TripCreateRequest(ApiModel):
    details: str
    stops: list[str] = Field(
        ..., description="Stop ids in route order (at least two)."
    )
    consignment_number: Optional[str] = Field(None, max_length=64)


class TripAssignRequest(ApiModel):
    trip_id: str
    driver_id: str


class TripStartRequest(ApiModel):
    trip_id: str


class TripCompleteRequest(ApiModel):
    trip_id: str
    user_id: str


class DriverLocationRequest(ApiModel):
    user_id: str
    location: Point


class MessageSendRequest(ApiModel):
    message: str = Field(..., min_length=1)
    recipient_id: Optional[str] = Field(
        None, description="Driver id; omit to broadcast to every driver."
    )
    sender: str = Field("Dispatch", min_length=1, max_length=120)


# ── Responses ─────────────────────────────────────────────────────────


class UserResponse(ApiModel):
    id: str
    username: str
    name: str
    role: UserRole
    plate: Optional[str] = None
    active_trip_id: Optional[str] = None
    location: Optional[Point] = None
    created_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, user: UserModel) -> "UserResponse":
        return cls(
            id=user.id,
            username=user.username,
            name=user.name,
            role=user.role,
            plate=user.plate,
            active_trip_id=user.active_trip_id,
            location=Point.from_location(
                Location.from_columns(user.last_lat, user.last_lng)
            ),
            created_at=user.created_at,
        )


class VehicleResponse(ApiModel):
    id: str
    plate: str
    model: str
    fuel_type: Optional[str] = None
    created_at: Optional[datetime] = None


class StopResponse(ApiModel):
    id: str
    name: str
    location: Point
    created_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, stop: StopModel) -> "StopResponse":
        return cls(
            id=stop.id,
            name=stop.name,
            location=Point(lat=stop.lat, lng=stop.lng),
            created_at=stop.created_at,
        )


class TripStop(ApiModel):
    id: str
    name: str
    location: Point


class TripResponse(ApiModel):
    id: str
    details: str
    consignment_number: Optional[str] = None
    stops: list[TripStop] = []
    status: TripStatus
    assigned_driver_id: Optional[str] = None
    assigned_driver_name: Optional[str] = None
    created_at: Optional[datetime] = None
    assigned_at: Optional[datetime] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None


class ActiveTripResponse(TripResponse):
    current_location: Optional[Point] = None


class MessageResponse(ApiModel):
    id: str
    sender: str
    content: str
    recipient_id: Optional[str] = None
    created_at: Optional[datetime] = None


# ── Envelopes ─────────────────────────────────────────────────────────


class StatusResponse(ApiModel):
    success: bool = True
    message: str


class AckResponse(ApiModel):
    success: bool = True


class LoginResponse(ApiModel):
    success: bool = True
    user: UserResponse


class VehicleEnvelope(ApiModel):
    success: bool = True
    vehicle: VehicleResponse


class StopEnvelope(ApiModel):
    success: bool = True
    stop: StopResponse


class TripEnvelope(ApiModel):
    success: bool = True
    message: str
    trip: TripResponse


class DriverTripResponse(ApiModel):
    success: bool = True
    trip: Optional[TripResponse] = None


class MessageListResponse(ApiModel):
    success: bool = True
    messages: list[MessageResponse]


class ReconcileResponse(ApiModel):
    success: bool = True
    repaired: int


class HealthResponse(BaseModel):
    status: str = "ok"


class ErrorResponse(BaseModel):
    success: bool = False
    message: str
