"""
Account endpoints
=================

POST /api/register -- create a driver or admin account
POST /api/login    -- verify credentials, return the user (no password)
GET  /api/users    -- list every user (no passwords)
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from src.api.dependencies import get_accounts
from src.api.middleware import RATE_LIMIT, limiter
from src.api.schemas import (
    ErrorResponse,
    LoginRequest,
    LoginResponse,
    RegisterRequest,
    StatusResponse,
    UserResponse,
)
from src.services.accounts import AccountService

router = APIRouter(tags=["accounts"])


@router.post(
    "/register",
    status_code=201,
    response_model=StatusResponse,
    summary="Register a user",
    responses={
        409: {"model": ErrorResponse, "description": "Username already taken."},
    },
)
@limiter.limit(RATE_LIMIT)
async def register(
    request: Request,
    body: RegisterRequest,
    accounts: AccountService = Depends(get_accounts),
):
    await accounts.register(
        username=body.username,
        password=body.password,
        name=body.name,
        role=body.role,
        plate=body.plate,
    )
    return StatusResponse(message="Registration successful")


@router.post(
    "/login",
    response_model=LoginResponse,
    summary="Log in",
    responses={
        401: {"model": ErrorResponse, "description": "Wrong password."},
        404: {"model": ErrorResponse, "description": "Unknown username."},
    },
)
@limiter.limit(RATE_LIMIT)
async def login(
    request: Request,
    body: LoginRequest,
    accounts: AccountService = Depends(get_accounts),
):
    user = await accounts.login(body.username, body.password)
    return LoginResponse(user=UserResponse.from_model(user))


@router.get("/users", response_model=list[UserResponse], summary="List users")
@limiter.limit(RATE_LIMIT)
async def list_users(
    request: Request,
    accounts: AccountService = Depends(get_accounts),
):
    return [UserResponse.from_model(u) for u in await accounts.list_users()]
