"""
Dispatch message endpoints
==========================

POST /api/messages/send -- dispatch a message (to one driver or broadcast)
GET  /api/messages      -- list messages (?recipient_id= narrows to a driver)

Clients poll; nothing is pushed.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.dependencies import get_db
from src.api.middleware import RATE_LIMIT, limiter
from src.api.schemas import (
    MessageListResponse,
    MessageResponse,
    MessageSendRequest,
    StatusResponse,
)
from src.domain.errors import NotFoundError
from src.infrastructure.models import MessageModel
from src.infrastructure.repositories import MessageRepository, UserRepository

router = APIRouter(prefix="/messages", tags=["messages"])


@router.post(
    "/send",
    status_code=201,
    response_model=StatusResponse,
    summary="Send a message to drivers",
)
@limiter.limit(RATE_LIMIT)
async def send_message(
    request: Request,
    body: MessageSendRequest,
    db: AsyncSession = Depends(get_db),
):
    if body.recipient_id is not None:
        if await UserRepository(db).get_driver(body.recipient_id) is None:
            raise NotFoundError("Driver not found")
    await MessageRepository(db).create(
        MessageModel(
            sender=body.sender,
            content=body.message,
            recipient_id=body.recipient_id,
        )
    )
    return StatusResponse(message="Message sent")


@router.get("", response_model=MessageListResponse, summary="List messages")
@limiter.limit(RATE_LIMIT)
async def list_messages(
    request: Request,
    recipient_id: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
):
    messages = await MessageRepository(db).list_for(recipient_id)
    return MessageListResponse(
        messages=[MessageResponse.model_validate(m) for m in messages]
    )
