"""One-to-one chat endpoints."""

import asyncio
import json
from typing import AsyncGenerator

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import StreamingResponse

from skillforge.db import chat_repository as chat
from skillforge.db.users_repository import UserProfile, get_profile
from skillforge.web.chat_hub import Subscription, get_chat_hub
from skillforge.web.deps import get_current_profile, get_current_uid
from skillforge.web.schemas import (
    ConversationListResponse,
    ConversationResponse,
    MessageCreate,
    MessageListResponse,
    MessageResponse,
)

router = APIRouter(prefix="/api/chat", tags=["chat"])

KEEPALIVE_SECONDS = 30.0


def _require_other(uid: str, other_uid: str) -> None:
    if uid == other_uid:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="You cannot chat with yourself",
        )
    if get_profile(other_uid) is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"User '{other_uid}' not found",
        )


@router.get("/conversations", response_model=ConversationListResponse)
async def list_conversations(uid: str = Depends(get_current_uid)) -> ConversationListResponse:
    """Caller's conversations, most recent first."""
    conversations = chat.list_conversations(uid)
    return ConversationListResponse(
        conversations=[ConversationResponse.model_validate(c) for c in conversations],
        count=len(conversations),
    )


@router.get("/{other_uid}/messages", response_model=MessageListResponse)
async def list_messages(
    other_uid: str, limit: int = chat.DEFAULT_HISTORY, uid: str = Depends(get_current_uid)
) -> MessageListResponse:
    """Latest messages with another user, oldest first."""
    _require_other(uid, other_uid)
    messages = chat.list_messages(uid, other_uid, limit=min(max(limit, 1), 200))
    return MessageListResponse(
        room_id=chat.chat_room_id(uid, other_uid),
        messages=[MessageResponse.model_validate(m) for m in messages],
        count=len(messages),
    )


@router.post(
    "/{other_uid}/messages",
    response_model=MessageResponse,
    status_code=status.HTTP_201_CREATED,
)
async def send_message(
    other_uid: str,
    data: MessageCreate,
    profile: UserProfile = Depends(get_current_profile),
) -> MessageResponse:
    """Send a message and push it to open event streams."""
    message = chat.send_message(profile.uid, other_uid, data.text)
    await get_chat_hub().publish(message)
    return MessageResponse.model_validate(message)


async def _event_generator(
    subscription: Subscription, request: Request
) -> AsyncGenerator[str, None]:
    """Generate SSE events for a chat room subscription."""
    hub = get_chat_hub()
    try:
        while True:
            if await request.is_disconnected():
                return
            try:
                message = await asyncio.wait_for(
                    subscription.queue.get(),
                    timeout=KEEPALIVE_SECONDS,
                )
            except asyncio.TimeoutError:
                yield "event: keepalive\ndata: ping\n\n"
                continue

            if message is None:
                yield "event: close\ndata: Room closed\n\n"
                return

            yield f"event: chat_message\ndata: {json.dumps(message.to_dict())}\n\n"
    finally:
        await hub.unsubscribe(subscription)


@router.get("/{other_uid}/events")
async def stream_messages(
    other_uid: str, request: Request, uid: str = Depends(get_current_uid)
) -> StreamingResponse:
    """Stream new messages with another user using Server-Sent Events.

    Events:
    - chat_message: a message sent after the stream was opened, as JSON
    - keepalive: sent every 30s to keep the connection alive
    - close: the room was closed by the server
    """
    _require_other(uid, other_uid)
    subscription = await get_chat_hub().subscribe(chat.chat_room_id(uid, other_uid), uid)

    return StreamingResponse(
        _event_generator(subscription, request),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
    )
