"""Live chat fan-out for the Web API.

Each open event stream subscribes to one chat room and gets its own queue;
every message stored for that room after subscribing is pushed to all of
the room's queues.
"""

from __future__ import annotations

import asyncio
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone

import structlog

from skillforge.db.chat_repository import ChatMessage

logger = structlog.get_logger(__name__)


@dataclass
class Subscription:
    """One listener on a chat room."""

    room_id: str
    uid: str
    subscription_id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    created_at: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    # None signals the stream to close
    queue: asyncio.Queue[ChatMessage | None] = field(default_factory=lambda: asyncio.Queue())


class ChatHub:
    """Tracks room subscriptions and delivers new messages to them."""

    def __init__(self):
        self._rooms: dict[str, dict[str, Subscription]] = {}
        self._lock = asyncio.Lock()

    async def subscribe(self, room_id: str, uid: str) -> Subscription:
        """Register a listener on a room."""
        subscription = Subscription(room_id=room_id, uid=uid)
        async with self._lock:
            self._rooms.setdefault(room_id, {})[subscription.subscription_id] = subscription

        logger.info(
            "chat.subscribed",
            room_id=room_id,
            uid=uid,
            subscription_id=subscription.subscription_id,
        )
        return subscription

    async def unsubscribe(self, subscription: Subscription) -> bool:
        """Remove a listener.

        Returns:
            True if it was registered, False otherwise
        """
        async with self._lock:
            room = self._rooms.get(subscription.room_id, {})
            removed = room.pop(subscription.subscription_id, None)
            if not room:
                self._rooms.pop(subscription.room_id, None)

        if removed is None:
            return False

        logger.info(
            "chat.unsubscribed",
            room_id=subscription.room_id,
            subscription_id=subscription.subscription_id,
        )
        return True

    async def publish(self, message: ChatMessage) -> int:
        """Deliver a message to every listener on its room.

        Returns:
            Number of listeners the message was queued for
        """
        async with self._lock:
            subscriptions = list(self._rooms.get(message.room_id, {}).values())

        for subscription in subscriptions:
            await subscription.queue.put(message)

        logger.debug(
            "chat.published",
            room_id=message.room_id,
            message_id=message.message_id,
            listeners=len(subscriptions),
        )
        return len(subscriptions)

    async def close_room(self, room_id: str) -> int:
        """Close every stream on a room."""
        async with self._lock:
            subscriptions = list(self._rooms.pop(room_id, {}).values())

        for subscription in subscriptions:
            await subscription.queue.put(None)
        return len(subscriptions)

    async def get_subscriber_count(self, room_id: str) -> int:
        async with self._lock:
            return len(self._rooms.get(room_id, {}))


# Global chat hub instance
_chat_hub: ChatHub | None = None


def get_chat_hub() -> ChatHub:
    """Get the global chat hub instance."""
    global _chat_hub
    if _chat_hub is None:
        _chat_hub = ChatHub()
    return _chat_hub


def reset_chat_hub() -> None:
    """Reset the chat hub (for testing)."""
    global _chat_hub
    _chat_hub = None
