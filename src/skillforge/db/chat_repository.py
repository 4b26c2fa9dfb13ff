"""Repository functions for one-to-one chat.

Two users share exactly one room whose id is their UIDs sorted and joined
with "_". The room row carries the last message for the conversation list.
"""

from __future__ import annotations

import sqlite3
from dataclasses import asdict, dataclass

import structlog

from skillforge.core.errors import InvalidArgumentError, NotFoundError
from skillforge.db.database import get_db, new_id, transaction, utc_now

logger = structlog.get_logger(__name__)

MAX_MESSAGE_LENGTH = 2000
DEFAULT_HISTORY = 50


@dataclass
class ChatMessage:
    """Chat message record from database."""

    message_id: str
    room_id: str
    sender_uid: str
    receiver_uid: str
    message: str
    sent_at: str
    sender_full_name: str | None = None
    sender_photo_url: str | None = None

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class Conversation:
    """A room as seen by one participant."""

    room_id: str
    other_uid: str
    other_full_name: str | None
    other_photo_url: str | None
    last_message: str | None
    last_sender_uid: str | None
    last_sent_at: str | None


def chat_room_id(uid_a: str, uid_b: str) -> str:
    """Room id shared by two users, independent of argument order."""
    return "_".join(sorted([uid_a, uid_b]))


def send_message(sender_uid: str, receiver_uid: str, text: str) -> ChatMessage:
    """Store a message and update the room's last-message metadata.

    Raises:
        InvalidArgumentError: Empty or overlong text, or a message to oneself
        NotFoundError: Unknown sender or receiver
    """
    text = (text or "").strip()
    if not text:
        raise InvalidArgumentError("Message cannot be empty")
    if len(text) > MAX_MESSAGE_LENGTH:
        raise InvalidArgumentError(
            f"Message must be at most {MAX_MESSAGE_LENGTH} characters"
        )
    if sender_uid == receiver_uid:
        raise InvalidArgumentError("You cannot chat with yourself")

    room_id = chat_room_id(sender_uid, receiver_uid)
    message_id = new_id()
    sent_at = utc_now()

    with transaction() as conn:
        sender = conn.execute(
            "SELECT full_name, photo_url FROM users WHERE uid = ?", (sender_uid,)
        ).fetchone()
        if sender is None:
            raise NotFoundError("User", sender_uid)
        if conn.execute(
            "SELECT 1 FROM users WHERE uid = ?", (receiver_uid,)
        ).fetchone() is None:
            raise NotFoundError("User", receiver_uid)

        uid_a, uid_b = sorted([sender_uid, receiver_uid])
        conn.execute(
            """
            INSERT INTO chat_rooms (room_id, uid_a, uid_b, last_message, last_sender_uid, last_sent_at)
            VALUES (?, ?, ?, ?, ?, ?)
            ON CONFLICT(room_id) DO UPDATE SET
                last_message = excluded.last_message,
                last_sender_uid = excluded.last_sender_uid,
                last_sent_at = excluded.last_sent_at
            """,
            (room_id, uid_a, uid_b, text, sender_uid, sent_at),
        )
        conn.execute(
            """
            INSERT INTO chat_messages (
                message_id, room_id, sender_uid, receiver_uid, message,
                sent_at, sender_full_name, sender_photo_url
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                message_id,
                room_id,
                sender_uid,
                receiver_uid,
                text,
                sent_at,
                sender["full_name"],
                sender["photo_url"],
            ),
        )

    logger.debug("chat.message_sent", room_id=room_id, sender=sender_uid)
    return ChatMessage(
        message_id=message_id,
        room_id=room_id,
        sender_uid=sender_uid,
        receiver_uid=receiver_uid,
        message=text,
        sent_at=sent_at,
        sender_full_name=sender["full_name"],
        sender_photo_url=sender["photo_url"],
    )


def list_messages(uid_a: str, uid_b: str, limit: int = DEFAULT_HISTORY) -> list[ChatMessage]:
    """The most recent `limit` messages between two users, oldest first."""
    room_id = chat_room_id(uid_a, uid_b)
    with get_db() as conn:
        rows = conn.execute(
            """
            SELECT * FROM (
                SELECT *, rowid AS seq FROM chat_messages
                WHERE room_id = ?
                  AND ((sender_uid = ? AND receiver_uid = ?)
                       OR (sender_uid = ? AND receiver_uid = ?))
                ORDER BY sent_at DESC, seq DESC
                LIMIT ?
            ) ORDER BY sent_at ASC, seq ASC
            """,
            (room_id, uid_a, uid_b, uid_b, uid_a, limit),
        ).fetchall()

    return [_row_to_record(row) for row in rows]


def list_conversations(uid: str) -> list[Conversation]:
    """Rooms the user takes part in, most recently active first."""
    with get_db() as conn:
        rows = conn.execute(
            """
            SELECT r.*, u.uid AS other_uid, u.full_name AS other_full_name,
                   u.photo_url AS other_photo_url
            FROM chat_rooms r
            LEFT JOIN users u
              ON u.uid = CASE WHEN r.uid_a = ? THEN r.uid_b ELSE r.uid_a END
            WHERE r.uid_a = ? OR r.uid_b = ?
            ORDER BY r.last_sent_at DESC
            """,
            (uid, uid, uid),
        ).fetchall()

    return [
        Conversation(
            room_id=row["room_id"],
            other_uid=row["uid_b"] if row["uid_a"] == uid else row["uid_a"],
            other_full_name=row["other_full_name"],
            other_photo_url=row["other_photo_url"],
            last_message=row["last_message"],
            last_sender_uid=row["last_sender_uid"],
            last_sent_at=row["last_sent_at"],
        )
        for row in rows
    ]


def _row_to_record(row: sqlite3.Row) -> ChatMessage:
    """Convert database row to ChatMessage."""
    return ChatMessage(
        message_id=row["message_id"],
        room_id=row["room_id"],
        sender_uid=row["sender_uid"],
        receiver_uid=row["receiver_uid"],
        message=row["message"],
        sent_at=row["sent_at"],
        sender_full_name=row["sender_full_name"],
        sender_photo_url=row["sender_photo_url"],
    )
