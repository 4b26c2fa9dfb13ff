"""Repository functions for the social graph.

A follow edge is stored twice: under the follower in `following` and under
the target in `followers`. Both rows and the two denormalized counters on
`users` change together inside one transaction.
"""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass

import structlog

from skillforge.core.errors import InvalidArgumentError, NotFoundError
from skillforge.db.database import get_db, transaction, utc_now

logger = structlog.get_logger(__name__)


@dataclass
class FollowEdge:
    """One side of a follow relationship, as seen by owner_uid."""

    owner_uid: str
    other_uid: str
    full_name: str | None
    photo_url: str | None
    followed_at: str


def _load_user(conn: sqlite3.Connection, uid: str) -> sqlite3.Row:
    row = conn.execute(
        "SELECT uid, full_name, photo_url FROM users WHERE uid = ?", (uid,)
    ).fetchone()
    if row is None:
        raise NotFoundError("User", uid)
    return row


def follow(follower_uid: str, target_uid: str) -> bool:
    """Make follower_uid follow target_uid.

    Returns:
        True if a new edge was created, False if it already existed

    Raises:
        InvalidArgumentError: If a user tries to follow themselves
        NotFoundError: If either user does not exist
    """
    if follower_uid == target_uid:
        raise InvalidArgumentError("You cannot follow yourself")

    with transaction() as conn:
        follower = _load_user(conn, follower_uid)
        target = _load_user(conn, target_uid)

        exists = conn.execute(
            "SELECT 1 FROM following WHERE owner_uid = ? AND other_uid = ?",
            (follower_uid, target_uid),
        ).fetchone()
        if exists:
            return False

        now = utc_now()
        conn.execute(
            """
            INSERT INTO following (owner_uid, other_uid, full_name, photo_url, followed_at)
            VALUES (?, ?, ?, ?, ?)
            """,
            (follower_uid, target_uid, target["full_name"], target["photo_url"], now),
        )
        conn.execute(
            """
            INSERT INTO followers (owner_uid, other_uid, full_name, photo_url, followed_at)
            VALUES (?, ?, ?, ?, ?)
            """,
            (target_uid, follower_uid, follower["full_name"], follower["photo_url"], now),
        )
        conn.execute(
            "UPDATE users SET following_count = following_count + 1 WHERE uid = ?",
            (follower_uid,),
        )
        conn.execute(
            "UPDATE users SET followers_count = followers_count + 1 WHERE uid = ?",
            (target_uid,),
        )

    logger.info("follows.created", follower=follower_uid, target=target_uid)
    return True


def unfollow(follower_uid: str, target_uid: str) -> bool:
    """Remove the follow edge from follower_uid to target_uid.

    Returns:
        True if an edge was removed, False if there was none
    """
    with transaction() as conn:
        cursor = conn.execute(
            "DELETE FROM following WHERE owner_uid = ? AND other_uid = ?",
            (follower_uid, target_uid),
        )
        if cursor.rowcount == 0:
            return False

        conn.execute(
            "DELETE FROM followers WHERE owner_uid = ? AND other_uid = ?",
            (target_uid, follower_uid),
        )
        conn.execute(
            "UPDATE users SET following_count = MAX(following_count - 1, 0) WHERE uid = ?",
            (follower_uid,),
        )
        conn.execute(
            "UPDATE users SET followers_count = MAX(followers_count - 1, 0) WHERE uid = ?",
            (target_uid,),
        )

    logger.info("follows.removed", follower=follower_uid, target=target_uid)
    return True


def toggle_follow(follower_uid: str, target_uid: str) -> bool:
    """Follow if not following, otherwise unfollow.

    Returns:
        The new following state
    """
    if is_following(follower_uid, target_uid):
        unfollow(follower_uid, target_uid)
        return False
    follow(follower_uid, target_uid)
    return True


def is_following(follower_uid: str, target_uid: str) -> bool:
    with get_db() as conn:
        row = conn.execute(
            "SELECT 1 FROM following WHERE owner_uid = ? AND other_uid = ?",
            (follower_uid, target_uid),
        ).fetchone()
    return row is not None


def list_followers(uid: str) -> list[FollowEdge]:
    """Users following uid, most recent first."""
    return _list_edges("followers", uid)


def list_following(uid: str) -> list[FollowEdge]:
    """Users uid follows, most recent first."""
    return _list_edges("following", uid)


def _list_edges(table: str, uid: str) -> list[FollowEdge]:
    with get_db() as conn:
        rows = conn.execute(
            f"SELECT * FROM {table} WHERE owner_uid = ? ORDER BY followed_at DESC",
            (uid,),
        ).fetchall()

    return [
        FollowEdge(
            owner_uid=row["owner_uid"],
            other_uid=row["other_uid"],
            full_name=row["full_name"],
            photo_url=row["photo_url"],
            followed_at=row["followed_at"],
        )
        for row in rows
    ]
