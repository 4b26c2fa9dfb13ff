"""Repository functions for content comments.

Comments form threads through parent_id; a reply always belongs to the same
content item as its parent.
"""

from __future__ import annotations

import sqlite3
from dataclasses import asdict, dataclass, field

import structlog

from skillforge.core.errors import InvalidArgumentError, NotFoundError, PermissionDeniedError
from skillforge.db.database import get_db, new_id, utc_now

logger = structlog.get_logger(__name__)

MAX_COMMENT_LENGTH = 2000


@dataclass
class CommentRecord:
    """Comment record from database."""

    comment_id: str
    content_id: str
    user_uid: str
    author_name: str | None
    parent_id: str | None
    text: str
    created_at: str
    replies: list[CommentRecord] = field(default_factory=list)

    def to_dict(self) -> dict:
        return asdict(self)


def add_comment(
    content_id: str, user_uid: str, text: str, parent_id: str | None = None
) -> CommentRecord:
    """Add a comment (or a reply when parent_id is given).

    Raises:
        InvalidArgumentError: Empty or overlong text, or a parent on another content
        NotFoundError: Unknown content or parent comment
    """
    text = (text or "").strip()
    if not text:
        raise InvalidArgumentError("Comment cannot be empty")
    if len(text) > MAX_COMMENT_LENGTH:
        raise InvalidArgumentError(
            f"Comment must be at most {MAX_COMMENT_LENGTH} characters"
        )

    comment_id = new_id()
    with get_db() as conn:
        if conn.execute(
            "SELECT 1 FROM contents WHERE content_id = ?", (content_id,)
        ).fetchone() is None:
            raise NotFoundError("Content", content_id)

        if parent_id:
            parent = conn.execute(
                "SELECT content_id FROM comments WHERE comment_id = ?", (parent_id,)
            ).fetchone()
            if parent is None:
                raise NotFoundError("Comment", parent_id)
            if parent["content_id"] != content_id:
                raise InvalidArgumentError("Reply must belong to the same content")

        author = conn.execute(
            "SELECT full_name FROM users WHERE uid = ?", (user_uid,)
        ).fetchone()

        conn.execute(
            """
            INSERT INTO comments (comment_id, content_id, user_uid, author_name, parent_id, text, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (
                comment_id,
                content_id,
                user_uid,
                author["full_name"] if author else None,
                parent_id,
                text,
                utc_now(),
            ),
        )

    logger.debug("comments.added", comment_id=comment_id, content_id=content_id)
    return get_comment(comment_id)


def get_comment(comment_id: str) -> CommentRecord | None:
    with get_db() as conn:
        row = conn.execute(
            "SELECT * FROM comments WHERE comment_id = ?", (comment_id,)
        ).fetchone()

    if row is None:
        return None

    return _row_to_record(row)


def list_comments(content_id: str) -> list[CommentRecord]:
    """All comments on a content item, oldest first."""
    with get_db() as conn:
        rows = conn.execute(
            "SELECT * FROM comments WHERE content_id = ? ORDER BY created_at, rowid",
            (content_id,),
        ).fetchall()

    return [_row_to_record(row) for row in rows]


def get_comment_thread(content_id: str) -> list[CommentRecord]:
    """Comments as a tree: roots oldest first, replies nested under each."""
    comments = list_comments(content_id)
    by_id = {c.comment_id: c for c in comments}
    roots = []
    for comment in comments:
        parent = by_id.get(comment.parent_id) if comment.parent_id else None
        if parent is not None:
            parent.replies.append(comment)
        else:
            roots.append(comment)
    return roots


def delete_comment(comment_id: str, requester_uid: str) -> None:
    """Delete a comment and its replies.

    Raises:
        NotFoundError: Unknown comment
        PermissionDeniedError: requester_uid is not the author
    """
    comment = get_comment(comment_id)
    if comment is None:
        raise NotFoundError("Comment", comment_id)
    if comment.user_uid != requester_uid:
        raise PermissionDeniedError("Only the author can delete this comment")

    with get_db() as conn:
        conn.execute("DELETE FROM comments WHERE comment_id = ?", (comment_id,))

    logger.debug("comments.deleted", comment_id=comment_id)


def _row_to_record(row: sqlite3.Row) -> CommentRecord:
    """Convert database row to CommentRecord."""
    return CommentRecord(
        comment_id=row["comment_id"],
        content_id=row["content_id"],
        user_uid=row["user_uid"],
        author_name=row["author_name"],
        parent_id=row["parent_id"],
        text=row["text"],
        created_at=row["created_at"],
    )
