"""Repository functions for the contents table.

Provides CRUD, search and facet queries for uploaded content items.
"""

from __future__ import annotations

import json
import sqlite3
from dataclasses import asdict, dataclass, field
from typing import TYPE_CHECKING

import structlog

from skillforge.core.errors import NotFoundError, PermissionDeniedError
from skillforge.db.database import get_db, new_id, transaction, utc_now

if TYPE_CHECKING:
    from skillforge.core.storage import LocalObjectStorage

logger = structlog.get_logger(__name__)

CONTENT_TYPES = ("video", "audio", "text")
SEARCH_WINDOW = 50


@dataclass
class ContentRecord:
    """Content item from database."""

    content_id: str
    uploader_uid: str
    title: str
    content_type: str
    tags: list[str] = field(default_factory=list)
    ai_description: str | None = None
    user_manual_description: str | None = None
    brief_summary: str | None = None
    is_educational: bool = True
    storage_path: str | None = None
    file_url: str | None = None
    mime_type: str | None = None
    file_size: int | None = None
    text_data: str | None = None
    thumbnail_url: str | None = None
    average_rating: float = 0.0
    total_ratings: int = 0
    view_count: int = 0
    created_at: str = ""
    author_name: str | None = None

    @property
    def description(self) -> str:
        """Best available description: AI text, else the uploader's."""
        return self.ai_description or self.user_manual_description or ""

    def to_dict(self) -> dict:
        return asdict(self)


def create_content(
    uploader_uid: str,
    title: str,
    content_type: str,
    tags: list[str],
    ai_description: str | None = None,
    user_manual_description: str | None = None,
    brief_summary: str | None = None,
    is_educational: bool = True,
    storage_path: str | None = None,
    file_url: str | None = None,
    mime_type: str | None = None,
    file_size: int | None = None,
    text_data: str | None = None,
    thumbnail_url: str | None = None,
) -> ContentRecord:
    """Insert a new content item.

    Callers are expected to have validated the fields (see core.uploads).

    Returns:
        The created ContentRecord
    """
    content_id = new_id()
    with get_db() as conn:
        conn.execute(
            """
            INSERT INTO contents (
                content_id, uploader_uid, title, content_type, tags,
                ai_description, user_manual_description, brief_summary,
                is_educational, storage_path, file_url, mime_type, file_size,
                text_data, thumbnail_url, created_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                content_id,
                uploader_uid,
                title,
                content_type,
                json.dumps(tags),
                ai_description,
                user_manual_description,
                brief_summary,
                int(is_educational),
                storage_path,
                file_url,
                mime_type,
                file_size,
                text_data,
                thumbnail_url,
                utc_now(),
            ),
        )

    logger.info("contents.created", content_id=content_id, uploader=uploader_uid, type=content_type)
    return get_content(content_id)


_SELECT_WITH_AUTHOR = """
    SELECT c.*, u.full_name AS author_name
    FROM contents c LEFT JOIN users u ON u.uid = c.uploader_uid
"""


def get_content(content_id: str) -> ContentRecord | None:
    """Get content by ID, with the uploader's name.

    Returns:
        ContentRecord if found, None otherwise
    """
    with get_db() as conn:
        row = conn.execute(
            _SELECT_WITH_AUTHOR + " WHERE c.content_id = ?", (content_id,)
        ).fetchone()

    if row is None:
        return None

    return _row_to_record(row)


def require_content(content_id: str) -> ContentRecord:
    content = get_content(content_id)
    if content is None:
        raise NotFoundError("Content", content_id)
    return content


def list_user_contents(uid: str, limit: int = 10) -> list[ContentRecord]:
    """Latest content uploaded by uid, newest first."""
    with get_db() as conn:
        rows = conn.execute(
            _SELECT_WITH_AUTHOR
            + " WHERE c.uploader_uid = ? ORDER BY c.created_at DESC, c.rowid DESC LIMIT ?",
            (uid, limit),
        ).fetchall()

    return [_row_to_record(row) for row in rows]


def search_contents(
    term: str | None = None,
    content_type: str | None = None,
    tag: str | None = None,
    author_uid: str | None = None,
    limit: int = SEARCH_WINDOW,
) -> list[ContentRecord]:
    """Search the most recent content items.

    The newest `limit` items are fetched first and the filters applied to
    that window, so older items never appear in results.

    Args:
        term: Case-insensitive substring of title, description or author name
        content_type: Exact content type
        tag: Exact tag
        author_uid: Exact uploader UID
        limit: Size of the recency window
    """
    with get_db() as conn:
        rows = conn.execute(
            _SELECT_WITH_AUTHOR + " ORDER BY c.created_at DESC, c.rowid DESC LIMIT ?",
            (limit,),
        ).fetchall()

    items = [_row_to_record(row) for row in rows]
    needle = (term or "").strip().lower()

    def matches(item: ContentRecord) -> bool:
        if content_type and item.content_type != content_type:
            return False
        if tag and tag not in item.tags:
            return False
        if author_uid and item.uploader_uid != author_uid:
            return False
        if needle:
            haystacks = [item.title, item.ai_description, item.brief_summary, item.author_name]
            return any(needle in (h or "").lower() for h in haystacks)
        return True

    return [item for item in items if matches(item)]


def list_tags(limit: int = SEARCH_WINDOW) -> list[str]:
    """Distinct tags across recent content, sorted."""
    tags: set[str] = set()
    for item in search_contents(limit=limit):
        tags.update(item.tags)
    return sorted(tags)


def list_authors(limit: int = SEARCH_WINDOW) -> list[dict]:
    """Distinct uploaders of recent content, sorted by name."""
    authors: dict[str, str] = {}
    for item in search_contents(limit=limit):
        authors[item.uploader_uid] = item.author_name or "Unknown Author"
    return [
        {"uid": uid, "full_name": name}
        for uid, name in sorted(authors.items(), key=lambda kv: kv[1].lower())
    ]


def increment_view_count(content_id: str) -> int:
    """Increment and return the view count.

    Raises:
        NotFoundError: If the content does not exist
    """
    with transaction() as conn:
        cursor = conn.execute(
            "UPDATE contents SET view_count = view_count + 1 WHERE content_id = ?",
            (content_id,),
        )
        if cursor.rowcount == 0:
            raise NotFoundError("Content", content_id)
        row = conn.execute(
            "SELECT view_count FROM contents WHERE content_id = ?", (content_id,)
        ).fetchone()

    return row["view_count"]


def delete_content(
    content_id: str, requester_uid: str, storage: LocalObjectStorage | None = None
) -> None:
    """Delete a content item owned by requester_uid.

    The stored file is removed when a storage is given; failing to remove
    it is logged and does not stop the deletion. Comments and ratings
    cascade with the row.

    Raises:
        NotFoundError: If the content does not exist
        PermissionDeniedError: If requester_uid is not the uploader
    """
    content = require_content(content_id)
    if content.uploader_uid != requester_uid:
        raise PermissionDeniedError("Only the uploader can delete this content")

    if storage is not None and content.storage_path:
        try:
            storage.delete(content.storage_path)
        except OSError as e:
            logger.warning(
                "contents.storage_delete_failed",
                content_id=content_id,
                path=content.storage_path,
                error=str(e),
            )

    with get_db() as conn:
        conn.execute("DELETE FROM contents WHERE content_id = ?", (content_id,))

    logger.info("contents.deleted", content_id=content_id, uploader=requester_uid)


def _row_to_record(row: sqlite3.Row) -> ContentRecord:
    """Convert database row to ContentRecord."""
    keys = row.keys()
    return ContentRecord(
        content_id=row["content_id"],
        uploader_uid=row["uploader_uid"],
        title=row["title"],
        content_type=row["content_type"],
        tags=json.loads(row["tags"]) if row["tags"] else [],
        ai_description=row["ai_description"],
        user_manual_description=row["user_manual_description"],
        brief_summary=row["brief_summary"],
        is_educational=bool(row["is_educational"]),
        storage_path=row["storage_path"],
        file_url=row["file_url"],
        mime_type=row["mime_type"],
        file_size=row["file_size"],
        text_data=row["text_data"],
        thumbnail_url=row["thumbnail_url"],
        average_rating=row["average_rating"],
        total_ratings=row["total_ratings"],
        view_count=row["view_count"],
        created_at=row["created_at"],
        author_name=row["author_name"] if "author_name" in keys else None,
    )
