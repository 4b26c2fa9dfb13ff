"""SQLite database connection and schema management.

Provides connection management, write transactions and schema
initialization for SkillForge.
"""

from __future__ import annotations

import sqlite3
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Generator

import structlog

logger = structlog.get_logger(__name__)

# Default database location
DEFAULT_DB_PATH = Path("db/skillforge.db")

# Current database path (module-level, set by init_db)
_db_path: Path | None = None


def utc_now() -> str:
    """Current UTC time as a sortable ISO-8601 string."""
    return datetime.now(timezone.utc).isoformat(timespec="microseconds")


def new_id() -> str:
    """Short random identifier for new rows."""
    return uuid.uuid4().hex[:16]


def init_db(db_path: Path | None = None) -> None:
    """Initialize database with schema.

    Creates the database file and all required tables if they don't exist.

    Args:
        db_path: Path to database file. Defaults to db/skillforge.db
    """
    global _db_path
    _db_path = Path(db_path) if db_path else DEFAULT_DB_PATH

    _db_path.parent.mkdir(parents=True, exist_ok=True)

    with get_db() as conn:
        _create_schema(conn)

    logger.info("database.initialized", path=str(_db_path))


def _connect(isolation_level: str | None = "") -> sqlite3.Connection:
    db_path = _db_path or DEFAULT_DB_PATH
    db_path.parent.mkdir(parents=True, exist_ok=True)

    conn = sqlite3.connect(db_path, timeout=30, isolation_level=isolation_level)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


@contextmanager
def get_db() -> Generator[sqlite3.Connection, None, None]:
    """Get database connection as context manager.

    Yields:
        SQLite connection with row factory set to sqlite3.Row

    Example:
        with get_db() as conn:
            rows = conn.execute("SELECT * FROM users").fetchall()
    """
    conn = _connect()

    try:
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


@contextmanager
def transaction() -> Generator[sqlite3.Connection, None, None]:
    """Open a write transaction that holds the database lock from the start.

    Reads performed inside the block see a state no other writer can change
    until the block exits, so read-modify-write sequences (counters,
    averages) are atomic. Commits on success, rolls back on any exception.

    Example:
        with transaction() as conn:
            row = conn.execute("SELECT total_ratings FROM contents ...").fetchone()
            conn.execute("UPDATE contents SET total_ratings = ? ...", (...))
    """
    conn = _connect(isolation_level=None)
    conn.execute("BEGIN IMMEDIATE")

    try:
        yield conn
        conn.execute("COMMIT")
    except Exception:
        conn.execute("ROLLBACK")
        raise
    finally:
        conn.close()


def _create_schema(conn: sqlite3.Connection) -> None:
    """Create database schema.

    Uses IF NOT EXISTS for idempotency.
    """
    conn.executescript(
        """
        CREATE TABLE IF NOT EXISTS users (
            uid TEXT PRIMARY KEY,
            email TEXT,
            full_name TEXT NOT NULL,
            photo_url TEXT,
            age INTEGER,
            gender TEXT,
            skills TEXT NOT NULL DEFAULT '[]',
            linkedin_url TEXT,
            github_url TEXT,
            description TEXT,
            achievements TEXT,
            followers_count INTEGER NOT NULL DEFAULT 0,
            following_count INTEGER NOT NULL DEFAULT 0,
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL
        );

        -- Follow edges, stored once per direction
        CREATE TABLE IF NOT EXISTS following (
            owner_uid TEXT NOT NULL REFERENCES users(uid) ON DELETE CASCADE,
            other_uid TEXT NOT NULL REFERENCES users(uid) ON DELETE CASCADE,
            full_name TEXT,
            photo_url TEXT,
            followed_at TEXT NOT NULL,
            PRIMARY KEY (owner_uid, other_uid)
        );

        CREATE TABLE IF NOT EXISTS followers (
            owner_uid TEXT NOT NULL REFERENCES users(uid) ON DELETE CASCADE,
            other_uid TEXT NOT NULL REFERENCES users(uid) ON DELETE CASCADE,
            full_name TEXT,
            photo_url TEXT,
            followed_at TEXT NOT NULL,
            PRIMARY KEY (owner_uid, other_uid)
        );

        CREATE TABLE IF NOT EXISTS contents (
            content_id TEXT PRIMARY KEY,
            uploader_uid TEXT NOT NULL REFERENCES users(uid) ON DELETE CASCADE,
            title TEXT NOT NULL,
            content_type TEXT NOT NULL CHECK(content_type IN ('video', 'audio', 'text')),
            tags TEXT NOT NULL DEFAULT '[]',
            ai_description TEXT,
            user_manual_description TEXT,
            brief_summary TEXT,
            is_educational INTEGER NOT NULL DEFAULT 1,
            storage_path TEXT,
            file_url TEXT,
            mime_type TEXT,
            file_size INTEGER,
            text_data TEXT,
            thumbnail_url TEXT,
            average_rating REAL NOT NULL DEFAULT 0,
            total_ratings INTEGER NOT NULL DEFAULT 0,
            view_count INTEGER NOT NULL DEFAULT 0,
            created_at TEXT NOT NULL
        );

        CREATE TABLE IF NOT EXISTS comments (
            comment_id TEXT PRIMARY KEY,
            content_id TEXT NOT NULL REFERENCES contents(content_id) ON DELETE CASCADE,
            user_uid TEXT NOT NULL,
            author_name TEXT,
            parent_id TEXT REFERENCES comments(comment_id) ON DELETE CASCADE,
            text TEXT NOT NULL,
            created_at TEXT NOT NULL
        );

        CREATE TABLE IF NOT EXISTS ratings (
            content_id TEXT NOT NULL REFERENCES contents(content_id) ON DELETE CASCADE,
            user_uid TEXT NOT NULL,
            stars INTEGER NOT NULL CHECK(stars BETWEEN 1 AND 5),
            rated_at TEXT NOT NULL,
            PRIMARY KEY (content_id, user_uid)
        );

        CREATE TABLE IF NOT EXISTS chat_rooms (
            room_id TEXT PRIMARY KEY,
            uid_a TEXT NOT NULL,
            uid_b TEXT NOT NULL,
            last_message TEXT,
            last_sender_uid TEXT,
            last_sent_at TEXT
        );

        CREATE TABLE IF NOT EXISTS chat_messages (
            message_id TEXT PRIMARY KEY,
            room_id TEXT NOT NULL REFERENCES chat_rooms(room_id) ON DELETE CASCADE,
            sender_uid TEXT NOT NULL,
            receiver_uid TEXT NOT NULL,
            message TEXT NOT NULL,
            sent_at TEXT NOT NULL,
            sender_full_name TEXT,
            sender_photo_url TEXT
        );

        CREATE TABLE IF NOT EXISTS learning_plans (
            plan_id TEXT PRIMARY KEY,
            user_uid TEXT NOT NULL REFERENCES users(uid) ON DELETE CASCADE,
            skill_to_learn TEXT NOT NULL,
            plan_title TEXT NOT NULL,
            overview TEXT,
            status TEXT NOT NULL DEFAULT 'in-progress'
                CHECK(status IN ('in-progress', 'completed')),
            milestones TEXT NOT NULL DEFAULT '[]',
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL
        );

        CREATE INDEX IF NOT EXISTS idx_contents_created ON contents(created_at);
        CREATE INDEX IF NOT EXISTS idx_contents_uploader ON contents(uploader_uid);
        CREATE INDEX IF NOT EXISTS idx_comments_content ON comments(content_id);
        CREATE INDEX IF NOT EXISTS idx_messages_room ON chat_messages(room_id, sent_at);
        CREATE INDEX IF NOT EXISTS idx_plans_user ON learning_plans(user_uid, status);
        """
    )
