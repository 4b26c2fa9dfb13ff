"""Tests for database setup and transactions (F1)."""

import sqlite3

import pytest

from skillforge.db.database import get_db, init_db, new_id, transaction, utc_now

TABLES = {
    "users",
    "following",
    "followers",
    "contents",
    "comments",
    "ratings",
    "chat_rooms",
    "chat_messages",
    "learning_plans",
}


class TestInitDb:
    def test_creates_file_and_tables(self, tmp_path):
        db_path = tmp_path / "nested" / "dir" / "app.db"
        init_db(db_path)

        assert db_path.exists()
        with get_db() as conn:
            rows = conn.execute("SELECT name FROM sqlite_master WHERE type = 'table'").fetchall()
        assert TABLES <= {row["name"] for row in rows}

    def test_idempotent(self, tmp_path):
        db_path = tmp_path / "app.db"
        init_db(db_path)
        init_db(db_path)

    def test_foreign_keys_enforced(self, db):
        with pytest.raises(sqlite3.IntegrityError):
            with get_db() as conn:
                conn.execute(
                    """
                    INSERT INTO contents (content_id, uploader_uid, title, content_type, created_at)
                    VALUES ('c1', 'ghost', 'Title', 'text', ?)
                    """,
                    (utc_now(),),
                )


class TestTransaction:
    def _insert_user(self, conn, uid):
        now = utc_now()
        conn.execute(
            "INSERT INTO users (uid, full_name, created_at, updated_at) VALUES (?, ?, ?, ?)",
            (uid, "Ana", now, now),
        )

    def test_commits(self, db):
        with transaction() as conn:
            self._insert_user(conn, "u1")

        with get_db() as conn:
            assert conn.execute("SELECT COUNT(*) FROM users").fetchone()[0] == 1

    def test_rolls_back_on_error(self, db):
        with pytest.raises(RuntimeError):
            with transaction() as conn:
                self._insert_user(conn, "u1")
                raise RuntimeError("boom")

        with get_db() as conn:
            assert conn.execute("SELECT COUNT(*) FROM users").fetchone()[0] == 0

    def test_get_db_rolls_back_on_error(self, db):
        with pytest.raises(RuntimeError):
            with get_db() as conn:
                self._insert_user(conn, "u1")
                raise RuntimeError("boom")

        with get_db() as conn:
            assert conn.execute("SELECT COUNT(*) FROM users").fetchone()[0] == 0


class TestHelpers:
    def test_new_id_unique(self):
        ids = {new_id() for _ in range(100)}
        assert len(ids) == 100
        assert all(len(i) == 16 for i in ids)

    def test_utc_now_sortable(self):
        first = utc_now()
        second = utc_now()
        assert first <= second
        assert first.endswith("+00:00")
