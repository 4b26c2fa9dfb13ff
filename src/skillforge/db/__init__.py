"""Database module for SQLite persistence.

Provides:
- Database connection management and write transactions
- Schema initialization
- Repository functions for users, follows, contents, comments, ratings,
  chat and learning plans
"""

from skillforge.db.database import get_db, init_db, transaction

__all__ = ["get_db", "init_db", "transaction"]
