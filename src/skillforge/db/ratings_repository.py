"""Repository functions for content ratings.

Each user rates a content item at most once; re-rating replaces the old
score. The content row keeps the running average and count, updated in the
same transaction as the rating row.
"""

from __future__ import annotations

from dataclasses import dataclass

import structlog

from skillforge.core.errors import InvalidArgumentError, NotFoundError
from skillforge.db.database import get_db, transaction, utc_now

logger = structlog.get_logger(__name__)


@dataclass
class RatingResult:
    """Outcome of a rating write."""

    content_id: str
    stars: int
    average_rating: float
    total_ratings: int
    updated: bool


def rate_content(content_id: str, user_uid: str, stars: int) -> RatingResult:
    """Rate content with 1 to 5 stars, replacing the user's previous rating.

    Raises:
        InvalidArgumentError: stars out of range
        NotFoundError: Unknown content
    """
    if not isinstance(stars, int) or isinstance(stars, bool) or not 1 <= stars <= 5:
        raise InvalidArgumentError("Rating must be between 1 and 5 stars")

    with transaction() as conn:
        content = conn.execute(
            "SELECT average_rating, total_ratings FROM contents WHERE content_id = ?",
            (content_id,),
        ).fetchone()
        if content is None:
            raise NotFoundError("Content", content_id)

        previous = conn.execute(
            "SELECT stars FROM ratings WHERE content_id = ? AND user_uid = ?",
            (content_id, user_uid),
        ).fetchone()

        average = content["average_rating"]
        total = content["total_ratings"]
        if previous is not None:
            old = previous["stars"]
            new_total = total
            new_average = (average * total - old + stars) / total if total else float(stars)
        else:
            new_total = total + 1
            new_average = (average * total + stars) / new_total

        conn.execute(
            """
            INSERT INTO ratings (content_id, user_uid, stars, rated_at)
            VALUES (?, ?, ?, ?)
            ON CONFLICT(content_id, user_uid)
            DO UPDATE SET stars = excluded.stars, rated_at = excluded.rated_at
            """,
            (content_id, user_uid, stars, utc_now()),
        )
        conn.execute(
            "UPDATE contents SET average_rating = ?, total_ratings = ? WHERE content_id = ?",
            (new_average, new_total, content_id),
        )

    logger.info(
        "ratings.saved",
        content_id=content_id,
        user=user_uid,
        stars=stars,
        updated=previous is not None,
    )
    return RatingResult(
        content_id=content_id,
        stars=stars,
        average_rating=new_average,
        total_ratings=new_total,
        updated=previous is not None,
    )


def get_user_rating(content_id: str, user_uid: str) -> int | None:
    """The user's star rating for a content item, or None."""
    with get_db() as conn:
        row = conn.execute(
            "SELECT stars FROM ratings WHERE content_id = ? AND user_uid = ?",
            (content_id, user_uid),
        ).fetchone()

    return row["stars"] if row else None
