"""Repository functions for the learning_plans table.

Milestones are stored as a JSON list on the plan row; each milestone dict
carries its own completion flag and quiz attempts.
"""

from __future__ import annotations

import json
import sqlite3
from dataclasses import asdict, dataclass, field
from typing import Callable

import structlog

from skillforge.db.database import get_db, new_id, transaction, utc_now

logger = structlog.get_logger(__name__)

STATUS_IN_PROGRESS = "in-progress"
STATUS_COMPLETED = "completed"


@dataclass
class PlanRecord:
    """Learning plan record from database."""

    plan_id: str
    user_uid: str
    skill_to_learn: str
    plan_title: str
    overview: str | None
    status: str
    milestones: list[dict] = field(default_factory=list)
    created_at: str = ""
    updated_at: str = ""

    def to_dict(self) -> dict:
        return asdict(self)


def insert_plan(
    user_uid: str,
    skill_to_learn: str,
    plan_title: str,
    overview: str | None,
    milestones: list[dict],
) -> PlanRecord:
    """Insert a new in-progress plan."""
    plan_id = new_id()
    now = utc_now()
    with get_db() as conn:
        conn.execute(
            """
            INSERT INTO learning_plans (
                plan_id, user_uid, skill_to_learn, plan_title, overview,
                status, milestones, created_at, updated_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                plan_id,
                user_uid,
                skill_to_learn,
                plan_title,
                overview,
                STATUS_IN_PROGRESS,
                json.dumps(milestones),
                now,
                now,
            ),
        )

    logger.debug("plans.inserted", plan_id=plan_id, user=user_uid)
    return get_plan_by_id(plan_id)


def get_plan_by_id(plan_id: str) -> PlanRecord | None:
    with get_db() as conn:
        row = conn.execute(
            "SELECT * FROM learning_plans WHERE plan_id = ?", (plan_id,)
        ).fetchone()

    if row is None:
        return None

    return _row_to_record(row)


def find_in_progress_plan(user_uid: str, skill_to_learn: str) -> PlanRecord | None:
    """Most recent in-progress plan for this user and exact skill name."""
    with get_db() as conn:
        row = conn.execute(
            """
            SELECT * FROM learning_plans
            WHERE user_uid = ? AND skill_to_learn = ? AND status = ?
            ORDER BY created_at DESC LIMIT 1
            """,
            (user_uid, skill_to_learn, STATUS_IN_PROGRESS),
        ).fetchone()

    if row is None:
        return None

    return _row_to_record(row)


def list_user_plans(user_uid: str) -> list[PlanRecord]:
    """All plans of a user, newest first."""
    with get_db() as conn:
        rows = conn.execute(
            "SELECT * FROM learning_plans WHERE user_uid = ? ORDER BY created_at DESC, rowid DESC",
            (user_uid,),
        ).fetchall()

    return [_row_to_record(row) for row in rows]


def update_milestones(
    plan_id: str, apply: Callable[[list[dict]], str]
) -> PlanRecord | None:
    """Change a plan's milestones under the write lock.

    `apply` receives the milestones as currently stored, mutates them in
    place and returns the plan status to save. Exceptions it raises roll
    the change back.

    Returns:
        The updated plan, or None if it does not exist
    """
    with transaction() as conn:
        row = conn.execute(
            "SELECT * FROM learning_plans WHERE plan_id = ?", (plan_id,)
        ).fetchone()
        if row is None:
            return None

        plan = _row_to_record(row)
        plan.status = apply(plan.milestones)
        plan.updated_at = utc_now()
        conn.execute(
            """
            UPDATE learning_plans SET milestones = ?, status = ?, updated_at = ?
            WHERE plan_id = ?
            """,
            (json.dumps(plan.milestones), plan.status, plan.updated_at, plan_id),
        )

    logger.debug("plans.progress_saved", plan_id=plan_id, status=plan.status)
    return plan


def delete_plan_by_id(plan_id: str) -> bool:
    """Delete plan by ID.

    Returns:
        True if deleted, False if not found
    """
    with get_db() as conn:
        cursor = conn.execute(
            "DELETE FROM learning_plans WHERE plan_id = ?", (plan_id,)
        )

    deleted = cursor.rowcount > 0
    if deleted:
        logger.debug("plans.deleted", plan_id=plan_id)

    return deleted


def _row_to_record(row: sqlite3.Row) -> PlanRecord:
    """Convert database row to PlanRecord."""
    return PlanRecord(
        plan_id=row["plan_id"],
        user_uid=row["user_uid"],
        skill_to_learn=row["skill_to_learn"],
        plan_title=row["plan_title"],
        overview=row["overview"],
        status=row["status"],
        milestones=json.loads(row["milestones"]) if row["milestones"] else [],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )
