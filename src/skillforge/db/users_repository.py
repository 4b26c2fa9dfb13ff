"""Repository functions for the users table.

Profiles are keyed by the UID issued by the identity provider. Follower and
following counters live on the profile row but are only changed by
follows_repository.
"""

from __future__ import annotations

import json
import sqlite3
from dataclasses import asdict, dataclass, field

import structlog

from skillforge.core.errors import AlreadyExistsError, InvalidArgumentError, NotFoundError
from skillforge.db.database import get_db, utc_now
from skillforge.utils.text_utils import email_local_part
from skillforge.utils.validators import (
    check_length,
    parse_tags,
    validate_email,
    validate_uid,
    validate_url,
)

logger = structlog.get_logger(__name__)

MAX_DESCRIPTION = 1000

# Fields a user may change on their own profile
UPDATABLE_FIELDS = (
    "full_name",
    "photo_url",
    "age",
    "gender",
    "skills",
    "linkedin_url",
    "github_url",
    "description",
    "achievements",
)


@dataclass
class UserProfile:
    """User profile record from database."""

    uid: str
    email: str | None
    full_name: str
    photo_url: str | None = None
    age: int | None = None
    gender: str | None = None
    skills: list[str] = field(default_factory=list)
    linkedin_url: str | None = None
    github_url: str | None = None
    description: str | None = None
    achievements: str | None = None
    followers_count: int = 0
    following_count: int = 0
    created_at: str = ""
    updated_at: str = ""

    def to_dict(self) -> dict:
        return asdict(self)


def parse_skills(raw: str | list[str] | None) -> list[str]:
    """Parse a comma-separated skills string ("React, NodeJS,")."""
    return parse_tags(raw)


def _validate_fields(fields: dict) -> None:
    problems = []

    if "full_name" in fields:
        problem = check_length((fields["full_name"] or "").strip(), "Full name", min_len=2)
        if problem:
            problems.append(problem)

    if "email" in fields and not validate_email(fields["email"] or ""):
        problems.append("Invalid email address")

    age = fields.get("age")
    if age is not None and (not isinstance(age, int) or age <= 0):
        problems.append("Age must be a positive number")

    if fields.get("linkedin_url") and not validate_url(fields["linkedin_url"], "linkedin.com"):
        problems.append("Please enter a valid LinkedIn profile URL")

    if fields.get("github_url") and not validate_url(fields["github_url"], "github.com"):
        problems.append("Please enter a valid GitHub profile URL")

    if fields.get("photo_url") and not validate_url(fields["photo_url"]):
        problems.append("Please enter a valid photo URL")

    problem = check_length(fields.get("description"), "Description", max_len=MAX_DESCRIPTION)
    if problem:
        problems.append(problem)

    if problems:
        raise InvalidArgumentError("; ".join(problems), problems)


def _normalize(fields: dict) -> dict:
    normalized = dict(fields)
    if "full_name" in normalized and normalized["full_name"]:
        normalized["full_name"] = normalized["full_name"].strip()
    if "skills" in normalized:
        normalized["skills"] = parse_skills(normalized["skills"])
    for key in ("linkedin_url", "github_url", "photo_url", "description", "gender"):
        if key in normalized and normalized[key] == "":
            normalized[key] = None
    return normalized


def create_profile(uid: str, email: str | None, full_name: str, **fields) -> UserProfile:
    """Create a user profile.

    Args:
        uid: Identity provider UID
        email: Email address (validated when given)
        full_name: Display name, at least 2 characters
        **fields: Optional profile fields (see UPDATABLE_FIELDS)

    Returns:
        The created UserProfile

    Raises:
        InvalidArgumentError: If the uid or any field fails validation
        AlreadyExistsError: If a profile already exists for uid
    """
    if not validate_uid(uid):
        raise InvalidArgumentError('UID must be 1-128 characters without whitespace, "_" or "/"')
    unknown = set(fields) - set(UPDATABLE_FIELDS)
    if unknown:
        raise InvalidArgumentError(f"Unknown profile fields: {', '.join(sorted(unknown))}")

    to_check = {"full_name": full_name, **fields}
    if email is not None:
        to_check["email"] = email
    _validate_fields(to_check)
    values = _normalize({"full_name": full_name, **fields})

    now = utc_now()
    try:
        with get_db() as conn:
            conn.execute(
                """
                INSERT INTO users (
                    uid, email, full_name, photo_url, age, gender, skills,
                    linkedin_url, github_url, description, achievements,
                    created_at, updated_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    uid,
                    email,
                    values["full_name"],
                    values.get("photo_url"),
                    values.get("age"),
                    values.get("gender"),
                    json.dumps(values.get("skills", [])),
                    values.get("linkedin_url"),
                    values.get("github_url"),
                    values.get("description"),
                    values.get("achievements"),
                    now,
                    now,
                ),
            )
    except sqlite3.IntegrityError as e:
        raise AlreadyExistsError(f"Profile '{uid}' already exists") from e

    logger.info("users.created", uid=uid)
    return get_profile(uid)


def ensure_profile(
    uid: str, email: str | None = None, display_name: str | None = None
) -> UserProfile:
    """Return the profile for uid, creating a basic one on first sign-in.

    The name falls back from the display name to the email's local part
    to "New User".
    """
    existing = get_profile(uid)
    if existing is not None:
        return existing

    name = (display_name or "").strip() or email_local_part(email) or "New User"
    if len(name) < 2:
        name = "New User"
    try:
        profile = create_profile(uid, email if email and validate_email(email) else None, name)
    except AlreadyExistsError:
        # Created concurrently by another request
        profile = get_profile(uid)
    logger.info("users.auto_created", uid=uid)
    return profile


def get_profile(uid: str) -> UserProfile | None:
    """Get profile by UID.

    Returns:
        UserProfile if found, None otherwise
    """
    with get_db() as conn:
        row = conn.execute("SELECT * FROM users WHERE uid = ?", (uid,)).fetchone()

    if row is None:
        return None

    return _row_to_record(row)


def require_profile(uid: str) -> UserProfile:
    """Get profile by UID or raise NotFoundError."""
    profile = get_profile(uid)
    if profile is None:
        raise NotFoundError("User", uid)
    return profile


def update_profile(uid: str, **updates) -> UserProfile:
    """Update editable profile fields.

    uid, email, counters and timestamps cannot be changed here.

    Raises:
        InvalidArgumentError: On unknown or invalid fields
        NotFoundError: If the profile does not exist
    """
    unknown = set(updates) - set(UPDATABLE_FIELDS)
    if unknown:
        raise InvalidArgumentError(
            f"Fields cannot be updated: {', '.join(sorted(unknown))}"
        )
    if not updates:
        return require_profile(uid)

    _validate_fields(updates)
    values = _normalize(updates)
    if "skills" in values:
        values["skills"] = json.dumps(values["skills"])
    values["updated_at"] = utc_now()

    assignments = ", ".join(f"{key} = ?" for key in values)
    with get_db() as conn:
        cursor = conn.execute(
            f"UPDATE users SET {assignments} WHERE uid = ?",
            (*values.values(), uid),
        )

    if cursor.rowcount == 0:
        raise NotFoundError("User", uid)

    logger.debug("users.updated", uid=uid, fields=sorted(updates))
    return require_profile(uid)


def list_users(exclude_uid: str | None = None, search_term: str | None = None) -> list[UserProfile]:
    """List users ordered by name, optionally excluding one and filtering.

    Args:
        exclude_uid: UID to leave out (normally the caller)
        search_term: Case-insensitive substring of name or email
    """
    query = "SELECT * FROM users WHERE 1 = 1"
    params: list = []
    if exclude_uid:
        query += " AND uid != ?"
        params.append(exclude_uid)
    term = (search_term or "").strip().lower()
    if term:
        query += " AND (LOWER(full_name) LIKE ? OR LOWER(COALESCE(email, '')) LIKE ?)"
        params.extend([f"%{term}%", f"%{term}%"])
    query += " ORDER BY LOWER(full_name)"

    with get_db() as conn:
        rows = conn.execute(query, params).fetchall()

    return [_row_to_record(row) for row in rows]


def delete_profile(uid: str) -> bool:
    """Delete profile by UID.

    Follow edges, contents and plans referencing the user cascade.

    Returns:
        True if deleted, False if not found
    """
    with get_db() as conn:
        # Keep the other side's counters consistent with the edges being removed
        conn.execute(
            """
            UPDATE users SET following_count = MAX(following_count - 1, 0)
            WHERE uid IN (SELECT owner_uid FROM following WHERE other_uid = ?)
            """,
            (uid,),
        )
        conn.execute(
            """
            UPDATE users SET followers_count = MAX(followers_count - 1, 0)
            WHERE uid IN (SELECT owner_uid FROM followers WHERE other_uid = ?)
            """,
            (uid,),
        )
        cursor = conn.execute("DELETE FROM users WHERE uid = ?", (uid,))

    deleted = cursor.rowcount > 0
    if deleted:
        logger.info("users.deleted", uid=uid)

    return deleted


def profile_completeness(profile: UserProfile) -> int:
    """Percentage of the 8 profile fields that are filled, rounded."""
    checks = [
        bool(profile.full_name),
        bool(profile.age and profile.age > 0),
        bool(profile.gender),
        bool(profile.skills),
        bool(profile.description),
        bool(profile.linkedin_url),
        bool(profile.github_url),
        bool(profile.photo_url),
    ]
    # Half-up rounding: 5 of 8 fields is 63%, not 62%
    return int(sum(checks) * 100 / len(checks) + 0.5)


def _row_to_record(row: sqlite3.Row) -> UserProfile:
    """Convert database row to UserProfile."""
    return UserProfile(
        uid=row["uid"],
        email=row["email"],
        full_name=row["full_name"],
        photo_url=row["photo_url"],
        age=row["age"],
        gender=row["gender"],
        skills=json.loads(row["skills"]) if row["skills"] else [],
        linkedin_url=row["linkedin_url"],
        github_url=row["github_url"],
        description=row["description"],
        achievements=row["achievements"],
        followers_count=row["followers_count"],
        following_count=row["following_count"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )
