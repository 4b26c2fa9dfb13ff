"""Shared exception hierarchy.

Every domain error carries a short ``code`` that is surfaced to clients
unchanged (e.g. ``permission-denied``), so the UI can react to it the same
way it would to a backend SDK error code.
"""

from __future__ import annotations


class SkillForgeError(Exception):
    """Base class for domain errors."""

    code = "unknown"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class InvalidArgumentError(SkillForgeError):
    """Raised when input fails validation."""

    code = "invalid-argument"

    def __init__(self, message: str, problems: list[str] | None = None):
        self.problems = problems or []
        super().__init__(message)


class NotFoundError(SkillForgeError):
    """Raised when a referenced entity does not exist."""

    code = "not-found"

    def __init__(self, resource: str, resource_id: str):
        self.resource = resource
        self.resource_id = resource_id
        super().__init__(f"{resource} '{resource_id}' not found")


class PermissionDeniedError(SkillForgeError):
    """Raised when the caller may not act on an entity."""

    code = "permission-denied"


class AlreadyExistsError(SkillForgeError):
    """Raised when creating an entity that already exists."""

    code = "already-exists"


class UnauthenticatedError(SkillForgeError):
    """Raised when a request carries no verified identity."""

    code = "unauthenticated"
