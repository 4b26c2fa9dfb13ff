"""Request dependencies for the Web API.

Sign-in is handled by the upstream identity provider; the gateway in front
of this service forwards the verified UID in the X-User-Id header (and,
when known, the email and display name used to create a first profile).
"""

from __future__ import annotations

from functools import lru_cache

from fastapi import Depends, Header

from skillforge.config.app_config import load_app_config
from skillforge.core.errors import InvalidArgumentError, UnauthenticatedError
from skillforge.core.storage import LocalObjectStorage
from skillforge.db.users_repository import UserProfile, ensure_profile
from skillforge.llm.client import LLMClient
from skillforge.utils.validators import validate_uid


def get_current_uid(x_user_id: str | None = Header(default=None)) -> str:
    """UID of the signed-in caller."""
    uid = (x_user_id or "").strip()
    if not uid:
        raise UnauthenticatedError("Sign-in required: missing X-User-Id header")
    if not validate_uid(uid):
        raise InvalidArgumentError(f"Invalid X-User-Id: '{uid}'")
    return uid


def get_current_profile(
    uid: str = Depends(get_current_uid),
    x_user_email: str | None = Header(default=None),
    x_user_name: str | None = Header(default=None),
) -> UserProfile:
    """Profile of the caller, created on first sign-in."""
    return ensure_profile(uid, email=x_user_email, display_name=x_user_name)


@lru_cache(maxsize=1)
def _llm_client() -> LLMClient:
    return LLMClient()


def get_llm_client() -> LLMClient:
    """Shared LLM client (overridden in tests)."""
    return _llm_client()


def get_storage() -> LocalObjectStorage:
    """Object storage rooted at the configured storage directory."""
    return LocalObjectStorage(load_app_config().storage_dir)
