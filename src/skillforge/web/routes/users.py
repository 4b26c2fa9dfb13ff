"""User profile and social graph endpoints."""

from fastapi import APIRouter, Depends, Header, HTTPException, status

from skillforge.db import follows_repository as follows
from skillforge.db import users_repository as users
from skillforge.db.contents_repository import list_user_contents
from skillforge.web.deps import get_current_profile, get_current_uid
from skillforge.web.routes.contents import content_response
from skillforge.web.schemas import (
    ContentListResponse,
    FollowEdgeResponse,
    FollowListResponse,
    FollowResponse,
    ProfileCreate,
    ProfileResponse,
    ProfileUpdate,
    UserListResponse,
    UserSummary,
)

router = APIRouter(prefix="/api/users", tags=["users"])


def profile_response(profile: users.UserProfile, **extra) -> ProfileResponse:
    return ProfileResponse(**profile.to_dict(), **extra)


def _require_profile(uid: str) -> users.UserProfile:
    profile = users.get_profile(uid)
    if profile is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"User '{uid}' not found",
        )
    return profile


@router.post("", response_model=ProfileResponse, status_code=status.HTTP_201_CREATED)
async def create_profile(
    data: ProfileCreate,
    uid: str = Depends(get_current_uid),
    x_user_email: str | None = Header(default=None),
) -> ProfileResponse:
    """Create the caller's profile (registration form)."""
    fields = data.model_dump(exclude={"full_name", "email"}, exclude_none=True)
    profile = users.create_profile(uid, data.email or x_user_email, data.full_name, **fields)
    return profile_response(profile, completeness=users.profile_completeness(profile))


@router.get("/me", response_model=ProfileResponse)
async def get_own_profile(
    profile: users.UserProfile = Depends(get_current_profile),
) -> ProfileResponse:
    """Get the caller's profile, creating it on first sign-in."""
    return profile_response(profile, completeness=users.profile_completeness(profile))


@router.patch("/me", response_model=ProfileResponse)
async def update_own_profile(
    data: ProfileUpdate,
    profile: users.UserProfile = Depends(get_current_profile),
) -> ProfileResponse:
    """Update the caller's profile."""
    updated = users.update_profile(profile.uid, **data.model_dump(exclude_unset=True))
    return profile_response(updated, completeness=users.profile_completeness(updated))


@router.get("", response_model=UserListResponse)
async def list_users(q: str | None = None, uid: str = Depends(get_current_uid)) -> UserListResponse:
    """List other users, optionally filtered by name or email."""
    found = users.list_users(exclude_uid=uid, search_term=q)
    return UserListResponse(
        users=[
            UserSummary(uid=u.uid, full_name=u.full_name, email=u.email, photo_url=u.photo_url)
            for u in found
        ],
        count=len(found),
    )


@router.get("/{user_uid}", response_model=ProfileResponse)
async def get_user(user_uid: str, uid: str = Depends(get_current_uid)) -> ProfileResponse:
    """Get a user's public profile."""
    profile = _require_profile(user_uid)
    return profile_response(
        profile,
        is_following=follows.is_following(uid, user_uid) if uid != user_uid else None,
    )


@router.get("/{user_uid}/contents", response_model=ContentListResponse)
async def get_user_contents(
    user_uid: str, limit: int = 10, uid: str = Depends(get_current_uid)
) -> ContentListResponse:
    """Latest content uploaded by a user."""
    _require_profile(user_uid)
    items = list_user_contents(user_uid, limit=min(max(limit, 1), 50))
    return ContentListResponse(contents=[content_response(c) for c in items], count=len(items))


@router.post("/{user_uid}/follow", response_model=FollowResponse)
async def follow_user(
    user_uid: str, profile: users.UserProfile = Depends(get_current_profile)
) -> FollowResponse:
    """Follow a user."""
    changed = follows.follow(profile.uid, user_uid)
    target = _require_profile(user_uid)
    return FollowResponse(following=True, changed=changed, followers_count=target.followers_count)


@router.delete("/{user_uid}/follow", response_model=FollowResponse)
async def unfollow_user(user_uid: str, uid: str = Depends(get_current_uid)) -> FollowResponse:
    """Stop following a user."""
    changed = follows.unfollow(uid, user_uid)
    target = _require_profile(user_uid)
    return FollowResponse(following=False, changed=changed, followers_count=target.followers_count)


def _edges_response(edges: list[follows.FollowEdge]) -> FollowListResponse:
    return FollowListResponse(
        users=[
            FollowEdgeResponse(
                uid=e.other_uid,
                full_name=e.full_name,
                photo_url=e.photo_url,
                followed_at=e.followed_at,
            )
            for e in edges
        ],
        count=len(edges),
    )


@router.get("/{user_uid}/followers", response_model=FollowListResponse)
async def get_followers(user_uid: str, uid: str = Depends(get_current_uid)) -> FollowListResponse:
    """Users following a user."""
    _require_profile(user_uid)
    return _edges_response(follows.list_followers(user_uid))


@router.get("/{user_uid}/following", response_model=FollowListResponse)
async def get_following(user_uid: str, uid: str = Depends(get_current_uid)) -> FollowListResponse:
    """Users a user follows."""
    _require_profile(user_uid)
    return _edges_response(follows.list_following(user_uid))
