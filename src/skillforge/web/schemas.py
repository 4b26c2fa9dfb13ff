"""Pydantic schemas for the Web API.

Request and response models for users, contents, chat, AI and plans.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, Field

from skillforge.ai.schemas import QuizQuestion


# =============================================================================
# USER SCHEMAS
# =============================================================================


class ProfileCreate(BaseModel):
    """Request body for creating the caller's profile."""

    full_name: str = Field(..., max_length=100)
    email: str | None = Field(default=None, max_length=200)
    photo_url: str | None = None
    age: int | None = None
    gender: str | None = None
    skills: str | list[str] | None = None
    linkedin_url: str | None = None
    github_url: str | None = None
    description: str | None = None
    achievements: str | None = None


class ProfileUpdate(BaseModel):
    """Request body for updating the caller's profile (partial)."""

    full_name: str | None = Field(default=None, max_length=100)
    photo_url: str | None = None
    age: int | None = None
    gender: str | None = None
    skills: str | list[str] | None = None
    linkedin_url: str | None = None
    github_url: str | None = None
    description: str | None = None
    achievements: str | None = None


class ProfileResponse(BaseModel):
    """Response for a user profile."""

    uid: str
    email: str | None = None
    full_name: str
    photo_url: str | None = None
    age: int | None = None
    gender: str | None = None
    skills: list[str] = Field(default_factory=list)
    linkedin_url: str | None = None
    github_url: str | None = None
    description: str | None = None
    achievements: str | None = None
    followers_count: int = 0
    following_count: int = 0
    created_at: str
    updated_at: str
    completeness: int | None = None
    is_following: bool | None = None

    model_config = {"from_attributes": True}


class UserSummary(BaseModel):
    uid: str
    full_name: str
    email: str | None = None
    photo_url: str | None = None


class UserListResponse(BaseModel):
    users: list[UserSummary]
    count: int


class FollowEdgeResponse(BaseModel):
    uid: str
    full_name: str | None = None
    photo_url: str | None = None
    followed_at: str


class FollowListResponse(BaseModel):
    users: list[FollowEdgeResponse]
    count: int


class FollowResponse(BaseModel):
    following: bool
    changed: bool
    followers_count: int


# =============================================================================
# CONTENT SCHEMAS
# =============================================================================


class ContentResponse(BaseModel):
    """Response for a content item."""

    content_id: str
    uploader_uid: str
    author_name: str | None = None
    title: str
    content_type: str
    tags: list[str] = Field(default_factory=list)
    ai_description: str | None = None
    user_manual_description: str | None = None
    brief_summary: str | None = None
    is_educational: bool = True
    file_url: str | None = None
    mime_type: str | None = None
    file_size: int | None = None
    text_data: str | None = None
    thumbnail_url: str | None = None
    average_rating: float = 0.0
    total_ratings: int = 0
    view_count: int = 0
    created_at: str

    model_config = {"from_attributes": True}


class ContentListResponse(BaseModel):
    contents: list[ContentResponse]
    count: int


class AuthorFacet(BaseModel):
    uid: str
    full_name: str


class FacetsResponse(BaseModel):
    tags: list[str]
    authors: list[AuthorFacet]


class CommentCreate(BaseModel):
    # Trimmed and length-checked by the repository
    text: str
    parent_id: str | None = None


class CommentResponse(BaseModel):
    comment_id: str
    content_id: str
    user_uid: str
    author_name: str | None = None
    parent_id: str | None = None
    text: str
    created_at: str
    replies: list[CommentResponse] = Field(default_factory=list)

    model_config = {"from_attributes": True}


class CommentListResponse(BaseModel):
    comments: list[CommentResponse]
    count: int


class RatingRequest(BaseModel):
    stars: int


class RatingResponse(BaseModel):
    content_id: str
    stars: int | None = None
    average_rating: float
    total_ratings: int
    updated: bool = False


class ContentQuizRequest(BaseModel):
    num_questions: int = Field(default=5, ge=1, le=10)


class AskRequest(BaseModel):
    question: str = Field(..., min_length=1, max_length=2000)


class AnswerResponse(BaseModel):
    answer: str


# =============================================================================
# CHAT SCHEMAS
# =============================================================================


class MessageCreate(BaseModel):
    text: str


class MessageResponse(BaseModel):
    message_id: str
    room_id: str
    sender_uid: str
    receiver_uid: str
    message: str
    sent_at: str
    sender_full_name: str | None = None
    sender_photo_url: str | None = None

    model_config = {"from_attributes": True}


class MessageListResponse(BaseModel):
    room_id: str
    messages: list[MessageResponse]
    count: int


class ConversationResponse(BaseModel):
    room_id: str
    other_uid: str
    other_full_name: str | None = None
    other_photo_url: str | None = None
    last_message: str | None = None
    last_sender_uid: str | None = None
    last_sent_at: str | None = None

    model_config = {"from_attributes": True}


class ConversationListResponse(BaseModel):
    conversations: list[ConversationResponse]
    count: int


# =============================================================================
# AI SCHEMAS
# =============================================================================


class QuizRequest(BaseModel):
    content_text: str
    num_questions: int = 5


class QuizResponse(BaseModel):
    questions: list[QuizQuestion]


class QuizFeedbackRequest(BaseModel):
    content_text: str
    quiz_results: list[dict[str, Any]]


class QuizFeedbackResponse(BaseModel):
    feedback_text: str


# =============================================================================
# PLAN SCHEMAS
# =============================================================================


class PlanRequest(BaseModel):
    skill_name: str = Field(..., max_length=200)


class QuizAttemptResponse(BaseModel):
    score: int
    total_questions: int
    feedback: str
    attempted_at: str


class MilestoneResponse(BaseModel):
    milestone_title: str
    description: str
    estimated_duration: str
    suggested_search_keywords: list[str] = Field(default_factory=list)
    external_resource_suggestions: list[str] | None = None
    quiz: list[QuizQuestion] = Field(default_factory=list)
    completed: bool = False
    quiz_attempts: list[QuizAttemptResponse] = Field(default_factory=list)


class PlanResponse(BaseModel):
    plan_id: str
    user_uid: str
    skill_to_learn: str
    plan_title: str
    overview: str | None = None
    status: str
    milestones: list[MilestoneResponse]
    progress: int
    created_at: str
    updated_at: str
    created: bool | None = None


class PlanListResponse(BaseModel):
    plans: list[PlanResponse]
    count: int


class QuizSubmitRequest(BaseModel):
    answers: list[int | None]


# =============================================================================
# HEALTH SCHEMAS
# =============================================================================


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = "ok"
    version: str = "0.1.0"
    timestamp: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())


class ErrorResponse(BaseModel):
    detail: str
    code: str
