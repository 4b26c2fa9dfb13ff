"""Pydantic models for AI flow inputs and outputs.

Field names are snake_case both in Python and in the JSON the model is
asked to produce.
"""

from __future__ import annotations

import re
from typing import Any, Literal, TypeVar

from pydantic import BaseModel, Field, ValidationError, field_validator

from skillforge.core.errors import InvalidArgumentError
from skillforge.llm.client import LLMResponseError

DATA_URI_PATTERN = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+);base64,(?P<data>.+)$", re.DOTALL)

ContentType = Literal["video", "audio", "text"]


# =============================================================================
# QUIZ SCHEMAS
# =============================================================================


class QuizQuestion(BaseModel):
    """A multiple-choice question with exactly four options."""

    question_text: str = Field(..., min_length=1)
    options: list[str] = Field(..., min_length=4, max_length=4)
    correct_answer_index: int = Field(..., ge=0, le=3)
    explanation: str | None = None


class GenerateQuizInput(BaseModel):
    content_text: str = Field(..., min_length=50)
    num_questions: int = Field(default=5, ge=1, le=10)


class GenerateQuizOutput(BaseModel):
    questions: list[QuizQuestion] = Field(default_factory=list)


class QuizQuestionWithResult(QuizQuestion):
    """A quiz question with the user's answer and its correctness."""

    user_answer_index: int | None = Field(default=None, ge=0, le=3)
    is_correct: bool


class SuggestQuizFeedbackInput(BaseModel):
    content_text: str
    quiz_results: list[QuizQuestionWithResult]


class SuggestQuizFeedbackOutput(BaseModel):
    feedback_text: str


# =============================================================================
# CONTENT SCHEMAS
# =============================================================================


class ValidateAndDescribeContentInput(BaseModel):
    content_data_uri: str
    content_type: ContentType

    @field_validator("content_data_uri")
    @classmethod
    def _check_data_uri(cls, value: str) -> str:
        if not DATA_URI_PATTERN.match(value):
            raise ValueError("Expected a data URI of the form 'data:<mimetype>;base64,<data>'")
        return value

    @property
    def mime_type(self) -> str:
        return DATA_URI_PATTERN.match(self.content_data_uri).group("mime")


class ValidateAndDescribeContentOutput(BaseModel):
    is_valid: bool
    description: str


class ChatbotInput(BaseModel):
    file_content: str
    question: str = Field(..., min_length=1)


class ChatbotOutput(BaseModel):
    answer: str


class GlobalChatbotInput(BaseModel):
    question: str = Field(..., min_length=1)


class GlobalChatbotOutput(BaseModel):
    answer: str


# =============================================================================
# LEARNING PLAN SCHEMAS
# =============================================================================


class LearningMilestone(BaseModel):
    """A milestone as generated by the model.

    Required fields default to empty so that incomplete milestones can be
    detected and reported as a whole instead of failing on the first one.
    """

    milestone_title: str = ""
    description: str = ""
    estimated_duration: str = ""
    suggested_search_keywords: list[str] = Field(default_factory=list)
    external_resource_suggestions: list[str] | None = None
    quiz: list[dict] | None = None

    @property
    def is_complete(self) -> bool:
        return bool(
            self.milestone_title.strip()
            and self.description.strip()
            and self.estimated_duration.strip()
            and self.suggested_search_keywords
        )


class GenerateLearningPlanInput(BaseModel):
    skill_name: str = Field(..., min_length=3)

    @field_validator("skill_name")
    @classmethod
    def _strip(cls, value: str) -> str:
        value = value.strip()
        if len(value) < 3:
            raise ValueError("Skill name must be at least 3 characters")
        return value


class GenerateLearningPlanOutput(BaseModel):
    skill_to_learn: str = ""
    plan_title: str
    overview: str = ""
    milestones: list[LearningMilestone] = Field(default_factory=list)


# =============================================================================
# VALIDATION HELPERS
# =============================================================================

M = TypeVar("M", bound=BaseModel)


def parse_input(model: type[M], **data: Any) -> M:
    """Validate flow input, mapping pydantic errors to InvalidArgumentError."""
    try:
        return model(**data)
    except ValidationError as e:
        problems = [f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()]
        raise InvalidArgumentError("; ".join(problems), problems) from e


def parse_output(model: type[M], data: dict[str, Any]) -> M:
    """Validate model output, mapping pydantic errors to LLMResponseError."""
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise LLMResponseError(f"Unexpected AI output for {model.__name__}: {e}") from e
