"""Learning plan generation.

Asks the model for a milestone plan for a skill and checks it before it is
stored: a plan without milestones, or with a milestone missing its title,
description, duration or search keywords, is rejected. A malformed
milestone quiz is dropped without failing the plan.
"""

from __future__ import annotations

import structlog
from pydantic import ValidationError

from skillforge.ai.schemas import (
    GenerateLearningPlanInput,
    GenerateLearningPlanOutput,
    QuizQuestion,
    parse_input,
    parse_output,
)
from skillforge.llm.client import LLMClient, LLMError
from skillforge.prompts.registry import get_prompt

logger = structlog.get_logger(__name__)


class PlanGenerationError(LLMError):
    """The model did not produce a usable learning plan."""

    pass


def _clean_quiz(raw_quiz: list[dict] | None, milestone_title: str) -> list[dict]:
    if not raw_quiz:
        return []
    try:
        return [QuizQuestion.model_validate(q).model_dump() for q in raw_quiz]
    except ValidationError:
        logger.warning("ai.plan_quiz_malformed", milestone=milestone_title)
        return []


def generate_learning_plan(skill_name: str, llm: LLMClient) -> GenerateLearningPlanOutput:
    """Generate a learning plan for a skill.

    Args:
        skill_name: Skill to learn, at least 3 characters after trimming
        llm: LLM client

    Returns:
        Validated plan with quizzes either well-formed or empty

    Raises:
        InvalidArgumentError: skill_name too short
        PlanGenerationError: The model failed or returned an unusable plan
    """
    request = parse_input(GenerateLearningPlanInput, skill_name=skill_name)
    logger.info("ai.plan_requested", skill=request.skill_name)

    try:
        data = llm.simple_json(
            get_prompt("plan/generate", skill_name=request.skill_name),
            f"Create my learning plan for: {request.skill_name}",
        )
        plan = parse_output(GenerateLearningPlanOutput, data)
    except PlanGenerationError:
        raise
    except LLMError as e:
        raise PlanGenerationError(f"Failed to generate learning plan: {e}") from e

    if not plan.milestones:
        raise PlanGenerationError(
            "Failed to generate learning plan: the AI returned a plan with no milestones."
        )

    incomplete = [m.milestone_title or "Untitled" for m in plan.milestones if not m.is_complete]
    if incomplete:
        logger.warning("ai.plan_incomplete", milestones=incomplete)
        raise PlanGenerationError(
            "Failed to generate learning plan: the AI generated an incomplete plan. "
            "Some milestones are missing essential details (title, description, "
            "duration, or search keywords). Please try rephrasing your skill or try again."
        )

    for milestone in plan.milestones:
        milestone.quiz = _clean_quiz(milestone.quiz, milestone.milestone_title)

    if not plan.skill_to_learn.strip():
        plan.skill_to_learn = request.skill_name

    logger.info("ai.plan_generated", skill=request.skill_name, milestones=len(plan.milestones))
    return plan
