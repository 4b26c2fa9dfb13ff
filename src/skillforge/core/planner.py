"""Learning plan tracking.

Plans are generated once per (user, skill) and resumed while in progress.
Milestones are completed by hand and may carry a quiz whose attempts are
recorded on the milestone.
"""

from __future__ import annotations

import structlog

from skillforge.ai.flows import suggest_quiz_feedback
from skillforge.ai.learning_plan import generate_learning_plan
from skillforge.core.errors import InvalidArgumentError, NotFoundError, PermissionDeniedError
from skillforge.db.database import utc_now
from skillforge.db.plans_repository import (
    STATUS_COMPLETED,
    STATUS_IN_PROGRESS,
    PlanRecord,
    delete_plan_by_id,
    find_in_progress_plan,
    get_plan_by_id,
    insert_plan,
    list_user_plans,
    update_milestones,
)
from skillforge.llm.client import LLMClient, LLMError

logger = structlog.get_logger(__name__)

PERFECT_SCORE_FEEDBACK = (
    "Excellent! You got all questions correct for this milestone. Keep up the great work!"
)
FEEDBACK_ERROR_PREFIX = "Sorry, I couldn't generate feedback for this quiz attempt. Error: "


def find_or_create_plan(uid: str, skill_name: str, llm: LLMClient) -> tuple[PlanRecord, bool]:
    """Resume the user's in-progress plan for a skill or generate a new one.

    Returns:
        (plan, created) where created is False when an existing plan was resumed

    Raises:
        InvalidArgumentError: Skill name shorter than 3 characters
        PlanGenerationError: The model could not produce a plan
    """
    skill = (skill_name or "").strip()
    if len(skill) < 3:
        raise InvalidArgumentError("Skill name must be at least 3 characters")

    existing = find_in_progress_plan(uid, skill)
    if existing is not None:
        logger.info("planner.resumed", plan_id=existing.plan_id, skill=skill)
        return existing, False

    generated = generate_learning_plan(skill, llm)
    milestones = []
    for milestone in generated.milestones:
        data = milestone.model_dump()
        data["quiz"] = data.get("quiz") or []
        data["completed"] = False
        data["quiz_attempts"] = []
        milestones.append(data)

    plan = insert_plan(
        user_uid=uid,
        skill_to_learn=skill,
        plan_title=generated.plan_title,
        overview=generated.overview,
        milestones=milestones,
    )
    logger.info("planner.created", plan_id=plan.plan_id, skill=skill, milestones=len(milestones))
    return plan, True


def get_plan(plan_id: str, uid: str) -> PlanRecord:
    """Get a plan owned by uid.

    Raises:
        NotFoundError: Unknown plan
        PermissionDeniedError: Plan belongs to another user
    """
    plan = get_plan_by_id(plan_id)
    if plan is None:
        raise NotFoundError("Plan", plan_id)
    if plan.user_uid != uid:
        raise PermissionDeniedError("This learning plan belongs to another user")
    return plan


def list_plans(uid: str) -> list[PlanRecord]:
    return list_user_plans(uid)


def delete_plan(plan_id: str, uid: str) -> None:
    get_plan(plan_id, uid)
    delete_plan_by_id(plan_id)
    logger.info("planner.deleted", plan_id=plan_id)


def _milestone(milestones: list[dict], index: int) -> dict:
    if not 0 <= index < len(milestones):
        raise InvalidArgumentError(
            f"Milestone index {index} out of range (plan has {len(milestones)})"
        )
    return milestones[index]


def _status_for(milestones: list[dict]) -> str:
    if milestones and all(m.get("completed") for m in milestones):
        return STATUS_COMPLETED
    return STATUS_IN_PROGRESS


def _save(plan_id: str, apply) -> PlanRecord:
    plan = update_milestones(plan_id, apply)
    if plan is None:
        raise NotFoundError("Plan", plan_id)
    return plan


def toggle_milestone(plan_id: str, uid: str, index: int) -> PlanRecord:
    """Flip a milestone's completion; the plan is completed iff all are."""
    get_plan(plan_id, uid)

    def flip(milestones: list[dict]) -> str:
        milestone = _milestone(milestones, index)
        milestone["completed"] = not milestone.get("completed", False)
        return _status_for(milestones)

    plan = _save(plan_id, flip)
    logger.info(
        "planner.milestone_toggled",
        plan_id=plan_id,
        index=index,
        completed=plan.milestones[index]["completed"],
        status=plan.status,
    )
    return plan


def submit_milestone_quiz(
    plan_id: str, uid: str, index: int, answers: list[int | None], llm: LLMClient
) -> dict:
    """Score a milestone quiz attempt and record it with feedback.

    The attempt is appended to the milestone as stored after the feedback
    call, so changes made to the plan meanwhile are kept.

    Args:
        answers: Chosen option index per question (None for unanswered)

    Returns:
        The recorded attempt: score, total_questions, feedback, attempted_at
    """
    plan = get_plan(plan_id, uid)
    milestone = _milestone(plan.milestones, index)
    quiz = milestone.get("quiz") or []
    if not quiz:
        raise InvalidArgumentError("This milestone has no quiz")
    if len(answers) != len(quiz):
        raise InvalidArgumentError(
            f"Expected {len(quiz)} answers, got {len(answers)}"
        )
    if any(a is not None and not 0 <= a <= 3 for a in answers):
        raise InvalidArgumentError("Answers must be option indexes between 0 and 3")

    results = []
    for question, answer in zip(quiz, answers):
        is_correct = answer is not None and answer == question["correct_answer_index"]
        results.append({**question, "user_answer_index": answer, "is_correct": is_correct})
    score = sum(1 for r in results if r["is_correct"])

    if score == len(quiz):
        feedback = PERFECT_SCORE_FEEDBACK
    else:
        try:
            feedback = suggest_quiz_feedback(
                milestone.get("description", ""), results, llm
            ).feedback_text
        except (LLMError, InvalidArgumentError) as e:
            logger.warning("planner.feedback_failed", plan_id=plan_id, error=str(e))
            feedback = FEEDBACK_ERROR_PREFIX + str(e)

    attempt = {
        "score": score,
        "total_questions": len(quiz),
        "feedback": feedback,
        "attempted_at": utc_now(),
    }

    def record(milestones: list[dict]) -> str:
        _milestone(milestones, index).setdefault("quiz_attempts", []).append(attempt)
        return _status_for(milestones)

    _save(plan_id, record)
    logger.info(
        "planner.quiz_submitted", plan_id=plan_id, index=index, score=score, total=len(quiz)
    )
    return attempt


def plan_progress(plan: PlanRecord) -> int:
    """Percent of completed milestones, rounded half up."""
    if not plan.milestones:
        return 0
    done = sum(1 for m in plan.milestones if m.get("completed"))
    return int(done * 100 / len(plan.milestones) + 0.5)
