"""Learning plan endpoints."""

from fastapi import APIRouter, Depends, Response, status

from skillforge.core import planner
from skillforge.db.plans_repository import PlanRecord
from skillforge.db.users_repository import UserProfile
from skillforge.llm.client import LLMClient
from skillforge.web.deps import get_current_profile, get_current_uid, get_llm_client
from skillforge.web.schemas import (
    PlanListResponse,
    PlanRequest,
    PlanResponse,
    QuizAttemptResponse,
    QuizSubmitRequest,
)

router = APIRouter(prefix="/api/plans", tags=["plans"])


def plan_response(plan: PlanRecord, created: bool | None = None) -> PlanResponse:
    return PlanResponse(
        **plan.to_dict(),
        progress=planner.plan_progress(plan),
        created=created,
    )


@router.post("", response_model=PlanResponse)
def find_or_create_plan(
    data: PlanRequest,
    response: Response,
    profile: UserProfile = Depends(get_current_profile),
    llm: LLMClient = Depends(get_llm_client),
) -> PlanResponse:
    """Resume the in-progress plan for a skill or generate a new one."""
    plan, created = planner.find_or_create_plan(profile.uid, data.skill_name, llm)
    if created:
        response.status_code = status.HTTP_201_CREATED
    return plan_response(plan, created=created)


@router.get("", response_model=PlanListResponse)
async def list_plans(uid: str = Depends(get_current_uid)) -> PlanListResponse:
    """Caller's plans, newest first."""
    plans = planner.list_plans(uid)
    return PlanListResponse(plans=[plan_response(p) for p in plans], count=len(plans))


@router.get("/{plan_id}", response_model=PlanResponse)
async def get_plan(plan_id: str, uid: str = Depends(get_current_uid)) -> PlanResponse:
    """Get one of the caller's plans."""
    return plan_response(planner.get_plan(plan_id, uid))


@router.delete("/{plan_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_plan(plan_id: str, uid: str = Depends(get_current_uid)) -> Response:
    """Delete one of the caller's plans."""
    planner.delete_plan(plan_id, uid)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{plan_id}/milestones/{index}/toggle", response_model=PlanResponse)
async def toggle_milestone(
    plan_id: str, index: int, uid: str = Depends(get_current_uid)
) -> PlanResponse:
    """Mark a milestone complete or incomplete."""
    return plan_response(planner.toggle_milestone(plan_id, uid, index))


@router.post("/{plan_id}/milestones/{index}/quiz", response_model=QuizAttemptResponse)
def submit_quiz(
    plan_id: str,
    index: int,
    data: QuizSubmitRequest,
    uid: str = Depends(get_current_uid),
    llm: LLMClient = Depends(get_llm_client),
) -> QuizAttemptResponse:
    """Submit answers to a milestone quiz."""
    attempt = planner.submit_milestone_quiz(plan_id, uid, index, data.answers, llm)
    return QuizAttemptResponse(**attempt)
