"""Standalone AI endpoints: global chatbot and quiz tools."""

from fastapi import APIRouter, Depends

from skillforge.ai.flows import ask_global_chatbot, generate_quiz, suggest_quiz_feedback
from skillforge.llm.client import LLMClient
from skillforge.web.deps import get_current_uid, get_llm_client
from skillforge.web.schemas import (
    AnswerResponse,
    AskRequest,
    QuizFeedbackRequest,
    QuizFeedbackResponse,
    QuizRequest,
    QuizResponse,
)

router = APIRouter(prefix="/api/ai", tags=["ai"])


@router.post("/ask", response_model=AnswerResponse)
def ask(
    data: AskRequest,
    uid: str = Depends(get_current_uid),
    llm: LLMClient = Depends(get_llm_client),
) -> AnswerResponse:
    """Ask the platform assistant a question."""
    return AnswerResponse(answer=ask_global_chatbot(data.question, llm).answer)


@router.post("/quiz", response_model=QuizResponse)
def quiz(
    data: QuizRequest,
    uid: str = Depends(get_current_uid),
    llm: LLMClient = Depends(get_llm_client),
) -> QuizResponse:
    """Generate a quiz from arbitrary text."""
    result = generate_quiz(data.content_text, data.num_questions, llm)
    return QuizResponse(questions=result.questions)


@router.post("/quiz-feedback", response_model=QuizFeedbackResponse)
def quiz_feedback(
    data: QuizFeedbackRequest,
    uid: str = Depends(get_current_uid),
    llm: LLMClient = Depends(get_llm_client),
) -> QuizFeedbackResponse:
    """Personalized feedback on a quiz attempt."""
    result = suggest_quiz_feedback(data.content_text, data.quiz_results, llm)
    return QuizFeedbackResponse(feedback_text=result.feedback_text)
