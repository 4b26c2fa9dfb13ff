"""AI flows: content validation, quizzes, feedback and chatbots.

Each flow validates its input with a pydantic model, renders a prompt from
the registry, calls the LLM and validates the answer. Callers pass the
LLMClient so tests can substitute a mock.

Functions:
- validate_and_describe_content(content_data_uri, content_type, llm)
- generate_quiz(content_text, num_questions, llm)
- suggest_quiz_feedback(content_text, quiz_results, llm)
- ask_content_chatbot(file_content, question, llm)
- ask_global_chatbot(question, llm)
"""

from __future__ import annotations

import base64
import binascii
from typing import Any

import structlog
from pydantic import ValidationError

from skillforge.ai.schemas import (
    DATA_URI_PATTERN,
    ChatbotInput,
    ChatbotOutput,
    GenerateQuizInput,
    GenerateQuizOutput,
    GlobalChatbotInput,
    GlobalChatbotOutput,
    QuizQuestion,
    QuizQuestionWithResult,
    SuggestQuizFeedbackInput,
    SuggestQuizFeedbackOutput,
    ValidateAndDescribeContentInput,
    ValidateAndDescribeContentOutput,
    parse_input,
    parse_output,
)
from skillforge.core.errors import InvalidArgumentError
from skillforge.llm.client import Attachment, LLMClient, LLMError
from skillforge.prompts.registry import get_prompt
from skillforge.utils.text_utils import strip_think

logger = structlog.get_logger(__name__)

FEEDBACK_FALLBACK = (
    "I'm sorry, I couldn't generate specific feedback for this attempt. "
    "Try reviewing the questions and content again."
)
CHATBOT_FALLBACK = "I'm sorry, I couldn't generate a response at this moment. Please try again."

# MIME types whose payload is sent to the model as plain text
INLINE_TEXT_TYPES = ("text/plain", "text/markdown")


def validate_and_describe_content(
    content_data_uri: str, content_type: str, llm: LLMClient
) -> ValidateAndDescribeContentOutput:
    """Ask the model whether content is educational and to describe it.

    Plain text and Markdown payloads are decoded and sent inline; other
    files are attached to the request as data URIs.

    Raises:
        InvalidArgumentError: Malformed data URI or unknown content type
        LLMError: The model call failed or returned an unusable answer
    """
    request = parse_input(
        ValidateAndDescribeContentInput,
        content_data_uri=content_data_uri,
        content_type=content_type,
    )
    mime_type = request.mime_type
    system_prompt = get_prompt("content/describe", content_type=request.content_type)

    attachments: list[Attachment] = []
    if mime_type in INLINE_TEXT_TYPES:
        payload = DATA_URI_PATTERN.match(request.content_data_uri).group("data")
        try:
            text = base64.b64decode(payload).decode("utf-8", errors="replace")
        except (binascii.Error, ValueError) as e:
            raise InvalidArgumentError("Content data URI is not valid base64") from e
        user_message = f"Content ({mime_type}):\n---\n{text}\n---"
    else:
        extension = mime_type.split("/")[-1]
        attachments.append(
            Attachment(data_uri=request.content_data_uri, filename=f"content.{extension}")
        )
        user_message = f"The attached {request.content_type} file ({mime_type}) is the content."

    data = llm.simple_json(system_prompt, user_message, attachments=attachments)
    result = parse_output(ValidateAndDescribeContentOutput, data)

    logger.info(
        "ai.content_described",
        content_type=request.content_type,
        mime_type=mime_type,
        is_valid=result.is_valid,
        description_len=len(result.description),
    )
    return result


def generate_quiz(content_text: str, num_questions: int, llm: LLMClient) -> GenerateQuizOutput:
    """Generate multiple-choice questions from content text.

    Malformed questions are dropped and at most num_questions are kept.
    If the model fails, an empty question list is returned.

    Raises:
        InvalidArgumentError: content_text shorter than 50 characters or
            num_questions outside 1..10
    """
    request = parse_input(GenerateQuizInput, content_text=content_text, num_questions=num_questions)
    system_prompt = get_prompt("quiz/generate", num_questions=str(request.num_questions))

    try:
        data = llm.simple_json(system_prompt, f"Content text:\n{request.content_text}")
    except LLMError as e:
        logger.warning("ai.quiz_generation_failed", error=str(e))
        return GenerateQuizOutput(questions=[])

    questions = []
    for raw in data.get("questions") or []:
        try:
            questions.append(QuizQuestion.model_validate(raw))
        except ValidationError:
            logger.debug("ai.quiz_question_dropped", question=str(raw)[:100])

    questions = questions[: request.num_questions]
    if not questions:
        logger.warning("ai.quiz_empty")
    else:
        logger.info("ai.quiz_generated", count=len(questions))
    return GenerateQuizOutput(questions=questions)


def _format_quiz_results(results: list[QuizQuestionWithResult]) -> str:
    blocks = []
    for number, result in enumerate(results, start=1):
        lines = [f"Question {number}: {result.question_text}", "Options:"]
        lines += [f"  {i + 1}. {option}" for i, option in enumerate(result.options)]
        lines.append(
            f"Correct answer: option {result.correct_answer_index + 1}"
        )
        if result.user_answer_index is None:
            lines.append("User's answer: not answered")
        else:
            lines.append(f"User's answer: option {result.user_answer_index + 1}")
        lines.append(f"User was correct: {result.is_correct}")
        if not result.is_correct and result.explanation:
            lines.append(f"Explanation: {result.explanation}")
        blocks.append("\n".join(lines))
    return "\n---\n".join(blocks)


def suggest_quiz_feedback(
    content_text: str, quiz_results: list[dict[str, Any] | QuizQuestionWithResult], llm: LLMClient
) -> SuggestQuizFeedbackOutput:
    """Personalized feedback on a quiz attempt, focused on wrong answers.

    Raises:
        InvalidArgumentError: Malformed quiz results
        LLMError: The model call failed
    """
    request = parse_input(
        SuggestQuizFeedbackInput,
        content_text=content_text,
        quiz_results=[
            r.model_dump() if isinstance(r, QuizQuestionWithResult) else r for r in quiz_results
        ],
    )
    system_prompt = get_prompt("quiz/feedback", content_text=request.content_text)
    user_message = (
        "Quiz results (question, options, correct answer, user's answer):\n---\n"
        + _format_quiz_results(request.quiz_results)
        + "\n---\nBased on the incorrect answers, provide personalized feedback."
    )

    data = llm.simple_json(system_prompt, user_message)
    feedback = str(data.get("feedback_text") or "").strip()
    if not feedback:
        logger.warning("ai.feedback_empty")
        return SuggestQuizFeedbackOutput(feedback_text=FEEDBACK_FALLBACK)

    return SuggestQuizFeedbackOutput(feedback_text=feedback)


def ask_content_chatbot(file_content: str, question: str, llm: LLMClient) -> ChatbotOutput:
    """Answer a question using only the given content.

    Raises:
        InvalidArgumentError: Empty question
        LLMError: The model call failed
    """
    request = parse_input(ChatbotInput, file_content=file_content, question=question)
    system_prompt = get_prompt("chat/content_tutor", file_content=request.file_content)

    answer = strip_think(llm.simple_chat(system_prompt, request.question))
    return ChatbotOutput(answer=answer or CHATBOT_FALLBACK)


def ask_global_chatbot(question: str, llm: LLMClient) -> GlobalChatbotOutput:
    """Answer a general question as the platform assistant.

    Raises:
        InvalidArgumentError: Empty question
        LLMError: The model call failed
    """
    request = parse_input(GlobalChatbotInput, question=question)

    answer = strip_think(llm.simple_chat(get_prompt("chat/global"), request.question))
    return GlobalChatbotOutput(answer=answer or CHATBOT_FALLBACK)
