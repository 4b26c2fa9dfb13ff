"""Tests for AI flows with a mocked LLM client (F5)."""

import base64

import pytest

from skillforge.ai.flows import (
    CHATBOT_FALLBACK,
    FEEDBACK_FALLBACK,
    ask_content_chatbot,
    ask_global_chatbot,
    generate_quiz,
    suggest_quiz_feedback,
    validate_and_describe_content,
)
from skillforge.ai.schemas import (
    GenerateQuizInput,
    ValidateAndDescribeContentOutput,
    parse_input,
    parse_output,
)
from skillforge.core.errors import InvalidArgumentError
from skillforge.llm.client import LLMConnectionError, LLMError, LLMResponseError

CONTENT = (
    "HTTP is a request/response protocol. Clients send a method and a path; "
    "servers reply with a status code and a body."
)


def data_uri(mime: str, payload: bytes) -> str:
    return f"data:{mime};base64,{base64.b64encode(payload).decode('ascii')}"


class TestParseHelpers:
    def test_input_problems_listed(self):
        with pytest.raises(InvalidArgumentError) as excinfo:
            parse_input(GenerateQuizInput, content_text="short", num_questions=11)
        assert {p.split(":")[0] for p in excinfo.value.problems} == {
            "content_text",
            "num_questions",
        }

    def test_bad_output_is_ai_error(self):
        with pytest.raises(LLMResponseError, match="ValidateAndDescribeContentOutput"):
            parse_output(ValidateAndDescribeContentOutput, {"description": 3})


class TestValidateAndDescribeContent:
    def test_text_is_sent_inline(self, mock_llm_client):
        mock_llm_client.simple_json.return_value = {
            "is_valid": True,
            "description": "An overview of HTTP.",
        }

        result = validate_and_describe_content(
            data_uri("text/plain", CONTENT.encode()), "text", mock_llm_client
        )

        assert result.is_valid is True
        assert result.description == "An overview of HTTP."
        system_prompt, user_message = mock_llm_client.simple_json.call_args.args
        assert "Content type: text" in system_prompt
        assert "request/response protocol" in user_message
        assert mock_llm_client.simple_json.call_args.kwargs["attachments"] == []

    def test_media_is_attached(self, mock_llm_client):
        mock_llm_client.simple_json.return_value = {"is_valid": False, "description": "Cat video."}
        uri = data_uri("video/mp4", b"\x00\x01")

        result = validate_and_describe_content(uri, "video", mock_llm_client)

        assert result.is_valid is False
        attachment = mock_llm_client.simple_json.call_args.kwargs["attachments"][0]
        assert attachment.data_uri == uri
        assert attachment.filename == "content.mp4"

    @pytest.mark.parametrize("uri", ["not a uri", "data:text/plain,hello", "data:;base64,AAAA"])
    def test_malformed_data_uri(self, mock_llm_client, uri):
        with pytest.raises(InvalidArgumentError):
            validate_and_describe_content(uri, "text", mock_llm_client)
        mock_llm_client.simple_json.assert_not_called()

    def test_unknown_content_type(self, mock_llm_client):
        with pytest.raises(InvalidArgumentError):
            validate_and_describe_content(data_uri("image/png", b"x"), "image", mock_llm_client)

    def test_unusable_output(self, mock_llm_client):
        mock_llm_client.simple_json.return_value = {"description": "missing flag"}
        with pytest.raises(LLMResponseError):
            validate_and_describe_content(
                data_uri("text/plain", CONTENT.encode()), "text", mock_llm_client
            )


class TestGenerateQuiz:
    def test_valid_questions(self, mock_llm_client, sample_quiz):
        mock_llm_client.simple_json.return_value = {"questions": sample_quiz}

        result = generate_quiz(CONTENT, 3, mock_llm_client)

        assert len(result.questions) == 3
        assert result.questions[0].correct_answer_index == 0
        assert "exactly 3 questions" in mock_llm_client.simple_json.call_args.args[0]

    def test_malformed_questions_dropped(self, mock_llm_client, sample_quiz):
        bad = [
            {"question_text": "Too few options", "options": ["a", "b"], "correct_answer_index": 0},
            {"question_text": "Bad index", "options": ["a", "b", "c", "d"], "correct_answer_index": 4},
        ]
        mock_llm_client.simple_json.return_value = {"questions": bad + sample_quiz[:1]}

        result = generate_quiz(CONTENT, 3, mock_llm_client)

        assert [q.question_text for q in result.questions] == ["What does HTTP stand for?"]

    def test_truncated_to_requested_count(self, mock_llm_client, sample_quiz):
        mock_llm_client.simple_json.return_value = {"questions": sample_quiz}
        assert len(generate_quiz(CONTENT, 2, mock_llm_client).questions) == 2

    def test_llm_failure_gives_empty_quiz(self, mock_llm_client):
        mock_llm_client.simple_json.side_effect = LLMConnectionError("offline")
        assert generate_quiz(CONTENT, 3, mock_llm_client).questions == []

    def test_missing_questions_key(self, mock_llm_client):
        mock_llm_client.simple_json.return_value = {"quiz": []}
        assert generate_quiz(CONTENT, 3, mock_llm_client).questions == []

    def test_content_too_short(self, mock_llm_client):
        with pytest.raises(InvalidArgumentError):
            generate_quiz("too short", 3, mock_llm_client)

    @pytest.mark.parametrize("count", [0, 11])
    def test_question_count_range(self, mock_llm_client, count):
        with pytest.raises(InvalidArgumentError):
            generate_quiz(CONTENT, count, mock_llm_client)


class TestSuggestQuizFeedback:
    def results(self, sample_quiz):
        return [
            {**sample_quiz[0], "user_answer_index": 0, "is_correct": True},
            {**sample_quiz[1], "user_answer_index": None, "is_correct": False},
        ]

    def test_feedback(self, mock_llm_client, sample_quiz):
        mock_llm_client.simple_json.return_value = {"feedback_text": "Review idempotency."}

        result = suggest_quiz_feedback(CONTENT, self.results(sample_quiz), mock_llm_client)

        assert result.feedback_text == "Review idempotency."
        system_prompt, user_message = mock_llm_client.simple_json.call_args.args
        assert "request/response protocol" in system_prompt
        assert "User's answer: not answered" in user_message
        assert "Correct answer: option 2" in user_message

    def test_empty_feedback_uses_fallback(self, mock_llm_client, sample_quiz):
        mock_llm_client.simple_json.return_value = {"feedback_text": "  "}
        result = suggest_quiz_feedback(CONTENT, self.results(sample_quiz), mock_llm_client)
        assert result.feedback_text == FEEDBACK_FALLBACK

    def test_llm_error_propagates(self, mock_llm_client, sample_quiz):
        mock_llm_client.simple_json.side_effect = LLMError("quota")
        with pytest.raises(LLMError):
            suggest_quiz_feedback(CONTENT, self.results(sample_quiz), mock_llm_client)

    def test_malformed_results(self, mock_llm_client):
        with pytest.raises(InvalidArgumentError):
            suggest_quiz_feedback(CONTENT, [{"question_text": "?"}], mock_llm_client)


class TestChatbots:
    def test_content_chatbot_grounds_on_content(self, mock_llm_client):
        mock_llm_client.simple_chat.return_value = "<think>hmm</think>It is a protocol."

        result = ask_content_chatbot(CONTENT, "What is HTTP?", mock_llm_client)

        assert result.answer == "It is a protocol."
        system_prompt, question = mock_llm_client.simple_chat.call_args.args
        assert CONTENT in system_prompt
        assert question == "What is HTTP?"

    def test_content_chatbot_fallback(self, mock_llm_client):
        mock_llm_client.simple_chat.return_value = ""
        assert ask_content_chatbot(CONTENT, "Why?", mock_llm_client).answer == CHATBOT_FALLBACK

    def test_global_chatbot(self, mock_llm_client):
        mock_llm_client.simple_chat.return_value = "Open Upload Content from the menu."
        result = ask_global_chatbot("How do I upload?", mock_llm_client)
        assert result.answer == "Open Upload Content from the menu."

    def test_global_chatbot_fallback(self, mock_llm_client):
        mock_llm_client.simple_chat.return_value = "<think>only thoughts</think>"
        assert ask_global_chatbot("Hello?", mock_llm_client).answer == CHATBOT_FALLBACK

    def test_empty_question(self, mock_llm_client):
        with pytest.raises(InvalidArgumentError):
            ask_global_chatbot("", mock_llm_client)
