"""Tests for the upload pipeline (F3)."""

import base64

import pytest

from skillforge.config.app_config import UploadLimits
from skillforge.core.errors import InvalidArgumentError
from skillforge.core.storage import LocalObjectStorage
from skillforge.core.uploads import (
    AI_FAILED,
    SKIPPED_LARGE_FILE,
    SKIPPED_LARGE_TEXT,
    UploadRequest,
    describe_upload,
    publish_upload,
    validate_upload,
)
from skillforge.llm.client import LLMConnectionError

LESSON = (
    "Variables in Python are names bound to objects. Assignment never copies data, "
    "it only binds a new name to an existing object."
)


@pytest.fixture
def limits():
    return UploadLimits(
        max_media_bytes=1000,
        max_text_bytes=500,
        max_ai_bytes=300,
        video_types=["video/mp4"],
        audio_types=["audio/mpeg"],
        text_types=["text/plain", "application/pdf"],
    )


@pytest.fixture
def storage(tmp_path):
    return LocalObjectStorage(tmp_path / "storage")


def text_request(**overrides) -> UploadRequest:
    fields = {
        "title": "Python variables",
        "content_type": "text",
        "tags": "python, basics",
        "text_body": LESSON,
    }
    fields.update(overrides)
    return UploadRequest(**fields)


def video_request(**overrides) -> UploadRequest:
    fields = {
        "title": "Knife skills",
        "content_type": "video",
        "tags": "cooking",
        "file_bytes": b"\x00" * 100,
        "filename": "knife skills.mp4",
        "mime_type": "video/mp4",
    }
    fields.update(overrides)
    return UploadRequest(**fields)


def problems_of(request, limits) -> list[str]:
    with pytest.raises(InvalidArgumentError) as exc_info:
        validate_upload(request, limits)
    return exc_info.value.problems


class TestValidateUpload:
    def test_valid_text_body(self, limits):
        validate_upload(text_request(), limits)

    def test_valid_video(self, limits):
        validate_upload(video_request(), limits)

    def test_collects_every_problem(self, limits):
        problems = problems_of(text_request(title="Hi", tags="", text_body="short"), limits)
        assert "Title must be at least 5 characters" in problems
        assert "Please add at least one tag" in problems
        assert "Direct text input must be at least 100 characters" in problems

    def test_title_too_long(self, limits):
        assert "Title must be at most 150 characters" in problems_of(
            text_request(title="x" * 151), limits
        )

    @pytest.mark.parametrize("tags", ["python,,basics", "python,", ", python"])
    def test_empty_tag_segment(self, limits, tags):
        problems = problems_of(text_request(tags=tags), limits)
        assert problems == ["Tags cannot be empty and must be comma-separated words"]

    def test_unknown_content_type(self, limits):
        problems = problems_of(text_request(content_type="image"), limits)
        assert problems == ["Please select a content type: video, audio or text"]

    def test_video_requires_file(self, limits):
        problems = problems_of(video_request(file_bytes=None), limits)
        assert problems == ["A file is required for video or audio content"]

    def test_wrong_mime_type(self, limits):
        problems = problems_of(video_request(mime_type="video/webm"), limits)
        assert problems[0].startswith("Invalid file type for video")

    def test_file_too_large(self, limits):
        problems = problems_of(video_request(file_bytes=b"\x00" * 1001), limits)
        assert len(problems) == 1
        assert "file size exceeds" in problems[0]

    def test_text_needs_file_or_body(self, limits):
        problems = problems_of(text_request(text_body=None), limits)
        assert problems == ["Either upload a text file or enter text content directly"]

    def test_text_file_and_body_conflict(self, limits):
        request = text_request(file_bytes=b"notes", filename="n.txt", mime_type="text/plain")
        assert "Please provide either a text file or direct text input, not both" in problems_of(
            request, limits
        )

    def test_manual_description_limit(self, limits):
        problems = problems_of(text_request(manual_description="x" * 5001), limits)
        assert problems == ["Manual description must be at most 5000 characters"]


class TestDescribeUpload:
    def test_ai_description(self, mock_llm_client, limits):
        mock_llm_client.simple_json.return_value = {
            "is_valid": True,
            "description": "Explains how Python names bind to objects.",
        }

        result = describe_upload(text_request(), mock_llm_client, limits)

        assert result.description == "Explains how Python names bind to objects."
        assert result.is_educational is True
        assert result.ai_used is True
        user_message = mock_llm_client.simple_json.call_args.args[1]
        assert "Variables in Python" in user_message

    def test_non_educational_is_flagged(self, mock_llm_client, limits):
        mock_llm_client.simple_json.return_value = {"is_valid": False, "description": "A meme."}

        result = describe_upload(video_request(), mock_llm_client, limits)

        assert result.is_educational is False
        attachments = mock_llm_client.simple_json.call_args.kwargs["attachments"]
        assert attachments[0].data_uri.startswith("data:video/mp4;base64,")

    def test_large_file_skips_ai(self, mock_llm_client, limits):
        result = describe_upload(video_request(file_bytes=b"\x00" * 301), mock_llm_client, limits)

        assert result.description == SKIPPED_LARGE_FILE
        assert result.is_educational is True
        mock_llm_client.simple_json.assert_not_called()

    def test_large_text_keeps_manual_description(self, mock_llm_client, limits):
        request = text_request(text_body="y" * 301, manual_description="My notes")
        assert describe_upload(request, mock_llm_client, limits).description == "My notes"

        request = text_request(text_body="y" * 301)
        assert describe_upload(request, mock_llm_client, limits).description == SKIPPED_LARGE_TEXT

    def test_ai_failure_falls_back(self, mock_llm_client, limits):
        mock_llm_client.simple_json.side_effect = LLMConnectionError("down")

        result = describe_upload(text_request(), mock_llm_client, limits)

        assert result.description == AI_FAILED
        assert result.is_educational is True
        assert result.ai_used is False

    def test_no_client(self, limits):
        request = text_request(manual_description="Handwritten")
        assert describe_upload(request, None, limits).description == "Handwritten"


class TestPublishUpload:
    def test_text_body(self, make_user, storage, mock_llm_client, limits):
        make_user("ana", "Ana")
        mock_llm_client.simple_json.return_value = {"is_valid": True, "description": "D" * 250}

        content = publish_upload(text_request(), "ana", storage, mock_llm_client, limits)

        assert content.content_type == "text"
        assert content.tags == ["python", "basics"]
        assert content.text_data == LESSON
        assert content.mime_type == "text/plain"
        assert content.storage_path is None
        assert content.ai_description == "D" * 250
        assert content.brief_summary == "D" * 200
        assert content.author_name == "Ana"

    def test_file_is_stored(self, make_user, storage, mock_llm_client, limits):
        make_user("ana", "Ana")
        mock_llm_client.simple_json.return_value = {"is_valid": True, "description": "Knives."}

        content = publish_upload(video_request(), "ana", storage, mock_llm_client, limits)

        assert content.storage_path.startswith("content/video/ana/")
        assert content.storage_path.endswith("_knife_skills.mp4")
        assert content.file_url == f"/media/{content.storage_path}"
        assert content.file_size == 100
        assert content.mime_type == "video/mp4"
        assert storage.get(content.storage_path) == b"\x00" * 100

    def test_invalid_request_stores_nothing(self, make_user, storage, mock_llm_client, limits):
        make_user("ana", "Ana")
        with pytest.raises(InvalidArgumentError):
            publish_upload(video_request(title="x"), "ana", storage, mock_llm_client, limits)
        mock_llm_client.simple_json.assert_not_called()
        assert not (storage.root / "content").exists()

    def test_pdf_goes_as_attachment(self, make_user, storage, mock_llm_client, limits):
        make_user("ana", "Ana")
        mock_llm_client.simple_json.return_value = {"is_valid": True, "description": "A paper."}
        pdf = b"%PDF-1.4 fake"
        request = text_request(
            text_body=None, file_bytes=pdf, filename="paper.pdf", mime_type="application/pdf"
        )

        content = publish_upload(request, "ana", storage, mock_llm_client, limits)

        attachments = mock_llm_client.simple_json.call_args.kwargs["attachments"]
        assert attachments[0].data_uri == (
            "data:application/pdf;base64," + base64.b64encode(pdf).decode("ascii")
        )
        assert content.text_data is None
