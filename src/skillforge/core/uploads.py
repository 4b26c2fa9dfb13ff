"""Content upload pipeline.

An upload goes through three steps:
1. validate_upload: check the form fields and the file against the limits
2. describe_upload: ask the model to validate and describe the content,
   falling back to the uploader's description when AI is skipped or fails
3. publish_upload: store the file and create the content row
"""

from __future__ import annotations

import base64
from dataclasses import dataclass

import structlog

from skillforge.ai.flows import validate_and_describe_content
from skillforge.config.app_config import UploadLimits, load_app_config
from skillforge.core.errors import InvalidArgumentError
from skillforge.core.storage import LocalObjectStorage, build_storage_path
from skillforge.db.contents_repository import CONTENT_TYPES, ContentRecord, create_content
from skillforge.llm.client import LLMClient, LLMError
from skillforge.utils.text_utils import truncate
from skillforge.utils.validators import check_length

logger = structlog.get_logger(__name__)

MIN_TEXT_BODY = 100
MAX_MANUAL_DESCRIPTION = 5000
SUMMARY_LENGTH = 200

SKIPPED_LARGE_FILE = "AI description skipped due to large file size. Please add or edit manually."
SKIPPED_LARGE_TEXT = "AI description skipped due to large text content."
AI_FAILED = "AI processing failed. Please add description manually."
NO_DESCRIPTION = "No AI description available."
NO_SUMMARY = "No brief summary."


@dataclass
class UploadRequest:
    """Fields of the upload form.

    For text content exactly one of `file_bytes` or `text_body` is set.
    """

    title: str
    content_type: str
    tags: str
    file_bytes: bytes | None = None
    filename: str | None = None
    mime_type: str | None = None
    text_body: str | None = None
    manual_description: str | None = None

    @property
    def has_file(self) -> bool:
        return bool(self.file_bytes)

    @property
    def has_text_body(self) -> bool:
        return bool(self.text_body and self.text_body.strip())

    @property
    def tag_list(self) -> list[str]:
        return [t.strip() for t in self.tags.split(",") if t.strip()]


@dataclass
class UploadDescription:
    """Result of the AI step."""

    description: str
    is_educational: bool = True
    ai_used: bool = False


def validate_upload(request: UploadRequest, limits: UploadLimits | None = None) -> None:
    """Check an upload request, collecting every problem.

    Raises:
        InvalidArgumentError: With one entry in `problems` per failed rule
    """
    limits = limits or load_app_config().uploads
    problems: list[str] = []

    problem = check_length((request.title or "").strip(), "Title", min_len=5, max_len=150)
    if problem:
        problems.append(problem)

    tags = request.tags or ""
    if not tags.strip():
        problems.append("Please add at least one tag")
    elif any(not t.strip() for t in tags.split(",")):
        problems.append("Tags cannot be empty and must be comma-separated words")

    problem = check_length(
        request.manual_description, "Manual description", max_len=MAX_MANUAL_DESCRIPTION
    )
    if problem:
        problems.append(problem)

    if request.content_type not in CONTENT_TYPES:
        problems.append("Please select a content type: video, audio or text")
    elif request.content_type in ("video", "audio"):
        if not request.has_file:
            problems.append("A file is required for video or audio content")
        else:
            problems.extend(_check_file(request, limits, limits.max_media_bytes))
    else:
        if not request.has_file and not request.has_text_body:
            problems.append("Either upload a text file or enter text content directly")
        if request.has_file and request.has_text_body:
            problems.append("Please provide either a text file or direct text input, not both")
        if request.has_file:
            problems.extend(_check_file(request, limits, limits.max_text_bytes))
        if request.has_text_body and len(request.text_body.strip()) < MIN_TEXT_BODY:
            problems.append(f"Direct text input must be at least {MIN_TEXT_BODY} characters")

    if problems:
        raise InvalidArgumentError("; ".join(problems), problems)


def _check_file(request: UploadRequest, limits: UploadLimits, max_bytes: int) -> list[str]:
    problems = []
    accepted = limits.accepted_types(request.content_type)
    if request.mime_type not in accepted:
        problems.append(
            f"Invalid file type for {request.content_type}. Accepted: {', '.join(accepted)}"
        )
    if len(request.file_bytes) > max_bytes:
        problems.append(
            f"{request.content_type.capitalize()} file size exceeds "
            f"{max_bytes // (1024 * 1024)}MB limit"
        )
    return problems


def _to_data_uri(mime_type: str, data: bytes) -> str:
    return f"data:{mime_type};base64,{base64.b64encode(data).decode('ascii')}"


def describe_upload(
    request: UploadRequest, llm: LLMClient | None, limits: UploadLimits | None = None
) -> UploadDescription:
    """Run the AI validation and description step.

    Content above the AI size limit skips the model. Any model failure
    falls back to the manual description (or a notice) and marks the
    content as educational.
    """
    limits = limits or load_app_config().uploads
    manual = (request.manual_description or "").strip()

    if request.has_file:
        payload, mime_type = request.file_bytes, request.mime_type
        skipped_notice = SKIPPED_LARGE_FILE
    else:
        payload, mime_type = (request.text_body or "").encode("utf-8"), "text/plain"
        skipped_notice = SKIPPED_LARGE_TEXT

    if len(payload) > limits.max_ai_bytes:
        logger.info("uploads.ai_skipped", reason="too_large", size=len(payload))
        return UploadDescription(description=manual or skipped_notice)

    if llm is None:
        return UploadDescription(description=manual or AI_FAILED)

    try:
        result = validate_and_describe_content(
            _to_data_uri(mime_type, payload), request.content_type, llm
        )
    except (LLMError, InvalidArgumentError) as e:
        logger.warning("uploads.ai_failed", error=str(e))
        return UploadDescription(description=manual or AI_FAILED)

    if not result.is_valid:
        logger.info("uploads.flagged_not_educational", title=request.title)

    return UploadDescription(
        description=result.description or manual or NO_DESCRIPTION,
        is_educational=result.is_valid,
        ai_used=True,
    )


def publish_upload(
    request: UploadRequest,
    uploader_uid: str,
    storage: LocalObjectStorage,
    llm: LLMClient | None,
    limits: UploadLimits | None = None,
) -> ContentRecord:
    """Validate, describe, store and record an upload.

    Returns:
        The created ContentRecord

    Raises:
        InvalidArgumentError: If the request fails validation
    """
    limits = limits or load_app_config().uploads
    validate_upload(request, limits)
    described = describe_upload(request, llm, limits)

    storage_path = file_url = None
    if request.has_file:
        storage_path = build_storage_path(
            request.content_type, uploader_uid, request.filename or "upload"
        )
        file_url = storage.put(storage_path, request.file_bytes)

    manual = (request.manual_description or "").strip() or None
    content = create_content(
        uploader_uid=uploader_uid,
        title=request.title.strip(),
        content_type=request.content_type,
        tags=request.tag_list,
        ai_description=described.description or NO_DESCRIPTION,
        user_manual_description=manual,
        brief_summary=truncate(described.description or manual, SUMMARY_LENGTH) or NO_SUMMARY,
        is_educational=described.is_educational,
        storage_path=storage_path,
        file_url=file_url,
        mime_type=request.mime_type if request.has_file else "text/plain",
        file_size=len(request.file_bytes) if request.has_file else None,
        text_data=None if request.has_file else request.text_body,
    )

    logger.info(
        "uploads.published",
        content_id=content.content_id,
        uploader=uploader_uid,
        ai_used=described.ai_used,
    )
    return content
