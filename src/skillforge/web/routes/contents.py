"""Content endpoints: upload, search, detail, comments, ratings and AI help."""

from fastapi import APIRouter, Depends, File, Form, HTTPException, Response, UploadFile, status

from skillforge.ai.flows import ask_content_chatbot, generate_quiz
from skillforge.core.storage import LocalObjectStorage
from skillforge.core.uploads import UploadRequest, publish_upload
from skillforge.db import comments_repository as comments
from skillforge.db import contents_repository as contents
from skillforge.db import ratings_repository as ratings
from skillforge.db.users_repository import UserProfile
from skillforge.llm.client import LLMClient
from skillforge.web.deps import get_current_profile, get_current_uid, get_llm_client, get_storage
from skillforge.web.schemas import (
    AnswerResponse,
    AskRequest,
    AuthorFacet,
    CommentCreate,
    CommentListResponse,
    CommentResponse,
    ContentListResponse,
    ContentQuizRequest,
    ContentResponse,
    FacetsResponse,
    QuizResponse,
    RatingRequest,
    RatingResponse,
)

router = APIRouter(prefix="/api/contents", tags=["contents"])

INLINE_TEXT_TYPES = ("text/plain", "text/markdown")


def content_response(content: contents.ContentRecord) -> ContentResponse:
    return ContentResponse.model_validate(content)


def _require_content(content_id: str) -> contents.ContentRecord:
    content = contents.get_content(content_id)
    if content is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Content '{content_id}' not found",
        )
    return content


def _content_text(content: contents.ContentRecord, storage: LocalObjectStorage) -> str:
    """Text the AI helpers work from: the body, a stored text file, or the description."""
    if content.text_data:
        return content.text_data
    if content.storage_path and content.mime_type in INLINE_TEXT_TYPES:
        try:
            return storage.get(content.storage_path).decode("utf-8", errors="replace")
        except FileNotFoundError:
            pass
    return content.description


@router.post("", response_model=ContentResponse, status_code=status.HTTP_201_CREATED)
def upload_content(
    title: str = Form(...),
    content_type: str = Form(...),
    tags: str = Form(...),
    text_body: str | None = Form(default=None),
    manual_description: str | None = Form(default=None),
    file: UploadFile | None = File(default=None),
    profile: UserProfile = Depends(get_current_profile),
    storage: LocalObjectStorage = Depends(get_storage),
    llm: LLMClient = Depends(get_llm_client),
) -> ContentResponse:
    """Upload and publish content (multipart form)."""
    file_bytes = file.file.read() if file is not None else None
    request = UploadRequest(
        title=title,
        content_type=content_type,
        tags=tags,
        file_bytes=file_bytes or None,
        filename=file.filename if file is not None else None,
        mime_type=file.content_type if file is not None else None,
        text_body=text_body,
        manual_description=manual_description,
    )
    content = publish_upload(request, profile.uid, storage, llm)
    return content_response(content)


@router.get("", response_model=ContentListResponse)
async def search_contents(
    q: str | None = None,
    content_type: str | None = None,
    tag: str | None = None,
    author: str | None = None,
    uid: str = Depends(get_current_uid),
) -> ContentListResponse:
    """Search recent content by text, type, tag and author."""
    items = contents.search_contents(
        term=q, content_type=content_type, tag=tag, author_uid=author
    )
    return ContentListResponse(contents=[content_response(c) for c in items], count=len(items))


@router.get("/facets", response_model=FacetsResponse)
async def get_facets(uid: str = Depends(get_current_uid)) -> FacetsResponse:
    """Tags and authors available as search filters."""
    return FacetsResponse(
        tags=contents.list_tags(),
        authors=[AuthorFacet(**a) for a in contents.list_authors()],
    )


@router.get("/{content_id}", response_model=ContentResponse)
async def get_content(content_id: str, uid: str = Depends(get_current_uid)) -> ContentResponse:
    """Get content details and count the view."""
    contents.increment_view_count(content_id)
    return content_response(_require_content(content_id))


@router.delete("/{content_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_content(
    content_id: str,
    uid: str = Depends(get_current_uid),
    storage: LocalObjectStorage = Depends(get_storage),
) -> Response:
    """Delete own content together with its file, comments and ratings."""
    contents.delete_content(content_id, uid, storage)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# =============================================================================
# COMMENTS
# =============================================================================


@router.post(
    "/{content_id}/comments",
    response_model=CommentResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_comment(
    content_id: str,
    data: CommentCreate,
    profile: UserProfile = Depends(get_current_profile),
) -> CommentResponse:
    """Comment on content or reply to a comment."""
    comment = comments.add_comment(content_id, profile.uid, data.text, data.parent_id)
    return CommentResponse.model_validate(comment)


@router.get("/{content_id}/comments", response_model=CommentListResponse)
async def list_comments(content_id: str, uid: str = Depends(get_current_uid)) -> CommentListResponse:
    """Comment threads on content."""
    _require_content(content_id)
    thread = comments.get_comment_thread(content_id)
    return CommentListResponse(
        comments=[CommentResponse.model_validate(c) for c in thread],
        count=len(thread),
    )


@router.delete("/{content_id}/comments/{comment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_comment(
    content_id: str, comment_id: str, uid: str = Depends(get_current_uid)
) -> Response:
    """Delete own comment and its replies."""
    comment = comments.get_comment(comment_id)
    if comment is None or comment.content_id != content_id:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Comment '{comment_id}' not found",
        )
    comments.delete_comment(comment_id, uid)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# =============================================================================
# RATINGS
# =============================================================================


@router.put("/{content_id}/rating", response_model=RatingResponse)
async def rate_content(
    content_id: str,
    data: RatingRequest,
    profile: UserProfile = Depends(get_current_profile),
) -> RatingResponse:
    """Rate content with 1 to 5 stars."""
    result = ratings.rate_content(content_id, profile.uid, data.stars)
    return RatingResponse(
        content_id=result.content_id,
        stars=result.stars,
        average_rating=result.average_rating,
        total_ratings=result.total_ratings,
        updated=result.updated,
    )


@router.get("/{content_id}/rating", response_model=RatingResponse)
async def get_rating(content_id: str, uid: str = Depends(get_current_uid)) -> RatingResponse:
    """Caller's rating and the content's aggregate."""
    content = _require_content(content_id)
    return RatingResponse(
        content_id=content_id,
        stars=ratings.get_user_rating(content_id, uid),
        average_rating=content.average_rating,
        total_ratings=content.total_ratings,
    )


# =============================================================================
# AI HELPERS
# =============================================================================


@router.post("/{content_id}/quiz", response_model=QuizResponse)
def content_quiz(
    content_id: str,
    data: ContentQuizRequest,
    uid: str = Depends(get_current_uid),
    storage: LocalObjectStorage = Depends(get_storage),
    llm: LLMClient = Depends(get_llm_client),
) -> QuizResponse:
    """Generate a quiz from a content item."""
    content = _require_content(content_id)
    result = generate_quiz(_content_text(content, storage), data.num_questions, llm)
    return QuizResponse(questions=result.questions)


@router.post("/{content_id}/ask", response_model=AnswerResponse)
def ask_about_content(
    content_id: str,
    data: AskRequest,
    uid: str = Depends(get_current_uid),
    storage: LocalObjectStorage = Depends(get_storage),
    llm: LLMClient = Depends(get_llm_client),
) -> AnswerResponse:
    """Ask the tutor bot a question about a content item."""
    content = _require_content(content_id)
    result = ask_content_chatbot(_content_text(content, storage), data.question, llm)
    return AnswerResponse(answer=result.answer)
