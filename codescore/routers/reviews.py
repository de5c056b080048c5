"""
Code and SQL reviews:
- POST /api/reviews/code — review a snippet (session required, else redirect to request-access)
- POST /api/reviews/code/upload — review an uploaded .java/.js/.py file
- POST /api/reviews/sql — review a query against the fixed production schema + data volumes
- GET /api/reviews — own history (search + language filter)
- GET /api/reviews/{id}
- POST /api/reviews/{id}/share — signed link, valid while the review is retained
"""
import logging
from fastapi import APIRouter, Depends, HTTPException, status, UploadFile, File, Form
from fastapi.concurrency import run_in_threadpool
from sqlalchemy import or_
from sqlalchemy.orm import Session

from codescore.auth import get_current_user, require_session
from codescore.config import get_settings
from codescore.database import get_db
from codescore.errors import ProviderError, ProviderTimeoutError, ValidationError
from codescore.models.code_review import CodeReview
from codescore.models.user import User
from codescore.schemas.review import (
    CodeReviewOut,
    CodeReviewRequest,
    ReviewListResponse,
    ShareResponse,
    SqlReviewRequest,
)
from codescore.services import review_service
from codescore.services.sql_context import data_volume_text, table_structures_text
from codescore.services.tokens import create_share_token

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/reviews", tags=["reviews"])

MAX_UPLOAD_BYTES = 512 * 1024


def _provider_http_error(e: ProviderError) -> HTTPException:
    if isinstance(e, ProviderTimeoutError):
        return HTTPException(
            status_code=status.HTTP_504_GATEWAY_TIMEOUT,
            detail="AI service timed out. Please try again.",
        )
    return HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=e.message)


def _save_review(db: Session, user: User, code: str, review: str, language: str, **extra) -> CodeReview:
    row = CodeReview(
        user_id=user.id,
        code_content=code,
        review_result=review,
        score=review_service.extract_score(review),
        language=language,
        **extra,
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


def _review_code(db: Session, user: User, code: str, language: str | None, filename: str | None) -> CodeReview:
    if not code or not code.strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Please enter some code to review")
    try:
        lang = review_service.normalize_language(language)
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message) from e
    try:
        review = review_service.generate_code_review(code, lang)
    except ProviderError as e:
        logger.exception("Code review failed for user %s", user.id)
        raise _provider_http_error(e) from e
    return _save_review(db, user, code, review, lang, filename=filename)


@router.post("/code", response_model=CodeReviewOut)
def review_code(
    body: CodeReviewRequest,
    user: User = Depends(require_session),
    db: Session = Depends(get_db),
):
    return _review_code(db, user, body.code, body.language, body.filename)


@router.post("/code/upload", response_model=CodeReviewOut)
async def review_code_upload(
    file: UploadFile = File(...),
    language: str | None = Form(None),
    user: User = Depends(require_session),
    db: Session = Depends(get_db),
):
    """Language comes from the form field, else from the file extension."""
    data = await file.read()
    if len(data) > MAX_UPLOAD_BYTES:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="File too large (max 512 KB).")
    try:
        code = data.decode("utf-8")
    except UnicodeDecodeError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="File must be UTF-8 text.") from e
    lang = language or review_service.detect_language(file.filename) or "auto"
    return await run_in_threadpool(_review_code, db, user, code, lang, file.filename)


@router.post("/sql", response_model=CodeReviewOut)
def review_sql(
    body: SqlReviewRequest,
    user: User = Depends(require_session),
    db: Session = Depends(get_db),
):
    if not body.query.strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Please enter a SQL query")
    tables = table_structures_text()
    volumes = data_volume_text()
    try:
        review = review_service.generate_sql_review(body.query, tables, volumes)
    except ProviderError as e:
        logger.exception("SQL review failed for user %s", user.id)
        raise _provider_http_error(e) from e
    return _save_review(
        db, user, body.query, review, "sql",
        table_structures=tables,
        data_volume=volumes,
    )


@router.get("", response_model=ReviewListResponse)
def list_my_reviews(
    q: str | None = None,
    language: str | None = None,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Own reviews, newest first. q searches code, review text and filename (case-insensitive)."""
    base = db.query(CodeReview).filter(CodeReview.user_id == user.id)
    languages = sorted({row.language for row in base.with_entities(CodeReview.language).distinct()})

    query = base
    if q and q.strip():
        pattern = f"%{q.strip()}%"
        query = query.filter(
            or_(
                CodeReview.code_content.ilike(pattern),
                CodeReview.review_result.ilike(pattern),
                CodeReview.filename.ilike(pattern),
            )
        )
    if language and language != "all":
        query = query.filter(CodeReview.language == language)
    rows = query.order_by(CodeReview.created_at.desc()).all()
    return ReviewListResponse(
        reviews=[CodeReviewOut.model_validate(r) for r in rows],
        languages=languages,
    )


def _get_own_review(db: Session, user: User, review_id: str) -> CodeReview:
    row = db.query(CodeReview).filter(CodeReview.id == review_id).first()
    if not row or row.user_id != user.id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Review not found")
    return row


@router.get("/{review_id}", response_model=CodeReviewOut)
def get_my_review(
    review_id: str,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return CodeReviewOut.model_validate(_get_own_review(db, user, review_id))


@router.post("/{review_id}/share", response_model=ShareResponse)
def share_review(
    review_id: str,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    row = _get_own_review(db, user, review_id)
    token, expires_at = create_share_token(row.id)
    share_url = f"{get_settings().frontend_url.rstrip('/')}/shared/{token}"
    return ShareResponse(share_url=share_url, token=token, expires_at=expires_at)
