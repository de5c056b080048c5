"""Public view of a shared review. The signed token is the only credential."""
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from codescore.database import get_db
from codescore.models.code_review import CodeReview
from codescore.schemas.review import SharedReport
from codescore.services.tokens import decode_share_token

router = APIRouter(prefix="/api/shared", tags=["shared"])


@router.get("/{token}", response_model=SharedReport)
def get_shared_review(token: str, db: Session = Depends(get_db)):
    decoded = decode_share_token(token)
    if not decoded:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Shared report not found or expired")
    review_id, shared_at = decoded
    row = db.query(CodeReview).filter(CodeReview.id == review_id).first()
    if not row:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Shared report not found or expired")
    return SharedReport(
        id=row.id,
        code=row.code_content,
        review=row.review_result,
        score=row.score,
        language=row.language,
        filename=row.filename,
        created_at=row.created_at,
        shared_at=shared_at,
    )
