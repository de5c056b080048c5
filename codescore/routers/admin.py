"""
Admin panel API:
- GET /api/admin/approvals — all approval requests (optional ?status_filter=pending)
- POST /api/admin/approvals/{id}/{action} — approve/deny without the emailed link
- GET /api/admin/reviews — 100 newest reviews with owner email
- POST /api/admin/reviews/cleanup — run the retention sweep now
"""
import logging
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from codescore.auth import get_current_user_admin
from codescore.database import get_db
from codescore.errors import (
    AccountCreationError,
    AccountExistsError,
    InvalidOrExpiredTokenError,
    ProviderError,
    ValidationError,
    WeakCredentialError,
)
from codescore.models.code_review import CodeReview
from codescore.models.user import User
from codescore.schemas.approval import ApprovalRequestOut, DecisionResponse
from codescore.schemas.review import AdminReviewItem
from codescore.services.approval_service import decide_by_id, list_requests
from codescore.services.notifications import NotificationDispatcher, get_dispatcher
from codescore.services.provisioner import LocalAccountProvisioner, get_provisioner
from codescore.services.retention import sweep_expired_reviews

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin", tags=["admin"])


@router.get("/approvals", response_model=list[ApprovalRequestOut])
def admin_list_approvals(
    status_filter: str | None = None,
    _admin: User = Depends(get_current_user_admin),
    db: Session = Depends(get_db),
):
    return [ApprovalRequestOut.model_validate(r) for r in list_requests(db, status_filter)]


@router.post("/approvals/{request_id}/{action}", response_model=DecisionResponse)
def admin_decide(
    request_id: str,
    action: str,
    admin: User = Depends(get_current_user_admin),
    db: Session = Depends(get_db),
    provisioner: LocalAccountProvisioner = Depends(get_provisioner),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
):
    try:
        result = decide_by_id(db, request_id, action, admin.email, provisioner, dispatcher)
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message) from e
    except InvalidOrExpiredTokenError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.message) from e
    except (AccountExistsError, WeakCredentialError) as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=e.message) from e
    except (AccountCreationError, ProviderError) as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=e.message) from e
    return DecisionResponse(
        success=result.success,
        email=result.email,
        action=result.action,
        message=result.message,
    )


@router.get("/reviews", response_model=list[AdminReviewItem])
def admin_list_reviews(
    _admin: User = Depends(get_current_user_admin),
    db: Session = Depends(get_db),
):
    rows = (
        db.query(CodeReview, User.email)
        .join(User, CodeReview.user_id == User.id)
        .order_by(CodeReview.created_at.desc())
        .limit(100)
        .all()
    )
    return [
        AdminReviewItem(
            id=r.id,
            user_id=r.user_id,
            user_email=email,
            language=r.language,
            filename=r.filename,
            score=r.score,
            created_at=r.created_at,
        )
        for r, email in rows
    ]


@router.post("/reviews/cleanup")
def admin_cleanup_reviews(
    _admin: User = Depends(get_current_user_admin),
    db: Session = Depends(get_db),
):
    deleted = sweep_expired_reviews(db)
    return {"message": "Old reviews cleaned up successfully.", "deleted": deleted}
