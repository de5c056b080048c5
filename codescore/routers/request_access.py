"""
Request access (no account yet). Body: { "email", "reason", "password" }.
The admin gets an email with one-time approve/deny links (see routers/approvals.py).
"""
import logging
from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from codescore.database import get_db
from codescore.errors import DuplicateRequestError, ValidationError
from codescore.schemas.approval import ApprovalRequestBody, ApprovalSubmitResponse
from codescore.services.approval_service import submit_request
from codescore.services.notifications import NotificationDispatcher, get_dispatcher

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["request-access"])


@router.post("/request-access", response_model=ApprovalSubmitResponse)
def submit_request_access(
    body: ApprovalRequestBody,
    db: Session = Depends(get_db),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
):
    try:
        submit_request(db, body.email, body.reason, body.password, dispatcher)
    except (ValidationError, DuplicateRequestError) as e:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"success": False, "message": e.message},
        )
    except Exception:
        logger.exception("Access request failed")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"success": False, "message": "Internal server error"},
        )
    return ApprovalSubmitResponse(
        success=True,
        message="Approval request submitted successfully. You will receive an email once approved.",
    )
