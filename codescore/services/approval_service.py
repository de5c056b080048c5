"""
Access approval workflow.

    submit_request:  {email, reason, password} -> pending row + admin email with approve/deny links
    decide:          (token, action) -> approved (account created) | denied

A request leaves `pending` exactly once. decide() claims the row with a single
conditional UPDATE on (approval_token, status='pending') before doing anything
else, so a replayed or concurrent call for the same token matches zero rows.
On approve, the account insert shares that transaction: a provisioning failure
rolls the claim back and the request stays pending for a retry.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable

from sqlalchemy import func, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from codescore.auth import hash_password
from codescore.config import get_settings
from codescore.errors import (
    AccountCreationError,
    AccountExistsError,
    DuplicateRequestError,
    InvalidOrExpiredTokenError,
    ProviderError,
    ValidationError,
    WeakCredentialError,
)
from codescore.models.approval_request import ApprovalAction, ApprovalRequest, ApprovalStatus
from codescore.models.approved_user import ApprovedUser
from codescore.models.user import User
from codescore.services.notifications import NotificationDispatcher
from codescore.services.provisioner import LocalAccountProvisioner
from codescore.services.tokens import new_approval_token

logger = logging.getLogger(__name__)


@dataclass
class DecisionResult:
    success: bool
    email: str
    action: str
    message: str


def normalize_email(email: str | None) -> str:
    return (email or "").strip().lower()


def _notify(send: Callable[[], object], what: str) -> None:
    """Run a notification; never let it fail the workflow."""
    try:
        send()
    except Exception:
        logger.exception("Notification failed: %s", what)


def submit_request(
    db: Session,
    email: str,
    reason: str,
    password: str,
    dispatcher: NotificationDispatcher,
) -> ApprovalRequest:
    settings = get_settings()
    email = normalize_email(email)
    reason = (reason or "").strip()
    if not email or not reason or not password or not password.strip():
        raise ValidationError("Email, reason, and password are required")
    if "@" not in email:
        raise ValidationError("Please enter a valid email address")
    if len(password) < settings.min_password_length:
        raise ValidationError(f"Password must be at least {settings.min_password_length} characters")

    if db.query(User.id).filter(func.lower(User.email) == email).first():
        raise ValidationError("An account with this email already exists. Please sign in.")
    pending = (
        db.query(ApprovalRequest.id)
        .filter(
            ApprovalRequest.email == email,
            ApprovalRequest.status == ApprovalStatus.PENDING.value,
        )
        .first()
    )
    if pending:
        raise DuplicateRequestError("An approval request for this email already exists.")

    req = ApprovalRequest(
        email=email,
        reason=reason,
        password_hash=hash_password(password),
        status=ApprovalStatus.PENDING.value,
        approval_token=new_approval_token(),
    )
    db.add(req)
    try:
        db.commit()
    except IntegrityError as e:
        # Lost a race against a concurrent request for the same email
        db.rollback()
        raise DuplicateRequestError("An approval request for this email already exists.") from e
    db.refresh(req)
    logger.info("Approval request %s created for %s", req.id, email)

    token = req.approval_token
    _notify(lambda: dispatcher.notify_admin_of_request(email, reason, token), "admin approval request")
    return req


def decide(
    db: Session,
    token: str,
    action: str,
    decided_by: str,
    provisioner: LocalAccountProvisioner,
    dispatcher: NotificationDispatcher | None = None,
) -> DecisionResult:
    try:
        action = ApprovalAction(action)
    except ValueError:
        raise ValidationError("action must be 'approve' or 'deny'") from None
    if not token:
        raise InvalidOrExpiredTokenError()

    terminal = ApprovalStatus.APPROVED if action == ApprovalAction.APPROVE else ApprovalStatus.DENIED
    now = datetime.utcnow()
    try:
        result = db.execute(
            update(ApprovalRequest)
            .where(
                ApprovalRequest.approval_token == token,
                ApprovalRequest.status == ApprovalStatus.PENDING.value,
            )
            .values(status=terminal.value, approved_at=now, approved_by=decided_by)
            .execution_options(synchronize_session=False)
        )
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("Approval claim failed")
        raise ProviderError("Approval store error") from e
    if result.rowcount != 1:
        db.rollback()
        raise InvalidOrExpiredTokenError()

    req = (
        db.query(ApprovalRequest)
        .populate_existing()
        .filter(ApprovalRequest.approval_token == token)
        .one()
    )
    email = req.email

    if action == ApprovalAction.APPROVE:
        try:
            provisioner.provision(db, email, req.password_hash, decided_by)
            db.add(ApprovedUser(email=email, approved_by=decided_by, approved_at=now))
            db.commit()
        except (AccountExistsError, WeakCredentialError) as e:
            db.rollback()
            logger.warning("Approval of %s not applied: %s", email, e.message)
            raise
        except Exception as e:
            db.rollback()
            logger.exception("Account creation failed for %s", email)
            raise AccountCreationError() from e
        message = "User approved and account created successfully"
    else:
        db.commit()
        message = "User access denied"

    logger.info("Approval request %s %s by %s", req.id, terminal.value, decided_by)
    if dispatcher is not None:
        _notify(lambda: dispatcher.notify_requester_of_decision(email, action), "requester decision")
    return DecisionResult(success=True, email=email, action=action.value, message=message)


def decide_by_id(
    db: Session,
    request_id: str,
    action: str,
    decided_by: str,
    provisioner: LocalAccountProvisioner,
    dispatcher: NotificationDispatcher | None = None,
) -> DecisionResult:
    """Admin panel path: same transition, addressed by request id instead of the emailed link."""
    req = db.query(ApprovalRequest).filter(ApprovalRequest.id == request_id).first()
    if not req or req.status != ApprovalStatus.PENDING.value:
        raise InvalidOrExpiredTokenError()
    return decide(db, req.approval_token, action, decided_by, provisioner, dispatcher)


def list_requests(db: Session, status_filter: str | None = None) -> list[ApprovalRequest]:
    q = db.query(ApprovalRequest).order_by(ApprovalRequest.created_at.desc())
    if status_filter and status_filter.lower() in {s.value for s in ApprovalStatus}:
        q = q.filter(ApprovalRequest.status == status_filter.lower())
    return q.all()
