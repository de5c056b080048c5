import uuid
import enum
from datetime import datetime
from sqlalchemy import Column, String, Text, DateTime, Index, text
from codescore.database import Base


class ApprovalStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    DENIED = "denied"


class ApprovalAction(str, enum.Enum):
    APPROVE = "approve"
    DENY = "deny"


class ApprovalRequest(Base):
    """Access request from someone without an account. Decided once by the admin via token link."""
    __tablename__ = "user_approvals"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    email = Column(String(255), nullable=False, index=True)
    reason = Column(Text, nullable=False)
    password_hash = Column(String(255), nullable=False)
    status = Column(String(20), nullable=False, default=ApprovalStatus.PENDING.value)
    approval_token = Column(String(64), nullable=False, unique=True, index=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    approved_at = Column(DateTime, nullable=True)
    approved_by = Column(String(255), nullable=True)

    # One pending request per email
    __table_args__ = (
        Index(
            "ix_user_approvals_email_pending",
            "email",
            unique=True,
            postgresql_where=text("status = 'pending'"),
            sqlite_where=text("status = 'pending'"),
        ),
    )
