from codescore.models.user import User, UserRole
from codescore.models.approval_request import ApprovalRequest, ApprovalStatus, ApprovalAction
from codescore.models.approved_user import ApprovedUser
from codescore.models.code_review import CodeReview

__all__ = [
    "User", "UserRole", "ApprovalRequest", "ApprovalStatus", "ApprovalAction",
    "ApprovedUser", "CodeReview",
]
