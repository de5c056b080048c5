from datetime import datetime
from pydantic import BaseModel


class ApprovalRequestBody(BaseModel):
    """Body for requesting access. Fields are validated by the intake service, so missing or null values get the usual 400 reply."""
    email: str | None = None
    reason: str | None = None
    password: str | None = None


class ApprovalSubmitResponse(BaseModel):
    success: bool
    message: str


class ApprovalRequestOut(BaseModel):
    """Admin list item. Never exposes the password hash or the token."""
    id: str
    email: str
    reason: str
    status: str
    created_at: datetime
    approved_at: datetime | None
    approved_by: str | None

    class Config:
        from_attributes = True


class DecisionResponse(BaseModel):
    success: bool
    email: str
    action: str
    message: str
