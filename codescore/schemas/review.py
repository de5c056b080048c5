from datetime import datetime
from pydantic import BaseModel, Field


class CodeReviewRequest(BaseModel):
    code: str = Field(..., max_length=200_000)
    language: str = "auto"
    filename: str | None = None


class SqlReviewRequest(BaseModel):
    query: str = Field(..., max_length=200_000)


class CodeReviewOut(BaseModel):
    id: str
    code_content: str
    review_result: str
    score: int | None
    language: str
    filename: str | None
    table_structures: str | None = None
    data_volume: str | None = None
    created_at: datetime

    class Config:
        from_attributes = True


class ReviewListResponse(BaseModel):
    reviews: list[CodeReviewOut]
    languages: list[str]


class ShareResponse(BaseModel):
    share_url: str
    token: str
    expires_at: datetime


class SharedReport(BaseModel):
    id: str
    code: str
    review: str
    score: int | None
    language: str
    filename: str | None
    created_at: datetime
    shared_at: datetime


class AdminReviewItem(BaseModel):
    id: str
    user_id: str
    user_email: str
    language: str
    filename: str | None
    score: int | None
    created_at: datetime
