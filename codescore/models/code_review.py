"""AI review of a code snippet or SQL query. Deleted by the retention sweep after review_retention_days."""
import uuid
from datetime import datetime
from sqlalchemy import Column, String, Text, Integer, DateTime, ForeignKey
from codescore.database import Base


class CodeReview(Base):
    __tablename__ = "code_reviews"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    code_content = Column(Text, nullable=False)
    review_result = Column(Text, nullable=False)  # opaque provider output
    score = Column(Integer, nullable=True)  # 1-10 if found in review_result
    language = Column(String(32), nullable=False)
    filename = Column(String(255), nullable=True)
    # SQL reviews only: production context sent with the query
    table_structures = Column(Text, nullable=True)
    data_volume = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)
