"""Audit list of approved emails, written in the same transaction as the approval."""
import uuid
from datetime import datetime
from sqlalchemy import Column, String, DateTime
from codescore.database import Base


class ApprovedUser(Base):
    __tablename__ = "approved_users"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    email = Column(String(255), nullable=False, index=True)
    approved_by = Column(String(255), nullable=False)
    approved_at = Column(DateTime, nullable=False, default=datetime.utcnow)
