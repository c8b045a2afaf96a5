"""
Database Models for the Local Submission Record

Every handled submission is retained locally regardless of spam or
delivery outcome; this table is the system of record when the helpdesk
is unavailable or unconfigured.
"""

import uuid
from datetime import datetime
from typing import Any, Dict

from sqlalchemy import JSON, Boolean, Column, DateTime, Integer, String, Text
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class DeliveryStatus:
    """Delivery states stored on a submission record."""
    PENDING = "pending"
    NOT_SENT = "not_sent"
    QUEUED = "queued"
    DELIVERED = "delivered"
    FAILED = "failed"


class SubmissionRecord(Base):
    """
    Stored support form submission with spam and delivery flags.
    """
    __tablename__ = "support_submissions"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    form_handle = Column(String(100), nullable=False, index=True)
    email = Column(String(255), nullable=True, index=True)
    data = Column(JSON, nullable=False, default=dict)

    # Spam flags
    is_spam = Column(Boolean, default=False, nullable=False)
    spam_reason = Column(String(50), nullable=True)

    # Delivery tracking
    delivery_status = Column(String(20), default=DeliveryStatus.PENDING, nullable=False, index=True)
    case_id = Column(String(100), nullable=True)
    attempts = Column(Integer, default=0, nullable=False)
    last_error = Column(Text, nullable=True)

    # Timestamps
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    def to_dict(self) -> Dict[str, Any]:
        """Convert record to dictionary representation."""
        return {
            "id": self.id,
            "form_handle": self.form_handle,
            "email": self.email,
            "data": self.data,
            "is_spam": self.is_spam,
            "spam_reason": self.spam_reason,
            "delivery_status": self.delivery_status,
            "case_id": self.case_id,
            "attempts": self.attempts,
            "last_error": self.last_error,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
