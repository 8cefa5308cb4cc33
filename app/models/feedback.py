"""Feedback model for visitor feedback and inquiries."""

import enum
from typing import Any, Optional

from sqlalchemy import String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base, JSONType


class FeedbackType(str, enum.Enum):
    FEEDBACK = "feedback"
    QUESTION = "question"
    CONTACT = "contact"
    BUG_REPORT = "bug-report"
    FEATURE_REQUEST = "feature-request"


class FeedbackStatus(str, enum.Enum):
    NEW = "new"
    READ = "read"
    RESPONDED = "responded"


class Feedback(Base):
    """Visitor feedback submission. Only `status` changes after creation."""

    __tablename__ = "feedback"

    type: Mapped[str] = mapped_column(String(30), default=FeedbackType.FEEDBACK.value, index=True)
    name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    email: Mapped[Optional[str]] = mapped_column(String(320), nullable=True)
    subject: Mapped[Optional[str]] = mapped_column(String(300), nullable=True)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    source: Mapped[str] = mapped_column(String(50), default="unknown")
    # `metadata` is reserved on declarative classes
    meta: Mapped[Optional[dict[str, Any]]] = mapped_column("metadata", JSONType, nullable=True)
    status: Mapped[str] = mapped_column(
        String(20),
        default=FeedbackStatus.NEW.value,
        server_default=FeedbackStatus.NEW.value,
        index=True,
    )

    def to_dict(self) -> dict[str, Any]:
        meta = self.meta or {}
        return {
            "id": str(self.id),
            "type": self.type,
            "name": self.name,
            "email": self.email,
            "subject": self.subject,
            "message": self.message,
            "source": self.source,
            "status": self.status,
            "userAgent": meta.get("userAgent", ""),
            "ipAddress": meta.get("ipAddress", ""),
            "timestamp": self.created_at.isoformat() if self.created_at else None,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self) -> str:
        return f"<Feedback {self.id} {self.type} ({self.status})>"
