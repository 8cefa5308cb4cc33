"""Email signup model."""

import enum
from typing import Any, Optional

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base, JSONType


class EmailSource(str, enum.Enum):
    """Page sections that collect signups."""
    LANDING_PAGE = "landing-page"
    HERO_SECTION = "hero-section"
    ORB_INTERACTION = "orb-interaction"
    CONTRACT_SECTION = "contract-section"
    CHAMBERS_DEMO = "chambers-demo"


class PlatformPreference(str, enum.Enum):
    """Mobile platform a visitor asked for."""
    ANDROID = "android"
    IOS = "ios"


class SignupLocation(str, enum.Enum):
    """Where on the page the signup form sat."""
    HERO = "hero"
    BOTTOM = "bottom"
    UNKNOWN = "unknown"


class EmailRecord(Base):
    """One row per canonical (trimmed, lower-cased) email address."""

    __tablename__ = "emails"

    email: Mapped[str] = mapped_column(String(320), unique=True, index=True, nullable=False)
    source: Mapped[str] = mapped_column(
        String(50),
        default=EmailSource.LANDING_PAGE.value,
        server_default=EmailSource.LANDING_PAGE.value,
        index=True,
    )
    engagement_data: Mapped[Optional[dict[str, Any]]] = mapped_column(JSONType, nullable=True)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": str(self.id),
            "email": self.email,
            "source": self.source,
            "engagementData": self.engagement_data or {},
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self) -> str:
        return f"<EmailRecord {self.id} ({self.source})>"
