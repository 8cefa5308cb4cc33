"""Session analytics model (write path lives in the client tracker)."""

from typing import Any, Optional

from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base, JSONType


class AnalyticsRecord(Base):
    """Aggregated per-session engagement."""

    __tablename__ = "analytics"

    session_id: Mapped[Optional[str]] = mapped_column(String(255), index=True, nullable=True)
    time_spent: Mapped[int] = mapped_column(Integer, default=0)
    max_scroll: Mapped[int] = mapped_column(Integer, default=0)
    breath_interactions: Mapped[int] = mapped_column(Integer, default=0)
    engagement_data: Mapped[Optional[dict[str, Any]]] = mapped_column(JSONType, nullable=True)

    def __repr__(self) -> str:
        return f"<AnalyticsRecord {self.session_id}>"
