"""Selah database models."""

from app.models.base import Base
from app.models.email import EmailRecord, EmailSource, PlatformPreference, SignupLocation
from app.models.feedback import Feedback, FeedbackStatus, FeedbackType
from app.models.analytics import AnalyticsRecord

__all__ = [
    "Base",
    "EmailRecord",
    "EmailSource",
    "PlatformPreference",
    "SignupLocation",
    "Feedback",
    "FeedbackStatus",
    "FeedbackType",
    "AnalyticsRecord",
]
