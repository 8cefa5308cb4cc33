"""Selah API routes."""

from app.api.admin import AdminController
from app.api.emails import EmailsController
from app.api.feedback import FeedbackController
from app.api.health import health_check

__all__ = ["AdminController", "EmailsController", "FeedbackController", "health_check"]
