"""Feedback API endpoints."""

import logging
from typing import Any, Optional, Union

from litestar import Controller, Request, Response, get, patch, post
from litestar.status_codes import HTTP_201_CREATED, HTTP_400_BAD_REQUEST
from pydantic import BaseModel
from sqlalchemy import desc, func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.guard import require_admin_token
from app.models import Feedback, FeedbackStatus, FeedbackType
from app.models.base import utcnow
from app.services.stats import clamp_page, pagination
from app.utils.logging import error_log, mask_email
from app.utils.request import request_metadata
from app.utils.responses import ApiError, database_error, ok, utc_timestamp
from app.utils.validation import MAX_EMAIL_LENGTH, is_email_format, is_message_long_enough

logger = logging.getLogger("Selah.feedback")

DEFAULT_PAGE_SIZE = 20
MAX_SOURCE_LENGTH = 50
MAX_NAME_LENGTH = 200
MAX_SUBJECT_LENGTH = 300


# --- Request Schemas ---

class SubmitFeedbackRequest(BaseModel):
    """Request to submit feedback."""
    type: Optional[str] = None
    name: Optional[str] = None
    email: Optional[str] = None
    subject: Optional[str] = None
    message: Optional[str] = None
    source: Optional[str] = None


class UpdateFeedbackStatusRequest(BaseModel):
    """Admin status change."""
    id: Optional[Union[int, str]] = None
    status: Optional[str] = None


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


def _parse_id(raw: Union[int, str]) -> Optional[int]:
    try:
        return int(str(raw).strip())
    except ValueError:
        return None


# --- Controller ---

class FeedbackController(Controller):
    """Feedback submission and admin triage."""

    path = "/api/feedback"
    tags = ["feedback"]

    @post("/")
    async def submit_feedback(
        self,
        request: Request,
        data: SubmitFeedbackRequest,
        session: AsyncSession,
    ) -> Response:
        """Store a feedback message. Every submission creates a new row."""
        if not is_message_long_enough(data.message):
            raise ApiError(
                HTTP_400_BAD_REQUEST,
                "message_too_short",
                "Please provide a message with at least 5 characters",
            )

        feedback_type = _clean(data.type) or FeedbackType.FEEDBACK.value
        if feedback_type not in {t.value for t in FeedbackType}:
            raise ApiError(HTTP_400_BAD_REQUEST, "invalid_type", "Unknown feedback type")

        email = _clean(data.email)
        if email is not None and (len(email) > MAX_EMAIL_LENGTH or not is_email_format(email)):
            raise ApiError(HTTP_400_BAD_REQUEST, "invalid_email_format", "Please enter a valid email address")

        name = _clean(data.name)
        subject = _clean(data.subject)
        if name is not None and len(name) > MAX_NAME_LENGTH:
            raise ApiError(HTTP_400_BAD_REQUEST, "validation_error", f"Name must be at most {MAX_NAME_LENGTH} characters")
        if subject is not None and len(subject) > MAX_SUBJECT_LENGTH:
            raise ApiError(
                HTTP_400_BAD_REQUEST, "validation_error", f"Subject must be at most {MAX_SUBJECT_LENGTH} characters"
            )

        source = (_clean(data.source) or "unknown")[:MAX_SOURCE_LENGTH]
        metadata = {
            **request_metadata(request.headers),
            "source": source,
            "timestamp": utc_timestamp(),
        }

        feedback = Feedback(
            type=feedback_type,
            name=name,
            email=email,
            subject=subject,
            message=data.message.strip(),
            source=source,
            meta=metadata,
            status=FeedbackStatus.NEW.value,
        )
        try:
            session.add(feedback)
            await session.commit()
            await session.refresh(feedback)
        except SQLAlchemyError as e:
            await session.rollback()
            error_log("Database error saving feedback", exc=e, context={"type": feedback_type, "source": source}, log=logger)
            raise database_error()

        logger.info(f"Feedback {feedback.id} ({feedback_type}) saved from {mask_email(email)}")

        return ok(
            data=feedback.to_dict(),
            message="Thank you for your feedback",
            status_code=HTTP_201_CREATED,
        )

    @get("/", guards=[require_admin_token])
    async def list_feedback(
        self,
        session: AsyncSession,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE,
        type: Optional[str] = None,
        status: Optional[str] = None,
    ) -> Response:
        """Paginated feedback, newest first, with type and status counts."""
        page, limit = clamp_page(page, limit, DEFAULT_PAGE_SIZE)

        filters = []
        if type:
            filters.append(Feedback.type == type)
        if status:
            filters.append(Feedback.status == status)

        try:
            stmt = (
                select(Feedback)
                .where(*filters)
                .order_by(desc(Feedback.created_at), desc(Feedback.id))
                .offset((page - 1) * limit)
                .limit(limit)
            )
            items = (await session.execute(stmt)).scalars().all()
            total = (await session.execute(select(func.count(Feedback.id)).where(*filters))).scalar() or 0
            by_type = await _count_by(session, Feedback.type, filters)
            by_status = await _count_by(session, Feedback.status, filters)
        except SQLAlchemyError as e:
            error_log("Database error listing feedback", exc=e, context={"page": page, "limit": limit}, log=logger)
            raise database_error()

        return ok(
            data={
                "feedback": [item.to_dict() for item in items],
                "pagination": pagination(page, limit, total),
                "summary": {
                    "totalFeedback": total,
                    "byType": by_type,
                    "byStatus": by_status,
                },
            },
            message="Feedback retrieved successfully",
        )

    @patch("/", guards=[require_admin_token])
    async def update_feedback_status(
        self,
        data: UpdateFeedbackStatusRequest,
        session: AsyncSession,
    ) -> Response:
        """Set a feedback row's status. Unknown ids succeed with nothing updated."""
        if data.id is None or str(data.id).strip() == "" or not _clean(data.status):
            raise ApiError(HTTP_400_BAD_REQUEST, "missing_fields", "ID and status are required")

        status = _clean(data.status).lower()
        if status not in {s.value for s in FeedbackStatus}:
            raise ApiError(HTTP_400_BAD_REQUEST, "invalid_status", "Status must be new, read or responded")

        feedback_id = _parse_id(data.id)
        rows = 0
        if feedback_id is not None:
            try:
                result = await session.execute(
                    update(Feedback)
                    .where(Feedback.id == feedback_id)
                    .values(status=status, updated_at=utcnow())
                )
                await session.commit()
                rows = result.rowcount or 0
            except SQLAlchemyError as e:
                await session.rollback()
                error_log("Database error updating feedback", exc=e, context={"id": data.id, "status": status}, log=logger)
                raise database_error()

        logger.info(f"Feedback {data.id} marked {status} ({rows} row(s))")

        return ok(
            data={"id": str(data.id), "status": status, "updated": rows},
            message="Feedback status updated",
        )


async def _count_by(session: AsyncSession, column: Any, filters: list) -> dict[str, int]:
    result = await session.execute(
        select(column, func.count(Feedback.id)).where(*filters).group_by(column)
    )
    return {key: count for key, count in result.all()}
