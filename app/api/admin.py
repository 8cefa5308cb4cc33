"""Admin API endpoints."""

import csv
import io
import logging
from datetime import timedelta
from typing import Optional

from litestar import Controller, Request, Response, get, post
from litestar.status_codes import HTTP_200_OK, HTTP_400_BAD_REQUEST, HTTP_401_UNAUTHORIZED
from pydantic import BaseModel
from sqlalchemy import desc, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.guard import require_admin_token, verify_admin_secret
from app.models import EmailRecord, Feedback, FeedbackStatus
from app.models.base import utcnow
from app.services.stats import daily_stats, daily_window, day_key, engagement_summary
from app.utils.logging import error_log
from app.utils.request import get_client_ip
from app.utils.responses import ApiError, database_error, ok

logger = logging.getLogger("Selah.admin")

TOP_SOURCES_LIMIT = 5
EXPORT_FIELDS = ["id", "email", "source", "platformPreference", "location", "createdAt"]
EXPORT_FILENAME = "selah-emails"


# --- Request Schemas ---

class LoginRequest(BaseModel):
    """Admin login."""
    password: Optional[str] = None


async def _count(session: AsyncSession, column, *filters) -> int:
    return (await session.execute(select(func.count(column)).where(*filters))).scalar() or 0


def _export_row(record: EmailRecord) -> dict:
    blob = record.engagement_data or {}
    return {
        "id": str(record.id),
        "email": record.email,
        "source": record.source,
        "platformPreference": blob.get("platformPreference") or "",
        "location": blob.get("location") or "",
        "createdAt": record.created_at.isoformat() if record.created_at else "",
    }


# --- Controller ---

class AdminController(Controller):
    """Admin login and dashboard data."""

    path = "/api/admin"
    tags = ["admin"]

    @post("/")
    async def login(self, request: Request, data: LoginRequest) -> Response:
        """Exchange the admin password for the bearer token (the password itself)."""
        settings = request.app.state.settings
        if not verify_admin_secret(settings, data.password):
            logger.warning(f"Failed admin login from {get_client_ip(request.headers)}")
            raise ApiError(HTTP_401_UNAUTHORIZED, "invalid_credentials", "Incorrect password")

        logger.info(f"Admin login from {get_client_ip(request.headers)}")
        return ok(
            data={"token": settings.admin_password, "tokenType": "Bearer"},
            message="Authentication successful",
            status_code=HTTP_200_OK,
        )

    @get("/stats", guards=[require_admin_token])
    async def get_stats(self, session: AsyncSession) -> Response:
        """Whole-table dashboard figures."""
        try:
            total_emails = await _count(session, EmailRecord.id)
            now = utcnow()
            emails_last_24h = await _count(session, EmailRecord.id, EmailRecord.created_at >= now - timedelta(days=1))
            emails_last_7d = await _count(session, EmailRecord.id, EmailRecord.created_at >= now - timedelta(days=7))

            source_rows = (
                await session.execute(
                    select(EmailRecord.source, func.count(EmailRecord.id).label("count"))
                    .group_by(EmailRecord.source)
                    .order_by(desc("count"), EmailRecord.source)
                    .limit(TOP_SOURCES_LIMIT)
                )
            ).all()

            total_feedback = await _count(session, Feedback.id)
            unread_feedback = await _count(session, Feedback.id, Feedback.status == FeedbackStatus.NEW.value)
            by_type = dict(
                (await session.execute(select(Feedback.type, func.count(Feedback.id)).group_by(Feedback.type))).all()
            )
            by_status = dict(
                (await session.execute(select(Feedback.status, func.count(Feedback.id)).group_by(Feedback.status))).all()
            )

            window_start, days = daily_window(now)
            day = func.date(EmailRecord.created_at)
            platform = EmailRecord.engagement_data["platformPreference"].as_string()
            platform_counts = (
                await session.execute(
                    select(day, platform, func.count(EmailRecord.id))
                    .where(EmailRecord.created_at >= window_start)
                    .group_by(day, platform)
                )
            ).all()
            engagement_rows = (
                await session.execute(select(EmailRecord.created_at, EmailRecord.engagement_data))
            ).all()
        except SQLAlchemyError as e:
            error_log("Database error fetching stats", exc=e, log=logger)
            raise database_error()

        blobs = []
        blobs_by_day: dict[str, list] = {key: [] for key in days}
        for created_at, blob in engagement_rows:
            blobs.append(blob or {})
            key = day_key(created_at)
            if key in blobs_by_day:
                blobs_by_day[key].append(blob or {})
        engagement = engagement_summary(blobs)

        top_sources = [
            {
                "source": source,
                "count": count,
                "percentage": round(count / total_emails * 100, 1) if total_emails else 0,
            }
            for source, count in source_rows
        ]

        return ok(
            data={
                "totalEmails": total_emails,
                "emailsLast24h": emails_last_24h,
                "emailsLast7d": emails_last_7d,
                "averageTimeSpent": engagement["averageTimeSpent"],
                "totalOrbInteractions": engagement["totalOrbInteractions"],
                "topSources": top_sources,
                "totalFeedback": total_feedback,
                "unreadFeedback": unread_feedback,
                "feedbackByType": by_type,
                "feedbackByStatus": by_status,
                "dailyStats": daily_stats(days, platform_counts, blobs_by_day),
            },
            message="Dashboard data retrieved successfully",
        )

    @get("/export", guards=[require_admin_token])
    async def export_emails(self, session: AsyncSession, format: str = "json") -> Response:
        """Every signup as JSON or as a CSV attachment."""
        export_format = format.lower()
        if export_format not in ("json", "csv"):
            raise ApiError(HTTP_400_BAD_REQUEST, "validation_error", "Export format must be json or csv")

        try:
            records = (
                await session.execute(select(EmailRecord).order_by(desc(EmailRecord.created_at), desc(EmailRecord.id)))
            ).scalars().all()
        except SQLAlchemyError as e:
            error_log("Database error exporting emails", exc=e, log=logger)
            raise database_error()

        rows = [_export_row(record) for record in records]
        logger.info(f"Exported {len(rows)} signup(s) as {export_format}")

        if export_format == "json":
            return ok(
                data={
                    "format": "json",
                    "filename": f"{EXPORT_FILENAME}.json",
                    "size": len(rows),
                    "data": rows,
                },
                message="Export generated",
            )

        buffer = io.StringIO()
        writer = csv.DictWriter(buffer, fieldnames=EXPORT_FIELDS)
        writer.writeheader()
        writer.writerows(rows)
        return Response(
            content=buffer.getvalue(),
            media_type="text/csv",
            headers={"Content-Disposition": f'attachment; filename="{EXPORT_FILENAME}.csv"'},
        )
