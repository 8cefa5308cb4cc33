"""Email signup API endpoints."""

import logging
from typing import Any, Optional

from litestar import Controller, Request, Response, get, post
from litestar.status_codes import HTTP_200_OK, HTTP_201_CREATED, HTTP_400_BAD_REQUEST
from pydantic import BaseModel
from sqlalchemy import desc, func, or_, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.guard import require_admin_token
from app.models import EmailRecord, EmailSource, SignupLocation
from app.models.base import utcnow
from app.services.engagement import (
    EngagementContext,
    build_engagement_data,
    merge_platform_update,
    platform_changed,
    signup_message,
)
from app.services.stats import clamp_page, compute_page_stats, pagination
from app.utils.logging import debug_log, error_log, mask_email
from app.utils.request import request_metadata
from app.utils.responses import ApiError, database_error, ok
from app.utils.validation import normalize_email, validate_email

logger = logging.getLogger("Selah.emails")

DEFAULT_PAGE_SIZE = 50


# --- Request Schemas ---

class SubmitEmailRequest(BaseModel):
    """Signup form submission."""
    email: Optional[str] = None
    source: Optional[str] = None
    context: Optional[dict[str, Any]] = None


def _resolve_source(raw: Optional[str]) -> str:
    if raw is None or not raw.strip():
        return EmailSource.LANDING_PAGE.value
    source = raw.strip().lower()
    if source not in {s.value for s in EmailSource}:
        raise ApiError(HTTP_400_BAD_REQUEST, "invalid_source", "Unknown signup source")
    return source


def _signup_payload(
    record: EmailRecord,
    created: bool,
    updated: bool,
    suggestions: list[str],
) -> dict[str, Any]:
    blob = record.engagement_data or {}
    payload = {
        "id": str(record.id),
        "email": record.email,
        "source": record.source,
        "platformPreference": blob.get("platformPreference"),
        "createdAt": record.created_at.isoformat() if record.created_at else None,
        "updatedAt": record.updated_at.isoformat() if record.updated_at else None,
        "duplicate": not created,
        "updated": updated,
    }
    if suggestions:
        payload["suggestions"] = suggestions
    return payload


# --- Controller ---

class EmailsController(Controller):
    """Signup collection and the admin listing."""

    path = "/api/emails"
    tags = ["emails"]

    @post("/")
    async def submit_email(
        self,
        request: Request,
        data: SubmitEmailRequest,
        session: AsyncSession,
    ) -> Response:
        """Create a signup, or update an existing one when the platform changes."""
        validation = validate_email(data.email)
        if not validation.is_valid:
            raise ApiError(HTTP_400_BAD_REQUEST, validation.error, validation.message)

        canonical = normalize_email(data.email)
        source = _resolve_source(data.source)
        context = EngagementContext.from_raw(data.context)
        snapshot = build_engagement_data(
            request_metadata(request.headers), source, data.context, context
        )

        debug_log(
            "Signup snapshot for %s: source=%s platform=%s location=%s metrics=%s",
            mask_email(canonical),
            source,
            context.platform,
            context.location,
            snapshot["sessionMetrics"],
        )

        # Insert first; the unique index decides whether the address is new
        record = EmailRecord(email=canonical, source=source, engagement_data=snapshot)
        try:
            session.add(record)
            await session.commit()
            await session.refresh(record)
        except IntegrityError:
            await session.rollback()
            logger.info(f"Signup for {mask_email(canonical)} already exists")
        except SQLAlchemyError as e:
            await session.rollback()
            error_log("Database error creating signup", exc=e, context={"email": mask_email(canonical)}, log=logger)
            raise database_error()
        else:
            logger.info(f"New signup {mask_email(canonical)} from {source}")
            return ok(
                data=_signup_payload(record, True, False, validation.suggestions),
                message=signup_message(context.platform, source, existing=False),
                status_code=HTTP_201_CREATED,
            )

        return await self._update_existing(session, canonical, source, snapshot, context, validation.suggestions)

    async def _update_existing(
        self,
        session: AsyncSession,
        canonical: str,
        source: str,
        snapshot: dict[str, Any],
        context: EngagementContext,
        suggestions: list[str],
    ) -> Response:
        try:
            result = await session.execute(select(EmailRecord).where(EmailRecord.email == canonical))
            existing = result.scalar_one_or_none()
            if existing is None:
                raise database_error()

            updated = platform_changed(existing.engagement_data, context)
            if updated:
                existing.engagement_data = merge_platform_update(existing.engagement_data, snapshot, source)
                existing.updated_at = utcnow()
                await session.commit()
                await session.refresh(existing)
                logger.info(
                    f"Updated platform preference for {mask_email(canonical)} to {context.platform}"
                )
        except SQLAlchemyError as e:
            await session.rollback()
            error_log("Database error updating signup", exc=e, context={"email": mask_email(canonical)}, log=logger)
            raise database_error()

        platform = context.platform or (existing.engagement_data or {}).get("platformPreference")
        return ok(
            data=_signup_payload(existing, False, updated, suggestions),
            message=signup_message(platform, source, existing=True),
            status_code=HTTP_200_OK,
        )

    @get("/", guards=[require_admin_token])
    async def list_emails(
        self,
        session: AsyncSession,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE,
        source: Optional[str] = None,
        platform: Optional[str] = None,
        location: Optional[str] = None,
    ) -> Response:
        """Paginated signups, newest first, with statistics over the page."""
        page, limit = clamp_page(page, limit, DEFAULT_PAGE_SIZE)

        filters = []
        if source:
            filters.append(EmailRecord.source == source)
        if platform:
            filters.append(EmailRecord.engagement_data["platformPreference"].as_string() == platform)
        if location:
            location_expr = EmailRecord.engagement_data["location"].as_string()
            if location == SignupLocation.UNKNOWN.value:
                filters.append(or_(location_expr == location, location_expr.is_(None)))
            else:
                filters.append(location_expr == location)

        try:
            stmt = (
                select(EmailRecord)
                .where(*filters)
                .order_by(desc(EmailRecord.created_at), desc(EmailRecord.id))
                .offset((page - 1) * limit)
                .limit(limit)
            )
            records = list((await session.execute(stmt)).scalars().all())
            total = (
                await session.execute(select(func.count(EmailRecord.id)).where(*filters))
            ).scalar() or 0
        except SQLAlchemyError as e:
            error_log("Database error listing signups", exc=e, context={"page": page, "limit": limit}, log=logger)
            raise database_error()

        return ok(
            data={
                "emails": [record.to_dict() for record in records],
                "pagination": pagination(page, limit, total),
                "analytics": compute_page_stats(records),
            },
            message="Emails retrieved successfully",
        )
