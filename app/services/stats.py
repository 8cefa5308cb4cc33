"""Statistics over email signups: per listing page and for the admin dashboard."""

import math
from datetime import date, datetime, timedelta, timezone
from typing import Any, Iterable, Optional

from litestar.status_codes import HTTP_400_BAD_REQUEST

from app.models.email import EmailRecord, EmailSource, PlatformPreference, SignupLocation
from app.utils.responses import ApiError

DAILY_STATS_DAYS = 7


def _metric(blob: dict[str, Any], key: str, context_key: str) -> float:
    """Session metric from `sessionMetrics`, falling back to the raw context."""
    metrics = blob.get("sessionMetrics") or {}
    value = metrics.get(key)
    if value is None:
        value = (blob.get("context") or {}).get(context_key)
    try:
        number = float(value or 0)
    except (TypeError, ValueError, OverflowError):
        return 0.0
    # Rows stored before non-finite input was rejected may still hold NaN or inf
    return number if math.isfinite(number) else 0.0


def _finite(total: float) -> float:
    return total if math.isfinite(total) else 0.0


def platform_stats(blobs: list[dict[str, Any]]) -> dict[str, int]:
    stats = {PlatformPreference.ANDROID.value: 0, PlatformPreference.IOS.value: 0, "unspecified": 0}
    for blob in blobs:
        platform = blob.get("platformPreference")
        if platform in (PlatformPreference.ANDROID.value, PlatformPreference.IOS.value):
            stats[platform] += 1
        else:
            stats["unspecified"] += 1
    return stats


def source_stats(sources: Iterable[str]) -> dict[str, int]:
    stats = {source.value: 0 for source in EmailSource}
    for source in sources:
        if source in stats:
            stats[source] += 1
    return stats


def location_stats(blobs: list[dict[str, Any]]) -> dict[str, int]:
    stats = {location.value: 0 for location in SignupLocation}
    for blob in blobs:
        location = blob.get("location")
        if location in (SignupLocation.HERO.value, SignupLocation.BOTTOM.value):
            stats[location] += 1
        else:
            stats[SignupLocation.UNKNOWN.value] += 1
    return stats


def conversion_metrics(blobs: list[dict[str, Any]]) -> dict[str, Any]:
    # Empty page divides by one so every mean is 0
    count = max(len(blobs), 1)
    total_interactions = _finite(sum(_metric(b, "breathInteractions", "breathInteractions") for b in blobs))
    total_time = _finite(sum(_metric(b, "timeSpent", "sessionTime") for b in blobs))
    total_scroll = _finite(sum(_metric(b, "scrollDepth", "scrollDepth") for b in blobs))
    platforms = platform_stats(blobs)

    return {
        "totalInteractions": int(total_interactions),
        "avgSessionTime": round(total_time / count),
        "avgScrollDepth": round(total_scroll / count, 2),
        "platformConversionRates": {
            PlatformPreference.ANDROID.value: round(platforms["android"] / count * 100, 1),
            PlatformPreference.IOS.value: round(platforms["ios"] / count * 100, 1),
        },
    }


def compute_page_stats(records: list[EmailRecord]) -> dict[str, Any]:
    """Breakdowns over the returned page only, not the whole table."""
    blobs = [record.engagement_data or {} for record in records]
    return {
        "platformStats": platform_stats(blobs),
        "sourceStats": source_stats(record.source for record in records),
        "locationStats": location_stats(blobs),
        "conversionMetrics": conversion_metrics(blobs),
    }


# --- Admin dashboard


def engagement_summary(blobs: list[dict[str, Any]]) -> dict[str, Any]:
    """Mean session time and total breath interactions across `blobs`."""
    count = max(len(blobs), 1)
    total_time = _finite(sum(_metric(b, "timeSpent", "sessionTime") for b in blobs))
    total_breaths = _finite(sum(_metric(b, "breathInteractions", "breathInteractions") for b in blobs))
    return {
        "averageTimeSpent": round(total_time / count),
        "totalOrbInteractions": int(total_breaths),
    }


def day_key(value: Any) -> str:
    """ISO date for a `created_at` value or a SQL `date()` result."""
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    return str(value)[:10]


def daily_window(now: datetime, days: int = DAILY_STATS_DAYS) -> tuple[datetime, list[str]]:
    """UTC midnight that opens the window, and the ISO dates it covers, oldest first."""
    first = now.astimezone(timezone.utc).date() - timedelta(days=days - 1)
    start = datetime(first.year, first.month, first.day, tzinfo=timezone.utc)
    return start, [(first + timedelta(days=offset)).isoformat() for offset in range(days)]


def daily_stats(
    days: list[str],
    platform_counts: Iterable[tuple[Any, Optional[str], int]],
    blobs_by_day: dict[str, list[dict[str, Any]]],
) -> list[dict[str, Any]]:
    """
    One entry per day in `days`, days without signups included.

    Args:
        days: ISO dates, oldest first
        platform_counts: (day, platformPreference, count) rows grouped in SQL
        blobs_by_day: engagement blobs of each day's signups
    """
    series = {
        day: {
            "date": day,
            "emails": 0,
            "avgTimeSpent": 0,
            "orbInteractions": 0,
            "platformBreakdown": {PlatformPreference.ANDROID.value: 0, PlatformPreference.IOS.value: 0, "unspecified": 0},
        }
        for day in days
    }

    for day, platform, count in platform_counts:
        entry = series.get(day_key(day))
        if entry is None:
            continue
        entry["emails"] += count
        if platform not in (PlatformPreference.ANDROID.value, PlatformPreference.IOS.value):
            platform = "unspecified"
        entry["platformBreakdown"][platform] += count

    for day, blobs in blobs_by_day.items():
        entry = series.get(day)
        if entry is None or not blobs:
            continue
        summary = engagement_summary(blobs)
        entry["avgTimeSpent"] = summary["averageTimeSpent"]
        entry["orbInteractions"] = summary["totalOrbInteractions"]

    return list(series.values())



def pagination(page: int, limit: int, total: int) -> dict[str, Any]:
    return {
        "page": page,
        "limit": limit,
        "total": total,
        "totalPages": math.ceil(total / limit) if limit else 0,
        "hasNext": page * limit < total,
        "hasPrev": page > 1,
    }


MAX_PAGE_SIZE = 200
MAX_PAGE_NUMBER = 1_000_000


def clamp_page(page: int, limit: int, default_limit: int) -> tuple[int, int]:
    """
    Page is at least 1; a non-positive limit falls back to the default.

    Pages past MAX_PAGE_NUMBER are rejected so the OFFSET always fits the driver.
    """
    if page > MAX_PAGE_NUMBER:
        raise ApiError(HTTP_400_BAD_REQUEST, "validation_error", f"Page must be at most {MAX_PAGE_NUMBER}")
    page = max(page, 1)
    limit = limit if limit > 0 else default_limit
    return page, min(limit, MAX_PAGE_SIZE)
