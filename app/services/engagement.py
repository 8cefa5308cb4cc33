"""Engagement blob construction for email signups."""

import math
from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.models.email import EmailSource, PlatformPreference

UPDATE_ACTION_PLATFORM = "platform_preference_updated"


def _as_number(value: Any) -> float:
    """Finite float from a client value; anything else (NaN, Infinity, text) is 0."""
    if isinstance(value, str):
        value = value.strip()
    elif not isinstance(value, (bool, int, float)):
        return 0.0
    try:
        number = float(value)
    except (ValueError, OverflowError):
        return 0.0
    return number if math.isfinite(number) else 0.0


def _finite_json(value: Any) -> Any:
    """Copy of a decoded JSON value with NaN and infinities replaced by None."""
    if isinstance(value, float):
        return value if math.isfinite(value) else None
    if isinstance(value, dict):
        return {key: _finite_json(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_finite_json(item) for item in value]
    return value


def _as_int_if_whole(value: float) -> float | int:
    return int(value) if float(value).is_integer() else value


class EngagementContext(BaseModel):
    """Client session context sent along with a signup."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    session_time: float = Field(default=0, alias="sessionTime")
    breath_interactions: float = Field(default=0, alias="breathInteractions")
    scroll_depth: float = Field(default=0, alias="scrollDepth")
    platform_preference: Optional[PlatformPreference] = Field(default=None, alias="platformPreference")
    location: Optional[str] = None

    @field_validator("session_time", "breath_interactions", "scroll_depth", mode="before")
    @classmethod
    def _coerce_number(cls, value: Any) -> float:
        return max(_as_number(value), 0.0)

    @field_validator("platform_preference", mode="before")
    @classmethod
    def _coerce_platform(cls, value: Any) -> Optional[str]:
        if isinstance(value, str) and value.strip().lower() in {p.value for p in PlatformPreference}:
            return value.strip().lower()
        return None

    @field_validator("location", mode="before")
    @classmethod
    def _coerce_location(cls, value: Any) -> Optional[str]:
        if isinstance(value, str) and value.strip():
            return value.strip()[:50]
        return None

    @classmethod
    def from_raw(cls, raw: Optional[dict[str, Any]]) -> "EngagementContext":
        return cls.model_validate(raw or {})

    @property
    def platform(self) -> Optional[str]:
        return self.platform_preference.value if self.platform_preference else None

    def session_metrics(self) -> dict[str, Any]:
        return {
            "timeSpent": _as_int_if_whole(self.session_time),
            "breathInteractions": _as_int_if_whole(self.breath_interactions),
            "scrollDepth": _as_int_if_whole(self.scroll_depth),
        }


def source_context(source: str) -> dict[str, bool]:
    return {
        "fromHero": source == EmailSource.HERO_SECTION.value,
        "fromOrb": source == EmailSource.ORB_INTERACTION.value,
        "fromChambers": source == EmailSource.CHAMBERS_DEMO.value,
        "fromContract": source == EmailSource.CONTRACT_SECTION.value,
    }


def build_engagement_data(
    metadata: dict[str, Any],
    source: str,
    raw_context: Optional[dict[str, Any]],
    context: EngagementContext,
) -> dict[str, Any]:
    """Snapshot of request headers and client context at submission time."""
    return {
        "userAgent": metadata.get("userAgent", ""),
        "referer": metadata.get("referer", ""),
        "ipAddress": metadata.get("ipAddress", "unknown"),
        "source": source,
        "context": _finite_json(dict(raw_context or {})),
        "platformPreference": context.platform,
        "location": context.location,
        "sessionMetrics": context.session_metrics(),
        "sourceContext": source_context(source),
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


def platform_changed(existing: Optional[dict[str, Any]], context: EngagementContext) -> bool:
    """A repeat signup only writes when it brings a different platform preference."""
    if context.platform is None:
        return False
    return (existing or {}).get("platformPreference") != context.platform


def merge_platform_update(
    existing: Optional[dict[str, Any]],
    snapshot: dict[str, Any],
    source: str,
) -> dict[str, Any]:
    """Fold a new snapshot into the stored blob and append one history entry."""
    previous = dict(existing or {})
    history = list(previous.get("updateHistory") or [])
    history.append({
        "timestamp": snapshot.get("timestamp") or datetime.now(timezone.utc).isoformat(),
        "source": source,
        "platformPreference": snapshot.get("platformPreference"),
        "location": snapshot.get("location"),
        "action": UPDATE_ACTION_PLATFORM,
    })
    merged = {**previous, **snapshot}
    merged["updateHistory"] = history
    return merged


# --- Response copy

def signup_message(platform: Optional[str], source: str, existing: bool) -> str:
    if existing:
        if platform == PlatformPreference.ANDROID.value:
            return "Your Android beta access is confirmed. Details are coming soon."
        if platform == PlatformPreference.IOS.value:
            return "You're on the iOS waitlist. We'll let you know when SELAH reaches iPhone."
        if source == EmailSource.HERO_SECTION.value:
            return "Welcome back to the journey. You're already on the list."
        return "Welcome back. You're already part of SELAH."

    if platform == PlatformPreference.ANDROID.value:
        return "Welcome to the Android beta! Access details are on their way."
    if platform == PlatformPreference.IOS.value:
        return "You're on the iOS waitlist. We'll reach out as soon as SELAH arrives on iPhone."
    if source == EmailSource.HERO_SECTION.value:
        return "Welcome to the journey. Early access details will follow."
    if source == EmailSource.ORB_INTERACTION.value:
        return "You breathed with us. Welcome to the journey."
    return "Welcome to SELAH. We'll be in touch soon."
