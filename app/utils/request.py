"""Request metadata extraction."""

from typing import Any, Mapping


def get_client_ip(headers: Mapping[str, str]) -> str:
    """
    Best-effort client address.

    First entry of X-Forwarded-For, else X-Real-IP, else "unknown".
    """
    forwarded = headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    real_ip = headers.get("x-real-ip")
    if real_ip and real_ip.strip():
        return real_ip.strip()
    return "unknown"


def request_metadata(headers: Mapping[str, str]) -> dict[str, Any]:
    return {
        "userAgent": headers.get("user-agent", ""),
        "referer": headers.get("referer", ""),
        "ipAddress": get_client_ip(headers),
    }
