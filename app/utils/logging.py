"""Logging helpers shared by the API handlers."""

import logging
import traceback
from os import getenv
from typing import Any, Optional

# Read from the environment at import; create_app() replaces it with Settings.debug
DEBUG = getenv("APP_DEBUG", "false").lower() == "true"

logger = logging.getLogger("Selah")


def set_debug(enabled: bool) -> None:
    """Switch debug logging for the Selah loggers on or off."""
    global DEBUG
    DEBUG = enabled
    logger.setLevel(logging.DEBUG if enabled else logging.INFO)


def mask_email(email: Optional[str]) -> str:
    """Mask the local part of an address for log output (t***@example.com)."""
    if not email or "@" not in email:
        return "<none>"
    local, domain = email.rsplit("@", 1)
    return f"{local[:1]}***@{domain}"


def debug_log(message: str, *args, **kwargs) -> None:
    """Log a debug message only if APP_DEBUG is enabled."""
    if DEBUG:
        level = kwargs.pop("level", logging.DEBUG)
        logger.log(level, message, *args, **kwargs)


def error_log(
    message: str,
    exc: Optional[Exception] = None,
    context: Optional[dict] = None,
    log: Optional[logging.Logger] = None,
) -> None:
    """
    Log an error with optional exception and context.

    Args:
        message: Error message
        exc: Optional exception object
        context: Optional dictionary with additional context (path, email, params)
        log: Logger to write to, defaults to the Selah root logger
    """
    target = log or logger
    parts = [message]

    if context:
        parts.append("Context: " + ", ".join(f"{k}={v}" for k, v in context.items()))

    if exc:
        parts.append(f"Exception: {type(exc).__name__}: {exc}")
        if DEBUG:
            parts.append(
                "Traceback:\n"
                + "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
            )

    full_message = " | ".join(parts)
    if exc:
        target.error(full_message, exc_info=exc)
    else:
        target.error(full_message)


def log_request_error(request: Any, exc: Exception, message: Optional[str] = None) -> None:
    """Log an unhandled exception with the request's path, method and user agent."""
    context = {}
    url = getattr(request, "url", None)
    if url is not None:
        context["path"] = getattr(url, "path", str(url))
    if hasattr(request, "method"):
        context["method"] = request.method
    headers = getattr(request, "headers", None)
    if headers is not None:
        context["user_agent"] = headers.get("user-agent", "unknown")

    error_log(message or f"Unhandled exception: {type(exc).__name__}", exc=exc, context=context)
