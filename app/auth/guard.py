"""Shared-secret admin guard.

There is exactly one admin credential, the configured ADMIN_PASSWORD. Login
hands it back as the bearer token and every guarded route compares the
`Authorization: Bearer <value>` header against it. Nothing is issued,
stored or expired.
"""

import logging
import secrets
from typing import Optional

from litestar.connection import ASGIConnection
from litestar.exceptions import NotAuthorizedException, PermissionDeniedException
from litestar.handlers.base import BaseRouteHandler

from app.config import Settings

logger = logging.getLogger("Selah.auth")

BEARER_PREFIX = "Bearer "


def verify_admin_secret(settings: Settings, candidate: Optional[str]) -> bool:
    """Constant-time comparison against the configured secret; fails closed."""
    if not settings.admin_password or candidate is None:
        return False
    return secrets.compare_digest(candidate.encode("utf-8"), settings.admin_password.encode("utf-8"))


def extract_bearer(authorization: Optional[str]) -> Optional[str]:
    if not authorization or not authorization.startswith(BEARER_PREFIX):
        return None
    return authorization[len(BEARER_PREFIX):]


def require_admin_token(connection: ASGIConnection, _: BaseRouteHandler) -> None:
    """Guard: 401 without a bearer header, 403 when the value is wrong."""
    token = extract_bearer(connection.headers.get("authorization"))
    if token is None:
        raise NotAuthorizedException("Authentication required")

    settings: Settings = connection.app.state.settings
    if not verify_admin_secret(settings, token):
        logger.warning(f"Rejected admin token for {connection.url.path}")
        raise PermissionDeniedException("Access denied")
