"""Response envelope and the API error type."""

from datetime import datetime, timezone
from typing import Any, Optional

from litestar import Request, Response
from litestar.exceptions import HTTPException
from litestar.status_codes import (
    HTTP_200_OK,
    HTTP_400_BAD_REQUEST,
    HTTP_401_UNAUTHORIZED,
    HTTP_403_FORBIDDEN,
    HTTP_404_NOT_FOUND,
    HTTP_500_INTERNAL_SERVER_ERROR,
)

from app.utils.logging import log_request_error

GENERIC_ERROR_MESSAGE = "An error occurred, please try again"


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def envelope(
    success: bool,
    data: Any = None,
    error: Optional[str] = None,
    message: Optional[str] = None,
) -> dict[str, Any]:
    """Build the `{success, data?, error?, message?, timestamp}` body."""
    body: dict[str, Any] = {"success": success}
    if data is not None:
        body["data"] = data
    if error is not None:
        body["error"] = error
    if message is not None:
        body["message"] = message
    body["timestamp"] = utc_timestamp()
    return body


def ok(data: Any = None, message: Optional[str] = None, status_code: int = HTTP_200_OK) -> Response:
    return Response(content=envelope(True, data=data, message=message), status_code=status_code)


class ApiError(HTTPException):
    """A request failure with a stable error tag and a user-facing message."""

    status_code = HTTP_400_BAD_REQUEST

    def __init__(self, status_code: int, error: str, message: str) -> None:
        super().__init__(detail=message, status_code=status_code)
        self.error = error
        self.message = message


def database_error() -> ApiError:
    return ApiError(HTTP_500_INTERNAL_SERVER_ERROR, "database_error", GENERIC_ERROR_MESSAGE)


# --- Exception handlers


def handle_api_error(request: Request, exc: ApiError) -> Response:
    return Response(
        content=envelope(False, error=exc.error, message=exc.message),
        status_code=exc.status_code,
    )


def handle_validation_error(request: Request, exc: HTTPException) -> Response:
    return Response(
        content=envelope(False, error="validation_error", message="Invalid request data"),
        status_code=HTTP_400_BAD_REQUEST,
    )


def handle_not_authorized(request: Request, exc: HTTPException) -> Response:
    return Response(
        content=envelope(False, error="unauthorized", message="Authentication required"),
        status_code=HTTP_401_UNAUTHORIZED,
    )


def handle_permission_denied(request: Request, exc: HTTPException) -> Response:
    return Response(
        content=envelope(False, error="forbidden", message="Access denied"),
        status_code=HTTP_403_FORBIDDEN,
    )


def handle_not_found(request: Request, exc: HTTPException) -> Response:
    return Response(
        content=envelope(False, error="not_found", message="Resource not found"),
        status_code=HTTP_404_NOT_FOUND,
    )


def log_exceptions(request: Request, exc: Exception) -> Response:
    log_request_error(request, exc)
    return Response(
        content=envelope(False, error="internal_error", message=GENERIC_ERROR_MESSAGE),
        status_code=HTTP_500_INTERNAL_SERVER_ERROR,
    )


def handle_http_exception(request: Request, exc: HTTPException) -> Response:
    return Response(
        content=envelope(False, error="http_error", message=exc.detail),
        status_code=exc.status_code,
    )
