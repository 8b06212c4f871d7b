"""Exception hierarchy and the handler that renders it over HTTP."""

import structlog
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

logger = structlog.get_logger()


class ClickTrailError(Exception):
    """Base exception for the service.

    Each subclass maps to one HTTP status. ``message`` is what callers see.
    """

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str = "Internal server error"):
        self.message = message
        super().__init__(message)


class BadRequestError(ClickTrailError):
    """Missing or invalid input."""

    status_code = status.HTTP_400_BAD_REQUEST


class UnauthorizedError(ClickTrailError):
    """No authenticated session."""

    status_code = status.HTTP_401_UNAUTHORIZED

    def __init__(self, message: str = "Authentication required"):
        super().__init__(message)


class ForbiddenError(ClickTrailError):
    """Session lacks rights on the resource."""

    status_code = status.HTTP_403_FORBIDDEN


class NotFoundError(ClickTrailError):
    """Resource absent, or not servable.

    ``reason`` is for logs only. Redirect callers get a uniform message so that
    link existence does not leak across hosts.
    """

    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, message: str = "Not found", reason: str = "not_found"):
        self.reason = reason
        super().__init__(message)


class ConflictError(ClickTrailError):
    """Uniqueness violation, e.g. a short code already taken."""

    status_code = status.HTTP_409_CONFLICT


class InternalError(ClickTrailError):
    """Store failures and exhausted retries."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


async def clicktrail_error_handler(request: Request, exc: ClickTrailError) -> JSONResponse:
    """Render a ClickTrailError as ``{"detail": message}``."""
    if exc.status_code >= 500:
        logger.error("Request failed", path=request.url.path, error=exc.message)
    headers = None
    if isinstance(exc, UnauthorizedError):
        headers = {"WWW-Authenticate": "Bearer"}
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message},
        headers=headers,
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Attach the error handler to the application."""
    app.add_exception_handler(ClickTrailError, clicktrail_error_handler)
