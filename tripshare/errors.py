"""Application error taxonomy and its HTTP rendering.

Services raise these; the handlers registered by :func:`register_error_handlers`
turn them into ``{"error", "message"[, "reason"]}`` JSON bodies.
"""

import logging
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class AppError(Exception):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    error = "Internal Error"

    def __init__(self, message: str, reason: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.reason = reason

    def to_body(self) -> dict:
        body = {"error": self.error, "message": self.message}
        if self.reason:
            body["reason"] = self.reason
        return body


class ValidationError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    error = "Bad Request"


class AuthenticationError(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    error = "Unauthorized"


class AuthorizationError(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    error = "Forbidden"


class NotFoundError(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    error = "Not Found"


class ConflictError(AppError):
    status_code = status.HTTP_409_CONFLICT
    error = "Conflict"


class RateLimitError(AppError):
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    error = "Too Many Requests"

    def __init__(self, message: str, retry_after: int):
        super().__init__(message, reason="rate_limited")
        self.retry_after = retry_after


class InternalError(AppError):
    pass


class InviteUnavailableError(AppError):
    """An invite code that cannot be accepted. ``reason`` says why."""

    error = "Bad Request"

    def __init__(self, reason: str, message: str):
        super().__init__(message, reason=reason)
        if reason == "not_found":
            self.status_code = status.HTTP_404_NOT_FOUND
            self.error = "Not Found"
        else:
            self.status_code = status.HTTP_400_BAD_REQUEST


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(AppError)
    async def _app_error(request: Request, exc: AppError):
        headers = None
        if isinstance(exc, RateLimitError):
            headers = {"Retry-After": str(exc.retry_after)}
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        return JSONResponse(status_code=exc.status_code, content=exc.to_body(), headers=headers)

    @app.exception_handler(RequestValidationError)
    async def _request_validation_error(request: Request, exc: RequestValidationError):
        first = exc.errors()[0] if exc.errors() else {}
        field = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
        message = f"{field}: {first.get('msg', 'invalid')}" if field else "Invalid request"
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": "Bad Request", "message": message},
        )
