"""API error type, JSON error envelope, and the exception handlers installed on the app."""

import logging
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.config import settings

logger = logging.getLogger(__name__)

_HTTP_ERROR_CODES = {
    status.HTTP_404_NOT_FOUND: "ENDPOINT_NOT_FOUND",
    status.HTTP_405_METHOD_NOT_ALLOWED: "METHOD_NOT_ALLOWED",
}


class ApiError(Exception):
    """Raised by services and dependencies; rendered as {success: false, error: {...}}."""

    def __init__(
        self,
        status_code: int,
        code: str,
        message: str,
        details: Any = None,
        extra: dict[str, Any] | None = None,
    ) -> None:
        self.status_code = status_code
        self.code = code
        self.message = message
        self.details = details
        self.extra = extra or {}
        super().__init__(message)


def error_response(
    status_code: int,
    code: str,
    message: str,
    details: Any = None,
    extra: dict[str, Any] | None = None,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    """Build the standard error envelope."""
    error: dict[str, Any] = {"message": message, "code": code}
    if details is not None:
        error["details"] = details
    if extra:
        error.update(extra)
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": error},
        headers=headers,
    )


def _validation_details(exc: RequestValidationError) -> list[dict[str, str]]:
    """Flatten pydantic errors to [{field, message}]; input values are not echoed back."""
    details = []
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path")]
        details.append(
            {
                "field": ".".join(loc) if loc else "body",
                "message": str(err.get("msg", "Invalid value")).removeprefix("Value error, "),
            }
        )
    return details


async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    headers = None
    if exc.status_code == status.HTTP_401_UNAUTHORIZED:
        headers = {"WWW-Authenticate": "Bearer"}
    return error_response(
        exc.status_code, exc.code, exc.message, exc.details, exc.extra, headers=headers
    )


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    details = _validation_details(exc)
    logger.warning(
        "Validation failed",
        extra={"path": request.url.path, "method": request.method, "fields": [d["field"] for d in details]},
    )
    return error_response(
        status.HTTP_400_BAD_REQUEST, "VALIDATION_ERROR", "Validation failed", details
    )


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    code = _HTTP_ERROR_CODES.get(exc.status_code, "HTTP_ERROR")
    message = exc.detail if isinstance(exc.detail, str) else "Request failed"
    extra = {"path": request.url.path} if exc.status_code == status.HTTP_404_NOT_FOUND else None
    return error_response(exc.status_code, code, message, extra=extra, headers=exc.headers)


async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    client = request.client.host if request.client else None
    logger.warning("Rate limit exceeded", extra={"ip": client, "path": request.url.path})
    return error_response(
        status.HTTP_429_TOO_MANY_REQUESTS,
        "RATE_LIMIT_EXCEEDED",
        str(exc.detail) if exc.detail else "Too many requests, please try again later",
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(
        "Unhandled error", extra={"path": request.url.path, "method": request.method}
    )
    message = "Internal server error" if settings.APP_ENV == "prod" else str(exc)
    return error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR, "INTERNAL_SERVER_ERROR", message
    )


def install_exception_handlers(app: FastAPI) -> None:
    """Register every handler so that all failures share the same envelope."""
    app.add_exception_handler(ApiError, api_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(RateLimitExceeded, rate_limit_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
