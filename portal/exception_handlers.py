"""
Global Exception Handlers for the portal

Application errors render a standard envelope:
{
    "error": {
        "status_code": 400,
        "error_code": "INVALID_QUERY",
        "message": "Requested sort(s) `age` is not allowed.",
        "type": "Bad Request",
        "details": {"unknown": ["age"], "allowed": ["name", "email", "language"]},
        "path": "/dashboard"
    }
}

Validation failures use the form-friendly shape the client bundle reads:
{
    "message": "The provided two factor authentication code was invalid.",
    "errors": {"code": ["The provided two factor authentication code was invalid."]}
}
Messages are translated into ``request.state.locale``.
"""

import logging
from typing import Any

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, RedirectResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from portal.exceptions import ErrorCode, Message, PortalError, RedirectRequired, ValidationException
from portal.localisation import trans

logger = logging.getLogger(__name__)


def create_error_response(
    status_code: int,
    message: str,
    error_code: str | ErrorCode | None = None,
    details: dict[str, Any] | None = None,
    path: str | None = None,
) -> JSONResponse:
    """Create a standardized error response."""
    error_response: dict[str, Any] = {
        "error": {
            "status_code": status_code,
            "message": message,
            "type": get_error_type(status_code),
        }
    }

    if error_code:
        error_response["error"]["error_code"] = error_code.value if isinstance(error_code, ErrorCode) else error_code

    if details:
        error_response["error"]["details"] = details

    if path:
        error_response["error"]["path"] = path

    return JSONResponse(status_code=status_code, content=error_response)


def get_error_type(status_code: int) -> str:
    """Get a human-readable error type based on status code."""
    error_types = {
        400: "Bad Request",
        401: "Unauthorized",
        403: "Forbidden",
        404: "Not Found",
        405: "Method Not Allowed",
        409: "Conflict",
        422: "Validation Error",
        423: "Locked",
        429: "Too Many Requests",
        500: "Internal Server Error",
        503: "Service Unavailable",
    }
    return error_types.get(status_code, "Error")


def get_http_error_code(status_code: int) -> str:
    """Map HTTP status codes to error codes for HTTPException."""
    error_code_map = {
        400: ErrorCode.INVALID_QUERY.value,
        401: ErrorCode.AUTH_FAILED.value,
        403: ErrorCode.AUTH_PERMISSION_DENIED.value,
        404: ErrorCode.RESOURCE_NOT_FOUND.value,
        422: ErrorCode.VALIDATION_FAILED.value,
        429: ErrorCode.RATE_LIMIT_EXCEEDED.value,
        500: ErrorCode.INTERNAL_ERROR.value,
        503: ErrorCode.SERVICE_UNAVAILABLE.value,
    }
    return error_code_map.get(status_code, ErrorCode.UNKNOWN_ERROR.value)


def request_locale(request: Request) -> str | None:
    return getattr(request.state, "locale", None)


def translate_message(message: Message, locale: str | None) -> str:
    if isinstance(message, tuple):
        key, replace = message
        return trans(key, locale, **replace)
    return trans(message, locale)


def create_validation_response(errors: dict[str, list[str]]) -> JSONResponse:
    messages = [message for field_messages in errors.values() for message in field_messages]
    message = messages[0] if messages else "The given data was invalid."
    if len(messages) > 1:
        message = f"{message} (and {len(messages) - 1} more error{'s' if len(messages) > 2 else ''})"

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"message": message, "errors": errors},
    )


async def portal_exception_handler(request: Request, exc: PortalError):
    """Handle application exceptions."""
    if isinstance(exc, RedirectRequired):
        return RedirectResponse(exc.url, status_code=exc.status_code)

    if isinstance(exc, ValidationException):
        return await validation_exception_handler(request, exc)

    log = logger.error if exc.status_code >= 500 else logger.warning
    log(
        f"PortalError: {exc.message}",
        extra={
            "status_code": exc.status_code,
            "error_code": exc.error_code.value,
            "path": request.url.path,
            "details": exc.details,
        },
    )

    return create_error_response(
        status_code=exc.status_code,
        message=exc.message,
        error_code=exc.error_code,
        details=exc.details if exc.details else None,
        path=request.url.path,
    )


async def validation_exception_handler(request: Request, exc: ValidationException) -> JSONResponse:
    """Translate rule failures into the request locale."""
    locale = request_locale(request)
    errors = {
        field: [translate_message(message, locale) for message in messages] for field, messages in exc.errors.items()
    }
    logger.info(f"Validation failed on {request.url.path}", extra={"fields": list(errors)})
    return create_validation_response(errors)


async def request_validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Handle Pydantic validation errors in the same shape as rule failures."""
    locale = request_locale(request)
    errors: dict[str, list[str]] = {}

    for error in exc.errors():
        field = ".".join(str(loc) for loc in error["loc"] if loc not in ("body", "query", "path", "form"))
        ctx = error.get("ctx") or {}
        if error["type"] == "missing":
            message = trans("validation.required", locale)
        elif error["type"] == "string_too_short":
            message = trans("validation.min", locale, attribute=field, min=ctx.get("min_length"))
        elif error["type"] == "string_too_long":
            message = trans("validation.max", locale, attribute=field, max=ctx.get("max_length"))
        else:
            message = trans("validation.invalid", locale, attribute=field)
        errors.setdefault(field, []).append(message)

    logger.warning(f"Validation error on {request.url.path}", extra={"fields": list(errors)})
    return create_validation_response(errors)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Handle standard HTTP exceptions."""
    logger.warning(
        f"HTTPException: {exc.detail}",
        extra={
            "status_code": exc.status_code,
            "path": request.url.path,
        },
    )

    return create_error_response(
        status_code=exc.status_code,
        message=str(exc.detail),
        error_code=get_http_error_code(exc.status_code),
        path=request.url.path,
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions without exposing internals."""
    logger.error(
        f"Unhandled exception: {str(exc)}",
        exc_info=True,
        extra={"path": request.url.path, "method": request.method},
    )

    return create_error_response(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        message=trans("errors.generic_description", request_locale(request)),
        error_code=ErrorCode.INTERNAL_ERROR,
        path=request.url.path,
    )


def register_exception_handlers(app) -> None:
    """Register all exception handlers with the FastAPI app."""
    app.add_exception_handler(PortalError, portal_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    logger.info("Exception handlers registered successfully")
