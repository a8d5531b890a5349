"""
Custom Exception Classes for the portal

Every application error carries an HTTP status, a machine-readable
``ErrorCode`` and optional details so handlers can render a consistent
envelope. Validation errors carry translation keys, not text.
"""

from enum import Enum
from typing import Any

from fastapi import status


class ErrorCode(str, Enum):
    """Machine-readable error codes, usable by clients for i18n."""

    AUTH_FAILED = "AUTH_FAILED"
    AUTH_PERMISSION_DENIED = "AUTH_PERMISSION_DENIED"
    PASSWORD_CONFIRMATION_REQUIRED = "PASSWORD_CONFIRMATION_REQUIRED"
    VALIDATION_FAILED = "VALIDATION_FAILED"
    INVALID_QUERY = "INVALID_QUERY"
    RESOURCE_NOT_FOUND = "RESOURCE_NOT_FOUND"
    RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"
    TWO_FACTOR_SETUP_FAILED = "TWO_FACTOR_SETUP_FAILED"
    INTERNAL_ERROR = "INTERNAL_ERROR"
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"


class PortalError(Exception):
    """Base exception class for all portal exceptions"""

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        error_code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)


# ============================================================================
# Authentication & Flow Control
# ============================================================================


class AuthenticationError(PortalError):
    """Raised when a request needs an authenticated user"""

    def __init__(self, message: str = "Unauthenticated."):
        super().__init__(message=message, status_code=status.HTTP_401_UNAUTHORIZED, error_code=ErrorCode.AUTH_FAILED)


class RedirectRequired(PortalError):
    """Short-circuits a request with a redirect (guest/auth/verified guards)."""

    def __init__(self, url: str, status_code: int = status.HTTP_303_SEE_OTHER):
        self.url = url
        super().__init__(message=f"Redirecting to {url}", status_code=status_code, error_code=ErrorCode.AUTH_FAILED)


class PasswordConfirmationRequired(PortalError):
    """Raised for JSON callers whose password confirmation has lapsed"""

    def __init__(self, message: str = "Password confirmation required."):
        super().__init__(
            message=message,
            status_code=status.HTTP_423_LOCKED,
            error_code=ErrorCode.PASSWORD_CONFIRMATION_REQUIRED,
        )


# ============================================================================
# Validation
# ============================================================================

# A message is a translation key, optionally with placeholder replacements
Message = str | tuple[str, dict[str, Any]]


class ValidationException(PortalError):
    """Raised when submitted input fails a validation rule.

    ``errors`` maps field names to lists of translation keys; the exception
    handler translates them into the request locale.
    """

    def __init__(self, errors: dict[str, list[Message]]):
        self.errors = errors
        super().__init__(
            message="The given data was invalid.",
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            error_code=ErrorCode.VALIDATION_FAILED,
        )

    @classmethod
    def with_messages(cls, **fields: Message) -> "ValidationException":
        return cls({field: [message] for field, message in fields.items()})


class InvalidQueryError(PortalError):
    """Raised when a listing is requested with a sort or filter it does not allow"""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(
            message=message,
            status_code=status.HTTP_400_BAD_REQUEST,
            error_code=ErrorCode.INVALID_QUERY,
            details=details,
        )


# ============================================================================
# Two-factor
# ============================================================================


class TwoFactorSetupError(PortalError):
    """Raised when two-factor authentication could not be enabled"""

    def __init__(self, message: str = "Two-factor authentication could not be enabled."):
        super().__init__(
            message=message,
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            error_code=ErrorCode.TWO_FACTOR_SETUP_FAILED,
        )


class InvalidSignatureError(PortalError):
    """Raised when a signed link is tampered with, expired or not the user's"""

    def __init__(self, message: str = "Invalid signature."):
        super().__init__(
            message=message,
            status_code=status.HTTP_403_FORBIDDEN,
            error_code=ErrorCode.AUTH_PERMISSION_DENIED,
        )


class AvatarProcessingError(PortalError):
    """Raised when an uploaded avatar cannot be read or converted"""

    def __init__(self, message: str = "The avatar image could not be processed."):
        super().__init__(
            message=message,
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            error_code=ErrorCode.VALIDATION_FAILED,
        )
