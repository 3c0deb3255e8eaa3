"""
Error handling utilities for Lambda functions.

Provides standardized errors with error codes and HTTP status codes.
Every handler maps failures onto this taxonomy before responding.
"""

from typing import Any, Dict, Optional


# Common error codes
class ErrorCode:
    """Standard error codes for the application."""

    # Authentication errors
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"

    # Resource errors
    NOT_FOUND = "NOT_FOUND"
    ALREADY_EXISTS = "ALREADY_EXISTS"

    # Validation errors
    INVALID_INPUT = "INVALID_INPUT"
    INVALID_JSON = "INVALID_JSON"
    METHOD_NOT_ALLOWED = "METHOD_NOT_ALLOWED"

    # Store errors
    THROTTLED = "THROTTLED"
    DATABASE_ERROR = "DATABASE_ERROR"

    # Upstream service errors
    EMAIL_DELIVERY_FAILED = "EMAIL_DELIVERY_FAILED"
    AUTH_PROVIDER_ERROR = "AUTH_PROVIDER_ERROR"

    # System errors
    INTERNAL_ERROR = "INTERNAL_ERROR"


class AppError(Exception):
    """
    Application error with error code, message and HTTP status.

    Subclasses fix the status code for each outcome class; handlers turn
    any AppError into an error envelope with that status.
    """

    status_code = 500

    def __init__(self, error_code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.error_code = error_code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for the error envelope."""
        error: Dict[str, Any] = {"errorCode": self.error_code, "message": self.message}
        if self.details:
            error["details"] = self.details
        return error


class ValidationError(AppError):
    """Malformed or unacceptable request input."""

    status_code = 400

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        error_code: str = ErrorCode.INVALID_INPUT,
    ):
        super().__init__(error_code, message, details)


class AuthenticationError(AppError):
    """Missing, invalid or expired token, or caller not allowed to act."""

    status_code = 401

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        error_code: str = ErrorCode.UNAUTHORIZED,
    ):
        super().__init__(error_code, message, details)


class NotFoundError(AppError):
    status_code = 404

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(ErrorCode.NOT_FOUND, message, details)


class MethodNotAllowedError(AppError):
    status_code = 405

    def __init__(self, method: Optional[str]):
        super().__init__(
            ErrorCode.METHOD_NOT_ALLOWED,
            f"HTTP method {method} is not allowed",
            {"method": method},
        )


class ConflictError(AppError):
    """Conditional create failed because the key already exists."""

    status_code = 409

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(ErrorCode.ALREADY_EXISTS, message, details)


class ThrottlingError(AppError):
    """Store capacity exceeded; the caller decides whether to retry."""

    status_code = 429

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(ErrorCode.THROTTLED, message, details)


class InternalError(AppError):
    status_code = 500

    def __init__(
        self,
        message: str = "An unexpected error occurred. Please try again.",
        details: Optional[Dict[str, Any]] = None,
        error_code: str = ErrorCode.INTERNAL_ERROR,
    ):
        super().__init__(error_code, message, details)


class UpstreamServiceError(AppError):
    """A downstream AWS service (SES, Cognito) rejected the request."""

    status_code = 502

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        error_code: str = ErrorCode.EMAIL_DELIVERY_FAILED,
    ):
        super().__init__(error_code, message, details)


def handle_error(error: Exception) -> Dict[str, Any]:
    """
    Convert exception to standardized error dictionary.

    Args:
        error: Exception to handle

    Returns:
        Error dictionary for the response envelope
    """
    if isinstance(error, AppError):
        return error.to_dict()

    # Unexpected error - return generic message
    return {
        "errorCode": ErrorCode.INTERNAL_ERROR,
        "message": "An unexpected error occurred. Please try again.",
    }


def to_app_error(error: Exception) -> AppError:
    """Return ``error`` itself when it is an AppError, else wrap it as InternalError."""
    if isinstance(error, AppError):
        return error
    internal = InternalError(details={"errorType": type(error).__name__})
    internal.__cause__ = error
    return internal
