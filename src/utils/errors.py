"""
Error handling utilities for Lambda functions.

Provides standardized error responses with error codes for both the REST
(API Gateway) and GraphQL (AppSync) entry points.
"""

from typing import Any, Dict, Optional


class AppError(Exception):
    """
    Application error with error code and message.

    AppSync resolvers let it propagate; REST handlers convert it to an HTTP
    response using ``status_code``.
    """

    def __init__(self, error_code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.error_code = error_code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    @property
    def status_code(self) -> int:
        """HTTP status matching the error code."""
        return HTTP_STATUS_BY_CODE.get(self.error_code, 500)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for an API response body."""
        return {
            "errorCode": self.error_code,
            "message": self.message,
            **self.details,
        }


# Common error codes
class ErrorCode:
    """Standard error codes for the application."""

    # Authorization errors
    FORBIDDEN = "FORBIDDEN"
    UNAUTHORIZED = "UNAUTHORIZED"

    # Resource errors
    NOT_FOUND = "NOT_FOUND"
    ALREADY_EXISTS = "ALREADY_EXISTS"
    QUICKSIGHT_USER_NOT_FOUND = "QUICKSIGHT_USER_NOT_FOUND"

    # Validation errors
    INVALID_INPUT = "INVALID_INPUT"

    # Business logic errors
    INVALID_STATE = "INVALID_STATE"

    # System errors
    INTERNAL_ERROR = "INTERNAL_ERROR"
    DATABASE_ERROR = "DATABASE_ERROR"


HTTP_STATUS_BY_CODE: Dict[str, int] = {
    ErrorCode.INVALID_INPUT: 400,
    ErrorCode.UNAUTHORIZED: 401,
    ErrorCode.FORBIDDEN: 403,
    ErrorCode.NOT_FOUND: 404,
    ErrorCode.QUICKSIGHT_USER_NOT_FOUND: 404,
    ErrorCode.ALREADY_EXISTS: 409,
    ErrorCode.INVALID_STATE: 409,
    ErrorCode.INTERNAL_ERROR: 500,
    ErrorCode.DATABASE_ERROR: 500,
}
