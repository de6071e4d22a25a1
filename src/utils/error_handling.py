"""Custom exceptions and helpers for consistent error responses."""

import json
from typing import Any, Dict


class AppError(Exception):
    """Base class for application errors."""

    error_type = "error"

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class ValidationError(AppError):
    """Raised when input validation fails."""

    error_type = "validation_error"

    def __init__(self, message: str = "Invalid input"):
        super().__init__(message, status_code=422)


class AuthenticationError(AppError):
    """Raised when the request carries no resolvable user."""

    error_type = "authentication_error"

    def __init__(self, message: str = "Authentication required"):
        super().__init__(message, status_code=401)


class AuthorizationError(AppError):
    """Raised when the acting user may not perform the operation."""

    error_type = "not_authorized"

    def __init__(self, message: str = "Not authorized"):
        super().__init__(message, status_code=403)


class NotFoundError(AppError):
    """Raised when a requested resource is missing."""

    error_type = "not_found"

    def __init__(self, message: str = "Resource not found"):
        super().__init__(message, status_code=404)


class ConflictError(AppError):
    """Raised when an operation would break a domain invariant."""

    error_type = "conflict"

    def __init__(self, message: str = "Conflict"):
        super().__init__(message, status_code=409)


class ConcurrentModificationError(ConflictError):
    """Raised when a record changed underneath an optimistic write."""

    error_type = "concurrent_modification"


def to_response(error: AppError) -> Dict[str, Any]:
    """Convert an AppError into a Lambda proxy integration response."""
    return {
        "statusCode": error.status_code,
        "headers": {"Content-Type": "application/json"},
        "body": json.dumps(
            {
                "message": error.message,
                "status": "error",
                "error_type": error.error_type,
            }
        ),
    }
