"""Typed API errors.

Every business-rule violation is raised as one of these and rendered by the
app-level handler as ``{"success": false, "message": ...}`` with the
matching HTTP status.
"""

from typing import Any, Optional

from fastapi import status


class ApiError(Exception):
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str = "INTERNAL_ERROR"
    message: str = "Internal server error"

    def __init__(self, message: Optional[str] = None, **extra: Any):
        self.message = message or self.__class__.message
        self.extra = extra
        super().__init__(self.message)

    def to_content(self) -> dict:
        return {"success": False, "message": self.message, **self.extra}


class ValidationError(ApiError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "VALIDATION_ERROR"
    message = "Validation failed"


class Unauthorized(ApiError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "NOT_AUTHENTICATED"
    message = "Not authenticated"


class Forbidden(ApiError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "FORBIDDEN"
    message = "You don't have permission to perform this action"


class NotFound(ApiError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "NOT_FOUND"
    message = "Resource not found"


class Conflict(ApiError):
    status_code = status.HTTP_409_CONFLICT
    code = "CONFLICT"
    message = "Resource already exists"


class DependencyExists(ApiError):
    """Deletion blocked by active dependent records."""

    status_code = status.HTTP_400_BAD_REQUEST
    code = "DEPENDENCY_EXISTS"
    message = "Active dependent records exist"


class InternalError(ApiError):
    """Unexpected failure; the message is passed through when one is given."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "INTERNAL_ERROR"
    message = "Internal server error"
