# app/core/exceptions.py
"""
Application exception hierarchy.

Every exception carries the HTTP status, a machine readable error code and a
human readable detail. The handlers in ``app.core.exception_handler`` turn them
into the standard error envelope.
"""

from typing import Any, Optional

from fastapi import status


class AppException(Exception):
    """Base class for all expected application errors."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    error_code: str = "INTERNAL_SERVER_ERROR"
    default_detail: str = "An unexpected error occurred."

    def __init__(
        self,
        detail: Optional[str] = None,
        *,
        error_code: Optional[str] = None,
        headers: Optional[dict] = None,
        **context: Any,
    ):
        self.detail = detail or self.default_detail
        if error_code:
            self.error_code = error_code
        self.headers = headers
        self.context = context
        super().__init__(self.detail)


# ---- 4xx ----
class ValidationError(AppException):
    status_code = status.HTTP_400_BAD_REQUEST
    error_code = "VALIDATION_ERROR"
    default_detail = "The submitted data is invalid."


class NotAuthenticated(AppException):
    status_code = status.HTTP_401_UNAUTHORIZED
    error_code = "MISSING_TOKEN"
    default_detail = "Access token is required"

    def __init__(self, detail: Optional[str] = None, **kwargs: Any):
        kwargs.setdefault("headers", {"WWW-Authenticate": "Bearer"})
        super().__init__(detail, **kwargs)


class InvalidToken(AppException):
    status_code = status.HTTP_403_FORBIDDEN
    error_code = "INVALID_TOKEN"
    default_detail = "Invalid or expired token"


class TokenExpired(InvalidToken):
    default_detail = "Token has expired"


class TokenRevoked(InvalidToken):
    default_detail = "Token has been revoked"


class ResourceNotFound(AppException):
    status_code = status.HTTP_404_NOT_FOUND
    error_code = "RESOURCE_NOT_FOUND"
    default_detail = "The requested resource was not found."

    def __init__(
        self,
        detail: Optional[str] = None,
        *,
        resource_type: Optional[str] = None,
        resource_id: Any = None,
        **kwargs: Any,
    ):
        if detail is None and resource_type:
            detail = f"{resource_type} not found"
            if resource_id is not None:
                detail = f"{resource_type} with id {resource_id} not found"
        self.resource_type = resource_type
        self.resource_id = resource_id
        super().__init__(detail, **kwargs)


class ReviewNotFound(ResourceNotFound):
    error_code = "REVIEW_NOT_FOUND"
    default_detail = "Review not found"

    def __init__(self, review_id: Any = None, **kwargs: Any):
        kwargs.setdefault("resource_type", "Review")
        super().__init__(resource_id=review_id, **kwargs)


class RateLimitExceeded(AppException):
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    error_code = "RATE_LIMIT_EXCEEDED"
    default_detail = "Too many requests, please try again later."


# ---- 5xx ----
class InternalServerError(AppException):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    error_code = "INTERNAL_SERVER_ERROR"
    default_detail = "An unexpected error occurred."


__all__ = [
    "AppException",
    "ValidationError",
    "NotAuthenticated",
    "InvalidToken",
    "TokenExpired",
    "TokenRevoked",
    "ResourceNotFound",
    "ReviewNotFound",
    "RateLimitExceeded",
    "InternalServerError",
]
