# bookreview/core/exceptions.py
"""
Application exception hierarchy.

Every exception carries the HTTP status it maps to and a stable error code,
so the exception handlers can render it without inspecting messages.
"""

from typing import Any, Optional, List

from fastapi import status


class BaseAppException(Exception):
    """Base class for all expected, operational errors."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    error_code: str = "INTERNAL_SERVER_ERROR"
    default_detail: str = "An unexpected error occurred."

    def __init__(
        self,
        detail: Optional[str] = None,
        *,
        error_code: Optional[str] = None,
        details: Optional[Any] = None,
        **context: Any,
    ):
        self.detail = detail or self.default_detail
        if error_code:
            self.error_code = error_code
        self.details = details
        self.context = context
        super().__init__(self.detail)

    def __str__(self) -> str:
        return self.detail


# ---- 4xx ----
class BadRequestException(BaseAppException):
    status_code = status.HTTP_400_BAD_REQUEST
    error_code = "BAD_REQUEST"
    default_detail = "The request could not be processed."


class ValidationError(BaseAppException):
    """One or more field rules failed."""

    status_code = status.HTTP_400_BAD_REQUEST
    error_code = "VALIDATION_ERROR"
    default_detail = "Validation failed."

    def __init__(self, detail: Optional[str] = None, *, errors: Optional[List[str]] = None, **kwargs: Any):
        self.errors = errors or []
        if detail is None and self.errors:
            detail = f"Validation failed: {', '.join(self.errors)}"
        kwargs.setdefault("details", self.errors or None)
        super().__init__(detail, **kwargs)


class NotAuthenticated(BaseAppException):
    status_code = status.HTTP_401_UNAUTHORIZED
    error_code = "UNAUTHORIZED"
    default_detail = "Authentication required."


class InvalidToken(NotAuthenticated):
    default_detail = "Could not validate credentials."


class TokenExpired(InvalidToken):
    default_detail = "Token has expired."


class TokenTypeInvalid(InvalidToken):
    default_detail = "Token type is invalid."


class InactiveUser(NotAuthenticated):
    default_detail = "User account is inactive."


class NotAuthorized(BaseAppException):
    """The requester does not own the resource."""

    status_code = status.HTTP_403_FORBIDDEN
    error_code = "FORBIDDEN"
    default_detail = "You are not authorized to perform this action."


class ResourceNotFound(BaseAppException):
    status_code = status.HTTP_404_NOT_FOUND
    error_code = "NOT_FOUND"
    default_detail = "Resource not found."

    def __init__(
        self,
        detail: Optional[str] = None,
        *,
        resource_type: Optional[str] = None,
        resource_id: Optional[Any] = None,
        **kwargs: Any,
    ):
        if detail is None and resource_type:
            detail = f"{resource_type} not found"
            if resource_id is not None:
                detail = f"{resource_type} with id {resource_id} not found"
        super().__init__(
            detail, resource_type=resource_type, resource_id=resource_id, **kwargs
        )


class ResourceAlreadyExists(BaseAppException):
    status_code = status.HTTP_409_CONFLICT
    error_code = "CONFLICT"
    default_detail = "Resource already exists."

    def __init__(
        self,
        detail: Optional[str] = None,
        *,
        resource_type: Optional[str] = None,
        **kwargs: Any,
    ):
        if detail is None and resource_type:
            detail = f"{resource_type} already exists"
        super().__init__(detail, resource_type=resource_type, **kwargs)


# ---- 5xx ----
class InternalServerError(BaseAppException):
    """Unexpected failure of the persistence layer or other infrastructure."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    error_code = "INTERNAL_SERVER_ERROR"
    default_detail = "An unexpected error occurred."


__all__ = [
    "BaseAppException",
    "BadRequestException",
    "ValidationError",
    "NotAuthenticated",
    "InvalidToken",
    "TokenExpired",
    "TokenTypeInvalid",
    "InactiveUser",
    "NotAuthorized",
    "ResourceNotFound",
    "ResourceAlreadyExists",
    "InternalServerError",
]
