"""Response envelope shared by every endpoint."""

from datetime import datetime
from typing import Any, Generic, Optional, TypeVar

from fastapi import Request
from pydantic import BaseModel, Field

from bookreview.utils.datetime_utils import utcnow

T = TypeVar("T")


class ErrorBody(BaseModel):
    code: str = Field(..., description="Stable machine readable error code")
    message: str = Field(..., description="Human readable message")
    details: Optional[Any] = Field(None, description="Per-field or per-rule details")


class ApiResponse(BaseModel, Generic[T]):
    """`{success, data?, error?, timestamp, path?}`"""

    success: bool = Field(True, description="Whether the request succeeded")
    data: Optional[T] = Field(None, description="Response payload")
    error: Optional[ErrorBody] = Field(None, description="Error information")
    timestamp: datetime = Field(default_factory=utcnow)
    path: Optional[str] = Field(None, description="Request path")


def success_response(data: Any, request: Optional[Request] = None) -> ApiResponse:
    """Wrap `data` in a successful envelope."""
    return ApiResponse(
        success=True,
        data=data,
        path=request.url.path if request is not None else None,
    )
