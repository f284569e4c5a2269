# bookreview/schemas/review_schema.py
"""
Review schemas for request/response models.

Field rules (rating range, title and content lengths) are enforced by the
review service on the merged values, so create and update report every
failed rule in one message.
"""

from typing import Optional, List, Dict, Any, Literal
from datetime import datetime

from pydantic import BaseModel, Field, ConfigDict, field_validator, model_validator

from bookreview.core.config import settings
from bookreview.schemas.book_schema import BookSummary
from bookreview.schemas.user_schema import UserSummary


# ------CRUD SCHEMAS------
class ReviewCreate(BaseModel):
    """Schema for creating a review."""

    book_id: int = Field(..., gt=0, description="ID of the book being reviewed")
    rating: int = Field(..., description="Rating from 1 to 5 stars", examples=[5])
    title: str = Field(..., description="Review title", examples=["An excellent read!"])
    content: str = Field(
        ...,
        description="Detailed review text",
        examples=["This book exceeded my expectations in every way..."],
    )
    spoiler_warning: Optional[bool] = Field(
        None,
        description="Whether the review contains spoilers; detected from content when omitted",
    )


class ReviewUpdate(BaseModel):
    """Schema for updating a review. Omitted fields keep their value."""

    rating: Optional[int] = Field(None, description="Updated rating", examples=[4])
    title: Optional[str] = Field(None, description="Updated title")
    content: Optional[str] = Field(None, description="Updated review text")
    spoiler_warning: Optional[bool] = Field(None, description="Updated spoiler flag")

    @model_validator(mode="before")
    @classmethod
    def validate_at_least_one_field(cls, values: Any) -> Any:
        """Ensure at least one field is provided for update."""
        if isinstance(values, dict) and not any(
            v is not None for v in values.values()
        ):
            raise ValueError("At least one field must be provided for update")
        return values


# ----- Response Schemas ------
class ReviewResponse(BaseModel):
    """Review with minimal user and book projections."""

    model_config = ConfigDict(from_attributes=True)

    id: int = Field(..., description="Review ID")
    user_id: int = Field(..., description="Reviewer's user ID")
    book_id: int = Field(..., description="Reviewed book ID")
    rating: int
    title: str
    content: str
    spoiler_warning: bool
    likes_count: int = Field(..., ge=0, description="Number of likes")
    comments_count: int = Field(..., ge=0, description="Number of comments")
    created_at: datetime = Field(..., description="Creation timestamp")
    updated_at: datetime = Field(..., description="Last update timestamp")
    user: Optional[UserSummary] = Field(None, description="Reviewer information")
    book: Optional[BookSummary] = Field(None, description="Book information")


class ReviewListResponse(BaseModel):
    """Response for a paginated review list."""

    reviews: List[ReviewResponse] = Field(..., description="List of reviews")
    total: int = Field(..., ge=0, description="Total number of matching reviews")
    page: int = Field(..., ge=1, description="Current page number")
    limit: int = Field(..., ge=1, description="Page size")
    total_pages: int = Field(..., ge=0, description="Total number of pages")
    has_next: bool
    has_prev: bool


class ReviewStatsResponse(BaseModel):
    """Aggregate statistics over one user's reviews."""

    total_reviews: int = Field(..., ge=0)
    average_rating: float = Field(..., ge=0, le=5, description="Rounded to 2 decimals")
    rating_distribution: Dict[int, int] = Field(
        ..., description="Count of reviews per rating, keys 1-5 always present"
    )


# -----LIST AND SEARCH PARAMS------
class ReviewFilterParams(BaseModel):
    """Filters for listing reviews."""

    book_id: Optional[int] = Field(None, gt=0, description="Filter by book ID")
    user_id: Optional[int] = Field(None, gt=0, description="Filter by user ID")
    rating: Optional[int] = Field(None, ge=1, le=5, description="Filter by exact rating")
    min_rating: Optional[int] = Field(None, ge=1, le=5, description="Minimum rating")
    max_rating: Optional[int] = Field(None, ge=1, le=5, description="Maximum rating")
    spoiler_warning: Optional[bool] = Field(
        None, description="Filter by spoiler flag"
    )


class ReviewPaginationParams(BaseModel):
    """Pagination and ordering for review lists."""

    page: int = Field(1, ge=1, description="Page number, 1-indexed")
    limit: int = Field(
        settings.DEFAULT_PAGE_SIZE,
        ge=1,
        le=settings.MAX_PAGE_SIZE,
        description="Page size",
    )
    sort_by: Literal["created_at", "rating", "likes_count"] = Field(
        "created_at", description="Sort field"
    )
    sort_order: Literal["ASC", "DESC"] = Field("DESC", description="Sort order")

    @field_validator("sort_order", mode="before")
    @classmethod
    def normalize_sort_order(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.upper()
        return v

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


# ----MODERATION-------
class ReviewFlagCreate(BaseModel):
    """Schema for flagging a review for moderation."""

    reason: str = Field(..., min_length=1, max_length=500, description="Why the review is flagged")

    @field_validator("reason")
    @classmethod
    def clean_reason(cls, v: str) -> str:
        cleaned = v.strip()
        if not cleaned:
            raise ValueError("Reason cannot be blank")
        return cleaned


class ReviewFlagResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    review_id: int
    user_id: int
    reason: str
    created_at: datetime


__all__ = [
    "ReviewCreate",
    "ReviewUpdate",
    "ReviewResponse",
    "ReviewListResponse",
    "ReviewStatsResponse",
    "ReviewFilterParams",
    "ReviewPaginationParams",
    "ReviewFlagCreate",
    "ReviewFlagResponse",
]
