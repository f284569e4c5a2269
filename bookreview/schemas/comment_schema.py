from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from bookreview.schemas.user_schema import UserSummary


class CommentCreate(BaseModel):
    """Schema for commenting on a review or replying to a comment."""

    content: str = Field(..., description="Comment text, 1 to 1000 characters")
    parent_comment_id: Optional[int] = Field(
        None, gt=0, description="Comment this one replies to"
    )


class CommentUpdate(BaseModel):
    content: str = Field(..., description="Updated comment text")


class CommentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    review_id: int
    user_id: int
    parent_comment_id: Optional[int] = None
    content: str
    likes_count: int
    created_at: datetime
    updated_at: datetime
    user: Optional[UserSummary] = None


class CommentListResponse(BaseModel):
    comments: List[CommentResponse]
    total: int = Field(..., ge=0)
    page: int = Field(..., ge=1)
    limit: int = Field(..., ge=1)
    total_pages: int = Field(..., ge=0)
    has_next: bool
    has_prev: bool
